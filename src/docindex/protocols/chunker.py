"""Protocol for text chunking strategies."""

from typing import Protocol, runtime_checkable

from docindex.models import Chunk


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Protocol for text chunking strategies.

    Chunks must be order-preserving and together cover the whole text.
    """

    def chunk(self, text: str, file_path: str) -> list[Chunk]:
        """Split text into chunks with metadata."""
        ...
