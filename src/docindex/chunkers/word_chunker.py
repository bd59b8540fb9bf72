"""Word-packing chunking strategy."""

import re

from docindex.models import Chunk

_WORD = re.compile(r"\S+")


class WordChunker:
    """Greedy whitespace chunker with a character budget.

    - Tokenizes on whitespace and never splits inside a word
    - Packs words while ``length + len(word) + 1 <= max_chars``
    - A single word longer than the budget becomes its own chunk
    - Chunk text is the words joined by single spaces
    """

    DEFAULT_MAX_CHARS = 1000

    def __init__(self, max_chars: int = DEFAULT_MAX_CHARS):
        if max_chars < 1:
            raise ValueError("max_chars must be positive")
        self.max_chars = max_chars

    def chunk(self, text: str, file_path: str) -> list[Chunk]:
        """Split text into chunks with metadata.

        Args:
            text: The text content to chunk
            file_path: Path to the source file (for metadata)

        Returns:
            List of Chunk objects; empty for blank input
        """
        if not text or not text.strip():
            return []

        chunks: list[Chunk] = []
        words: list[str] = []
        length = 0
        start = end = 0

        def flush() -> None:
            chunks.append(
                Chunk(
                    text=" ".join(words),
                    file_path=file_path,
                    chunk_index=len(chunks),
                    start_char=start,
                    end_char=end,
                )
            )

        for match in _WORD.finditer(text):
            word = match.group()
            if words and length + len(word) + 1 > self.max_chars:
                flush()
                words = []
                length = 0

            if not words:
                start = match.start()
                length = len(word)
            else:
                length += len(word) + 1
            words.append(word)
            end = match.end()

        if words:
            flush()

        return chunks
