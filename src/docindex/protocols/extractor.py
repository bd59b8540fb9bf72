"""Protocols for text extraction strategies."""

import threading
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from PIL import Image

from docindex.models import ExtractionResult


@runtime_checkable
class Extractor(Protocol):
    """Protocol for per-format text extractors.

    Implementations handle one family of formats (plain text, delimited
    text, office documents, PDF). Uses structural subtyping - no inheritance
    required.
    """

    @property
    def extensions(self) -> frozenset[str]:
        """Return the lower-case extensions (with dot) this extractor handles."""
        ...

    def can_handle(self, path: Path) -> bool:
        """Check if this extractor can process the given file."""
        ...

    def extract(self, path: Path, cancel: Optional[threading.Event] = None) -> ExtractionResult:
        """Extract text from the file.

        ``cancel`` is checked by extractors with long-running stages.

        Raises MalformedInput when the file cannot be parsed at all.
        """
        ...


@runtime_checkable
class OcrEngine(Protocol):
    """Protocol for local OCR engines."""

    def image_to_text(self, image: Image.Image) -> str:
        """Recognize text in a rendered page image."""
        ...


@runtime_checkable
class Decryptor(Protocol):
    """Optional platform-specific helper that can unlock encrypted files."""

    def try_decrypt(self, path: Path) -> Optional[str]:
        """Return the decrypted text, or None if the file cannot be unlocked."""
        ...
