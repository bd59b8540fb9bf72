"""Plain and delimited text extractors."""

import threading
from pathlib import Path
from typing import Optional

from docindex.errors import MalformedInput
from docindex.models import ExtractionResult


def _read_text(path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8", errors="replace")
    except OSError as e:
        raise MalformedInput(f"Cannot read {path}: {e}") from e


class PlainTextExtractor:
    """Reads .txt and .md files as UTF-8, replacing undecodable bytes."""

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".txt", ".md"})

    def can_handle(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def extract(self, path: Path, cancel: Optional[threading.Event] = None) -> ExtractionResult:
        return ExtractionResult(text=_read_text(path), method="text")


class DelimitedTextExtractor:
    """Flattens .csv files: every line joined with a single space."""

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".csv"})

    def can_handle(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def extract(self, path: Path, cancel: Optional[threading.Event] = None) -> ExtractionResult:
        lines = _read_text(path).splitlines()
        return ExtractionResult(text=" ".join(lines), method="csv")
