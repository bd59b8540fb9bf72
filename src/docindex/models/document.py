"""Core data models for indexed files, chunks and search results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

import numpy as np


@dataclass
class FileRecord:
    """Metadata and extracted text for one indexed file."""

    path: str
    name: str
    file_type: str
    size: int
    modified_at: datetime
    content_hash: str
    extracted_text: str = ""
    indexed_at: datetime = field(default_factory=datetime.now)
    id: Optional[int] = None


@dataclass
class Chunk:
    """A chunk of extracted text with its position in the source."""

    text: str
    file_path: str
    chunk_index: int
    start_char: int
    end_char: int


@dataclass
class ChunkEmbedding:
    """A stored chunk together with its embedding vector."""

    file_id: int
    chunk_index: int
    chunk_text: str
    embedding: np.ndarray
    created_at: datetime = field(default_factory=datetime.now)
    id: Optional[int] = None


@dataclass
class SearchResult:
    """One ranked match. Never persisted."""

    file: FileRecord
    score: float
    chunk_text: str
    chunk_index: int


@dataclass(frozen=True)
class EncryptionReport:
    """Best-effort encryption classification for a file.

    The flags come from byte-pattern heuristics and are only a diagnostic
    label, not a security determination.
    """

    os_encrypted: bool = False
    pdf_password: bool = False
    vendor_encrypted: bool = False
    readable: bool = True

    @property
    def detected(self) -> bool:
        return self.os_encrypted or self.pdf_password or self.vendor_encrypted

    @property
    def description(self) -> Optional[str]:
        labels = []
        if self.os_encrypted:
            labels.append("OS file-system encryption")
        if self.pdf_password:
            labels.append("PDF password encryption")
        if self.vendor_encrypted:
            labels.append("WPS/Kingsoft Office encryption")
        if not labels:
            return None
        description = " + ".join(labels)
        if not self.readable:
            description += " (file not readable by this user)"
        return description


@dataclass
class ExtractionResult:
    """Text produced by an extractor and how it was obtained."""

    text: str
    method: str
    encryption: Optional[EncryptionReport] = None
    failed_pages: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class FileStatus(str, Enum):
    """Terminal state of one file's pipeline run."""

    UNCHANGED = "unchanged"
    INDEXED = "indexed"
    PARTIAL = "partial"
    EMPTY = "empty"
    ENCRYPTED = "encrypted"
    MISSING = "missing"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class FileOutcome:
    """Result of running the pipeline over a single path."""

    path: str
    status: FileStatus
    chunks: int = 0
    embeddings: int = 0
    message: str = ""


@dataclass
class IndexReport:
    """Aggregate result of a batch indexing run."""

    total: int = 0
    outcomes: list[FileOutcome] = field(default_factory=list)
    fatal_error: Optional[str] = None

    @property
    def processed(self) -> int:
        return sum(1 for o in self.outcomes if o.status is not FileStatus.CANCELLED)

    def count(self, status: FileStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    def summary(self) -> str:
        counts = {s.value: self.count(s) for s in FileStatus if self.count(s)}
        parts = ", ".join(f"{k}: {v}" for k, v in counts.items())
        return f"Processed {self.processed}/{self.total} files ({parts or 'nothing to do'})"
