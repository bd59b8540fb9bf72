"""Data models for docindex."""

from docindex.models.document import (
    Chunk,
    ChunkEmbedding,
    EncryptionReport,
    ExtractionResult,
    FileOutcome,
    FileRecord,
    FileStatus,
    IndexReport,
    SearchResult,
)

__all__ = [
    "Chunk",
    "ChunkEmbedding",
    "EncryptionReport",
    "ExtractionResult",
    "FileOutcome",
    "FileRecord",
    "FileStatus",
    "IndexReport",
    "SearchResult",
]
