"""SQLite-backed storage for file records and chunk embeddings."""

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import numpy as np

from docindex.models import ChunkEmbedding, FileRecord
from docindex.storage.schema import SCHEMA

logger = logging.getLogger(__name__)


class IndexStore:
    """SQLite-backed storage for the document index.

    Every operation opens its own connection, so the store can be shared
    between worker threads. Reads run concurrently (WAL mode); writes are
    serialized by a store-level lock.
    """

    def __init__(self, path: Path | str, timeout: float = 30.0):
        self.path = Path(path)
        self.timeout = timeout
        self._write_lock = threading.Lock()

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def writer(self) -> Iterator[sqlite3.Connection]:
        """Connection for a write; the whole block is one transaction."""
        with self._write_lock, self.connection() as conn:
            yield conn

    def initialize(self) -> None:
        """Create schema if not exists."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.writer() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(SCHEMA)

    # File records

    def get_file_by_path(self, path: str) -> Optional[FileRecord]:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM FileMetadata WHERE filePath = ?", (path,)
            ).fetchone()
            return _row_to_record(row) if row else None

    def get_file(self, file_id: int) -> Optional[FileRecord]:
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM FileMetadata WHERE id = ?", (file_id,)
            ).fetchone()
            return _row_to_record(row) if row else None

    def file_is_current(self, path: str, content_hash: str) -> bool:
        """True if a record with this exact path and hash is stored."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM FileMetadata WHERE filePath = ? AND hash = ?",
                (path, content_hash),
            ).fetchone()
            return row is not None

    def list_files(self, path_prefix: str = "") -> list[FileRecord]:
        """List all file records, optionally filtered by path prefix."""
        with self.connection() as conn:
            cursor = conn.execute(
                """SELECT * FROM FileMetadata
                   WHERE substr(filePath, 1, length(?)) = ?
                   ORDER BY filePath""",
                (path_prefix, path_prefix),
            )
            return [_row_to_record(row) for row in cursor]

    def replace_file(self, record: FileRecord, embeddings: list[ChunkEmbedding]) -> int:
        """Upsert a file record and swap in its new chunk embeddings.

        The upsert, the deletion of the old chunks and the inserts happen in
        one transaction, so readers never see a half-updated file.

        Returns:
            The file record id.
        """
        with self.writer() as conn:
            conn.execute(
                """INSERT INTO FileMetadata
                   (fileName, filePath, fileType, fileSize, modifiedDate,
                    extractedText, indexedDate, hash)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT(filePath) DO UPDATE SET
                     fileName = excluded.fileName,
                     fileType = excluded.fileType,
                     fileSize = excluded.fileSize,
                     modifiedDate = excluded.modifiedDate,
                     extractedText = excluded.extractedText,
                     indexedDate = excluded.indexedDate,
                     hash = excluded.hash""",
                (
                    record.name,
                    record.path,
                    record.file_type,
                    record.size,
                    record.modified_at.isoformat(),
                    record.extracted_text,
                    record.indexed_at.isoformat(),
                    record.content_hash,
                ),
            )
            file_id = conn.execute(
                "SELECT id FROM FileMetadata WHERE filePath = ?", (record.path,)
            ).fetchone()["id"]
            conn.execute("DELETE FROM ChunkEmbedding WHERE fileMetadataId = ?", (file_id,))
            for emb in embeddings:
                cursor = conn.execute(
                    """INSERT INTO ChunkEmbedding
                       (fileMetadataId, chunkText, chunkIndex, embeddingJson, createdDate)
                       VALUES (?, ?, ?, ?, ?)""",
                    (
                        file_id,
                        emb.chunk_text,
                        emb.chunk_index,
                        json.dumps([float(x) for x in emb.embedding]),
                        emb.created_at.isoformat(),
                    ),
                )
                emb.id = cursor.lastrowid
                emb.file_id = file_id
        record.id = file_id
        return file_id

    def delete_file(self, file_id: int) -> None:
        """Delete a file record; its chunk embeddings cascade."""
        with self.writer() as conn:
            conn.execute("DELETE FROM FileMetadata WHERE id = ?", (file_id,))

    # Chunk embeddings

    def get_embeddings(self, file_id: int) -> list[ChunkEmbedding]:
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM ChunkEmbedding WHERE fileMetadataId = ? ORDER BY chunkIndex",
                (file_id,),
            )
            return [_row_to_embedding(row) for row in cursor]

    def iter_embeddings(self) -> Iterator[ChunkEmbedding]:
        """Yield every stored chunk embedding in insertion order."""
        with self.connection() as conn:
            cursor = conn.execute("SELECT * FROM ChunkEmbedding ORDER BY id")
            for row in cursor:
                yield _row_to_embedding(row)

    def count_embeddings(self, file_id: Optional[int] = None) -> int:
        with self.connection() as conn:
            if file_id is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM ChunkEmbedding").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM ChunkEmbedding WHERE fileMetadataId = ?",
                    (file_id,),
                ).fetchone()
            return row["n"]

    # Index metadata

    def set_metadata(self, key: str, value: str) -> None:
        """Store a metadata key-value pair."""
        with self.writer() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO IndexMetadata (key, value) VALUES (?, ?)",
                (key, value),
            )

    def get_metadata(self, key: str) -> Optional[str]:
        """Retrieve a metadata value by key."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT value FROM IndexMetadata WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None


def _row_to_record(row: sqlite3.Row) -> FileRecord:
    file_type = (row["fileType"] or "").strip().lower()
    if file_type and not file_type.startswith("."):
        file_type = "." + file_type
    return FileRecord(
        id=row["id"],
        name=row["fileName"],
        path=row["filePath"],
        file_type=file_type,
        size=row["fileSize"],
        modified_at=datetime.fromisoformat(row["modifiedDate"]),
        extracted_text=row["extractedText"] or "",
        indexed_at=datetime.fromisoformat(row["indexedDate"]),
        content_hash=row["hash"],
    )


def _row_to_embedding(row: sqlite3.Row) -> ChunkEmbedding:
    return ChunkEmbedding(
        id=row["id"],
        file_id=row["fileMetadataId"],
        chunk_index=row["chunkIndex"],
        chunk_text=row["chunkText"],
        embedding=np.asarray(json.loads(row["embeddingJson"]), dtype=np.float32),
        created_at=datetime.fromisoformat(row["createdDate"]),
    )
