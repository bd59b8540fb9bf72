"""Content digests and the skip-vs-reindex decision."""

import hashlib
from pathlib import Path

from docindex.storage import IndexStore

READ_BLOCK_SIZE = 1024 * 1024


def compute_digest(path: str | Path, block_size: int = READ_BLOCK_SIZE) -> str:
    """Return the SHA-256 hex digest of the full file contents."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        while True:
            block = f.read(block_size)
            if not block:
                break
            h.update(block)
    return h.hexdigest()


class ChangeDetector:
    """Decides whether a file needs (re-)extraction.

    Only the content digest is authoritative. Size and modification time are
    recorded but never trigger a reindex on their own.
    """

    def __init__(self, store: IndexStore):
        self.store = store

    def needs_index(self, path: str, digest: str, force: bool = False) -> bool:
        """Return True unless an identical record for this path is stored."""
        if force:
            return True
        return not self.store.file_is_current(path, digest)
