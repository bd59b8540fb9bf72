"""Persistence for file records and chunk embeddings."""

from docindex.storage.store import IndexStore

__all__ = ["IndexStore"]
