"""Brute-force semantic search over stored chunk embeddings."""

import logging
from typing import Optional

import numpy as np

from docindex.models import FileRecord, SearchResult
from docindex.protocols import EmbeddingProvider
from docindex.storage import IndexStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Compute cosine similarity between two vectors.

    Returns 0.0 when either vector has zero magnitude; the result is clipped
    to [-1, 1] to absorb floating point drift.
    """
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


class VectorSearch:
    """Ranks every stored chunk against a query embedding.

    Ties keep insertion order. Vectors whose dimension differs from the
    query's (left over from another embedding model) are skipped.
    """

    def __init__(self, store: IndexStore, embedder: EmbeddingProvider):
        self.store = store
        self.embedder = embedder

    def search(self, query: str, k: int = DEFAULT_TOP_K) -> list[SearchResult]:
        if k <= 0 or not query.strip():
            return []

        query_vector = np.asarray(self.embedder.embed([query])[0], dtype=np.float32)

        scored = []
        skipped = 0
        for emb in self.store.iter_embeddings():
            if emb.embedding.shape != query_vector.shape:
                skipped += 1
                continue
            scored.append((cosine_similarity(query_vector, emb.embedding), emb))
        if skipped:
            logger.warning(
                f"Skipped {skipped} chunk(s) with a different embedding dimension; "
                "reindex to include them"
            )

        scored.sort(key=lambda item: item[0], reverse=True)

        # Records deleted since ranking are dropped; keep walking until k are found.
        files: dict[int, Optional[FileRecord]] = {}
        results = []
        for score, emb in scored:
            if len(results) >= k:
                break
            if emb.file_id not in files:
                files[emb.file_id] = self.store.get_file(emb.file_id)
            record = files[emb.file_id]
            if record is None:
                continue
            results.append(
                SearchResult(
                    file=record,
                    score=score,
                    chunk_text=emb.chunk_text,
                    chunk_index=emb.chunk_index,
                )
            )
        return results
