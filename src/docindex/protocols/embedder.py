"""Embedding provider interface."""

import threading
from typing import Optional, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turns chunk text into fixed-size vectors.

    Implemented by the Gemini embedder and the local sentence-transformers
    embedder. Vectors from different providers are never compared.
    """

    @property
    def dimension(self) -> int:
        """Length of every vector this provider returns."""
        ...

    @property
    def model_name(self) -> str:
        """Name recorded in the index metadata."""
        ...

    def embed(self, texts: list[str], cancel: Optional[threading.Event] = None) -> np.ndarray:
        """Embed a batch of texts, in order.

        Returns: float32 array of shape (len(texts), dimension)

        Raises IndexingCancelled if ``cancel`` is set while waiting on the
        provider.
        """
        ...
