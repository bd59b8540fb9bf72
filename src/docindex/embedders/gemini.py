"""Gemini API embedding provider."""

import logging
import threading
from typing import Optional

import numpy as np

from docindex.errors import MalformedInput
from docindex.providers.gemini import GeminiClient

logger = logging.getLogger(__name__)


class GeminiEmbedder:
    """Embedding provider backed by the Gemini embedContent endpoint.

    One request per text; the client's rate limiter serializes and spaces
    them. Vectors are stored as returned (not normalized), cosine similarity
    is computed at query time.
    """

    DEFAULT_DIMENSION = 768

    def __init__(self, client: GeminiClient, dimension: int = DEFAULT_DIMENSION):
        self.client = client
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self.client.embedding_model

    def embed(self, texts: list[str], cancel: Optional[threading.Event] = None) -> np.ndarray:
        """Embed each text with one API call; blank texts map to zero vectors."""
        vectors = np.zeros((len(texts), self._dimension), dtype=np.float32)
        for i, text in enumerate(texts):
            if not text.strip():
                continue
            values = self.client.embed(text, cancel=cancel)
            if len(values) != self._dimension:
                raise MalformedInput(
                    f"{self.model_name} returned a {len(values)}-d vector, "
                    f"expected {self._dimension}"
                )
            vectors[i] = values
        return vectors
