"""Protocol definitions for extensible components."""

from docindex.protocols.chunker import ChunkingStrategy
from docindex.protocols.embedder import EmbeddingProvider
from docindex.protocols.extractor import Decryptor, Extractor, OcrEngine

__all__ = ["ChunkingStrategy", "Decryptor", "EmbeddingProvider", "Extractor", "OcrEngine"]
