"""Chunking strategies."""

from docindex.chunkers.word_chunker import WordChunker

__all__ = ["WordChunker"]
