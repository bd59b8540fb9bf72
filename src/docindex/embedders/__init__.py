"""Embedding providers for vector generation."""

from docindex.embedders.gemini import GeminiEmbedder

__all__ = ["GeminiEmbedder"]
