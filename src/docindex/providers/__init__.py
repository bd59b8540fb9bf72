"""Clients for remote AI providers."""

from docindex.providers.gemini import GeminiClient

__all__ = ["GeminiClient"]
