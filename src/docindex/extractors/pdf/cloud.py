"""Cloud fallback: ask the generation model to transcribe the PDF."""

import logging
import threading
from pathlib import Path
from typing import Optional

from docindex.errors import AuthError, MalformedInput, ProviderError
from docindex.providers.gemini import GeminiClient

logger = logging.getLogger(__name__)

DEFAULT_INLINE_SIZE_LIMIT = 20 * 1024 * 1024


class CloudFallbackStage:
    """Sends the raw document to Gemini when local extraction came up short.

    Provider failures are logged and yield empty text, except AuthError,
    which is fatal for the whole run and propagates.
    """

    def __init__(self, client: GeminiClient, inline_size_limit: int = DEFAULT_INLINE_SIZE_LIMIT):
        self.client = client
        self.inline_size_limit = inline_size_limit

    def run(self, path: Path, cancel: Optional[threading.Event] = None) -> str:
        try:
            return self.client.extract_document(path, self.inline_size_limit, cancel=cancel)
        except AuthError:
            raise
        except (ProviderError, MalformedInput, OSError) as e:
            logger.warning(f"Cloud extraction failed for {path.name}: {e}")
            return ""
