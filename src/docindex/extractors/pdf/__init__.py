"""PDF extraction chain.

Stages run in a fixed order and stop at the first one that produces enough
text:

0. the embedded text layer
1. local OCR of every rendered page
2. cloud transcription by the generation model
3. encryption classification (and an optional decryptor)
"""

import logging
import threading
from pathlib import Path
from typing import Optional

from docindex.errors import MalformedInput
from docindex.extractors.pdf.cloud import CloudFallbackStage
from docindex.extractors.pdf.document import (
    DEFAULT_MAX_PROBE_PAGES,
    DEFAULT_SIGNATURE_SCAN_BYTES,
    find_pdf_signature,
    open_pdf,
    page_numbers,
)
from docindex.extractors.pdf.encryption import classify_encryption
from docindex.extractors.pdf.ocr import LocalOcrStage, TesseractOcrEngine, read_text_layer
from docindex.models import ExtractionResult
from docindex.protocols import Decryptor

logger = logging.getLogger(__name__)

DEFAULT_MIN_TEXT_LENGTH = 10


class PdfExtractor:
    """Extractor for .pdf files built from pluggable stages.

    Args:
        ocr_stage: Local OCR; None disables OCR
        cloud_stage: Cloud fallback; None keeps extraction fully local
        decryptor: Consulted when encryption is detected and nothing else worked
        min_text_length: A stage's text must be longer than this to be accepted
    """

    def __init__(
        self,
        ocr_stage: Optional[LocalOcrStage] = None,
        cloud_stage: Optional[CloudFallbackStage] = None,
        decryptor: Optional[Decryptor] = None,
        min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
        signature_scan_bytes: int = DEFAULT_SIGNATURE_SCAN_BYTES,
        max_probe_pages: int = DEFAULT_MAX_PROBE_PAGES,
    ):
        self.ocr_stage = ocr_stage
        self.cloud_stage = cloud_stage
        self.decryptor = decryptor
        self.min_text_length = min_text_length
        self.signature_scan_bytes = signature_scan_bytes
        self.max_probe_pages = max_probe_pages

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".pdf"})

    def can_handle(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def _sufficient(self, text: str) -> bool:
        return len(text.strip()) > self.min_text_length

    def extract(self, path: Path, cancel: Optional[threading.Event] = None) -> ExtractionResult:
        try:
            data = path.read_bytes()
        except OSError as e:
            raise MalformedInput(f"Cannot read {path}: {e}") from e

        local_text = ""
        failed_pages: list[int] = []
        try:
            doc = open_pdf(data, self.signature_scan_bytes)
        except MalformedInput as e:
            logger.warning(f"{path.name}: {e}")
            doc = None

        if doc is not None:
            with doc:
                pages = list(page_numbers(doc, self.max_probe_pages))
                native = read_text_layer(doc, pages)
                if self._sufficient(native):
                    return ExtractionResult(text=native, method="text-layer")

                if self.ocr_stage is not None:
                    ocr = self.ocr_stage.run(doc, pages, cancel)
                    local_text, failed_pages = ocr.text, ocr.failed_pages
                    logger.debug(f"{path.name}: OCR returned {len(local_text)} characters")
                    if self._sufficient(local_text):
                        return ExtractionResult(
                            text=local_text, method="ocr", failed_pages=failed_pages
                        )

        if self.cloud_stage is not None:
            logger.info(
                f"{path.name}: local extraction returned {len(local_text)} characters, "
                "trying cloud fallback"
            )
            cloud_text = self.cloud_stage.run(path, cancel)
            if len(cloud_text) > len(local_text) and self._sufficient(cloud_text):
                return ExtractionResult(text=cloud_text, method="cloud", failed_pages=failed_pages)

        return self._unreadable(path, failed_pages)

    def _unreadable(self, path: Path, failed_pages: list[int]) -> ExtractionResult:
        encryption = classify_encryption(path)
        if not encryption.detected:
            logger.warning(f"{path.name}: no text could be extracted")
            return ExtractionResult(text="", method="none", failed_pages=failed_pages)

        logger.warning(f"{path.name}: no text extracted, file appears encrypted ({encryption.description})")
        if self.decryptor is not None:
            try:
                text = self.decryptor.try_decrypt(path)
            except Exception as e:
                logger.error(f"{path.name}: decryptor failed: {e}")
                text = None
            if text and text.strip():
                return ExtractionResult(text=text, method="decryptor", encryption=encryption)
        return ExtractionResult(
            text="", method="none", encryption=encryption, failed_pages=failed_pages
        )


__all__ = [
    "CloudFallbackStage",
    "LocalOcrStage",
    "PdfExtractor",
    "TesseractOcrEngine",
    "classify_encryption",
    "find_pdf_signature",
]
