"""Local PDF text: the embedded text layer and page OCR."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Sequence

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from docindex.errors import IndexingCancelled
from docindex.protocols import OcrEngine

logger = logging.getLogger(__name__)

DEFAULT_DPI = 300


class TesseractOcrEngine:
    """OcrEngine backed by the tesseract binary via pytesseract."""

    def __init__(self, languages: Sequence[str] = ("eng",)):
        self.languages = list(languages) or ["eng"]

    @property
    def lang(self) -> str:
        return "+".join(self.languages)

    def image_to_text(self, image: Image.Image) -> str:
        return pytesseract.image_to_string(image, lang=self.lang)


def read_text_layer(doc: fitz.Document, pages: Sequence[int]) -> str:
    """Concatenate the embedded text of the given pages."""
    parts = []
    for number in pages:
        try:
            text = doc.load_page(number).get_text("text").strip()
        except Exception as e:
            logger.debug(f"No text layer on page {number + 1}: {e}")
            continue
        if text:
            parts.append(text)
    return "\n".join(parts)


def render_page(page: fitz.Page, dpi: int = DEFAULT_DPI) -> Image.Image:
    pix = page.get_pixmap(dpi=dpi, alpha=False)
    return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)


@dataclass
class OcrResult:
    text: str
    failed_pages: list[int] = field(default_factory=list)


class LocalOcrStage:
    """Renders every page and runs it through an OCR engine.

    A page that fails to render or recognize is logged and listed in
    ``failed_pages`` (1-based); the remaining pages still contribute.
    """

    def __init__(self, engine: OcrEngine, dpi: int = DEFAULT_DPI):
        self.engine = engine
        self.dpi = dpi

    def run(
        self,
        doc: fitz.Document,
        pages: Sequence[int],
        cancel: Optional[threading.Event] = None,
    ) -> OcrResult:
        texts: list[str] = []
        failed: list[int] = []
        for number in pages:
            if cancel is not None and cancel.is_set():
                raise IndexingCancelled("Cancelled during OCR")
            try:
                image = render_page(doc.load_page(number), self.dpi)
                text = self.engine.image_to_text(image)
            except Exception as e:
                logger.warning(f"OCR failed on page {number + 1}: {e}")
                failed.append(number + 1)
                continue
            if text and text.strip():
                texts.append(text.strip())
        return OcrResult(text="\n".join(texts), failed_pages=failed)
