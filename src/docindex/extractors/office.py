"""Extractors for Office Open XML documents (.docx, .xlsx)."""

import logging
import threading
from pathlib import Path
from typing import Optional

import docx
from openpyxl import load_workbook

from docindex.errors import MalformedInput
from docindex.models import ExtractionResult

logger = logging.getLogger(__name__)


class DocxExtractor:
    """Paragraph text of a Word document, one paragraph per line."""

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".docx"})

    def can_handle(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def extract(self, path: Path, cancel: Optional[threading.Event] = None) -> ExtractionResult:
        try:
            document = docx.Document(str(path))
        except Exception as e:
            raise MalformedInput(f"Cannot open Word document {path.name}: {e}") from e
        text = "\n".join(paragraph.text for paragraph in document.paragraphs)
        return ExtractionResult(text=text, method="docx")


class XlsxExtractor:
    """Cell values of every sheet.

    Non-empty cells of a row are joined with `` | ``, rows with newlines.
    Formulas contribute their cached values.
    """

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset({".xlsx"})

    def can_handle(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def extract(self, path: Path, cancel: Optional[threading.Event] = None) -> ExtractionResult:
        try:
            wb = load_workbook(str(path), read_only=True, data_only=True)
        except Exception as e:
            raise MalformedInput(f"Cannot open workbook {path.name}: {e}") from e

        rows: list[str] = []
        try:
            for ws in wb.worksheets:
                for row in ws.iter_rows(values_only=True):
                    cells = [str(cell) for cell in row if cell is not None and str(cell) != ""]
                    if cells:
                        rows.append(" | ".join(cells))
        finally:
            wb.close()

        logger.debug(f"{path.name}: {len(rows)} non-empty rows")
        return ExtractionResult(text="\n".join(rows), method="xlsx")
