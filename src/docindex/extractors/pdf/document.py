"""Opening PDF documents that may carry leading garbage."""

import logging
from typing import Iterator

import fitz  # PyMuPDF

from docindex.errors import MalformedInput

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"
DEFAULT_SIGNATURE_SCAN_BYTES = 10 * 1024
DEFAULT_MAX_PROBE_PAGES = 100


def find_pdf_signature(data: bytes, limit: int = DEFAULT_SIGNATURE_SCAN_BYTES) -> int:
    """Offset of the ``%PDF`` marker within the first ``limit`` bytes, or -1."""
    return data.find(PDF_MAGIC, 0, limit)


def open_pdf(data: bytes, limit: int = DEFAULT_SIGNATURE_SCAN_BYTES) -> fitz.Document:
    """Open a PDF from raw bytes, starting at the ``%PDF`` marker.

    Raises:
        MalformedInput: no marker in the scanned prefix, or PyMuPDF rejects
            the stream.
    """
    offset = find_pdf_signature(data, limit)
    if offset < 0:
        raise MalformedInput(f"No PDF signature in the first {limit} bytes")
    if offset > 0:
        logger.debug(f"Skipping {offset} bytes before PDF signature")
    try:
        return fitz.open(stream=data[offset:], filetype="pdf")
    except Exception as e:
        raise MalformedInput(f"Cannot open PDF: {e}") from e


def page_numbers(doc: fitz.Document, max_probe: int = DEFAULT_MAX_PROBE_PAGES) -> Iterator[int]:
    """Yield zero-based page numbers.

    Some damaged files report a page count of zero although pages load; in
    that case pages are probed one by one until a load fails.
    """
    if doc.page_count > 0:
        yield from range(doc.page_count)
        return

    for number in range(max_probe):
        try:
            doc.load_page(number)
        except Exception:
            break
        yield number
