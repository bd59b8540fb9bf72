"""Byte-pattern heuristics that label why a file yielded no text.

These are diagnostics only. A positive result never blocks indexing and a
negative one proves nothing about the file.
"""

import logging
import os
import stat
from pathlib import Path

from docindex.models import EncryptionReport

logger = logging.getLogger(__name__)

PDF_SCAN_BYTES = 8 * 1024
VENDOR_SCAN_BYTES = 16 * 1024

PDF_ENCRYPTION_KEYWORDS = (
    "/encrypt",
    "/encryption",
    "/filter/crypt",
    "/standardsecurityhandler",
    "/userpassword",
    "/ownerpassword",
)
VENDOR_PREFIX = b"\x17\xda"
VENDOR_MARKERS = ("wps", "kingsoft")
VENDOR_ENCRYPTION_PATTERNS = ("/wps", "/kingsoft", "wpsencrypt", "kingsoftencrypt")
ENCRYPTION_HINTS = ("encrypt", "password", "security")

# Windows FILE_ATTRIBUTE_ENCRYPTED; stat exposes it only on Windows.
FILE_ATTRIBUTE_ENCRYPTED = getattr(stat, "FILE_ATTRIBUTE_ENCRYPTED", 0x4000)


def is_os_encrypted(path: Path) -> bool:
    """True if the file system reports the file as encrypted (Windows EFS)."""
    try:
        attributes = getattr(os.stat(path), "st_file_attributes", 0)
    except OSError:
        return False
    return bool(attributes & FILE_ATTRIBUTE_ENCRYPTED)


def has_pdf_encryption_dictionary(path: Path, head: bytes) -> bool:
    if path.suffix.lower() != ".pdf":
        return False
    text = head[:PDF_SCAN_BYTES].decode("latin-1").lower()
    return any(keyword in text for keyword in PDF_ENCRYPTION_KEYWORDS)


def has_vendor_encryption(head: bytes) -> bool:
    """WPS/Kingsoft Office encryption signals in the leading bytes."""
    if head.startswith(VENDOR_PREFIX):
        return True

    text = head[:VENDOR_SCAN_BYTES].decode("latin-1").lower()
    if any(pattern in text for pattern in VENDOR_ENCRYPTION_PATTERNS):
        return True

    has_marker = any(marker in text for marker in VENDOR_MARKERS)
    if not has_marker:
        return False
    if "%pdf" in text:
        return any(hint in text for hint in ENCRYPTION_HINTS)
    return len(head) > 100


def classify_encryption(path: Path) -> EncryptionReport:
    """Inspect a file and report which encryption schemes it appears to use."""
    os_encrypted = is_os_encrypted(path)
    try:
        with open(path, "rb") as f:
            head = f.read(max(PDF_SCAN_BYTES, VENDOR_SCAN_BYTES))
        readable = True
    except OSError as e:
        logger.debug(f"Cannot read {path} for encryption check: {e}")
        head = b""
        readable = False

    return EncryptionReport(
        os_encrypted=os_encrypted,
        pdf_password=has_pdf_encryption_dictionary(path, head),
        vendor_encrypted=has_vendor_encryption(head),
        readable=readable,
    )
