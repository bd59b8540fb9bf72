"""Tests for the PDF extraction chain and encryption heuristics."""

from pathlib import Path

import fitz
import pytest

from docindex.errors import MalformedInput
from docindex.extractors.pdf import LocalOcrStage, PdfExtractor, classify_encryption, find_pdf_signature
from docindex.extractors.pdf.document import open_pdf, page_numbers
from docindex.models import EncryptionReport


class FakeOcr:
    """OcrEngine returning scripted results; exceptions are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def image_to_text(self, image):
        self.calls += 1
        result = self.results.pop(0) if self.results else ""
        if isinstance(result, Exception):
            raise result
        return result


class FakeCloud:
    def __init__(self, text: str):
        self.text = text
        self.calls: list[Path] = []

    def run(self, path, cancel=None):
        self.calls.append(path)
        return self.text


class FakeDecryptor:
    def __init__(self, text):
        self.text = text
        self.calls: list[Path] = []

    def try_decrypt(self, path):
        self.calls.append(path)
        if isinstance(self.text, Exception):
            raise self.text
        return self.text


def make_pdf(path: Path, pages: list[str], prefix: bytes = b"") -> Path:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    path.write_bytes(prefix + doc.tobytes())
    doc.close()
    return path


def ocr_stage(engine) -> LocalOcrStage:
    return LocalOcrStage(engine, dpi=30)


class TestSignature:
    def test_finds_marker_after_garbage(self):
        assert find_pdf_signature(b"junk!!%PDF-1.7\n") == 6

    def test_marker_at_start(self):
        assert find_pdf_signature(b"%PDF-1.4") == 0

    def test_marker_outside_scan_window(self):
        data = b"x" * 200 + b"%PDF-1.4"
        assert find_pdf_signature(data, limit=100) == -1
        assert find_pdf_signature(data, limit=1024) == 200

    def test_open_pdf_skips_leading_garbage(self, tmp_path):
        path = make_pdf(tmp_path / "a.pdf", ["hello"], prefix=b"GARBAGE" * 10)

        with open_pdf(path.read_bytes()) as doc:
            assert list(page_numbers(doc)) == [0]

    def test_open_pdf_without_marker(self):
        with pytest.raises(MalformedInput):
            open_pdf(b"not a pdf at all")


class TestPdfChain:
    def test_text_layer_skips_ocr(self, tmp_path):
        path = make_pdf(tmp_path / "native.pdf", ["This page has a real text layer"])
        engine = FakeOcr("should not be used")

        result = PdfExtractor(ocr_stage=ocr_stage(engine)).extract(path)

        assert result.method == "text-layer"
        assert "real text layer" in result.text
        assert engine.calls == 0

    def test_scanned_pdf_uses_ocr(self, tmp_path):
        path = make_pdf(tmp_path / "scan.pdf", ["", ""])
        engine = FakeOcr("Invoice number 1042", "Total due 300 EUR")

        result = PdfExtractor(ocr_stage=ocr_stage(engine)).extract(path)

        assert result.method == "ocr"
        assert result.text == "Invoice number 1042\nTotal due 300 EUR"
        assert engine.calls == 2
        assert result.failed_pages == []

    def test_failed_page_is_recorded(self, tmp_path):
        path = make_pdf(tmp_path / "scan.pdf", ["", ""])
        engine = FakeOcr(RuntimeError("tesseract crashed"), "Second page survives OCR")

        result = PdfExtractor(ocr_stage=ocr_stage(engine)).extract(path)

        assert result.text == "Second page survives OCR"
        assert result.failed_pages == [1]

    def test_cloud_fallback_when_ocr_is_short(self, tmp_path):
        path = make_pdf(tmp_path / "scan.pdf", [""])
        cloud = FakeCloud("Full transcription from the cloud model")

        result = PdfExtractor(ocr_stage=ocr_stage(FakeOcr("tiny")), cloud_stage=cloud).extract(path)

        assert result.method == "cloud"
        assert result.text == "Full transcription from the cloud model"
        assert cloud.calls == [path]

    def test_cloud_not_called_when_ocr_suffices(self, tmp_path):
        path = make_pdf(tmp_path / "scan.pdf", [""])
        cloud = FakeCloud("unused")

        PdfExtractor(
            ocr_stage=ocr_stage(FakeOcr("plenty of recognized text")), cloud_stage=cloud
        ).extract(path)

        assert cloud.calls == []

    def test_nothing_extractable_gives_empty_text(self, tmp_path):
        path = make_pdf(tmp_path / "blank.pdf", [""])

        result = PdfExtractor(
            ocr_stage=ocr_stage(FakeOcr("")), cloud_stage=FakeCloud("")
        ).extract(path)

        assert result.is_empty
        assert result.method == "none"
        assert result.encryption is None

    def test_decryptor_consulted_for_encrypted_file(self, tmp_path):
        path = tmp_path / "locked.pdf"
        path.write_bytes(b"%PDF-1.4\n1 0 obj << /Encrypt 2 0 R /StandardSecurityHandler >>\n")
        decryptor = FakeDecryptor("Unlocked contract text")

        result = PdfExtractor(decryptor=decryptor).extract(path)

        assert result.method == "decryptor"
        assert result.text == "Unlocked contract text"
        assert result.encryption.pdf_password
        assert decryptor.calls == [path]

    def test_failing_decryptor_keeps_encryption_report(self, tmp_path):
        path = tmp_path / "locked.pdf"
        path.write_bytes(b"%PDF-1.4\n1 0 obj << /Encrypt 2 0 R >>\n")
        decryptor = FakeDecryptor(OSError("helper not installed"))

        result = PdfExtractor(decryptor=decryptor).extract(path)

        assert result.is_empty
        assert result.method == "none"
        assert result.encryption.detected
        assert decryptor.calls == [path]

    def test_encrypted_without_decryptor(self, tmp_path):
        path = tmp_path / "locked.pdf"
        path.write_bytes(b"%PDF-1.4\n1 0 obj << /Encrypt 2 0 R >>\n")

        result = PdfExtractor().extract(path)

        assert result.is_empty
        assert result.encryption.detected


class TestEncryptionHeuristics:
    def test_plain_file_is_clean(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("nothing special here")

        report = classify_encryption(path)

        assert not report.detected
        assert report.description is None

    def test_pdf_encryption_dictionary(self, tmp_path):
        path = tmp_path / "a.pdf"
        path.write_bytes(b"%PDF-1.6\ntrailer << /Filter/Crypt /UserPassword (x) >>")

        report = classify_encryption(path)

        assert report.pdf_password
        assert not report.vendor_encrypted

    def test_pdf_keywords_ignored_for_other_extensions(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"/Encrypt appears in this text file")

        assert not classify_encryption(path).pdf_password

    def test_vendor_prefix(self, tmp_path):
        path = tmp_path / "a.docx"
        path.write_bytes(b"\x17\xda\x5f\xa0" + b"\x00" * 64)

        assert classify_encryption(path).vendor_encrypted

    def test_vendor_marker_in_pdf_needs_hint(self, tmp_path):
        with_hint = tmp_path / "a.pdf"
        with_hint.write_bytes(b"%PDF-1.4 Producer (Kingsoft) security handler")
        without_hint = tmp_path / "b.pdf"
        without_hint.write_bytes(b"%PDF-1.4 Producer (Kingsoft)")

        assert classify_encryption(with_hint).vendor_encrypted
        assert not classify_encryption(without_hint).vendor_encrypted

    def test_vendor_marker_in_large_non_pdf(self, tmp_path):
        path = tmp_path / "a.doc"
        path.write_bytes(b"WPS Office document" + b"\x00" * 200)

        assert classify_encryption(path).vendor_encrypted

    def test_description_joins_labels(self):
        report = EncryptionReport(pdf_password=True, vendor_encrypted=True, readable=False)

        assert report.description == (
            "PDF password encryption + WPS/Kingsoft Office encryption"
            " (file not readable by this user)"
        )
