"""Per-format text extractors and the registry that dispatches to them."""

from pathlib import Path
from typing import Iterable, Optional

from docindex.extractors.office import DocxExtractor, XlsxExtractor
from docindex.extractors.pdf import PdfExtractor
from docindex.extractors.text import DelimitedTextExtractor, PlainTextExtractor
from docindex.protocols import Extractor


class ExtractorRegistry:
    """Ordered list of extractors; the last registered handler for an extension wins."""

    def __init__(self, extractors: Iterable[Extractor] = ()):
        self._extractors: list[Extractor] = list(extractors)

    def get_extractor(self, path: Path | str) -> Optional[Extractor]:
        """Find an extractor that can handle the given file.

        Args:
            path: Path to the file

        Returns:
            An Extractor instance, or None for unsupported files
        """
        file_path = Path(path)
        for extractor in reversed(self._extractors):
            if extractor.can_handle(file_path):
                return extractor
        return None

    def register_extractor(self, extractor: Extractor) -> None:
        """Register an additional extractor, overriding earlier ones for its extensions."""
        self._extractors.append(extractor)

    def supported_extensions(self) -> frozenset[str]:
        extensions: set[str] = set()
        for extractor in self._extractors:
            extensions.update(extractor.extensions)
        return frozenset(extensions)


def default_registry(pdf: Optional[PdfExtractor] = None) -> ExtractorRegistry:
    """Registry with the built-in extractors.

    Args:
        pdf: Configured PDF extractor; without one PDFs get the text layer only
    """
    return ExtractorRegistry(
        [
            PlainTextExtractor(),
            DelimitedTextExtractor(),
            DocxExtractor(),
            XlsxExtractor(),
            pdf or PdfExtractor(),
        ]
    )


__all__ = [
    "DelimitedTextExtractor",
    "DocxExtractor",
    "ExtractorRegistry",
    "PdfExtractor",
    "PlainTextExtractor",
    "XlsxExtractor",
    "default_registry",
]
