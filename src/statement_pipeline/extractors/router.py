"""
Extractor router - picks the extractor for a file by extension.
"""

import logging
from pathlib import Path
from typing import Optional

from ..schemas.statement import RawPage
from .base import BaseExtractor, UnsupportedFileTypeError
from .image_extractor import ImageExtractor
from .pdf_extractor import PdfTextExtractor

logger = logging.getLogger(__name__)


class ExtractorRouter:
    """
    Routes a document to the first extractor that supports its extension.

    Default order:
    1. PDF text layer
    2. Images (always fails, OCR not implemented)
    """

    def __init__(self, extractors: Optional[list[BaseExtractor]] = None):
        """Initialize with default extractors unless a list is given."""
        self.extractors: list[BaseExtractor] = (
            extractors if extractors is not None else [PdfTextExtractor(), ImageExtractor()]
        )

    def select(self, path: Path) -> BaseExtractor:
        """
        Find the extractor for a file.

        Raises:
            UnsupportedFileTypeError: if no extractor handles the extension
        """
        for extractor in self.extractors:
            if extractor.supports(path):
                return extractor
        raise UnsupportedFileTypeError(path)

    def extract_pages(self, path: Path | str) -> list[RawPage]:
        """
        Extract the non-blank pages of a document.

        Raises:
            ExtractionError: unsupported type, unreadable file, or no usable page
        """
        path = Path(path)
        extractor = self.select(path)
        logger.debug(f"Using {extractor.name} extractor for {path.name}")
        return extractor.extract_pages(path)
