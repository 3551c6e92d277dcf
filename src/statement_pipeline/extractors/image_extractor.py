"""
Image extractor placeholder.

Scanned statements (photos, TIFF scans) are recognised so they fail with a
clear message instead of "unsupported file type". OCR is not implemented.
"""

from pathlib import Path

from ..schemas.statement import RawPage
from .base import BaseExtractor, ExtractionError


class ImageExtractor(BaseExtractor):
    extensions = (".jpg", ".jpeg", ".png", ".tif", ".tiff")

    @property
    def name(self) -> str:
        return "image"

    def extract_pages(self, path: Path) -> list[RawPage]:
        raise ExtractionError(f"image OCR not implemented: {path.name}")
