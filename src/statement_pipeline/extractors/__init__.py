"""
Page text extractors.

Provides:
- ExtractorRouter: Chooses the extractor by file extension
- PDF text-layer extractor (pypdf)
- Image extractor stub (OCR not implemented)
- Base classes for custom extractors
"""

from .base import BaseExtractor, ExtractionError, UnsupportedFileTypeError
from .image_extractor import ImageExtractor
from .pdf_extractor import PdfTextExtractor
from .router import ExtractorRouter

__all__ = [
    "ExtractorRouter",
    "PdfTextExtractor",
    "ImageExtractor",
    "BaseExtractor",
    "ExtractionError",
    "UnsupportedFileTypeError",
]
