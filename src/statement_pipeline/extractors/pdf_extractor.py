"""
PDF text-layer extractor.

Uses pypdf to read the embedded text of each page. Pages are independent:
a page that fails to extract, or has only whitespace, is dropped with a
warning and the rest of the document is still returned.
"""

import logging
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from ..schemas.statement import RawPage
from .base import BaseExtractor, ExtractionError

logger = logging.getLogger(__name__)


class PdfTextExtractor(BaseExtractor):
    """Page-by-page text extraction from PDF files."""

    extensions = (".pdf",)

    @property
    def name(self) -> str:
        return "pdf_text"

    def extract_pages(self, path: Path) -> list[RawPage]:
        try:
            reader = PdfReader(str(path))
            page_count = len(reader.pages)
        except (OSError, PyPdfError, ValueError) as e:
            raise ExtractionError(f"cannot open PDF {path.name}: {e}") from e

        logger.debug(f"PDF {path.name} has {page_count} pages")

        pages: list[RawPage] = []
        for index in range(page_count):
            page_number = index + 1
            try:
                text = reader.pages[index].extract_text() or ""
            except Exception as e:
                logger.warning(f"Failed to extract page {page_number} of {path.name}: {e}")
                continue

            if not text.strip():
                logger.warning(f"Page {page_number} of {path.name} has no text, skipping")
                continue

            pages.append(RawPage(page_number=page_number, text=text))

        if not pages:
            raise ExtractionError(f"no readable pages in {path.name}")

        logger.info(f"Extracted {len(pages)} of {page_count} pages from {path.name}")
        return pages
