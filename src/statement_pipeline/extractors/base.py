"""
Base extractor interface and common errors.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from ..schemas.statement import RawPage


class ExtractionError(Exception):
    """Document text could not be extracted."""

    pass


class UnsupportedFileTypeError(ExtractionError):
    """No extractor handles this file extension."""

    def __init__(self, path: Path):
        self.path = path
        self.suffix = path.suffix.lower()
        super().__init__(f"unsupported file type '{self.suffix or '(none)'}': {path.name}")


class BaseExtractor(ABC):
    """
    Base class for all page text extractors.

    Each extractor handles a family of file extensions and turns a document
    into an ordered list of non-blank pages.
    """

    #: Lower-case extensions including the dot, e.g. (".pdf",)
    extensions: tuple[str, ...] = ()

    @property
    @abstractmethod
    def name(self) -> str:
        """Extractor name for logging."""
        pass

    def supports(self, path: Path) -> bool:
        """Check if this extractor handles the given file."""
        return path.suffix.lower() in self.extensions

    @abstractmethod
    def extract_pages(self, path: Path) -> list[RawPage]:
        """
        Extract page text from a document.

        Args:
            path: Document on local disk

        Returns:
            Pages with non-blank text, in document order

        Raises:
            ExtractionError: if the document cannot be read or has no usable page
        """
        pass
