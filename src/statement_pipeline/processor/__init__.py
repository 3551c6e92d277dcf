"""
Document processor: statement file to stored transactions.
"""

from .document_processor import (
    DocumentProcessor,
    ParseFailure,
    ProcessingOutcome,
    ProcessingSuccess,
    StoreFailure,
)

__all__ = [
    "DocumentProcessor",
    "ParseFailure",
    "ProcessingOutcome",
    "ProcessingSuccess",
    "StoreFailure",
]
