"""
SSOT (Single Source of Truth) schemas for the pipeline.

These canonical schemas are the ONLY models used across all modules.
No duplicated "near-same" models allowed.
"""

from .dedupe import (
    compute_file_hash,
    deduplicate_transactions,
    format_amount,
    natural_key,
    normalize_amount,
)
from .statement import (
    VALID_TRANSACTION_TYPES,
    PageParseResult,
    RawPage,
    StatementData,
    StatementEnvelope,
    TransactionRecord,
    TransactionType,
)

__all__ = [
    # Dedupe
    "compute_file_hash",
    "deduplicate_transactions",
    "format_amount",
    "natural_key",
    "normalize_amount",
    # Statement
    "VALID_TRANSACTION_TYPES",
    "PageParseResult",
    "RawPage",
    "StatementData",
    "StatementEnvelope",
    "TransactionRecord",
    "TransactionType",
]
