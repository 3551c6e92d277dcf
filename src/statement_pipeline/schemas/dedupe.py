"""
Transaction natural key (CRITICAL).

This module defines THE deterministic identity of a stored transaction.
The same key drives both the in-memory merge step and the storage-level
UNIQUE constraint, so the two can never disagree.

Natural key components (in order):
- account_last4
- transaction_date: YYYY-MM-DD
- description: exact text as extracted
- amount: normalised to 2 decimal places with dot separator

The key must be:
- Stable: Same inputs always produce same output
- Storage-aligned: Two records with equal keys collide on the UNIQUE index
"""

import hashlib
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path

from .statement import TransactionRecord

CENT = Decimal("0.01")


def normalize_amount(amount: Decimal | str | float | int) -> Decimal:
    """
    Quantise an amount to cents.

    Floats go through str() so 50.1 does not become 50.0999...

    Args:
        amount: Amount in various formats

    Returns:
        Decimal with exactly two decimal places
    """
    if isinstance(amount, bool):
        raise ValueError(f"amount must be numeric, got: {amount!r}")
    if isinstance(amount, float):
        amount = Decimal(str(amount))
    elif isinstance(amount, (int, str)):
        amount = Decimal(str(amount).strip())
    elif not isinstance(amount, Decimal):
        raise ValueError(f"amount must be Decimal, str, int or float, got: {type(amount)}")

    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
    """Storage representation of an amount (e.g. '-50.25')."""
    return f"{normalize_amount(amount):.2f}"


def natural_key(record: TransactionRecord) -> tuple[str, str, str, str]:
    """Natural key tuple matching the transactions UNIQUE constraint."""
    return (
        record.account_last4,
        record.transaction_date.isoformat() if record.transaction_date else "",
        record.description,
        format_amount(record.amount),
    )


def deduplicate_transactions(
    transactions: list[TransactionRecord],
) -> list[TransactionRecord]:
    """
    Remove repeated transactions by natural key.

    The first occurrence wins and input order is preserved. Page-chunked
    extraction sometimes repeats a line at the bottom of one page and the
    top of the next; this collapses those before they reach the store.
    """
    seen: set[tuple[str, str, str, str]] = set()
    unique: list[TransactionRecord] = []

    for tx in transactions:
        key = natural_key(tx)
        if key in seen:
            continue
        seen.add(key)
        unique.append(tx)

    return unique


def compute_file_hash(path: Path) -> str:
    """SHA256 of a file's contents, for log correlation."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()
