"""
Canonical statement objects (SSOT).

These are the ONLY models that flow between extractor, parser, merger,
validator and store. Everything maps into/out of these.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    """Direction of money movement on a statement line."""

    DEBIT = "debit"
    CREDIT = "credit"


VALID_TRANSACTION_TYPES = frozenset(t.value for t in TransactionType)


@dataclass(frozen=True)
class RawPage:
    """Plain text of one document page (1-based page number)."""

    page_number: int
    text: str


@dataclass(frozen=True)
class StatementEnvelope:
    """Account-identifying metadata shared by every transaction of a statement."""

    account_name: str
    account_last4: str
    statement_date: Optional[date]


@dataclass
class TransactionRecord:
    """
    One statement line, ready for storage.

    transaction_type is kept as the raw string returned by the model so the
    validator can reject anything outside debit/credit.
    """

    account_name: str
    account_last4: str
    transaction_date: Optional[date]
    description: str
    amount: Decimal  # Signed: negative for money out
    transaction_type: str
    statement_date: Optional[date]
    source_file: str
    post_date: Optional[date] = None
    balance: Optional[Decimal] = None

    def to_dict(self) -> dict:
        """Convert to a JSON-serialisable dictionary."""
        return {
            "account_name": self.account_name,
            "account_last4": self.account_last4,
            "transaction_date": self.transaction_date.isoformat() if self.transaction_date else None,
            "post_date": self.post_date.isoformat() if self.post_date else None,
            "description": self.description,
            "amount": f"{self.amount:.2f}",
            "transaction_type": self.transaction_type,
            "balance": f"{self.balance:.2f}" if self.balance is not None else None,
            "statement_date": self.statement_date.isoformat() if self.statement_date else None,
            "source_file": self.source_file,
        }


@dataclass
class PageParseResult:
    """A page the model parsed successfully."""

    page_number: int
    envelope: StatementEnvelope
    transactions: list[TransactionRecord] = field(default_factory=list)


@dataclass
class StatementData:
    """Merged result for a whole document."""

    envelope: StatementEnvelope
    transactions: list[TransactionRecord] = field(default_factory=list)
    pages_total: int = 0
    pages_parsed: int = 0
    duplicates_removed: int = 0

    @property
    def account_name(self) -> str:
        return self.envelope.account_name

    @property
    def account_last4(self) -> str:
        return self.envelope.account_last4

    @property
    def statement_date(self) -> Optional[date]:
        return self.envelope.statement_date
