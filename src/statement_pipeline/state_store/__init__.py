"""
State Store (SQLite-based).

Lightweight persistent DBs for tracking:
- Transactions extracted from statements (transaction store)
- Every processing attempt (audit log)
- Files each watch has finished with (processing ledger)

Enforces uniqueness on the transaction natural key and on (watch_id, file_path).
"""

from .ledger import LedgerError, LedgerRecord, ProcessingLedger
from .sqlite_store import (
    ProcessingLogEntry,
    ProcessingStatus,
    SQLiteDatabase,
    StoredTransaction,
    StoreError,
    TransactionStore,
)

__all__ = [
    "LedgerError",
    "LedgerRecord",
    "ProcessingLedger",
    "ProcessingLogEntry",
    "ProcessingStatus",
    "SQLiteDatabase",
    "StoredTransaction",
    "StoreError",
    "TransactionStore",
]
