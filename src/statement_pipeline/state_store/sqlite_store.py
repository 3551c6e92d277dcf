"""
SQLite-based transaction store implementation.

Tables:
- transactions: Append-only, UNIQUE on the natural key
  (account_last4, transaction_date, description, amount)
- processing_log: Append-only audit trail, one row per processing attempt

Amounts and balances are stored as normalised decimal TEXT ('-50.25') so the
uniqueness constraint compares exactly what the merge step compares.
"""

import logging
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from ..schemas.dedupe import format_amount
from ..schemas.statement import TransactionRecord
from .migrations import MigrationError, MigrationRunner

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Storage open/read/write failure."""

    pass


class ProcessingStatus(str, Enum):
    """Outcome of one processing attempt, as recorded in the audit log."""

    SUCCESS = "success"
    PARSE_ERROR = "parse_error"
    DB_ERROR = "db_error"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _to_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _to_decimal(value: Optional[str]) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


@dataclass
class StoredTransaction(TransactionRecord):
    """A transaction row read back from the store."""

    id: int = 0
    created_at: str = ""

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "StoredTransaction":
        """Create from database row."""
        return cls(
            id=row["id"],
            account_name=row["account_name"],
            account_last4=row["account_last4"],
            transaction_date=_to_date(row["transaction_date"]),
            post_date=_to_date(row["post_date"]),
            description=row["description"],
            amount=Decimal(row["amount"]),
            transaction_type=row["transaction_type"],
            balance=_to_decimal(row["balance"]),
            statement_date=_to_date(row["statement_date"]),
            source_file=row["source_file"] or "",
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["id"] = self.id
        return data


@dataclass
class ProcessingLogEntry:
    """One row of the processing audit log."""

    source_file: str
    status: ProcessingStatus
    statement_date: Optional[date] = None
    account_name: Optional[str] = None
    transactions_inserted: int = 0
    transactions_skipped: int = 0
    error_message: Optional[str] = None
    file_hash: Optional[str] = None
    id: Optional[int] = None
    processed_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ProcessingLogEntry":
        """Create from database row."""
        return cls(
            id=row["id"],
            source_file=row["source_file"],
            statement_date=_to_date(row["statement_date"]),
            account_name=row["account_name"],
            transactions_inserted=row["transactions_inserted"],
            transactions_skipped=row["transactions_skipped"],
            status=ProcessingStatus(row["status"]),
            error_message=row["error_message"],
            file_hash=row["file_hash"] if "file_hash" in row.keys() else None,
            processed_at=row["processed_at"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_file": self.source_file,
            "statement_date": self.statement_date.isoformat() if self.statement_date else None,
            "account_name": self.account_name,
            "transactions_inserted": self.transactions_inserted,
            "transactions_skipped": self.transactions_skipped,
            "status": self.status.value,
            "error_message": self.error_message,
            "file_hash": self.file_hash,
            "processed_at": self.processed_at,
        }


class SQLiteDatabase:
    """
    Connection handling shared by the SQLite-backed stores.

    Every public operation opens its own connection inside _transaction(),
    so a store object holds no open handle between calls.
    Safe for single-writer scenarios only.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_db()
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"open database {self.db_path}: {e}") from e

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        raise NotImplementedError


class TransactionStore(SQLiteDatabase):
    """
    SQLite-based store for extracted transactions.

    Provides persistent tracking of:
    - Transactions (deduplicated by natural key at the storage layer)
    - Processing attempts (audit trail, never mutated)
    """

    def __init__(self, db_path: Path | str, run_migrations: bool = True):
        """
        Initialize transaction store.

        Args:
            db_path: Path to SQLite database file
            run_migrations: Whether to run pending migrations (default True)

        Raises:
            StoreError: if the database cannot be opened or initialised
        """
        super().__init__(db_path)
        if run_migrations:
            try:
                self._run_migrations()
            except (sqlite3.Error, MigrationError) as e:
                raise StoreError(f"migrate database {self.db_path}: {e}") from e

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    account_name TEXT NOT NULL,
                    account_last4 TEXT NOT NULL,
                    transaction_date TEXT NOT NULL,  -- YYYY-MM-DD
                    post_date TEXT,
                    description TEXT NOT NULL,
                    amount TEXT NOT NULL,  -- signed, 2dp
                    transaction_type TEXT NOT NULL
                        CHECK (transaction_type IN ('debit', 'credit')),
                    balance TEXT,
                    statement_date TEXT NOT NULL,
                    source_file TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE(account_last4, transaction_date, description, amount)
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS processing_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_file TEXT NOT NULL,
                    statement_date TEXT,
                    account_name TEXT,
                    transactions_inserted INTEGER DEFAULT 0,
                    transactions_skipped INTEGER DEFAULT 0,
                    status TEXT NOT NULL
                        CHECK (status IN ('success', 'parse_error', 'db_error')),
                    error_message TEXT,
                    processed_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_account "
                "ON transactions(account_name, account_last4)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(transaction_date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_statement_date "
                "ON transactions(statement_date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_transactions_type ON transactions(transaction_type)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_processing_log_file ON processing_log(source_file)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_processing_log_status ON processing_log(status)"
            )

    def _run_migrations(self) -> None:
        """Run pending database migrations."""
        conn = self._get_connection()
        try:
            MigrationRunner(conn).upgrade()
        finally:
            conn.close()

    # Transaction methods

    def insert_transactions(self, records: Iterable[TransactionRecord]) -> tuple[int, int]:
        """
        Insert a statement's transactions in one storage transaction.

        Each row is attempted individually. A row whose natural key already
        exists is counted as skipped; it neither raises nor aborts the batch.

        Returns:
            (inserted, skipped)

        Raises:
            StoreError: on any other database failure; nothing is committed.
        """
        inserted = 0
        skipped = 0
        now = _utc_now()

        try:
            with self._transaction() as conn:
                for record in records:
                    cursor = conn.execute(
                        """
                        INSERT INTO transactions
                        (account_name, account_last4, transaction_date, post_date,
                         description, amount, transaction_type, balance,
                         statement_date, source_file, created_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(account_last4, transaction_date, description, amount)
                        DO NOTHING
                    """,
                        (
                            record.account_name,
                            record.account_last4,
                            record.transaction_date.isoformat() if record.transaction_date else None,
                            record.post_date.isoformat() if record.post_date else None,
                            record.description,
                            format_amount(record.amount),
                            record.transaction_type,
                            format_amount(record.balance) if record.balance is not None else None,
                            record.statement_date.isoformat() if record.statement_date else None,
                            record.source_file,
                            now,
                        ),
                    )
                    if cursor.rowcount > 0:
                        inserted += 1
                    else:
                        skipped += 1
                        logger.debug(
                            f"Duplicate transaction skipped: {record.transaction_date} "
                            f"{record.description} {record.amount}"
                        )
        except sqlite3.Error as e:
            raise StoreError(f"insert transactions: {e}") from e

        return inserted, skipped

    def query_transactions(
        self,
        start_date: date,
        end_date: date,
        account: str | None = None,
        transaction_type: str = "all",
    ) -> list[StoredTransaction]:
        """
        Transactions dated within [start_date, end_date].

        Args:
            account: Matches account_last4 exactly or account_name as substring
            transaction_type: "debit", "credit" or "all"
        """
        query = "SELECT * FROM transactions WHERE transaction_date BETWEEN ? AND ?"
        params: list[Any] = [start_date.isoformat(), end_date.isoformat()]

        if account:
            query += " AND (account_last4 = ? OR account_name LIKE ?)"
            params.extend([account, f"%{account}%"])
        if transaction_type != "all":
            query += " AND transaction_type = ?"
            params.append(transaction_type)

        query += " ORDER BY transaction_date DESC, id DESC"

        try:
            with self._transaction() as conn:
                rows = conn.execute(query, params).fetchall()
                return [StoredTransaction.from_row(row) for row in rows]
        except sqlite3.Error as e:
            raise StoreError(f"query transactions: {e}") from e

    def count_transactions(self) -> int:
        with self._transaction() as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM transactions").fetchone()
            return row["count"] if row else 0

    def get_account_summary(self) -> list[dict[str, Any]]:
        """Per-account totals, newest statement first within each account."""
        try:
            with self._transaction() as conn:
                rows = conn.execute("SELECT * FROM account_summary").fetchall()
                return [dict(row) for row in rows]
        except sqlite3.Error as e:
            raise StoreError(f"query account summary: {e}") from e

    def get_monthly_summary(self) -> list[dict[str, Any]]:
        """Per-account, per-month totals, newest month first."""
        try:
            with self._transaction() as conn:
                rows = conn.execute("SELECT * FROM monthly_summary").fetchall()
                return [dict(row) for row in rows]
        except sqlite3.Error as e:
            raise StoreError(f"query monthly summary: {e}") from e

    # Processing log methods

    def log_processing(self, entry: ProcessingLogEntry) -> int:
        """Append an audit log entry. Returns the entry ID."""
        now = _utc_now()

        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO processing_log
                    (source_file, statement_date, account_name, transactions_inserted,
                     transactions_skipped, status, error_message, file_hash, processed_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        entry.source_file,
                        entry.statement_date.isoformat() if entry.statement_date else None,
                        entry.account_name,
                        entry.transactions_inserted,
                        entry.transactions_skipped,
                        entry.status.value,
                        entry.error_message,
                        entry.file_hash,
                        now,
                    ),
                )
                return cursor.lastrowid or 0
        except sqlite3.Error as e:
            raise StoreError(f"write processing log: {e}") from e

    def get_processing_log(
        self, limit: int = 50, status: ProcessingStatus | None = None
    ) -> list[ProcessingLogEntry]:
        """Most recent audit entries first."""
        query = "SELECT * FROM processing_log"
        params: list[Any] = []
        if status is not None:
            query += " WHERE status = ?"
            params.append(status.value)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)

        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
            return [ProcessingLogEntry.from_row(row) for row in rows]

    # Statistics

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        try:
            transactions_total = self.count_transactions()
            with self._transaction() as conn:
                accounts = conn.execute(
                    "SELECT COUNT(DISTINCT account_last4) as count FROM transactions"
                ).fetchone()
                attempts = conn.execute("SELECT COUNT(*) as count FROM processing_log").fetchone()
                by_status = conn.execute(
                    "SELECT status, COUNT(*) as count FROM processing_log GROUP BY status"
                ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"query stats: {e}") from e

        status_counts = {s.value: 0 for s in ProcessingStatus}
        for row in by_status:
            status_counts[row["status"]] = row["count"]

        return {
            "transactions_total": transactions_total,
            "accounts_total": accounts["count"] if accounts else 0,
            "processing_attempts": attempts["count"] if attempts else 0,
            "processing_success": status_counts[ProcessingStatus.SUCCESS.value],
            "processing_parse_errors": status_counts[ProcessingStatus.PARSE_ERROR.value],
            "processing_db_errors": status_counts[ProcessingStatus.DB_ERROR.value],
        }
