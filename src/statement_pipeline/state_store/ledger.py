"""
Processing ledger: which (watch, file) pairs have completed processing.

A record is written only after the processor succeeded AND the file was moved
out of the watch directory. The scanner never updates or deletes records;
forget() exists for operators who want a file processed again.
"""

import logging
import sqlite3
from dataclasses import dataclass

from .sqlite_store import SQLiteDatabase, StoreError, _utc_now

logger = logging.getLogger(__name__)


class LedgerError(StoreError):
    """Ledger read/write failure."""

    pass


@dataclass
class LedgerRecord:
    """One completed (watch_id, file_path) pair."""

    id: int
    watch_id: str
    file_path: str
    processed_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "LedgerRecord":
        """Create from database row."""
        return cls(
            id=row["id"],
            watch_id=row["watch_id"],
            file_path=row["file_path"],
            processed_at=row["processed_at"],
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "watch_id": self.watch_id,
            "file_path": self.file_path,
            "processed_at": self.processed_at,
        }


class ProcessingLedger(SQLiteDatabase):
    """SQLite-backed ledger, UNIQUE on (watch_id, file_path)."""

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS processed_files (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    watch_id TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    processed_at TEXT NOT NULL,
                    UNIQUE(watch_id, file_path)
                )
            """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_processed_files_watch_id "
                "ON processed_files(watch_id)"
            )

    def is_processed(self, watch_id: str, file_path: str) -> bool:
        """Check if a file has already been processed for a watch."""
        try:
            with self._transaction() as conn:
                row = conn.execute(
                    "SELECT 1 FROM processed_files WHERE watch_id = ? AND file_path = ?",
                    (watch_id, file_path),
                ).fetchone()
                return row is not None
        except sqlite3.Error as e:
            raise LedgerError(f"query processed file: {e}") from e

    def record_processed(self, watch_id: str, file_path: str) -> int:
        """
        Record that a file completed processing. Returns the record ID.

        Raises:
            LedgerError: if the pair is already recorded or the write fails
        """
        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    "INSERT INTO processed_files (watch_id, file_path, processed_at) "
                    "VALUES (?, ?, ?)",
                    (watch_id, file_path, _utc_now()),
                )
                return cursor.lastrowid or 0
        except sqlite3.IntegrityError as e:
            raise LedgerError(f"file already recorded for watch '{watch_id}': {file_path}") from e
        except sqlite3.Error as e:
            raise LedgerError(f"insert processed file: {e}") from e

    def get_processed_files(self, watch_id: str) -> list[LedgerRecord]:
        """All processed files for a watch, newest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM processed_files WHERE watch_id = ? ORDER BY id DESC",
                (watch_id,),
            ).fetchall()
            return [LedgerRecord.from_row(row) for row in rows]

    def forget(self, watch_id: str, file_path: str) -> bool:
        """
        Remove a ledger record so the file becomes eligible again.

        Operator action only; the scanner never calls this.

        Returns:
            True if a record was removed
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM processed_files WHERE watch_id = ? AND file_path = ?",
                (watch_id, file_path),
            )
            removed = cursor.rowcount > 0

        if removed:
            logger.info(f"[{watch_id}] Forgot processed file: {file_path}")
        return removed
