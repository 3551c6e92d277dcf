"""
Migration 002: Add file_hash column to processing_log.

Lets repeated attempts on the same (possibly renamed) file be correlated.
"""

import sqlite3

VERSION = 2
NAME = "processing_log_file_hash"


def upgrade(conn: sqlite3.Connection) -> None:
    """Add file_hash column."""
    cursor = conn.execute("PRAGMA table_info(processing_log)")
    columns = {row[1] for row in cursor.fetchall()}

    if "file_hash" not in columns:
        conn.execute("ALTER TABLE processing_log ADD COLUMN file_hash TEXT")

    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_processing_log_file_hash ON processing_log(file_hash)"
    )
