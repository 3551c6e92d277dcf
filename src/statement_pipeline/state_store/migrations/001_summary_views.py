"""
Migration 001: Add account_summary and monthly_summary views.

Read-only aggregates for the query CLI and external readers.
Amounts are stored as TEXT, so they are cast for arithmetic.
"""

import sqlite3

VERSION = 1
NAME = "summary_views"


def upgrade(conn: sqlite3.Connection) -> None:
    """Create summary views."""
    conn.execute(
        """
        CREATE VIEW IF NOT EXISTS account_summary AS
        SELECT
            account_name,
            account_last4,
            COUNT(*) AS transaction_count,
            ROUND(SUM(CASE WHEN transaction_type = 'debit'
                      THEN CAST(amount AS REAL) ELSE 0 END), 2) AS total_debits,
            ROUND(SUM(CASE WHEN transaction_type = 'credit'
                      THEN CAST(amount AS REAL) ELSE 0 END), 2) AS total_credits,
            MIN(transaction_date) AS first_transaction,
            MAX(transaction_date) AS last_transaction,
            MAX(statement_date) AS latest_statement
        FROM transactions
        GROUP BY account_name, account_last4
        ORDER BY account_name
    """
    )
    conn.execute(
        """
        CREATE VIEW IF NOT EXISTS monthly_summary AS
        SELECT
            account_name,
            account_last4,
            substr(transaction_date, 1, 7) AS month,
            COUNT(*) AS transaction_count,
            ROUND(SUM(CASE WHEN transaction_type = 'debit'
                      THEN CAST(amount AS REAL) ELSE 0 END), 2) AS total_debits,
            ROUND(SUM(CASE WHEN transaction_type = 'credit'
                      THEN CAST(amount AS REAL) ELSE 0 END), 2) AS total_credits,
            ROUND(SUM(CAST(amount AS REAL)), 2) AS net_change
        FROM transactions
        GROUP BY account_name, account_last4, substr(transaction_date, 1, 7)
        ORDER BY month DESC, account_name
    """
    )
