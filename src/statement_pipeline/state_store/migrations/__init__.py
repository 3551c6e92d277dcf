"""
Versioned schema migrations for the transaction store.

Applied in order on every TransactionStore open and tracked in the
schema_migrations table.
"""

from .runner import Migration, MigrationError, MigrationRunner, load_migrations

__all__ = ["Migration", "MigrationError", "MigrationRunner", "load_migrations"]
