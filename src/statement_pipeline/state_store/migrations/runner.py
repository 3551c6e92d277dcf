"""
Schema migrations for the transaction store.

Each module in this package named NNN_<name>.py is one step:

    VERSION = 3                  # must equal the NNN file prefix
    NAME = "short_description"
    def upgrade(conn): ...

Applied steps are tracked in schema_migrations. The bookkeeping row is
written only after a step's upgrade returns, so a step that raises is run
again on the next open; steps must be idempotent (IF NOT EXISTS, column checks).
"""

import importlib
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MIGRATION_GLOB = "[0-9][0-9][0-9]_*.py"


class MigrationError(Exception):
    """Migration modules are inconsistent with their file names."""

    pass


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    upgrade: Callable[[sqlite3.Connection], None]

    def __str__(self) -> str:
        return f"{self.version:03d}_{self.name}"


def load_migrations() -> list[Migration]:
    """
    Import every migration module in this package, ordered by version.

    Raises:
        MigrationError: a module's VERSION disagrees with its file prefix,
            or two modules claim the same version
    """
    by_version: dict[int, Migration] = {}

    for path in sorted(Path(__file__).parent.glob(MIGRATION_GLOB)):
        module = importlib.import_module(f"{__package__}.{path.stem}")
        prefix = int(path.stem[:3])
        if module.VERSION != prefix:
            raise MigrationError(
                f"{path.name}: VERSION {module.VERSION} does not match file prefix {prefix}"
            )
        if prefix in by_version:
            raise MigrationError(f"{path.name}: version {prefix} defined twice")
        by_version[prefix] = Migration(
            version=module.VERSION,
            name=module.NAME,
            upgrade=module.upgrade,
        )

    return [by_version[v] for v in sorted(by_version)]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class MigrationRunner:
    """Brings one open database connection up to the latest schema version."""

    def __init__(self, conn: sqlite3.Connection, migrations: Optional[list[Migration]] = None):
        self.conn = conn
        self.migrations = migrations if migrations is not None else load_migrations()
        with self.conn:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    applied_at TEXT NOT NULL
                )
            """
            )

    def applied_versions(self) -> set[int]:
        rows = self.conn.execute("SELECT version FROM schema_migrations").fetchall()
        return {row[0] for row in rows}

    def pending(self) -> list[Migration]:
        applied = self.applied_versions()
        return [m for m in self.migrations if m.version not in applied]

    def upgrade(self) -> list[int]:
        """Apply all pending migrations. Returns the versions applied, in order."""
        done = []
        for migration in self.pending():
            self._apply(migration)
            done.append(migration.version)

        if done:
            logger.info(f"Schema migrated to version {done[-1]}")
        return done

    def _apply(self, migration: Migration) -> None:
        logger.info(f"Applying migration {migration}")
        try:
            with self.conn:
                migration.upgrade(self.conn)
                self.conn.execute(
                    "INSERT INTO schema_migrations (version, name, applied_at) VALUES (?, ?, ?)",
                    (migration.version, migration.name, _utc_now()),
                )
        except sqlite3.Error:
            logger.error(f"Migration {migration} failed")
            raise
