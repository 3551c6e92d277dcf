"""
Single-instance lock for the watcher.

An exclusive, non-blocking flock on "<ledger-db>.lock". The kernel drops the
lock when the process exits, so a crashed run never leaves a stale lock.
"""

import fcntl
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


class ScanLockError(Exception):
    """Another watcher run holds the lock."""

    pass


def lock_path_for(db_path: Path | str) -> Path:
    db_path = Path(db_path)
    return db_path.with_name(db_path.name + ".lock")


@contextmanager
def scan_lock(db_path: Path | str) -> Iterator[Path]:
    """
    Hold the watcher lock for the duration of the block.

    Raises:
        ScanLockError: if the lock is already held
        OSError: if the lock file cannot be opened
    """
    path = lock_path_for(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(str(path), os.O_RDWR | os.O_CREAT, 0o644)
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise ScanLockError(f"another watcher run holds {path}") from e

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        logger.debug(f"Acquired lock {path}")
        try:
            yield path
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)
