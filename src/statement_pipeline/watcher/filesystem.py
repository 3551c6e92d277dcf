"""
Filesystem access used by the watch scanner.

The scanner only needs three operations; keeping them behind a small
protocol lets tests run the scanner against an in-memory tree.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

COLLISION_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class WatchFilesystem(Protocol):
    def exists(self, directory: str) -> bool:
        ...

    def list_matching(self, directory: str, pattern: str) -> list[str]:
        ...

    def move_with_collision(self, src: str, dest_dir: str) -> str:
        ...


def collision_free_name(
    name: str, taken: Callable[[str], bool], now: datetime | None = None
) -> str:
    """
    Pick a destination file name that is not taken.

    "statement.pdf" stays as is when free, otherwise becomes
    "statement_20240115-093000.pdf", then "statement_20240115-093000_1.pdf", ...
    """
    if not taken(name):
        return name

    stem, suffix = Path(name).stem, Path(name).suffix
    stamp = (now or datetime.now()).strftime(COLLISION_TIMESTAMP_FORMAT)
    candidate = f"{stem}_{stamp}{suffix}"
    counter = 1
    while taken(candidate):
        candidate = f"{stem}_{stamp}_{counter}{suffix}"
        counter += 1
    return candidate


class LocalFilesystem:
    """WatchFilesystem backed by the real disk."""

    def exists(self, directory: str) -> bool:
        return Path(directory).is_dir()

    def list_matching(self, directory: str, pattern: str) -> list[str]:
        """Regular files in directory whose names match the glob, sorted."""
        return sorted(str(p) for p in Path(directory).glob(pattern) if p.is_file())

    def move_with_collision(self, src: str, dest_dir: str) -> str:
        """
        Move src into dest_dir (created if missing) without overwriting.

        Returns:
            The destination path

        Raises:
            OSError: if the directory cannot be created or the move fails
        """
        dest = Path(dest_dir)
        dest.mkdir(parents=True, exist_ok=True)

        name = collision_free_name(Path(src).name, lambda n: (dest / n).exists())
        target = dest / name
        shutil.move(src, str(target))
        logger.debug(f"Moved {src} -> {target}")
        return str(target)
