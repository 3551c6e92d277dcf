"""
Watch scanner: one pass over every configured watch.

For each file matching a watch's pattern that the ledger has not seen:
run the processor, and on exit code 0 move the file to processed_path and
record it in the ledger. Any other exit code leaves the file in place so the
next run retries it.

Ordering: move first, ledger second. A crash between the two leaves the
file in processed_path with no ledger row; it is never rediscovered there,
and a manual re-drop is harmless because the store skips known transactions.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from ..config import WatchConfig
from ..state_store import LedgerError, ProcessingLedger
from .filesystem import LocalFilesystem, WatchFilesystem
from .runners import ProcessorRunner, SubprocessRunner

logger = logging.getLogger(__name__)


class FileState(str, Enum):
    """What the scanner did with one discovered file."""

    SKIPPED = "skipped"
    MOVED = "moved"
    LEFT_IN_PLACE = "left_in_place"
    WOULD_PROCESS = "would_process"


@dataclass
class FileOutcome:
    watch_id: str
    file_path: str
    state: FileState
    exit_code: Optional[int] = None
    destination: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ScanResult:
    """Counters for a run plus the per-file outcomes, in processing order."""

    processed: int = 0
    errors: int = 0
    skipped: int = 0
    outcomes: list[FileOutcome] = field(default_factory=list)

    def merge(self, other: "ScanResult") -> None:
        self.processed += other.processed
        self.errors += other.errors
        self.skipped += other.skipped
        self.outcomes.extend(other.outcomes)


class WatchScanner:
    """
    Scans watch directories and hands new files to the processor.

    Watches and files are handled sequentially. A failure on one file is
    logged and counted; it never stops the rest of the run.
    """

    def __init__(
        self,
        ledger: ProcessingLedger,
        filesystem: Optional[WatchFilesystem] = None,
        runner: Optional[ProcessorRunner] = None,
    ):
        self.ledger = ledger
        self.filesystem = filesystem or LocalFilesystem()
        self.runner = runner or SubprocessRunner()

    def scan(self, watches: list[WatchConfig], dry_run: bool = False) -> ScanResult:
        """Run one pass over all watches."""
        result = ScanResult()
        for watch in watches:
            result.merge(self.scan_watch(watch, dry_run=dry_run))

        logger.info(
            f"Watcher run completed. Processed: {result.processed}, "
            f"Errors: {result.errors}, Skipped: {result.skipped}"
        )
        return result

    def scan_watch(self, watch: WatchConfig, dry_run: bool = False) -> ScanResult:
        """Run one pass over a single watch."""
        result = ScanResult()
        wid = watch.watch_id

        logger.info(f"[{wid}] Checking watch path: {watch.watch_path}")
        try:
            present = self.filesystem.exists(watch.watch_path)
        except OSError as e:
            logger.error(f"[{wid}] Failed to check watch path {watch.watch_path}: {e}")
            result.errors += 1
            return result
        if not present:
            logger.warning(f"[{wid}] Watch path does not exist: {watch.watch_path}")
            return result

        try:
            matches = self.filesystem.list_matching(watch.watch_path, watch.file_pattern)
        except OSError as e:
            logger.error(f"[{wid}] Failed to list {watch.watch_path}: {e}")
            result.errors += 1
            return result

        if not matches:
            logger.info(f"[{wid}] No files match pattern: {watch.file_pattern}")
            return result

        logger.info(f"[{wid}] Found {len(matches)} matching files")

        for file_path in matches:
            outcome = self._handle_file(watch, file_path, dry_run)
            result.outcomes.append(outcome)
            if outcome.state == FileState.SKIPPED:
                result.skipped += 1
            elif outcome.error is not None:
                result.errors += 1
            else:
                result.processed += 1

        return result

    def _handle_file(self, watch: WatchConfig, file_path: str, dry_run: bool) -> FileOutcome:
        wid = watch.watch_id
        name = Path(file_path).name

        try:
            already = self.ledger.is_processed(wid, file_path)
        except LedgerError as e:
            logger.error(f"[{wid}] Failed to check if file processed: {file_path}: {e}")
            return FileOutcome(wid, file_path, FileState.LEFT_IN_PLACE, error=str(e))

        if already:
            logger.info(f"[{wid}] SKIP: File already processed: {name}")
            return FileOutcome(wid, file_path, FileState.SKIPPED)

        if dry_run:
            logger.info(f"[{wid}] DRY-RUN: Would process file: {file_path}")
            return FileOutcome(wid, file_path, FileState.WOULD_PROCESS)

        logger.info(f"[{wid}] Processing file: {name}")
        run = self.runner.run(watch.executable_path, file_path)

        if not run.ok:
            logger.error(f"[{wid}] FAILED: Processor failed (exit code: {run.exit_code})")
            if run.output:
                logger.error(f"[{wid}] Error output: {run.output.strip()}")
            logger.info(f"[{wid}] File left in place for retry: {file_path}")
            return FileOutcome(
                wid,
                file_path,
                FileState.LEFT_IN_PLACE,
                exit_code=run.exit_code,
                error=f"processor exit code {run.exit_code}",
            )

        logger.info(f"[{wid}] SUCCESS: Processor completed (exit code: {run.exit_code})")
        if run.output:
            logger.debug(f"[{wid}] Output: {run.output.strip()}")

        try:
            destination = self.filesystem.move_with_collision(file_path, watch.processed_path)
        except OSError as e:
            logger.error(f"[{wid}] Failed to move file to processed: {e}")
            return FileOutcome(
                wid, file_path, FileState.LEFT_IN_PLACE, exit_code=run.exit_code, error=str(e)
            )

        logger.info(f"[{wid}] File moved to: {destination}")

        try:
            self.ledger.record_processed(wid, file_path)
        except LedgerError as e:
            logger.error(f"[{wid}] Failed to record processed file: {e}")
            return FileOutcome(
                wid,
                file_path,
                FileState.MOVED,
                exit_code=run.exit_code,
                destination=destination,
                error=str(e),
            )

        return FileOutcome(
            wid, file_path, FileState.MOVED, exit_code=run.exit_code, destination=destination
        )
