"""
CLI entry points for the processor and the watcher.

Both accept the single-dash long flags used by existing cron entries
(-verbose, -config, -db, -dry-run) as well as the usual double-dash forms.
"""

import argparse
import json
import logging
import sys
from contextlib import ExitStack
from pathlib import Path

from .. import exitcodes
from ..config import ConfigValidationError, create_default_config, load_config, load_watch_configs
from ..processor import DocumentProcessor, ProcessingSuccess
from ..state_store import ProcessingLedger, StoreError
from ..watcher import InProcessRunner, ScanLockError, SubprocessRunner, WatchScanner, scan_lock

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with a chosen code instead of 2."""

    def __init__(self, *args, error_exit_code: int = exitcodes.CONFIG_ERROR, **kwargs):
        super().__init__(*args, **kwargs)
        self.error_exit_code = error_exit_code

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(self.error_exit_code, f"{self.prog}: error: {message}\n")


# Processor


def create_processor_cli() -> argparse.ArgumentParser:
    """Create processor argument parser."""
    parser = _ArgumentParser(
        prog="statement-processor",
        description="Extract transactions from a bank statement and store them",
        allow_abbrev=False,
        error_exit_code=exitcodes.CONFIG_ERROR,
        epilog=(
            "Exit codes: 0 success, 1 parse error, 2 database error, 3 configuration error"
        ),
    )
    parser.add_argument("file", nargs="?", type=Path, help="Statement file to process")
    parser.add_argument(
        "-c",
        "-config",
        "--config",
        dest="config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml, optional)",
    )
    parser.add_argument(
        "--init-config",
        type=Path,
        metavar="PATH",
        help="Write a default config file to PATH and exit",
    )
    parser.add_argument(
        "-v",
        "-verbose",
        "--verbose",
        dest="verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def processor_main(args: list[str] | None = None) -> int:
    """Processor entry point. Returns the process exit code."""
    parser = create_processor_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if parsed.init_config:
        create_default_config(parsed.init_config)
        print(f"✓ Wrote default config to {parsed.init_config}")
        return exitcodes.SUCCESS

    if parsed.file is None:
        parser.print_usage(sys.stderr)
        print("❌ A statement file is required", file=sys.stderr)
        return exitcodes.CONFIG_ERROR

    try:
        config = load_config(parsed.config)
    except ConfigValidationError as e:
        print(f"❌ Failed to load config: {e}", file=sys.stderr)
        return exitcodes.CONFIG_ERROR

    try:
        processor = DocumentProcessor(config)
    except StoreError as e:
        print(f"❌ Failed to open database: {e}", file=sys.stderr)
        return exitcodes.STORE_ERROR

    outcome = processor.process(parsed.file)

    if isinstance(outcome, ProcessingSuccess):
        statement = outcome.statement
        print(f"✓ {statement.account_name} (...{statement.account_last4})")
        print(f"  Statement date: {statement.statement_date}")
        print(f"  Pages parsed:   {statement.pages_parsed}/{statement.pages_total}")
        print(f"  Inserted:       {outcome.inserted}")
        print(f"  Skipped:        {outcome.skipped}")
    else:
        print(f"❌ {outcome.status.value}: {outcome.reason}", file=sys.stderr)

    return outcome.exit_code


# Watcher


def create_watcher_cli() -> argparse.ArgumentParser:
    """Create watcher argument parser."""
    parser = _ArgumentParser(
        prog="statement-watcher",
        description="Process new statement files in watched directories",
        allow_abbrev=False,
        error_exit_code=exitcodes.CONFIG_ERROR,
        epilog=(
            "Exit codes: 0 run completed (even with per-file errors), 2 ledger error, "
            "3 configuration error, 4 another run in progress"
        ),
    )
    parser.add_argument(
        "-config",
        "--config",
        dest="config",
        type=Path,
        default=Path("watches.json"),
        help="Path to watch config JSON (default: ./watches.json)",
    )
    parser.add_argument(
        "-db",
        "--db",
        dest="db",
        type=Path,
        default=Path("watcher.db"),
        help="Path to processing ledger database (default: ./watcher.db)",
    )
    parser.add_argument(
        "-dry-run",
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Log what would be processed without running, moving, or recording",
    )
    parser.add_argument(
        "--processor-timeout",
        type=float,
        metavar="SECONDS",
        help="Kill a processor run after this many seconds (default: no limit)",
    )
    parser.add_argument(
        "--in-process",
        action="store_true",
        help="Run the document processor in this process instead of executable_path",
    )
    parser.add_argument(
        "--processor-config",
        type=Path,
        default=Path("config.yaml"),
        help="Processor config file for --in-process (default: config.yaml, optional)",
    )
    parser.add_argument(
        "--list-processed",
        metavar="WATCH_ID",
        help="Print the ledger for a watch as JSON and exit",
    )
    parser.add_argument(
        "--forget",
        nargs=2,
        metavar=("WATCH_ID", "FILE_PATH"),
        help="Remove one ledger record so the file is processed again",
    )
    parser.add_argument(
        "-v",
        "-verbose",
        "--verbose",
        dest="verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def cmd_list_processed(ledger: ProcessingLedger, watch_id: str) -> int:
    """Print ledger rows for a watch."""
    records = ledger.get_processed_files(watch_id)
    print(json.dumps([r.to_dict() for r in records], indent=2))
    return exitcodes.SUCCESS


def cmd_forget(ledger: ProcessingLedger, watch_id: str, file_path: str) -> int:
    """Remove a ledger row."""
    if ledger.forget(watch_id, file_path):
        print(f"✓ Forgot {file_path} for watch '{watch_id}'")
        return exitcodes.SUCCESS
    print(f"❌ No ledger record for {file_path} in watch '{watch_id}'", file=sys.stderr)
    return exitcodes.ARGS_ERROR


def watcher_main(args: list[str] | None = None) -> int:
    """Watcher entry point. Returns the process exit code."""
    parser = create_watcher_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if parsed.list_processed or parsed.forget:
        try:
            ledger = ProcessingLedger(parsed.db)
            if parsed.list_processed:
                return cmd_list_processed(ledger, parsed.list_processed)
            return cmd_forget(ledger, *parsed.forget)
        except StoreError as e:
            print(f"❌ Ledger error: {e}", file=sys.stderr)
            return exitcodes.STORE_ERROR

    logger.info("Statement watcher started")

    try:
        watches = load_watch_configs(parsed.config)
    except ConfigValidationError as e:
        logger.error(f"Failed to load config: {e}")
        return exitcodes.CONFIG_ERROR
    logger.info(f"Loaded {len(watches)} watch configurations")

    try:
        ledger = ProcessingLedger(parsed.db)
    except StoreError as e:
        logger.error(f"Failed to initialize database: {e}")
        return exitcodes.STORE_ERROR

    if parsed.in_process:
        try:
            processor = DocumentProcessor(load_config(parsed.processor_config))
        except ConfigValidationError as e:
            logger.error(f"Failed to load processor config: {e}")
            return exitcodes.CONFIG_ERROR
        except StoreError as e:
            logger.error(f"Failed to open transaction store: {e}")
            return exitcodes.STORE_ERROR
        runner = InProcessRunner(processor)
    else:
        runner = SubprocessRunner(timeout=parsed.processor_timeout)

    scanner = WatchScanner(ledger, runner=runner)

    with ExitStack() as stack:
        try:
            stack.enter_context(scan_lock(parsed.db))
        except ScanLockError as e:
            logger.error(f"Another watcher run is in progress: {e}")
            return exitcodes.LOCKED
        except OSError as e:
            logger.error(f"Failed to acquire watcher lock: {e}")
            return exitcodes.STORE_ERROR

        scanner.scan(watches, dry_run=parsed.dry_run)

    return exitcodes.SUCCESS


if __name__ == "__main__":
    sys.exit(processor_main())
