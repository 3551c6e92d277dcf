"""
Query CLI: read transactions, account totals and the processing log.

Never writes transactions or processing log entries. Opening an existing
database applies any pending schema migrations first, as every store open
does; a missing database is reported, not created. Output is JSON (compact
by default) or CSV for transactions.
"""

import argparse
import csv
import json
import sys
from datetime import date
from pathlib import Path
from typing import Any

from .. import exitcodes
from ..config import ConfigValidationError, load_config
from ..state_store import ProcessingStatus, StoredTransaction, StoreError, TransactionStore
from .main import _ArgumentParser

CSV_FIELDS = [
    "id",
    "account_name",
    "account_last4",
    "transaction_date",
    "post_date",
    "description",
    "amount",
    "transaction_type",
    "balance",
    "statement_date",
    "source_file",
]


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from e


def create_query_cli() -> argparse.ArgumentParser:
    """Create query argument parser."""
    parser = _ArgumentParser(
        prog="statement-query",
        description="Query stored statement transactions",
        allow_abbrev=False,
        error_exit_code=exitcodes.ARGS_ERROR,
        epilog="Exit codes: 0 success, 1 invalid arguments, 2 database error",
    )
    parser.add_argument("--start-date", type=_iso_date, help="First date (YYYY-MM-DD)")
    parser.add_argument("--end-date", type=_iso_date, help="Last date (YYYY-MM-DD)")
    parser.add_argument("--account", help="Account last 4 digits or part of the account name")
    parser.add_argument(
        "--type",
        dest="transaction_type",
        choices=["debit", "credit", "all"],
        default="all",
        help="Transaction type filter (default: all)",
    )
    parser.add_argument("--csv", action="store_true", help="Output transactions as CSV")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    parser.add_argument("--summary", action="store_true", help="Show per-account totals")
    parser.add_argument(
        "--monthly", action="store_true", help="Show per-account monthly totals (with --summary)"
    )
    parser.add_argument(
        "--stats", action="store_true", help="Show transaction and processing log counts"
    )
    parser.add_argument("--log", action="store_true", help="Show the processing log")
    parser.add_argument(
        "--status",
        choices=[s.value for s in ProcessingStatus],
        help="Processing log status filter (with --log)",
    )
    parser.add_argument(
        "--limit", type=int, default=50, help="Processing log entries to show (default: 50)"
    )
    parser.add_argument(
        "--db",
        type=Path,
        help="Transaction database (default: DB_PATH or the config file's db_path)",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml, optional)",
    )
    return parser


def format_json(data: Any, pretty: bool) -> str:
    if pretty:
        return json.dumps(data, indent=2, default=str)
    return json.dumps(data, default=str)


def group_by_account(transactions: list[StoredTransaction]) -> dict[str, list[dict]]:
    """Group rows under "name (...last4)", keeping query order within each group."""
    grouped: dict[str, list[dict]] = {}
    for tx in transactions:
        key = f"{tx.account_name} (...{tx.account_last4})"
        grouped.setdefault(key, []).append(tx.to_dict())
    return grouped


def write_csv(transactions: list[StoredTransaction], out=None) -> None:
    writer = csv.DictWriter(out or sys.stdout, fieldnames=CSV_FIELDS)
    writer.writeheader()
    for tx in transactions:
        row = tx.to_dict()
        writer.writerow({k: "" if row.get(k) is None else row[k] for k in CSV_FIELDS})


def query_main(args: list[str] | None = None) -> int:
    """Query entry point. Returns the process exit code."""
    parser = create_query_cli()
    parsed = parser.parse_args(args)

    listing = not (parsed.summary or parsed.stats or parsed.log)
    if listing and (parsed.start_date is None or parsed.end_date is None):
        print("Error: --start-date and --end-date are required\n", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return exitcodes.ARGS_ERROR
    if listing and parsed.start_date > parsed.end_date:
        print("Error: --start-date must not be after --end-date", file=sys.stderr)
        return exitcodes.ARGS_ERROR

    db_path = parsed.db
    if db_path is None:
        try:
            db_path = load_config(parsed.config).db_path
        except ConfigValidationError as e:
            print(f"Error: {e}", file=sys.stderr)
            return exitcodes.ARGS_ERROR

    if not Path(db_path).exists():
        print(f"Failed to open database: {db_path} does not exist", file=sys.stderr)
        return exitcodes.STORE_ERROR

    try:
        store = TransactionStore(db_path)

        if parsed.summary:
            rows = store.get_monthly_summary() if parsed.monthly else store.get_account_summary()
            print(format_json(rows, parsed.pretty))
            return exitcodes.SUCCESS

        if parsed.stats:
            print(format_json(store.get_stats(), parsed.pretty))
            return exitcodes.SUCCESS

        if parsed.log:
            status = ProcessingStatus(parsed.status) if parsed.status else None
            entries = store.get_processing_log(limit=parsed.limit, status=status)
            print(format_json([e.to_dict() for e in entries], parsed.pretty))
            return exitcodes.SUCCESS

        transactions = store.query_transactions(
            parsed.start_date,
            parsed.end_date,
            account=parsed.account,
            transaction_type=parsed.transaction_type,
        )
    except StoreError as e:
        print(f"Database error: {e}", file=sys.stderr)
        return exitcodes.STORE_ERROR

    if parsed.csv:
        write_csv(transactions)
        return exitcodes.SUCCESS

    result = {
        "start_date": parsed.start_date.isoformat(),
        "end_date": parsed.end_date.isoformat(),
        "total_records": len(transactions),
        "accounts": group_by_account(transactions),
    }
    print(format_json(result, parsed.pretty))
    return exitcodes.SUCCESS


if __name__ == "__main__":
    sys.exit(query_main())
