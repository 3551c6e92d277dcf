"""
Cross-page merge of parsed statement pages.
"""

import dataclasses
import logging

from ..schemas.dedupe import deduplicate_transactions
from ..schemas.statement import PageParseResult, StatementData

logger = logging.getLogger(__name__)


class StatementParseError(Exception):
    """The document as a whole could not be parsed."""

    pass


def merge_pages(results: list[PageParseResult], pages_total: int) -> StatementData:
    """
    Combine page results into one statement.

    - The envelope comes from the first successfully parsed page and is
      stamped onto every transaction, so all rows share one account identity.
    - Transactions are concatenated in page order, then deduplicated on the
      natural key (first occurrence wins).

    Raises:
        StatementParseError: if no page was parsed
    """
    if not results:
        raise StatementParseError("failed to parse any pages")

    ordered = sorted(results, key=lambda r: r.page_number)
    envelope = ordered[0].envelope

    combined = [
        dataclasses.replace(
            tx,
            account_name=envelope.account_name,
            account_last4=envelope.account_last4,
            statement_date=envelope.statement_date,
        )
        for result in ordered
        for tx in result.transactions
    ]

    unique = deduplicate_transactions(combined)
    removed = len(combined) - len(unique)
    if removed:
        logger.info(f"Removed {removed} duplicate transactions across pages")

    return StatementData(
        envelope=envelope,
        transactions=unique,
        pages_total=pages_total,
        pages_parsed=len(ordered),
        duplicates_removed=removed,
    )
