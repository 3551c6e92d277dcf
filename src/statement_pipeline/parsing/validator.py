"""
Statement validation before storage.
"""

from ..schemas.statement import VALID_TRANSACTION_TYPES, StatementData
from .merger import StatementParseError


class StatementValidationError(StatementParseError):
    """Merged statement is structurally incomplete."""

    pass


def validate_statement(data: StatementData) -> None:
    """
    Check a merged statement is fit to store.

    Raises:
        StatementValidationError: on the first problem found
    """
    if not data.account_name:
        raise StatementValidationError("account_name is required")
    if len(data.account_last4) != 4:
        raise StatementValidationError(
            f"account_last4 must be exactly 4 characters, got: {data.account_last4!r}"
        )
    if data.statement_date is None:
        raise StatementValidationError("statement_date is required")
    if not data.transactions:
        raise StatementValidationError("no transactions found")

    for i, tx in enumerate(data.transactions):
        if not tx.description:
            raise StatementValidationError(f"transaction {i}: description is required")
        if tx.transaction_date is None:
            raise StatementValidationError(f"transaction {i}: transaction_date is required")
        if tx.transaction_type not in VALID_TRANSACTION_TYPES:
            raise StatementValidationError(
                f"transaction {i}: transaction_type must be 'debit' or 'credit', "
                f"got: {tx.transaction_type!r}"
            )
