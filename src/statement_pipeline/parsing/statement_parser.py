"""
Per-page statement parsing via a local LLM.

Each page is sent to the model on its own. The answer must be a single JSON
object in a fixed shape; anything else fails the page, never the document.
The merger decides whether enough pages survived.

Privacy: page text and raw model output are only ever logged at DEBUG.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..ollama_client import OllamaClient, OllamaError
from ..schemas.dedupe import normalize_amount
from ..schemas.statement import PageParseResult, RawPage, StatementEnvelope, TransactionRecord
from .prompts import StatementPrompt

logger = logging.getLogger(__name__)


class PageParseError(Exception):
    """One page could not be turned into structured data."""

    def __init__(self, page_number: int, message: str):
        self.page_number = page_number
        self.message = message
        super().__init__(f"page {page_number}: {message}")


# Tried in order, first match wins.
DATE_FORMATS = (
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y-%m-%dT%H:%M:%S%z",
    "%y-%m-%d",
    "%y/%m/%d",
)


def parse_date(value: str) -> date:
    """
    Parse a statement date string.

    Raises:
        ValueError: if no known format matches
    """
    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unable to parse date: {value!r}")


def strip_code_fences(content: str) -> str:
    """Remove a surrounding markdown code block, if the model added one."""
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    elif content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_str(data: dict, key: str, where: str, page_number: int) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PageParseError(page_number, f"{where}{key} must be a string")
    return value.strip()


class StatementParser:
    """
    Turns statement pages into PageParseResults using an Ollama model.

    Example:
        parser = StatementParser(OllamaClient.from_config(config.llm))
        results = parser.parse_pages(pages, "statement.pdf")
    """

    def __init__(self, client: OllamaClient, prompt: Optional[StatementPrompt] = None):
        self.client = client
        self.prompt = prompt or StatementPrompt()

    def parse_page(self, page: RawPage, source_file: str) -> PageParseResult:
        """
        Parse a single page.

        Raises:
            PageParseError: service unreachable, malformed answer, or bad field
        """
        try:
            self.client.health_check()
        except OllamaError as e:
            raise PageParseError(page.page_number, f"inference service unavailable: {e}") from e

        prompt = self.prompt.format(page.text)
        logger.debug(f"Page {page.page_number} prompt ({self.prompt.version}): {prompt}")

        try:
            raw = self.client.generate(prompt)
        except OllamaError as e:
            raise PageParseError(page.page_number, f"inference request failed: {e}") from e

        logger.debug(f"Page {page.page_number} raw response: {raw}")

        try:
            data = json.loads(strip_code_fences(raw))
        except json.JSONDecodeError as e:
            raise PageParseError(page.page_number, f"model returned invalid JSON: {e}") from e

        return self._build_result(data, page.page_number, source_file)

    def parse_pages(self, pages: list[RawPage], source_file: str) -> list[PageParseResult]:
        """
        Parse pages sequentially, keeping the successes.

        A failed page is logged and skipped; the caller sees fewer results.
        """
        results: list[PageParseResult] = []
        for page in pages:
            try:
                result = self.parse_page(page, source_file)
            except PageParseError as e:
                logger.warning(f"Failed to parse {source_file} {e}")
                continue
            logger.info(
                f"Parsed page {page.page_number} of {source_file}: "
                f"{len(result.transactions)} transactions"
            )
            results.append(result)
        return results

    def _build_result(self, data: Any, page_number: int, source_file: str) -> PageParseResult:
        if not isinstance(data, dict):
            raise PageParseError(page_number, "response must be a JSON object")

        account_name = _optional_str(data, "account_name", "", page_number)
        account_last4 = _optional_str(data, "account_last4", "", page_number)
        statement_date_raw = _optional_str(data, "statement_date", "", page_number)

        if not statement_date_raw.strip():
            raise PageParseError(page_number, "statement_date is required")
        try:
            statement_date = parse_date(statement_date_raw)
        except ValueError as e:
            raise PageParseError(page_number, f"statement_date: {e}") from e

        items = data.get("transactions")
        if not isinstance(items, list):
            raise PageParseError(page_number, "transactions must be a list")

        envelope = StatementEnvelope(
            account_name=account_name,
            account_last4=account_last4,
            statement_date=statement_date,
        )

        transactions = [
            self._build_transaction(item, index, envelope, page_number, source_file)
            for index, item in enumerate(items)
        ]

        return PageParseResult(
            page_number=page_number, envelope=envelope, transactions=transactions
        )

    def _build_transaction(
        self,
        item: Any,
        index: int,
        envelope: StatementEnvelope,
        page_number: int,
        source_file: str,
    ) -> TransactionRecord:
        where = f"transaction {index}: "
        if not isinstance(item, dict):
            raise PageParseError(page_number, f"{where}must be a JSON object")

        tx_date_raw = item.get("transaction_date")
        if not isinstance(tx_date_raw, str):
            raise PageParseError(page_number, f"{where}transaction_date must be a string")
        try:
            transaction_date = parse_date(tx_date_raw)
        except ValueError as e:
            raise PageParseError(page_number, f"{where}transaction_date: {e}") from e

        post_date: Optional[date] = None
        post_date_raw = item.get("post_date")
        if isinstance(post_date_raw, str) and post_date_raw.strip():
            try:
                post_date = parse_date(post_date_raw)
            except ValueError:
                logger.debug(f"Page {page_number} {where}dropping unparseable post_date")

        amount_raw = item.get("amount")
        if not _is_number(amount_raw):
            raise PageParseError(page_number, f"{where}amount must be a number")

        balance_raw = item.get("balance")
        if balance_raw is not None and not _is_number(balance_raw):
            raise PageParseError(page_number, f"{where}balance must be a number or null")

        try:
            amount = normalize_amount(amount_raw)
            balance: Optional[Decimal] = (
                normalize_amount(balance_raw) if balance_raw is not None else None
            )
        except (InvalidOperation, ValueError) as e:
            raise PageParseError(page_number, f"{where}invalid amount: {e}") from e

        return TransactionRecord(
            account_name=envelope.account_name,
            account_last4=envelope.account_last4,
            transaction_date=transaction_date,
            post_date=post_date,
            description=_optional_str(item, "description", where, page_number),
            amount=amount,
            transaction_type=_optional_str(item, "transaction_type", where, page_number).lower(),
            balance=balance,
            statement_date=envelope.statement_date,
            source_file=source_file,
        )
