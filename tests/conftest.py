"""Test fixtures and utilities."""

import fnmatch
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Optional

import pytest

from statement_pipeline.config import LLMConfig, ProcessorConfig, WatchConfig
from statement_pipeline.ollama_client import OllamaConnectionError
from statement_pipeline.schemas import RawPage, TransactionRecord
from statement_pipeline.watcher import RunResult, collision_free_name

# Sample statement page text
SAMPLE_PAGE_1 = """
FIRST COMMUNITY BANK
Everyday Checking    Account ending 1234
Statement Period: 01/01/2024 - 01/31/2024

Date        Description                 Amount      Balance
01/03/2024  GROCERY MART #221           -50.25      1,949.75
01/05/2024  PAYROLL DEPOSIT ACME        2,000.00    3,949.75
01/09/2024  COFFEE HOUSE                -4.50       3,945.25
"""

SAMPLE_PAGE_2 = """
FIRST COMMUNITY BANK
Everyday Checking    Account ending 1234    (continued)

Date        Description                 Amount      Balance
01/09/2024  COFFEE HOUSE                -4.50       3,945.25
01/15/2024  ELECTRIC UTILITY            -120.00     3,825.25
"""

PAGE_1_RESPONSE = {
    "account_name": "Everyday Checking",
    "account_last4": "1234",
    "statement_date": "2024-01-31",
    "transactions": [
        {
            "transaction_date": "2024-01-03",
            "post_date": "2024-01-04",
            "description": "GROCERY MART #221",
            "amount": -50.25,
            "transaction_type": "debit",
            "balance": 1949.75,
        },
        {
            "transaction_date": "2024-01-05",
            "post_date": None,
            "description": "PAYROLL DEPOSIT ACME",
            "amount": 2000.00,
            "transaction_type": "credit",
            "balance": 3949.75,
        },
        {
            "transaction_date": "2024-01-09",
            "post_date": None,
            "description": "COFFEE HOUSE",
            "amount": -4.50,
            "transaction_type": "debit",
            "balance": 3945.25,
        },
    ],
}

# Repeats the last line of page 1 at the top.
PAGE_2_RESPONSE = {
    "account_name": "Everyday Checking",
    "account_last4": "1234",
    "statement_date": "2024-01-31",
    "transactions": [
        {
            "transaction_date": "2024-01-09",
            "post_date": None,
            "description": "COFFEE HOUSE",
            "amount": -4.5,
            "transaction_type": "debit",
            "balance": 3945.25,
        },
        {
            "transaction_date": "01/15/2024",
            "post_date": None,
            "description": "ELECTRIC UTILITY",
            "amount": -120,
            "transaction_type": "Debit",
            "balance": None,
        },
    ],
}


@pytest.fixture
def sample_pages() -> list[RawPage]:
    """Two pages of a checking account statement."""
    return [
        RawPage(page_number=1, text=SAMPLE_PAGE_1),
        RawPage(page_number=2, text=SAMPLE_PAGE_2),
    ]


@pytest.fixture
def page_1_response() -> str:
    """Model answer for page 1, as the raw response string."""
    return json.dumps(PAGE_1_RESPONSE)


@pytest.fixture
def page_2_response() -> str:
    """Model answer for page 2, as the raw response string."""
    return json.dumps(PAGE_2_RESPONSE)


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary transaction database path for testing."""
    return tmp_path / "transactions.db"


@pytest.fixture
def ledger_db(tmp_path) -> Path:
    """Temporary ledger database path for testing."""
    return tmp_path / "watcher.db"


@pytest.fixture
def processor_config(temp_db) -> ProcessorConfig:
    """Processor config pointing at the temporary database."""
    return ProcessorConfig(db_path=temp_db, llm=LLMConfig(ollama_url="http://ollama.test:11434"))


def make_record(
    description: str = "GROCERY MART #221",
    amount: str = "-50.25",
    transaction_date: date = date(2024, 1, 3),
    transaction_type: str = "debit",
    account_last4: str = "1234",
    account_name: str = "Everyday Checking",
    statement_date: Optional[date] = date(2024, 1, 31),
    source_file: str = "statement.pdf",
    balance: Optional[str] = None,
) -> TransactionRecord:
    """Build a TransactionRecord with sensible defaults."""
    return TransactionRecord(
        account_name=account_name,
        account_last4=account_last4,
        transaction_date=transaction_date,
        description=description,
        amount=Decimal(amount),
        transaction_type=transaction_type,
        statement_date=statement_date,
        source_file=source_file,
        balance=Decimal(balance) if balance is not None else None,
    )


@pytest.fixture
def record_factory():
    """Factory for TransactionRecords."""
    return make_record


class FakeOllamaClient:
    """Stands in for OllamaClient: canned responses, in order."""

    def __init__(self, responses: list[str], healthy: bool = True):
        self.responses = list(responses)
        self.healthy = healthy
        self.prompts: list[str] = []
        self.health_checks = 0

    def health_check(self) -> None:
        self.health_checks += 1
        if not self.healthy:
            raise OllamaConnectionError("Failed to connect to Ollama at http://ollama.test:11434")

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.responses.pop(0)


class FakeFilesystem:
    """In-memory WatchFilesystem. Files are tracked as full path strings."""

    def __init__(self, directories: Optional[list[str]] = None, files: Optional[list[str]] = None):
        self.directories = set(directories or [])
        self.files = set(files or [])
        self.fail_moves = False

    def exists(self, directory: str) -> bool:
        return directory in self.directories

    def list_matching(self, directory: str, pattern: str) -> list[str]:
        return sorted(
            f
            for f in self.files
            if str(Path(f).parent) == directory and fnmatch.fnmatch(Path(f).name, pattern)
        )

    def move_with_collision(self, src: str, dest_dir: str) -> str:
        if self.fail_moves:
            raise OSError(f"permission denied: {dest_dir}")
        self.directories.add(dest_dir)
        name = collision_free_name(
            Path(src).name, lambda n: str(Path(dest_dir) / n) in self.files
        )
        target = str(Path(dest_dir) / name)
        self.files.remove(src)
        self.files.add(target)
        return target


class FakeRunner:
    """ProcessorRunner returning scripted exit codes per file name."""

    def __init__(self, exit_codes: Optional[dict[str, int]] = None, default: int = 0):
        self.exit_codes = exit_codes or {}
        self.default = default
        self.calls: list[tuple[str, str]] = []

    def run(self, executable: str, file_path: str) -> RunResult:
        self.calls.append((executable, file_path))
        code = self.exit_codes.get(Path(file_path).name, self.default)
        return RunResult(exit_code=code, output="" if code == 0 else "parse error: bad page")


@pytest.fixture
def watch() -> WatchConfig:
    """A watch over /inbox for *.pdf files."""
    return WatchConfig(
        watch_id="checking",
        watch_path="/inbox",
        file_pattern="*.pdf",
        executable_path="/usr/local/bin/statement-processor",
        processed_path="/inbox/processed",
    )


@pytest.fixture
def minimal_pdf(tmp_path) -> Path:
    """A file with a .pdf name (content irrelevant when PdfReader is patched)."""
    path = tmp_path / "statement.pdf"
    path.write_bytes(b"%PDF-1.4\n%fake\n")
    return path
