"""
Document processor: one statement file in, one outcome out.

Pipeline:
1. Extract page text
2. Parse each page with the LLM
3. Merge pages and drop cross-page duplicates
4. Validate the merged statement
5. Insert transactions (duplicates skipped by the store)
6. Append one audit log entry, whatever happened
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Optional, Union

from .. import exitcodes
from ..config import ProcessorConfig
from ..extractors import ExtractionError, ExtractorRouter
from ..ollama_client import OllamaClient
from ..parsing import StatementParseError, StatementParser, merge_pages, validate_statement
from ..schemas.dedupe import compute_file_hash
from ..schemas.statement import StatementData
from ..state_store import ProcessingLogEntry, ProcessingStatus, StoreError, TransactionStore

logger = logging.getLogger(__name__)


@dataclass
class ProcessingSuccess:
    """Statement stored. Duplicates already in the store count as skipped."""

    inserted: int
    skipped: int
    statement: StatementData

    status: ClassVar[ProcessingStatus] = ProcessingStatus.SUCCESS
    exit_code: ClassVar[int] = exitcodes.SUCCESS


@dataclass
class ParseFailure:
    """The file could not be turned into a valid statement. Nothing stored."""

    reason: str

    status: ClassVar[ProcessingStatus] = ProcessingStatus.PARSE_ERROR
    exit_code: ClassVar[int] = exitcodes.PARSE_ERROR


@dataclass
class StoreFailure:
    """The statement was valid but the insert failed and was rolled back."""

    reason: str
    statement: Optional[StatementData] = None

    status: ClassVar[ProcessingStatus] = ProcessingStatus.DB_ERROR
    exit_code: ClassVar[int] = exitcodes.STORE_ERROR


ProcessingOutcome = Union[ProcessingSuccess, ParseFailure, StoreFailure]


class DocumentProcessor:
    """
    Processes one statement file end to end.

    Collaborators default to the real implementations built from config;
    tests pass fakes.
    """

    def __init__(
        self,
        config: ProcessorConfig,
        store: Optional[TransactionStore] = None,
        extractor_router: Optional[ExtractorRouter] = None,
        parser: Optional[StatementParser] = None,
    ):
        """
        Raises:
            StoreError: if no store is given and the configured one cannot be opened
        """
        self.config = config
        self.store = store or TransactionStore(config.db_path)
        self.extractor_router = extractor_router or ExtractorRouter()
        self.parser = parser or StatementParser(OllamaClient.from_config(config.llm))

    def process(self, file_path: Path | str) -> ProcessingOutcome:
        """
        Process a statement file.

        Never raises for per-file problems; they are reported in the outcome
        and in the processing log.
        """
        path = Path(file_path)
        logger.info(f"Processing {path}")

        file_hash: Optional[str] = None
        if not path.is_file():
            outcome: ProcessingOutcome = ParseFailure(f"file not found: {path}")
        else:
            try:
                file_hash = compute_file_hash(path)
            except OSError as e:
                logger.warning(f"Could not hash {path.name}: {e}")
            outcome = self._run(path)

        self._record(path.name, outcome, file_hash)

        if isinstance(outcome, ProcessingSuccess):
            statement = outcome.statement
            logger.info(
                f"Stored {path.name}: {outcome.inserted} inserted, {outcome.skipped} skipped "
                f"({statement.pages_parsed}/{statement.pages_total} pages parsed)"
            )
        else:
            logger.error(f"Failed {path.name} ({outcome.status.value}): {outcome.reason}")

        return outcome

    def _run(self, path: Path) -> ProcessingOutcome:
        try:
            pages = self.extractor_router.extract_pages(path)
            results = self.parser.parse_pages(pages, path.name)
            statement = merge_pages(results, pages_total=len(pages))
            validate_statement(statement)
        except (ExtractionError, StatementParseError) as e:
            return ParseFailure(str(e))

        try:
            inserted, skipped = self.store.insert_transactions(statement.transactions)
        except StoreError as e:
            return StoreFailure(str(e), statement=statement)

        return ProcessingSuccess(inserted=inserted, skipped=skipped, statement=statement)

    def _record(self, source_file: str, outcome: ProcessingOutcome, file_hash: Optional[str]) -> None:
        """Append the audit entry. A failure here never changes the outcome."""
        statement = getattr(outcome, "statement", None)
        entry = ProcessingLogEntry(
            source_file=source_file,
            status=outcome.status,
            statement_date=statement.statement_date if statement else None,
            account_name=statement.account_name if statement else None,
            transactions_inserted=getattr(outcome, "inserted", 0),
            transactions_skipped=getattr(outcome, "skipped", 0),
            error_message=getattr(outcome, "reason", None),
            file_hash=file_hash,
        )
        try:
            self.store.log_processing(entry)
        except StoreError as e:
            logger.warning(f"Failed to write processing log for {source_file}: {e}")
