"""Tests for the document processor."""

import json
from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from conftest import PAGE_1_RESPONSE, FakeOllamaClient
from statement_pipeline.extractors import ExtractionError, ExtractorRouter
from statement_pipeline.parsing import StatementParser
from statement_pipeline.processor import (
    DocumentProcessor,
    ParseFailure,
    ProcessingSuccess,
    StoreFailure,
)
from statement_pipeline.state_store import ProcessingStatus, StoreError, TransactionStore


@pytest.fixture
def store(temp_db):
    return TransactionStore(temp_db)


@pytest.fixture
def router(sample_pages):
    """Extractor router that returns the two sample pages for any file."""
    router = MagicMock(spec=ExtractorRouter)
    router.extract_pages.return_value = sample_pages
    return router


def make_processor(config, store, router, *answers, healthy=True) -> DocumentProcessor:
    parser = StatementParser(FakeOllamaClient(list(answers), healthy=healthy))
    return DocumentProcessor(config, store=store, extractor_router=router, parser=parser)


class TestDocumentProcessor:
    """End-to-end processing with a fake model."""

    def test_two_page_statement_stored(
        self, processor_config, store, router, minimal_pdf, page_1_response, page_2_response
    ):
        """Overlapping line across pages is stored once."""
        processor = make_processor(processor_config, store, router, page_1_response, page_2_response)

        outcome = processor.process(minimal_pdf)

        assert isinstance(outcome, ProcessingSuccess)
        assert outcome.exit_code == 0
        assert (outcome.inserted, outcome.skipped) == (4, 0)
        assert outcome.statement.duplicates_removed == 1
        assert store.count_transactions() == 4

        [entry] = store.get_processing_log()
        assert entry.status == ProcessingStatus.SUCCESS
        assert entry.source_file == "statement.pdf"
        assert entry.transactions_inserted == 4
        assert entry.account_name == "Everyday Checking"
        assert entry.file_hash

    def test_reprocessing_skips_everything(
        self, processor_config, store, router, minimal_pdf, page_1_response, page_2_response
    ):
        """Second run of the same statement inserts nothing but still succeeds."""
        make_processor(processor_config, store, router, page_1_response, page_2_response).process(
            minimal_pdf
        )

        outcome = make_processor(
            processor_config, store, router, page_1_response, page_2_response
        ).process(minimal_pdf)

        assert isinstance(outcome, ProcessingSuccess)
        assert (outcome.inserted, outcome.skipped) == (0, 4)
        assert store.count_transactions() == 4
        assert len(store.get_processing_log()) == 2

    def test_one_bad_page_still_succeeds(
        self, processor_config, store, router, minimal_pdf, page_2_response
    ):
        processor = make_processor(processor_config, store, router, "not json", page_2_response)

        outcome = processor.process(minimal_pdf)

        assert isinstance(outcome, ProcessingSuccess)
        assert outcome.statement.pages_parsed == 1
        assert outcome.statement.pages_total == 2
        assert outcome.inserted == 2

    def test_undated_first_page_uses_next_envelope(
        self, processor_config, store, router, minimal_pdf, page_2_response
    ):
        undated = json.dumps(dict(PAGE_1_RESPONSE, statement_date=None))
        processor = make_processor(processor_config, store, router, undated, page_2_response)

        outcome = processor.process(minimal_pdf)

        assert isinstance(outcome, ProcessingSuccess)
        assert outcome.statement.statement_date == date(2024, 1, 31)
        assert outcome.inserted == 2

    def test_service_unreachable(self, processor_config, store, router, minimal_pdf):
        """Every page fails fast; nothing stored; parse_error logged."""
        processor = make_processor(processor_config, store, router, healthy=False)

        outcome = processor.process(minimal_pdf)

        assert isinstance(outcome, ParseFailure)
        assert outcome.exit_code == 1
        assert "failed to parse any pages" in outcome.reason
        assert store.count_transactions() == 0

        [entry] = store.get_processing_log()
        assert entry.status == ProcessingStatus.PARSE_ERROR
        assert entry.transactions_inserted == 0
        assert "failed to parse any pages" in entry.error_message

    def test_validation_failure(self, processor_config, store, router, minimal_pdf):
        answer = '{"account_name": "Checking", "account_last4": "12", "statement_date": "2024-01-31", "transactions": []}'
        processor = make_processor(processor_config, store, router, answer, answer)

        outcome = processor.process(minimal_pdf)

        assert isinstance(outcome, ParseFailure)
        assert "account_last4" in outcome.reason

    def test_extraction_failure(self, processor_config, store, router, minimal_pdf):
        router.extract_pages.side_effect = ExtractionError("no readable pages in statement.pdf")
        processor = make_processor(processor_config, store, router)

        outcome = processor.process(minimal_pdf)

        assert isinstance(outcome, ParseFailure)
        assert store.get_processing_log()[0].status == ProcessingStatus.PARSE_ERROR

    def test_missing_file(self, processor_config, store, router, tmp_path):
        processor = make_processor(processor_config, store, router)

        outcome = processor.process(tmp_path / "gone.pdf")

        assert isinstance(outcome, ParseFailure)
        assert "file not found" in outcome.reason
        router.extract_pages.assert_not_called()
        assert store.get_processing_log()[0].source_file == "gone.pdf"

    def test_store_failure(
        self, processor_config, store, router, minimal_pdf, page_1_response, page_2_response
    ):
        processor = make_processor(processor_config, store, router, page_1_response, page_2_response)

        with patch.object(store, "insert_transactions", side_effect=StoreError("database is locked")):
            outcome = processor.process(minimal_pdf)

        assert isinstance(outcome, StoreFailure)
        assert outcome.exit_code == 2
        [entry] = store.get_processing_log()
        assert entry.status == ProcessingStatus.DB_ERROR
        assert entry.account_name == "Everyday Checking"
        assert entry.error_message == "database is locked"

    def test_audit_failure_does_not_change_outcome(
        self, processor_config, store, router, minimal_pdf, page_1_response, page_2_response
    ):
        processor = make_processor(processor_config, store, router, page_1_response, page_2_response)

        with patch.object(store, "log_processing", side_effect=StoreError("disk full")):
            outcome = processor.process(minimal_pdf)

        assert isinstance(outcome, ProcessingSuccess)
        assert store.count_transactions() == 4

    def test_default_collaborators_from_config(self, processor_config):
        processor = DocumentProcessor(processor_config)

        assert isinstance(processor.store, TransactionStore)
        assert isinstance(processor.extractor_router, ExtractorRouter)
        assert processor.parser.client.base_url == "http://ollama.test:11434"
