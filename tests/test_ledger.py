"""Tests for the processing ledger."""

import pytest

from statement_pipeline.state_store import LedgerError, ProcessingLedger, StoreError


class TestProcessingLedger:
    """Tests for ProcessingLedger."""

    @pytest.fixture
    def ledger(self, ledger_db):
        return ProcessingLedger(ledger_db)

    def test_init_creates_table(self, ledger):
        conn = ledger._get_connection()
        try:
            tables = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
            assert "processed_files" in [t[0] for t in tables]
        finally:
            conn.close()

    def test_unknown_file_not_processed(self, ledger):
        assert ledger.is_processed("checking", "/inbox/jan.pdf") is False

    def test_record_then_processed(self, ledger):
        record_id = ledger.record_processed("checking", "/inbox/jan.pdf")

        assert record_id > 0
        assert ledger.is_processed("checking", "/inbox/jan.pdf") is True

    def test_scoped_per_watch(self, ledger):
        """The same path under another watch is a different record."""
        ledger.record_processed("checking", "/inbox/jan.pdf")

        assert ledger.is_processed("savings", "/inbox/jan.pdf") is False
        ledger.record_processed("savings", "/inbox/jan.pdf")

    def test_duplicate_record_rejected(self, ledger):
        ledger.record_processed("checking", "/inbox/jan.pdf")

        with pytest.raises(LedgerError, match="already recorded"):
            ledger.record_processed("checking", "/inbox/jan.pdf")

    def test_ledger_error_is_store_error(self):
        assert issubclass(LedgerError, StoreError)

    def test_processed_files_newest_first(self, ledger):
        ledger.record_processed("checking", "/inbox/jan.pdf")
        ledger.record_processed("checking", "/inbox/feb.pdf")
        ledger.record_processed("savings", "/other/mar.pdf")

        records = ledger.get_processed_files("checking")

        assert [r.file_path for r in records] == ["/inbox/feb.pdf", "/inbox/jan.pdf"]
        assert records[0].processed_at.endswith("Z")

    def test_forget(self, ledger):
        """Forgetting makes the file eligible again."""
        ledger.record_processed("checking", "/inbox/jan.pdf")

        assert ledger.forget("checking", "/inbox/jan.pdf") is True
        assert ledger.is_processed("checking", "/inbox/jan.pdf") is False
        assert ledger.forget("checking", "/inbox/jan.pdf") is False

    def test_persists_across_instances(self, ledger_db):
        ProcessingLedger(ledger_db).record_processed("checking", "/inbox/jan.pdf")
        assert ProcessingLedger(ledger_db).is_processed("checking", "/inbox/jan.pdf")

    def test_to_dict(self, ledger):
        ledger.record_processed("checking", "/inbox/jan.pdf")
        data = ledger.get_processed_files("checking")[0].to_dict()
        assert set(data) == {"id", "watch_id", "file_path", "processed_at"}
