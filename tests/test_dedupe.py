"""Tests for the transaction natural key and deduplication."""

from datetime import date
from decimal import Decimal

import pytest

from statement_pipeline.schemas.dedupe import (
    compute_file_hash,
    deduplicate_transactions,
    format_amount,
    natural_key,
    normalize_amount,
)


class TestNormalizeAmount:
    """Tests for amount normalisation."""

    def test_float_goes_through_str(self):
        """Float artefacts do not leak into the key."""
        assert normalize_amount(50.1) == Decimal("50.10")
        assert normalize_amount(-4.5) == Decimal("-4.50")

    def test_int_and_str(self):
        assert normalize_amount(-120) == Decimal("-120.00")
        assert normalize_amount(" 12.345 ") == Decimal("12.35")

    def test_rounds_half_up(self):
        assert normalize_amount(Decimal("0.125")) == Decimal("0.13")
        assert normalize_amount(Decimal("-0.125")) == Decimal("-0.13")

    def test_bool_rejected(self):
        """JSON true must not become 1.00."""
        with pytest.raises(ValueError):
            normalize_amount(True)

    def test_format_amount(self):
        assert format_amount(Decimal("-50.2")) == "-50.20"
        assert format_amount(Decimal("2000")) == "2000.00"


class TestNaturalKey:
    """Tests for natural_key."""

    def test_key_components(self, record_factory):
        record = record_factory(amount="-50.25")
        assert natural_key(record) == ("1234", "2024-01-03", "GROCERY MART #221", "-50.25")

    def test_amount_normalised_in_key(self, record_factory):
        """-4.5 and -4.50 are the same transaction."""
        a = record_factory(description="COFFEE", amount="-4.5")
        b = record_factory(description="COFFEE", amount="-4.50")
        assert natural_key(a) == natural_key(b)

    def test_post_date_and_balance_not_in_key(self, record_factory):
        a = record_factory(balance="100.00")
        b = record_factory(balance="200.00")
        assert natural_key(a) == natural_key(b)


class TestDeduplicate:
    """Tests for deduplicate_transactions."""

    def test_first_occurrence_wins_order_preserved(self, record_factory):
        a = record_factory(description="A", source_file="first.pdf")
        b = record_factory(description="B")
        a_again = record_factory(description="A", source_file="second.pdf")
        c = record_factory(description="C")

        result = deduplicate_transactions([a, b, a_again, c])

        assert [r.description for r in result] == ["A", "B", "C"]
        assert result[0].source_file == "first.pdf"

    def test_same_line_different_accounts_kept(self, record_factory):
        a = record_factory(account_last4="1234")
        b = record_factory(account_last4="9876")
        assert len(deduplicate_transactions([a, b])) == 2

    def test_same_description_different_date_kept(self, record_factory):
        a = record_factory(transaction_date=date(2024, 1, 3))
        b = record_factory(transaction_date=date(2024, 2, 3))
        assert len(deduplicate_transactions([a, b])) == 2


class TestFileHash:
    def test_hash_is_stable(self, tmp_path):
        path = tmp_path / "doc.pdf"
        path.write_bytes(b"statement bytes")
        assert compute_file_hash(path) == compute_file_hash(path)
        assert len(compute_file_hash(path)) == 64
