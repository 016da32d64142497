"""Tests for the pasted-text (manual input) parser."""

from datetime import date
from decimal import Decimal

import pytest

from statement_ingest.config import ParserConfig
from statement_ingest.extractors import PastedTextParser, parse_manual_input
from statement_ingest.extractors.manual import (
    MANUAL_CONFIDENCE,
    strip_section_headers,
    try_parse_amount,
    try_parse_date,
)
from statement_ingest.schemas.transaction import TransactionSource, TransactionType


class TestPastedStatement:
    """Tests for the pasted bank-statement strategy."""

    def test_transactions(self, pasted_statement_text):
        """Entries, merged lines and check lines are all recovered."""
        txns = parse_manual_input(pasted_statement_text)

        assert [(t.date, t.amount, t.description) for t in txns] == [
            (date(2024, 1, 3), Decimal("1500.00"), "Mobile Deposit"),
            (date(2024, 1, 15), Decimal("-250.00"), "Debit Card Purchase Home Depot #4411 Newark NJ"),
            (date(2024, 1, 16), Decimal("-30.00"), "Shell Oil"),
            (date(2024, 1, 16), Decimal("-20.00"), "Wawa Store"),
            (date(2024, 1, 12), Decimal("-400.00"), "Check #1001"),
        ]

    def test_tagged_manual(self, pasted_statement_text):
        """Every result is MANUAL with confidence 0.9 and raw text kept."""
        txns = parse_manual_input(pasted_statement_text)

        assert all(t.source is TransactionSource.MANUAL for t in txns)
        assert all(t.confidence == MANUAL_CONFIDENCE == 0.9 for t in txns)
        assert all(t.raw_text for t in txns)

    def test_section_types(self, pasted_statement_text):
        """Deposit sections give credits, deduction sections debits."""
        txns = parse_manual_input(pasted_statement_text)

        assert txns[0].type is TransactionType.CREDIT
        assert all(t.type is TransactionType.DEBIT for t in txns[1:])

    def test_merged_reference_kept(self, pasted_statement_text):
        """A merged entry's reference number is captured separately."""
        shell = parse_manual_input(pasted_statement_text)[2]
        assert shell.reference_number == "1234567890"

    def test_cross_year_period(self):
        """Period text drives year inference across a year boundary."""
        text = "Period 12/28/2023 to 01/31/2024\nDebit Card Purchases\n12/30 50.00 FOO\n01/05 20.00 BAR\n"
        txns = parse_manual_input(text)

        assert [t.date for t in txns] == [date(2023, 12, 30), date(2024, 1, 5)]

    def test_year_fallback(self):
        """Without a period, any four-digit year is used."""
        text = "Statement 2022\nPOS Purchases\n03/04 12.00 Corner Deli\n"
        txns = parse_manual_input(text)

        assert txns[0].date == date(2022, 3, 4)

    def test_summary_lines_skipped(self):
        """Totals, category summaries and balance rows are not transactions."""
        text = (
            "For the Period 01/01/2024 to 01/31/2024\n"
            "Deposits 2 3,000.00\n"
            "91,906.77 16,648.71 21,030.47 87,525.01\n"
            "Total 19 16,648.71\n"
            "Deposits\n"
            "01/03 1,500.00 Mobile Deposit\n"
            "01/04 99.00\n"
        )
        txns = parse_manual_input(text)

        assert [t.description for t in txns] == ["Mobile Deposit"]

    def test_glued_section_header_stripped(self):
        """Header text pasted onto the end of a description is removed."""
        text = (
            "For the Period 01/01/2024 to 01/31/2024\n"
            "Deposits\n"
            "01/03 1,500.00 Mobile Deposit ACH Deductions\n"
        )
        assert parse_manual_input(text)[0].description == "Mobile Deposit"


class TestLineFallback:
    """Tests for the line-oriented fallback."""

    def test_freeform(self, freeform_text):
        """Delimited and unstructured lines parse; junk lines are dropped."""
        txns = parse_manual_input(freeform_text)

        assert [(t.date, t.amount, t.description, t.type) for t in txns] == [
            (date(2024, 1, 5), Decimal("-4.50"), "Coffee Shop", TransactionType.DEBIT),
            (date(2024, 1, 6), Decimal("2000.00"), "Salary", TransactionType.CREDIT),
            (date(2024, 1, 7), Decimal("-12.75"), "Lunch at cafe", TransactionType.DEBIT),
        ]

    def test_parse_line_none(self):
        """A line without date and amount yields None."""
        assert PastedTextParser().parse_line("hello world") is None

    def test_raw_text_and_category(self):
        """Fallback results keep the line and are categorized."""
        txn = PastedTextParser().parse_line("2024-02-01, Starbucks, -5.25")

        assert txn.raw_text == "2024-02-01, Starbucks, -5.25"
        assert txn.category == "Food & Dining"
        assert txn.confidence == 0.9

    def test_description_truncated(self):
        """Fallback descriptions honor the configured cap."""
        parser = PastedTextParser(ParserConfig(max_description_length=5))
        txn = parser.parse_line("2024-02-01\tVery long merchant\t-5.25")

        assert txn.description == "Very "

    def test_empty_input(self):
        """Empty input yields no transactions."""
        assert parse_manual_input("") == []


class TestTokenHelpers:
    """Tests for token-level helpers."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("01/06/2024", date(2024, 1, 6)),
            ("2024-01-06", date(2024, 1, 6)),
            ("Jan 6, 2024", date(2024, 1, 6)),
        ],
    )
    def test_try_parse_date(self, text, expected):
        """Full date tokens parse."""
        assert try_parse_date(text) == expected

    @pytest.mark.parametrize("text", ["Salary", "01/06", "12.50", "13/45/2024"])
    def test_try_parse_date_rejects(self, text):
        """Partial dates, numbers and impossible dates are rejected."""
        assert try_parse_date(text) is None

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("$1,234.56", Decimal("1234.56")),
            ("-12.00", Decimal("-12.00")),
            ("(45.00)", Decimal("-45.00")),
            ("2000", Decimal("2000")),
        ],
    )
    def test_try_parse_amount(self, text, expected):
        """Amount tokens parse; parentheses mean negative."""
        assert try_parse_amount(text) == expected

    def test_try_parse_amount_rejects(self):
        """Words are not amounts."""
        assert try_parse_amount("Coffee") is None

    def test_strip_section_headers(self):
        """Only trailing header text is stripped."""
        assert strip_section_headers("Corner Deli Debit Card Purchases") == "Corner Deli"
        assert strip_section_headers("Deposits Corner") == "Deposits Corner"
