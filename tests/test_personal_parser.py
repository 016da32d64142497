"""Tests for the personal (Virtual Wallet) statement parser."""

from datetime import date
from decimal import Decimal

import pytest

from statement_ingest.config import ParserConfig
from statement_ingest.extractors import PersonalStatementParser
from statement_ingest.schemas.transaction import StatementType, TransactionType


@pytest.fixture
def parser() -> PersonalStatementParser:
    return PersonalStatementParser()


class TestPersonalStatementParser:
    """Tests for full personal statement parsing."""

    def test_can_parse(self, parser, personal_statement_text, business_statement_text):
        """Only text carrying the Virtual Wallet marker is accepted."""
        assert parser.can_parse(personal_statement_text)
        assert not parser.can_parse(business_statement_text)

    def test_header_fields(self, parser, personal_statement_text):
        """Period, balances and masked account number are extracted."""
        result = parser.parse(personal_statement_text)

        assert result.statement_type is StatementType.PERSONAL
        assert result.period_start == date(2024, 1, 1)
        assert result.period_end == date(2024, 1, 31)
        assert result.beginning_balance == Decimal("1000.00")
        assert result.ending_balance == Decimal("2150.18")
        assert result.account_number == "****1234"
        assert result.account_name is None

    def test_transactions(self, parser, personal_statement_text):
        """Every section line becomes one signed, categorized transaction."""
        result = parser.parse(personal_statement_text)
        txns = result.transactions

        assert len(txns) == 6
        assert [t.date for t in txns] == sorted(t.date for t in txns)

        deposit = txns[0]
        assert deposit.type is TransactionType.CREDIT
        assert deposit.amount == Decimal("2500.00")
        assert deposit.description == "Direct Deposit Payroll Acme Corp"
        assert deposit.category == "Income"
        assert deposit.section == "Deposits and Other Additions"

        shell = txns[1]
        assert shell.type is TransactionType.DEBIT
        assert shell.amount == Decimal("-45.20")
        assert shell.category == "Fuel & Gas"

    def test_merged_line(self, parser, personal_statement_text):
        """A merged line yields one transaction per amount, all on the first date."""
        result = parser.parse(personal_statement_text)
        merged = [t for t in result.transactions if t.date == date(2024, 1, 10)]

        assert [t.amount for t in merged] == [Decimal("-56.34"), Decimal("-36.28"), Decimal("-12.00")]
        assert [t.description for t in merged] == ["Wawa 123", "Starbucks Store", "Dunkin 99"]
        assert merged[1].reference_number == "1234567890"

    def test_reference_number_stripped(self, parser, personal_statement_text):
        """Trailing 10+ digit runs move into reference_number."""
        result = parser.parse(personal_statement_text)
        rent = next(t for t in result.transactions if t.amount == Decimal("-1200.00"))

        assert rent.description == "Rent Payment Web Pmt"
        assert rent.reference_number == "0123456789"
        assert rent.category == "Housing"

    def test_totals_match_balance_summary(self, parser, personal_statement_text):
        """Credits and debits reconcile with the summary figures."""
        result = parser.parse(personal_statement_text)

        assert result.total_credits == Decimal("2500.00")
        assert result.total_debits == Decimal("1349.82")
        assert (
            result.beginning_balance + result.total_credits - result.total_debits
            == result.ending_balance
        )

    def test_diagnostics(self, parser, personal_statement_text):
        """Date/amount-only lines are skipped and empty sections warned about."""
        result = parser.parse(personal_statement_text)

        assert result.skipped_line_count == 1
        assert result.warnings == ["Section 'Other Deductions' contains no transactions"]

    def test_daily_balance_not_parsed(self, parser, personal_statement_text):
        """Daily balance rows after the terminator produce nothing."""
        result = parser.parse(personal_statement_text)
        assert all(t.amount != Decimal("-3500.00") for t in result.transactions)
        assert all(t.amount != Decimal("-3350.18") for t in result.transactions)

    def test_empty_section_warning_logged(self, parser, personal_statement_text, caplog):
        """Empty sections are logged at WARNING."""
        with caplog.at_level("WARNING", logger="statement_ingest.extractors.base"):
            parser.parse(personal_statement_text)
        assert "Other Deductions" in caplog.text


class TestCrossYearStatement:
    """Tests for a December-to-January statement."""

    def test_year_assignment(self, parser, cross_year_statement_text):
        """December lines take 2023, January lines take 2024."""
        result = parser.parse(cross_year_statement_text)
        by_description = {t.description: t.date for t in result.transactions}

        assert by_description["FOO"] == date(2023, 12, 30)
        assert by_description["BAR"] == date(2024, 1, 5)

    def test_out_of_period_line_skipped(self, parser, cross_year_statement_text):
        """Dates outside the period are skipped and counted."""
        result = parser.parse(cross_year_statement_text)

        assert "Outside Period" not in [t.description for t in result.transactions]
        assert result.skipped_line_count == 1

    def test_period_bounds_can_be_disabled(self, cross_year_statement_text):
        """With bounds enforcement off, out-of-period lines are kept."""
        parser = PersonalStatementParser(ParserConfig(enforce_period_bounds=False))
        result = parser.parse(cross_year_statement_text)

        late = next(t for t in result.transactions if t.description == "Outside Period")
        assert late.date == date(2024, 2, 15)

    def test_description_truncated(self):
        """Descriptions are capped at the configured length."""
        text = (
            "Virtual Wallet\n"
            "For the period 01/01/2024 to 01/31/2024\n"
            "Other Deductions\n"
            "01/03 10.00 " + "X" * 50 + "\n"
        )
        parser = PersonalStatementParser(ParserConfig(max_description_length=20))
        result = parser.parse(text)

        assert result.transactions[0].description == "X" * 20
