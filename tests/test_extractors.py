"""Tests for shared statement patterns, period handling and the router."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from statement_ingest.extractors import (
    BusinessStatementParser,
    PdfTextExtractionError,
    PersonalStatementParser,
    StatementPeriod,
    StatementRouter,
    UnknownFormatError,
    UnsupportedPeriodError,
    parse_statement_pdf,
    parse_statement_text,
)
from statement_ingest.extractors.base import (
    BALANCE_PATTERN,
    DATE_AMOUNT_ONLY,
    TRANSACTION_LINE,
    extract_account_number,
    extract_balances,
    extract_period,
    parse_amount,
    split_merged_line,
    split_reference_number,
)
from statement_ingest.schemas.transaction import StatementType


class TestParseAmount:
    """Tests for amount token parsing."""

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("1,234.56", Decimal("1234.56")),
            ("$12.00", Decimal("12.00")),
            ("-12.00", Decimal("-12.00")),
            ("12.00-", Decimal("-12.00")),
        ],
    )
    def test_valid(self, token, expected):
        """Valid amount tokens parse to Decimal."""
        assert parse_amount(token) == expected

    def test_invalid(self):
        """Non-numbers raise ValueError."""
        with pytest.raises(ValueError):
            parse_amount("abc")


class TestPatterns:
    """Fixtures for the line patterns."""

    def test_transaction_line(self):
        """MM/DD amount description."""
        match = TRANSACTION_LINE.match("01/15 1,200.00 Rent Payment")
        assert match.groups() == ("01/15", "1,200.00", "Rent Payment")

    def test_date_amount_only(self):
        """Balance rows (one or several date/amount pairs) are recognized."""
        assert DATE_AMOUNT_ONLY.match("01/02 88,424.04")
        assert DATE_AMOUNT_ONLY.match("01/05 3,500.00 01/08 3,454.80")
        assert not DATE_AMOUNT_ONLY.match("01/02 88.00 Coffee")

    def test_balance_same_line(self):
        """Balance figures on the header line itself."""
        text = "Beginning balance 1,000.00 200.00 300.00 900.00"
        assert extract_balances(text) == (Decimal("1000.00"), Decimal("900.00"))

    def test_balance_following_line(self):
        """Balance figures on a line below the column captions."""
        text = "Beginning balance   Deposits   Deductions   Ending balance\n1,000.00 200.00 300.00 900.00\n"
        assert BALANCE_PATTERN.search(text)
        assert extract_balances(text) == (Decimal("1000.00"), Decimal("900.00"))

    def test_balance_missing(self):
        """No summary means no balances."""
        assert extract_balances("nothing here") == (None, None)

    @pytest.mark.parametrize(
        "text",
        [
            "Account Number: XX-XXXX-1234",
            "Account Number: 12-3456-1234",
            "Account number: 9876541234",
        ],
    )
    def test_account_number_masked(self, text):
        """All supported formats render as ****NNNN."""
        assert extract_account_number(text) == "****1234"

    def test_account_number_missing(self):
        """No account number line yields None."""
        assert extract_account_number("Virtual Wallet") is None

    def test_split_reference_number(self):
        """A trailing run of 10+ digits is a reference number."""
        assert split_reference_number("ACH PAYMENT REFERENCE 12345678901") == (
            "ACH PAYMENT REFERENCE",
            "12345678901",
        )
        assert split_reference_number("Store 123456789") == ("Store 123456789", None)


class TestStatementPeriod:
    """Tests for period extraction and year resolution."""

    def test_extract_period(self):
        """Period marker is found case-insensitively."""
        period = extract_period("For the Period 01/01/2024 to 01/31/2024")
        assert period.start == date(2024, 1, 1)
        assert period.end == date(2024, 1, 31)
        assert not period.crosses_year

    def test_missing_period(self):
        """No period marker is an unknown format."""
        with pytest.raises(UnknownFormatError):
            extract_period("Virtual Wallet statement without dates")

    def test_cross_year_resolution(self):
        """December keeps the start year, January takes the end year."""
        period = StatementPeriod(date(2023, 12, 28), date(2024, 1, 31))
        assert period.crosses_year
        assert period.resolve("12/30") == date(2023, 12, 30)
        assert period.resolve("01/05") == date(2024, 1, 5)

    def test_cross_year_starting_in_november(self):
        """Months from the start month on keep the start year."""
        period = StatementPeriod(date(2023, 11, 15), date(2024, 1, 14))
        assert period.resolve("11/20") == date(2023, 11, 20)
        assert period.resolve("12/24") == date(2023, 12, 24)
        assert period.resolve("01/10") == date(2024, 1, 10)

    def test_same_year_resolution(self):
        """Same-year statements use that year for every month."""
        period = StatementPeriod(date(2024, 3, 1), date(2024, 3, 31))
        assert period.resolve("3/15") == date(2024, 3, 15)

    def test_invalid_day(self):
        """Impossible dates raise ValueError."""
        period = StatementPeriod(date(2024, 2, 1), date(2024, 2, 29))
        with pytest.raises(ValueError):
            period.resolve("02/30")

    def test_reversed_period_rejected(self):
        """A period ending before it starts is unsupported."""
        with pytest.raises(UnsupportedPeriodError):
            StatementPeriod(date(2024, 2, 1), date(2024, 1, 1))

    def test_multi_year_period_rejected(self):
        """A period spanning more than one year boundary is unsupported."""
        with pytest.raises(UnsupportedPeriodError):
            extract_period("For the period 12/01/2022 to 01/31/2024")

    def test_thirteen_month_period_rejected(self):
        """A period in which one MM/DD falls on two dates is unsupported."""
        with pytest.raises(UnsupportedPeriodError):
            extract_period("For the period 12/01/2023 to 12/31/2024")
        with pytest.raises(UnsupportedPeriodError):
            StatementPeriod(date(2024, 1, 1), date(2025, 1, 1))

    def test_thirteen_month_statement_not_parsed(self, personal_statement_text):
        """Statements with such a period fail instead of guessing years."""
        text = personal_statement_text.replace("01/01/2024 to 01/31/2024", "12/01/2023 to 12/31/2024")
        assert "12/01/2023 to 12/31/2024" in text
        with pytest.raises(UnknownFormatError):
            PersonalStatementParser().parse(text)

    def test_period_just_under_a_year(self):
        """Periods shorter than a year stay supported, including from Feb 29."""
        StatementPeriod(date(2024, 1, 1), date(2024, 12, 31))
        StatementPeriod(date(2023, 12, 15), date(2024, 12, 14))
        StatementPeriod(date(2024, 2, 29), date(2025, 2, 28))
        with pytest.raises(UnsupportedPeriodError):
            StatementPeriod(date(2024, 2, 29), date(2025, 3, 1))

    def test_unsupported_period_is_unknown_format(self):
        """Callers handling UnknownFormatError also catch unsupported periods."""
        assert issubclass(UnsupportedPeriodError, UnknownFormatError)


class TestSplitMergedLine:
    """Tests for merged multi-transaction lines."""

    def test_three_way_split(self):
        """Each amount starts a transaction dated with the first date."""
        entries = split_merged_line("01/08 01/08 01/08 56.34 DESC1 36.28 DESC2 43.11 DESC3")
        assert [e.month_day for e in entries] == ["01/08"] * 3
        assert [e.amount for e in entries] == [Decimal("56.34"), Decimal("36.28"), Decimal("43.11")]
        assert [e.description for e in entries] == ["DESC1", "DESC2", "DESC3"]

    def test_posting_and_transaction_date(self):
        """Two dates and one amount is a single transaction."""
        entries = split_merged_line("01/08 01/09 56.34 Corner Deli")
        assert len(entries) == 1
        assert entries[0].month_day == "01/08"
        assert entries[0].description == "Corner Deli"

    def test_reference_and_state_code_stripped(self):
        """Merged descriptions lose reference numbers and trailing state codes."""
        entries = split_merged_line("01/16 01/16 30.00 Shell Oil 1234567890 NJ 20.00 Wawa 55 PA")
        assert entries[0].description == "Shell Oil"
        assert entries[0].reference_number == "1234567890"
        assert entries[1].description == "Wawa 55"

    def test_not_merged(self):
        """Lines with a single leading date are not merged lines."""
        assert split_merged_line("01/08 56.34 Corner Deli") is None
        assert split_merged_line("01/08 01/09 Corner Deli 56.34") is None


class TestStatementRouter:
    """Tests for dialect detection and dispatch."""

    def test_parsers_sorted_by_priority(self):
        """Personal is tried before business."""
        router = StatementRouter()
        assert [p.name for p in router.parsers] == ["personal", "business"]

    def test_detect_personal(self, personal_statement_text):
        """Virtual Wallet marker selects the personal parser."""
        assert isinstance(StatementRouter().detect(personal_statement_text), PersonalStatementParser)

    def test_detect_business(self, business_statement_text):
        """Business Checking marker selects the business parser."""
        assert isinstance(StatementRouter().detect(business_statement_text), BusinessStatementParser)

    def test_unknown_format(self):
        """Text without a dialect marker is rejected."""
        with pytest.raises(UnknownFormatError, match="Unknown statement format"):
            parse_statement_text("Some Other Bank\nFor the period 01/01/2024 to 01/31/2024\n")

    def test_marker_without_period(self):
        """A recognized dialect without a period is rejected, nothing partial returned."""
        with pytest.raises(UnknownFormatError):
            parse_statement_text("Virtual Wallet\n01/05 10.00 Coffee\n")

    def test_parse_text_dispatches(self, business_statement_text):
        """parse_statement_text returns the dialect's result."""
        result = parse_statement_text(business_statement_text)
        assert result.statement_type is StatementType.BUSINESS

    def test_pdf_falls_back_to_plain_text(self, personal_statement_text):
        """Unrecognized layout text is retried with plain extraction."""
        def fake_extract(path, layout=True):
            return "garbled columns" if layout else personal_statement_text

        with patch("statement_ingest.extractors.pdf_text.extract_pdf_text", side_effect=fake_extract):
            result = parse_statement_pdf("statement.pdf")

        assert result.statement_type is StatementType.PERSONAL

    def test_pdf_unrecognized_in_both_modes(self):
        """If neither extraction is recognized, the format error propagates."""
        with patch("statement_ingest.extractors.pdf_text.extract_pdf_text", return_value="nothing useful"):
            with pytest.raises(UnknownFormatError):
                parse_statement_pdf("statement.pdf")

    def test_pdf_without_text_candidates(self):
        """No extracted text at all is an extraction error, not a format error."""
        with patch("statement_ingest.extractors.router.extract_pdf_text_candidates", return_value=iter(())):
            with pytest.raises(PdfTextExtractionError, match="No text extracted"):
                parse_statement_pdf("statement.pdf")
