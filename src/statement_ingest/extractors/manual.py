"""
Pasted-text parser for manually captured transactions.

Users paste either a chunk of bank-statement text copied from a PDF viewer
or a freeform list of transactions. Two strategies, tried in order:

1. Pasted statement: period-based year inference, section tracking,
   header/footer skip list, continuation joining, check lines and merged
   multi-transaction lines.
2. Line-oriented fallback: per line, guess a delimiter (tab, comma, double
   space) and classify tokens as date / amount / description; failing that,
   take the first full date and first amount found anywhere in the line.

Every result is a StagedTransaction tagged MANUAL with confidence 0.9.
"""

from __future__ import annotations

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from dateutil import parser as date_parser

from ..categorization import MerchantCategorizer
from ..config import ParserConfig
from ..schemas.transaction import StagedTransaction, TransactionSource, TransactionType
from .base import (
    DATE_AMOUNT_ONLY,
    StatementPeriod,
    UnsupportedPeriodError,
    parse_amount,
    parse_statement_date,
    split_merged_line,
    split_reference_number,
)

logger = logging.getLogger(__name__)

MANUAL_CONFIDENCE = 0.9

# "Period 12/30/2023 to 01/31/2024" (also matches "For the Period ...")
PASTED_PERIOD = re.compile(r"Period\s+(\d{1,2}/\d{1,2}/\d{4})\s+to\s+(\d{1,2}/\d{1,2}/\d{4})", re.IGNORECASE)
ANY_YEAR = re.compile(r"\b(20\d{2})\b")

# Section header -> is credit
PASTED_SECTIONS: list[tuple[re.Pattern, str, bool]] = [
    (re.compile(r"^Deposits$", re.IGNORECASE), "Deposits", True),
    (re.compile(r"^ATM Deposits", re.IGNORECASE), "ATM Deposits", True),
    (re.compile(r"^ACH Additions", re.IGNORECASE), "ACH Additions", True),
    (re.compile(r"^Checks and Substitute", re.IGNORECASE), "Checks", False),
    (re.compile(r"^Debit Card Purchases", re.IGNORECASE), "Debit Card Purchases", False),
    (re.compile(r"^POS Purchases", re.IGNORECASE), "POS Purchases", False),
    (re.compile(r"^ATM/Misc", re.IGNORECASE), "ATM/Misc", False),
    (re.compile(r"^ACH Deductions", re.IGNORECASE), "ACH Deductions", False),
    (re.compile(r"^Service Charges", re.IGNORECASE), "Service Charges", False),
    (re.compile(r"^Other Deductions", re.IGNORECASE), "Other Deductions", False),
]

# Header, footer and column-label lines that never carry transactions
PASTED_SKIP_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (
        r"^Business Checking",
        r"^PNC Bank",
        r"^For the Period",
        r"^Page \d",
        r"^Account number",
        r"^Balance Summary",
        r"^Beginning balance",
        r"^Average",
        r"^Daily Balance",
        r"^Date\s+Ledger",
        r"^Description\s+Items",
        r"^Total\s+(For|Service|\d)",
        r"^Detail of Services",
        r"^Note:",
        r"^Member FDIC",
        r"continued on next page",
        r"^Deposits and Other",
        r"^Checks and Other",
        r"^\*\*",
        r"^These accounts",
        r"^Account Type",
        r"^Credit Card",
        r"^Combined",
        r"IMPORTANT INFORMATION",
        r"Primary Account",
        r"Overdraft Protection",
        r"^--\s*\d+\s*(of|/)\s*\d+\s*--$",
        r"^\d+\s*of\s*\d+$",
        r"^pnc\.com",
        r"^For customer service",
        r"^Para servicio",
        r"^Moving\? Please",
        r"^Write to:",
        r"^Visit us at",
        r"^PO Box",
        r"^Customer Service",
        r"^Please contact us",
        r"^Number of enclosures",
        r"All Business Products",
        r"your daily ATM",
        r"Please review the limits",
        r"Activity Detail",
        r"^(Date|posted|Amount|Transaction|description|Reference|number|Check)$",
    )
]

# "91,906.77 16,648.71 21,030.47 87,525.01"
SUMMARY_AMOUNTS_LINE = re.compile(r"^[\d,]+\.\d{2}(\s+[\d,]+\.\d{2})+\s*$")
# "Total 19 16,648.71"
TOTAL_LINE = re.compile(r"\bTotal\s+\d+\s+[\d,]+\.\d{2}", re.IGNORECASE)
# "ACH Additions 15 7,818.96"
CATEGORY_SUMMARY_LINE = re.compile(
    r"^(Deposits|ATM Deposits|ATM/Misc|ACH Additions|Checks|Debit Card Purchases|POS Purchases|"
    r"ACH Deductions|Service Charges|Other Deductions|Transactions)\s+\d+\s+[\d,]+\.\d{2}\s*$",
    re.IGNORECASE,
)
DATE_START = re.compile(r"^\d{1,2}/\d{1,2}\s")
# "DATE CHECK# * AMOUNT REF"
PASTED_CHECK_LINE = re.compile(r"^(\d{1,2}/\d{1,2})\s+(\d+)\s+\*\s+([\d,]+\.\d{2})\s+(\d+)")
# "DATE [DATE] AMOUNT DESCRIPTION"
PASTED_SINGLE_LINE = re.compile(r"^(\d{1,2}/\d{1,2})(?:\s+\d{1,2}/\d{1,2})?\s+([\d,]+\.\d{2})\s+(.+)")

# Section headers glued onto the end of a description by copy-paste
SECTION_HEADERS_TO_STRIP = (
    "ATM Deposits and Additions",
    "Checks and Substitute Checks",
    "Debit Card Purchases",
    "POS Purchases",
    "ATM and Miscellaneous Deductions",
    "ATM/Miscellaneous Deductions",
    "ATM/Misc. Deductions",
    "ATM/Misc Deductions",
    "ACH Deductions",
    "Service Charges",
    "Other Deductions",
    "Deposits",
    "ACH Additions",
)
_TRAILING_HEADER_PATTERNS = [
    re.compile(rf"\s*{re.escape(header)}\s*$", re.IGNORECASE) for header in SECTION_HEADERS_TO_STRIP
]

# Continuation lines longer than this are not merchant detail
MAX_CONTINUATION_LENGTH = 100

FALLBACK_DELIMITERS = ("\t", ",", "  ")
FULL_DATE_TOKEN = re.compile(r"^(?:\d{1,2}/\d{1,2}/\d{2,4}|\d{4}-\d{2}-\d{2}|\d{1,2}-\d{1,2}-\d{2,4})$")
MONTH_NAME_DATE = re.compile(r"^[A-Za-z]{3,9}\.?\s+\d{1,2},?\s+\d{4}$")
NUMBER_TOKEN = re.compile(r"^-?\d+(?:\.\d*)?$")
PAREN_NUMBER_TOKEN = re.compile(r"^\((\d+(?:\.\d*)?)\)$")
UNSTRUCTURED_DATE = re.compile(r"\d{1,2}/\d{1,2}/\d{2,4}")
DECIMAL_AMOUNT = re.compile(r"(\()?(-)?\$?(\d{1,3}(?:,\d{3})*\.\d{2}|\d+\.\d{2})\)?")
UNSTRUCTURED_AMOUNT = re.compile(r"(\()?(-)?\$?(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)\)?")


def strip_section_headers(description: str) -> str:
    """Remove section headers accidentally glued to the end of a description."""
    cleaned = description
    for pattern in _TRAILING_HEADER_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    return cleaned.strip()


class PastedTextParser:
    """Parser for manually pasted transaction text."""

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        categorizer: Optional[MerchantCategorizer] = None,
    ):
        self.config = config or ParserConfig()
        self.categorizer = categorizer or MerchantCategorizer()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def parse(self, raw_text: str) -> list[StagedTransaction]:
        """Parse pasted text, statement strategy first, line fallback second."""
        transactions = self.parse_pasted_statement(raw_text)
        if transactions:
            logger.info("Found %d transactions using the pasted statement parser", len(transactions))
            return transactions

        lines = [line for line in raw_text.strip().splitlines() if line.strip()]
        for line in lines:
            parsed = self.parse_line(line)
            if parsed:
                transactions.append(parsed)
        logger.info("Parsed %d transactions from %d lines", len(transactions), len(lines))
        return transactions

    # ------------------------------------------------------------------
    # Strategy 1: pasted bank statement
    # ------------------------------------------------------------------

    def _statement_period(self, raw_text: str) -> StatementPeriod:
        match = PASTED_PERIOD.search(raw_text)
        if match:
            try:
                return StatementPeriod(
                    start=parse_statement_date(match.group(1)),
                    end=parse_statement_date(match.group(2)),
                )
            except (ValueError, UnsupportedPeriodError) as e:
                logger.warning("Ignoring unusable statement period %r: %s", match.group(0), e)
        year_match = ANY_YEAR.search(raw_text)
        year = int(year_match.group(1)) if year_match else date.today().year
        return StatementPeriod(start=date(year, 1, 1), end=date(year, 12, 31))

    def _is_skipped(self, line: str) -> bool:
        return (
            any(p.search(line) for p in PASTED_SKIP_PATTERNS)
            or DATE_AMOUNT_ONLY.match(line) is not None
            or SUMMARY_AMOUNTS_LINE.match(line) is not None
            or TOTAL_LINE.search(line) is not None
            or CATEGORY_SUMMARY_LINE.match(line) is not None
        )

    def _collect_lines(self, raw_text: str) -> list[tuple[str, str, bool]]:
        """Group raw lines into (line, section, is_credit) candidate entries."""
        section, is_credit = "Unknown", False
        candidates: list[list] = []

        for raw_line in raw_text.splitlines():
            line = raw_line.strip()
            if not line:
                continue

            header = next(((name, credit) for p, name, credit in PASTED_SECTIONS if p.search(line)), None)
            if header:
                section, is_credit = header
                continue

            if self._is_skipped(line):
                continue

            if DATE_START.match(line):
                candidates.append([line, section, is_credit])
            elif candidates and len(line) < MAX_CONTINUATION_LENGTH:
                candidates[-1][0] = f"{candidates[-1][0]} {line}"

        return [(line, name, credit) for line, name, credit in candidates]

    def parse_pasted_statement(self, raw_text: str) -> list[StagedTransaction]:
        """Parse text copied from a bank statement; empty list if nothing matches."""
        period = self._statement_period(raw_text)
        transactions: list[StagedTransaction] = []

        for line, section, is_credit in self._collect_lines(raw_text):
            txn_type = TransactionType.CREDIT if is_credit else TransactionType.DEBIT

            check = PASTED_CHECK_LINE.match(line)
            if check:
                month_day, number, amount, _ref = check.groups()
                txn = self._staged(period, month_day, parse_amount(amount), f"Check #{number}",
                                   TransactionType.DEBIT, line)
                if txn:
                    transactions.append(txn)
                continue

            merged = split_merged_line(line)
            if merged and len(merged) > 1:
                for entry in merged:
                    description = strip_section_headers(entry.description)
                    if not description or entry.amount <= 0:
                        continue
                    txn = self._staged(period, entry.month_day, entry.amount, description, txn_type,
                                       entry.raw_text, entry.reference_number)
                    if txn:
                        transactions.append(txn)
                continue

            single = PASTED_SINGLE_LINE.match(line)
            if single:
                month_day, amount_text, description = single.groups()
                description, reference = split_reference_number(description)
                description = strip_section_headers(description)
                amount = parse_amount(amount_text)
                if description and amount > 0:
                    txn = self._staged(period, month_day, amount, description, txn_type, line, reference)
                    if txn:
                        transactions.append(txn)

        income = sum(1 for t in transactions if t.type is TransactionType.CREDIT)
        logger.debug(
            "Pasted statement: %d income, %d expense", income, len(transactions) - income
        )
        return transactions

    def _staged(
        self,
        period: StatementPeriod,
        month_day: str,
        amount: Decimal,
        description: str,
        txn_type: TransactionType,
        raw_text: str,
        reference_number: Optional[str] = None,
    ) -> Optional[StagedTransaction]:
        try:
            txn_date = period.resolve(month_day)
        except ValueError:
            logger.debug("Skipping line with invalid date: %s", raw_text)
            return None
        limit = self.config.max_description_length
        description = description[:limit]
        return StagedTransaction(
            date=txn_date,
            amount=txn_type.apply_sign(amount),
            description=description,
            type=txn_type,
            source=TransactionSource.MANUAL,
            confidence=MANUAL_CONFIDENCE,
            category=self.categorizer.categorize(description),
            reference_number=reference_number,
            raw_text=raw_text[:limit],
        )

    # ------------------------------------------------------------------
    # Strategy 2: line-oriented fallback
    # ------------------------------------------------------------------

    def parse_line(self, line: str) -> Optional[StagedTransaction]:
        """Parse one freeform line; None if no date and amount can be found."""
        for delimiter in FALLBACK_DELIMITERS:
            parts = [p.strip() for p in line.split(delimiter) if p.strip()]
            if len(parts) >= 2:
                result = self._from_parts(parts)
                if result:
                    return self._manual(line, *result)
        result = self._from_unstructured(line)
        if result:
            return self._manual(line, *result)
        return None

    def _manual(self, line: str, txn_date: date, amount: Decimal, description: str) -> StagedTransaction:
        txn_type = TransactionType.DEBIT if amount < 0 else TransactionType.CREDIT
        description = description[: self.config.max_description_length]
        return StagedTransaction(
            date=txn_date,
            amount=txn_type.apply_sign(amount),
            description=description,
            type=txn_type,
            source=TransactionSource.MANUAL,
            confidence=MANUAL_CONFIDENCE,
            category=self.categorizer.categorize(description),
            raw_text=line,
        )

    def _from_parts(self, parts: list[str]) -> Optional[tuple[date, Decimal, str]]:
        txn_date: Optional[date] = None
        amount: Optional[Decimal] = None
        description: list[str] = []

        for part in parts:
            if txn_date is None:
                parsed_date = try_parse_date(part)
                if parsed_date:
                    txn_date = parsed_date
                    continue
            if amount is None:
                parsed_amount = try_parse_amount(part)
                if parsed_amount is not None:
                    amount = parsed_amount
                    continue
            description.append(part)

        if txn_date and amount is not None and description:
            return txn_date, amount, " ".join(description)
        return None

    def _from_unstructured(self, line: str) -> Optional[tuple[date, Decimal, str]]:
        date_match = UNSTRUCTURED_DATE.search(line)
        if not date_match:
            return None
        txn_date = try_parse_date(date_match.group(0))
        if txn_date is None:
            return None

        remainder = line[: date_match.start()] + " " + line[date_match.end():]
        amount_match = DECIMAL_AMOUNT.search(remainder) or UNSTRUCTURED_AMOUNT.search(remainder)
        if not amount_match:
            return None
        try:
            amount = Decimal(amount_match.group(3).replace(",", ""))
        except InvalidOperation:
            return None

        description = " ".join(
            (remainder[: amount_match.start()] + " " + remainder[amount_match.end():]).split()
        )
        if not description:
            return None
        if amount_match.group(1) or amount_match.group(2):
            amount = -amount
        return txn_date, amount, description


def try_parse_date(text: str) -> Optional[date]:
    """Parse a standalone date token (MM/DD/YYYY, YYYY-MM-DD, MM-DD-YYYY, or other full dates)."""
    text = text.strip()
    if len(text) < 6:
        return None
    if not FULL_DATE_TOKEN.match(text) and not MONTH_NAME_DATE.match(text):
        return None
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def try_parse_amount(text: str) -> Optional[Decimal]:
    """Parse an amount token: "$1,234.56", "-12.00", "(45.00)" (negative)."""
    cleaned = text.replace("$", "").replace(",", "").strip()
    try:
        if NUMBER_TOKEN.match(cleaned):
            return Decimal(cleaned)
        paren = PAREN_NUMBER_TOKEN.match(cleaned)
        if paren:
            return -Decimal(paren.group(1))
    except InvalidOperation:
        return None
    return None


def parse_manual_input(raw_text: str, config: Optional[ParserConfig] = None) -> list[StagedTransaction]:
    """Parse pasted text into MANUAL staged transactions."""
    return PastedTextParser(config).parse(raw_text)
