"""
Business Checking statement parser.

Business statements spread transactions over many sections and pages, wrap
long descriptions onto continuation lines, and embed a Daily Balance table
whose rows look exactly like "MM/DD <amount>" transaction lines.

The scan is an explicit state machine:

    NONE ──SectionHeader──> IN_SECTION(kind) ──SectionEnd──> NONE
      │                          │
      └──DailyBalanceHeader──> IN_DAILY_BALANCE ──DailyBalanceFooter──> NONE

Every line is classified first (see LineKind), then fed to a single
transition function. A pending entry accumulates continuation lines and is
finalized whenever a new entry starts, the section changes, a page break
marker is seen, or input ends.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..schemas.transaction import (
    ParsedStatement,
    RawTransaction,
    StatementType,
    TransactionType,
)
from .base import (
    DATE_AMOUNT_ONLY,
    PERIOD_PATTERN,
    BaseStatementParser,
    MergedEntry,
    ScanDiagnostics,
    StatementPeriod,
    extract_account_number,
    extract_balances,
    extract_period,
    parse_amount,
    split_merged_line,
)

logger = logging.getLogger(__name__)

# Dialect marker
BUSINESS_MARKER = "Business Checking"

# Exact section header line -> section kind
BUSINESS_SECTION_HEADERS: dict[str, str] = {
    "Deposits": "Deposits",
    "ATM Deposits and Additions": "ATM Deposits",
    "ACH Additions": "ACH Additions",
    "Checks and Substitute Checks": "Checks",
    "Debit Card Purchases": "Debit Card Purchases",
    "POS Purchases": "POS Purchases",
    "ACH Deductions": "ACH Deductions",
    "Service Charges and Fees": "Service Charges",
    "Other Deductions": "Other Deductions",
}

# "ATM/Debit Card Transactions", "ATM and Debit Card Transactions", ...
ATM_MISC_HEADER = re.compile(r"^ATM\b.*\bDebit Card\b.*\bTransactions\b")
ATM_MISC_SECTION = "ATM/Misc"

CREDIT_SECTIONS = frozenset({"Deposits", "ATM Deposits", "ACH Additions"})
CHECKS_SECTION = "Checks"

# Group headings and detail blocks that close the current section
SECTION_END_MARKERS = (
    "Deposits and Other Additions",
    "Checks and Other Deductions",
    "Detail of Services",
    "Activity Detail",
)

DAILY_BALANCE_HEADER = "Daily Balance"
DAILY_BALANCE_FOOTER = "Activity Detail"

# Finalize the pending entry but stay in the section
CONTINUED_MARKERS = ("continued on next page", "- continued")

# Column headers: "Date posted  Amount  Transaction description", "Check number", ...
COLUMN_HEADER = re.compile(
    r"^(?:Date\b.*\b(?:Amount|Transaction|Check|posted)\b|posted\b|"
    r"(?:Reference|Check|Transaction)\s+(?:number|description)\b|number\b|description\b)"
)
PAGE_MARKER = re.compile(r"\bPage\s+\d+\s+of\s+\d+\b")
BOILERPLATE_FRAGMENTS = (
    "For 24-hour account information",
    "Member FDIC",
)

# MM/DD <check#> [*] <amount> [trailing ref/text]
CHECK_LINE = re.compile(r"^(\d{1,2}/\d{1,2})\s+(\d+)\s*\*?\s+([\d,]+\.\d{2})\s*(.*)$")
# MM/DD <amount> <description>
STANDARD_LINE = re.compile(r"^(\d{1,2}/\d{1,2})\s+([\d,]+\.\d{2})\s+(\S.*)$")


class ScanState(str, Enum):
    NONE = "none"
    IN_SECTION = "in_section"
    IN_DAILY_BALANCE = "in_daily_balance"


class LineKind(str, Enum):
    """Classification of one statement line."""

    BLANK = "blank"
    SECTION_HEADER = "section_header"
    SECTION_END = "section_end"
    DAILY_BALANCE_HEADER = "daily_balance_header"
    DAILY_BALANCE_FOOTER = "daily_balance_footer"
    TRANSACTION_START = "transaction_start"
    CONTINUATION = "continuation"
    CONTINUED_MARKER = "continued_marker"
    NOISE = "noise"
    UNPARSEABLE = "unparseable"


@dataclass
class ClassifiedLine:
    kind: LineKind
    text: str
    section: Optional[str] = None
    entries: list[MergedEntry] = field(default_factory=list)


@dataclass
class PendingEntry:
    """Transaction being assembled from a start line plus continuation lines."""

    month_day: str
    amount: Decimal
    section: str
    raw_text: str
    fragments: list[str] = field(default_factory=list)
    reference_number: Optional[str] = None

    @property
    def txn_type(self) -> TransactionType:
        return TransactionType.CREDIT if self.section in CREDIT_SECTIONS else TransactionType.DEBIT

    @property
    def description(self) -> str:
        return " ".join(f for f in self.fragments if f)


def _section_for_header(line: str) -> Optional[str]:
    if line in BUSINESS_SECTION_HEADERS:
        return BUSINESS_SECTION_HEADERS[line]
    if ATM_MISC_HEADER.match(line):
        return ATM_MISC_SECTION
    return None


def extract_account_name(text: str) -> Optional[str]:
    """Business name: first non-blank line after the 'For the Period' line."""
    match = PERIOD_PATTERN.search(text)
    if not match:
        return None
    following = text[match.end():].split("\n")[1:]
    for line in following:
        name = " ".join(line.split())
        if name:
            return name
    return None


def classify_line(
    line: str,
    state: ScanState,
    section: Optional[str],
    account_name: Optional[str] = None,
) -> ClassifiedLine:
    """Classify one stripped line given the current scan state."""
    if not line:
        return ClassifiedLine(LineKind.BLANK, line)

    if DAILY_BALANCE_HEADER in line:
        return ClassifiedLine(LineKind.DAILY_BALANCE_HEADER, line)
    if state is ScanState.IN_DAILY_BALANCE:
        if DAILY_BALANCE_FOOTER in line:
            return ClassifiedLine(LineKind.DAILY_BALANCE_FOOTER, line)
        return ClassifiedLine(LineKind.NOISE, line)

    header_section = _section_for_header(line)
    if header_section:
        return ClassifiedLine(LineKind.SECTION_HEADER, line, section=header_section)

    if (
        COLUMN_HEADER.match(line)
        or PAGE_MARKER.search(line)
        or any(fragment in line for fragment in BOILERPLATE_FRAGMENTS)
        or ("For the Period" in line and "Account Number" in line)
        or (BUSINESS_MARKER in line and "Account Number" in line)
        or (account_name is not None and " ".join(line.split()) == account_name)
    ):
        return ClassifiedLine(LineKind.NOISE, line)

    if any(marker in line for marker in CONTINUED_MARKERS):
        return ClassifiedLine(LineKind.CONTINUED_MARKER, line)

    if any(line.startswith(marker) for marker in SECTION_END_MARKERS):
        return ClassifiedLine(LineKind.SECTION_END, line)

    if state is not ScanState.IN_SECTION:
        return ClassifiedLine(LineKind.NOISE, line)

    if section == CHECKS_SECTION:
        match = CHECK_LINE.match(line)
        if match:
            month_day, number, amount, trailing = match.groups()
            description = f"Check #{number}" + (f" {trailing.strip()}" if trailing.strip() else "")
            entry = MergedEntry(month_day, parse_amount(amount), description, line)
            return ClassifiedLine(LineKind.TRANSACTION_START, line, section, [entry])

    if DATE_AMOUNT_ONLY.match(line):
        return ClassifiedLine(LineKind.UNPARSEABLE, line)

    merged = split_merged_line(line)
    if merged:
        return ClassifiedLine(LineKind.TRANSACTION_START, line, section, merged)

    match = STANDARD_LINE.match(line)
    if match:
        month_day, amount, description = match.groups()
        entry = MergedEntry(month_day, parse_amount(amount), description, line)
        return ClassifiedLine(LineKind.TRANSACTION_START, line, section, [entry])

    return ClassifiedLine(LineKind.CONTINUATION, line)


class BusinessStatementScan:
    """Scan state for one business statement. Created fresh per parse."""

    def __init__(
        self,
        parser: BusinessStatementParser,
        period: StatementPeriod,
        account_name: Optional[str],
    ):
        self.parser = parser
        self.period = period
        self.account_name = account_name
        self.state = ScanState.NONE
        self.section: Optional[str] = None
        self.section_count = 0
        self.pending: Optional[PendingEntry] = None
        self.transactions: list[RawTransaction] = []
        self.diagnostics = ScanDiagnostics()

    def feed(self, raw_line: str) -> None:
        line = raw_line.strip()
        classified = classify_line(line, self.state, self.section, self.account_name)
        self.transition(classified)

    def transition(self, line: ClassifiedLine) -> None:
        """Apply one classified line to the scan state."""
        kind = line.kind

        if kind is LineKind.BLANK:
            return

        if kind is LineKind.DAILY_BALANCE_HEADER:
            self._leave_section()
            self.state = ScanState.IN_DAILY_BALANCE
            logger.debug("Entering Daily Balance section (skipping)")
            return

        if kind is LineKind.DAILY_BALANCE_FOOTER:
            self.state = ScanState.NONE
            logger.debug("Exiting Daily Balance section")
            return

        if kind is LineKind.SECTION_HEADER:
            self._leave_section()
            self.state = ScanState.IN_SECTION
            self.section = line.section
            self.section_count = 0
            logger.debug("Found section: %s", line.section)
            return

        if kind is LineKind.SECTION_END:
            self._leave_section()
            return

        if kind is LineKind.CONTINUED_MARKER:
            self.finalize()
            return

        if kind is LineKind.TRANSACTION_START:
            self.finalize()
            *complete, last = line.entries
            for entry in complete:
                self._emit(PendingEntry(
                    month_day=entry.month_day,
                    amount=entry.amount,
                    section=line.section,
                    raw_text=entry.raw_text,
                    fragments=[entry.description],
                    reference_number=entry.reference_number,
                ))
            self.pending = PendingEntry(
                month_day=last.month_day,
                amount=last.amount,
                section=line.section,
                raw_text=line.text,
                fragments=[last.description],
                reference_number=last.reference_number,
            )
            return

        if kind is LineKind.CONTINUATION:
            if self.pending is not None:
                self.pending.fragments.append(line.text)
            else:
                self.diagnostics.skip(line.text, "text outside a transaction")
            return

        if kind is LineKind.UNPARSEABLE:
            self.diagnostics.skip(line.text, "date and amount without description")
            return

        # NOISE: structural text, nothing to do

    def finalize(self) -> None:
        """Complete the pending entry, if any."""
        if self.pending is None:
            return
        pending, self.pending = self.pending, None
        self._emit(pending)

    def finish(self) -> list[RawTransaction]:
        self._leave_section()
        self.transactions.sort(key=lambda t: t.date)
        return self.transactions

    def _emit(self, entry: PendingEntry) -> None:
        txn = self.parser.build_transaction(
            self.period,
            self.diagnostics,
            entry.month_day,
            entry.amount,
            entry.description,
            entry.txn_type,
            entry.section,
            entry.raw_text,
            entry.reference_number,
        )
        if txn:
            self.transactions.append(txn)
            self.section_count += 1
            if len(self.transactions) % 20 == 0:
                logger.debug("Extracted %d transactions so far", len(self.transactions))

    def _leave_section(self) -> None:
        self.finalize()
        if self.state is ScanState.IN_SECTION and self.section and self.section_count == 0:
            self.diagnostics.empty_section(self.section)
        if self.state is ScanState.IN_SECTION:
            logger.debug("Ending section: %s", self.section)
            self.state = ScanState.NONE
        self.section = None
        self.section_count = 0


class BusinessStatementParser(BaseStatementParser):
    """Parser for Business Checking statements."""

    @property
    def name(self) -> str:
        return "business"

    @property
    def priority(self) -> int:
        return 10

    def can_parse(self, text: str) -> bool:
        return BUSINESS_MARKER in text

    def parse(self, text: str) -> ParsedStatement:
        period = extract_period(text)
        beginning, ending = extract_balances(text)
        account_name = extract_account_name(text)

        scan = BusinessStatementScan(self, period, account_name)
        for raw_line in text.splitlines():
            scan.feed(raw_line)
        transactions = scan.finish()

        if scan.diagnostics.skipped_lines:
            logger.info("Skipped %d unparseable lines", scan.diagnostics.skipped_lines)
        logger.info(
            "Parsed business statement %s to %s: %d transactions",
            period.start, period.end, len(transactions),
        )
        by_section: dict[str, int] = {}
        for txn in transactions:
            by_section[txn.section or "Unknown"] = by_section.get(txn.section or "Unknown", 0) + 1
        for section_name, count in sorted(by_section.items(), key=lambda item: -item[1]):
            logger.debug("  %s: %d", section_name, count)

        return ParsedStatement(
            statement_type=StatementType.BUSINESS,
            period_start=period.start,
            period_end=period.end,
            transactions=transactions,
            account_number=extract_account_number(text),
            account_name=account_name,
            beginning_balance=beginning,
            ending_balance=ending,
            skipped_line_count=scan.diagnostics.skipped_lines,
            warnings=scan.diagnostics.warnings,
        )
