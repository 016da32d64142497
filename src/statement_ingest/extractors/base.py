"""
Base statement parser interface, errors and shared line patterns.

Statement layouts are brittle, so every pattern used to recognize a line
lives here as a named module-level constant with its own test fixture.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional

from ..categorization import MerchantCategorizer
from ..config import ParserConfig
from ..schemas.transaction import ParsedStatement, RawTransaction, TransactionType

logger = logging.getLogger(__name__)

# ============================================================================
# Errors
# ============================================================================


class StatementParseError(Exception):
    """Base class for statement parsing failures."""

    pass


class UnknownFormatError(StatementParseError):
    """Statement dialect not recognized, or no statement period found.

    Parsing aborts; no partial result is returned.
    """

    pass


class UnsupportedPeriodError(UnknownFormatError):
    """Statement period ends before it starts or spans more than one year boundary."""

    pass


class MalformedSectionError(StatementParseError):
    """A section header was found but no transactions followed it.

    Never raised out of a parser: statements legitimately have empty
    sections, so this is logged as a warning and recorded on the result.
    """

    def __init__(self, section: str):
        self.section = section
        super().__init__(f"Section '{section}' contains no transactions")


# ============================================================================
# Shared patterns
# ============================================================================

# "For the period 12/28/2023 to 01/31/2024" (personal) / "For the Period ..." (business)
PERIOD_PATTERN = re.compile(
    r"For\s+the\s+period\s+(\d{1,2}/\d{1,2}/\d{4})\s+to\s*(\d{1,2}/\d{1,2}/\d{4})",
    re.IGNORECASE,
)

# Amount with two decimals, optional "$", optional leading or trailing minus
AMOUNT_TOKEN = r"-?\$?\d{1,3}(?:,\d{3})*\.\d{2}-?|-?\$?\d+\.\d{2}-?"

# Header line containing "Beginning balance", figures on the same or a following line
BALANCE_PATTERN = re.compile(
    r"Beginning\s+balance(?:[^\S\n]+|[^\n]*?\n(?:[^\n]*\n){0,3}?[^\S\n]*)"
    rf"({AMOUNT_TOKEN})\s+({AMOUNT_TOKEN})\s+({AMOUNT_TOKEN})\s+({AMOUNT_TOKEN})",
    re.IGNORECASE,
)

# Account number formats, most specific first; all rendered as ****NNNN
ACCOUNT_NUMBER_PATTERNS = [
    re.compile(r"Account\s+Number:\s*XX-XXXX-(\d{4})\b", re.IGNORECASE),
    re.compile(r"Account\s+Number:\s*\d{2}-\d{4}-(\d{4})\b", re.IGNORECASE),
    re.compile(r"Account\s+Number:\s*\d{6}(\d{4})\b", re.IGNORECASE),
]

# MM/DD <amount> <description>
TRANSACTION_LINE = re.compile(r"^(\d{1,2}/\d{1,2})\s+([\d,]+\.\d{2})\s+(\S.*)$")

# MM/DD <amount> with nothing else (ledger balance snapshot, not a transaction)
DATE_AMOUNT_ONLY = re.compile(r"^(?:\d{1,2}/\d{1,2}\s+[\d,]+\.\d{2}\s*)+$")

# Two or more dates at line start: "01/08 01/08 01/08 56.34 DESC1 36.28 DESC2"
LEADING_DATES = re.compile(r"^((?:\d{1,2}/\d{1,2}\s+){2,})(.*)$")

# Individual amount inside a line (not part of a date or longer number)
INLINE_AMOUNT = re.compile(r"(?<![\d/.,])(\d{1,3}(?:,\d{3})*\.\d{2}|\d+\.\d{2})(?![\d.])")

# Trailing run of 10+ digits is a reference number
TRAILING_REFERENCE = re.compile(r"\s*(\d{10,})\s*$")

# Trailing two-letter state code left behind by a cut-off merchant location
TRAILING_STATE_CODE = re.compile(r"\s+[A-Z]{2}\s*$")


# ============================================================================
# Shared helpers
# ============================================================================


def parse_amount(token: str) -> Decimal:
    """Parse "1,234.56", "$1,234.56", "-12.00" or "12.00-" into a Decimal.

    Raises:
        ValueError: If the token is not a number
    """
    cleaned = token.strip().replace("$", "").replace(",", "")
    negative = cleaned.startswith("-") or cleaned.endswith("-")
    cleaned = cleaned.strip("-")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Not an amount: {token!r}") from None
    return -value if negative else value


def parse_statement_date(text: str) -> date:
    """Parse MM/DD/YYYY (or M/D/YYYY)."""
    month, day, year = (int(p) for p in text.split("/"))
    return date(year, month, day)


def _anniversary(day: date) -> date:
    """Same MM/DD one year later; Feb 29 rolls to Mar 1."""
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        return date(day.year + 1, 3, 1)


@dataclass(frozen=True)
class StatementPeriod:
    """Billing window of a statement."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise UnsupportedPeriodError(
                f"Statement period ends before it starts: {self.start} to {self.end}"
            )
        if self.end.year - self.start.year > 1:
            raise UnsupportedPeriodError(
                f"Statement period spans more than one year boundary: {self.start} to {self.end}"
            )
        if _anniversary(self.start) <= self.end:
            raise UnsupportedPeriodError(
                f"Statement period is a year or longer, MM/DD dates are ambiguous: {self.start} to {self.end}"
            )

    @property
    def crosses_year(self) -> bool:
        return self.start.year != self.end.year

    def year_for_month(self, month: int) -> int:
        """Resolve the calendar year of an MM/DD entry.

        Same-year statements use that year. For a statement spanning a year
        boundary, December (and any month from the start month on that comes
        after the end month) keeps the start year; January and every other
        month take the end year.
        """
        if not self.crosses_year:
            return self.end.year
        if month == 12 or (month >= self.start.month and month > self.end.month):
            return self.start.year
        return self.end.year

    def resolve(self, month_day: str) -> date:
        """Turn "MM/DD" into a full date inside this statement.

        Raises:
            ValueError: If month/day do not form a valid date
        """
        month, day = (int(p) for p in month_day.split("/"))
        return date(self.year_for_month(month), month, day)

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


def extract_period(text: str) -> StatementPeriod:
    """Find the statement period.

    Raises:
        UnknownFormatError: If no period marker is present
        UnsupportedPeriodError: If the period cannot be resolved unambiguously
    """
    match = PERIOD_PATTERN.search(text)
    if not match:
        raise UnknownFormatError("No statement period found (expected 'For the period MM/DD/YYYY to MM/DD/YYYY')")
    try:
        start = parse_statement_date(match.group(1))
        end = parse_statement_date(match.group(2))
    except ValueError as e:
        raise UnknownFormatError(f"Invalid statement period: {match.group(0)}") from e
    return StatementPeriod(start=start, end=end)


def extract_balances(text: str) -> tuple[Optional[Decimal], Optional[Decimal]]:
    """Beginning and ending balance from the balance summary (first and fourth figure)."""
    match = BALANCE_PATTERN.search(text)
    if not match:
        return None, None
    return parse_amount(match.group(1)), parse_amount(match.group(4))


def extract_account_number(text: str) -> Optional[str]:
    """Masked account number (****NNNN), or None if not present."""
    for pattern in ACCOUNT_NUMBER_PATTERNS:
        match = pattern.search(text)
        if match:
            return f"****{match.group(1)}"
    return None


def split_reference_number(description: str) -> tuple[str, Optional[str]]:
    """Strip a trailing 10+ digit reference number from a description."""
    match = TRAILING_REFERENCE.search(description)
    if not match:
        return description.strip(), None
    return description[: match.start()].strip(), match.group(1)


@dataclass
class MergedEntry:
    """One transaction recovered from a merged multi-transaction line."""

    month_day: str
    amount: Decimal
    description: str
    raw_text: str
    reference_number: Optional[str] = None


def split_merged_line(line: str) -> Optional[list[MergedEntry]]:
    """Split a line that starts with several dates and carries several amounts.

    "01/08 01/08 01/08 56.34 DESC1 36.28 DESC2 43.11 DESC3" yields three
    entries dated 01/08; each description runs up to the next amount.
    "01/08 01/09 56.34 DESC" (posting + transaction date) yields one entry.

    Returns:
        Entries, or None if the line does not start with two or more dates
        followed directly by an amount
    """
    match = LEADING_DATES.match(line.strip())
    if not match:
        return None

    first_date = match.group(1).split()[0]
    rest = match.group(2)
    amounts = list(INLINE_AMOUNT.finditer(rest))
    if not amounts or amounts[0].start() != 0:
        return None

    entries: list[MergedEntry] = []
    for i, amount_match in enumerate(amounts):
        end = amounts[i + 1].start() if i + 1 < len(amounts) else len(rest)
        description = rest[amount_match.end() : end].strip()
        reference = None
        if len(amounts) > 1:
            # "MERCHANT 1234567890 NJ" and "MERCHANT NJ 1234567890" both occur
            description = TRAILING_STATE_CODE.sub("", description).strip()
            description, reference = split_reference_number(description)
            description = TRAILING_STATE_CODE.sub("", description).strip()
        entries.append(
            MergedEntry(
                month_day=first_date,
                amount=parse_amount(amount_match.group(1)),
                description=description,
                raw_text=f"{first_date} {amount_match.group(1)} {description}".strip(),
                reference_number=reference,
            )
        )
    return entries


# ============================================================================
# Parser interface
# ============================================================================


@dataclass
class ScanDiagnostics:
    """Per-parse counters and warnings; never escapes the parse call except on the result."""

    skipped_lines: int = 0
    warnings: list[str] = field(default_factory=list)

    def skip(self, line: str, reason: str) -> None:
        self.skipped_lines += 1
        logger.debug("Skipping line (%s): %s", reason, line)

    def empty_section(self, section: str) -> None:
        error = MalformedSectionError(section)
        logger.warning("%s", error)
        self.warnings.append(str(error))


class BaseStatementParser(ABC):
    """
    Base class for statement dialect parsers.

    Each parser handles one statement layout. Parsers are stateless between
    calls: all scan state is local to parse().
    """

    def __init__(
        self,
        config: Optional[ParserConfig] = None,
        categorizer: Optional[MerchantCategorizer] = None,
    ):
        self.config = config or ParserConfig()
        self.categorizer = categorizer or MerchantCategorizer()

    @property
    @abstractmethod
    def name(self) -> str:
        """Parser name for logging."""
        pass

    @property
    @abstractmethod
    def priority(self) -> int:
        """
        Priority for dialect detection.
        Higher = tried first.
        """
        pass

    @abstractmethod
    def can_parse(self, text: str) -> bool:
        """Check whether the text carries this dialect's marker."""
        pass

    @abstractmethod
    def parse(self, text: str) -> ParsedStatement:
        """
        Parse full statement text.

        Raises:
            UnknownFormatError: If the period cannot be found or resolved
        """
        pass

    def build_transaction(
        self,
        period: StatementPeriod,
        diagnostics: ScanDiagnostics,
        month_day: str,
        amount: Decimal,
        description: str,
        txn_type: TransactionType,
        section: str,
        raw_text: str,
        reference_number: Optional[str] = None,
    ) -> Optional[RawTransaction]:
        """Resolve date, strip reference, categorize and sign one entry.

        Returns None (and counts the line as skipped) if the date is invalid
        or falls outside the statement period.
        """
        try:
            txn_date = period.resolve(month_day)
        except ValueError:
            diagnostics.skip(raw_text, "invalid date")
            return None
        if self.config.enforce_period_bounds and not period.contains(txn_date):
            diagnostics.skip(raw_text, f"date {txn_date} outside statement period")
            return None

        description, reference = split_reference_number(" ".join(description.split()))
        reference = reference or reference_number
        description = description[: self.config.max_description_length]
        return RawTransaction(
            date=txn_date,
            amount=txn_type.apply_sign(amount),
            description=description,
            type=txn_type,
            category=self.categorizer.categorize(description),
            reference_number=reference,
            raw_text=raw_text,
            section=section,
        )
