"""
Personal (Virtual Wallet) statement parser.

Personal statements carry four transaction sections, each introduced by a
fixed header and running until the next known header, a terminator
(Daily Balance / Service Charge detail) or end of text:

- Deposits and Other Additions                  (credits)
- Banking/Debit Card Withdrawals and Purchases  (debits)
- Online and Electronic Banking Deductions      (debits)
- Other Deductions                              (debits)

Each line shaped MM/DD <amount> <description> is one transaction.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..schemas.transaction import ParsedStatement, StatementType, TransactionType
from .base import (
    DATE_AMOUNT_ONLY,
    TRANSACTION_LINE,
    BaseStatementParser,
    ScanDiagnostics,
    extract_account_number,
    extract_balances,
    extract_period,
    parse_amount,
    split_merged_line,
)

logger = logging.getLogger(__name__)

# Dialect marker
PERSONAL_MARKER = "Virtual Wallet"

# Section header prefix -> (section name, direction); order is irrelevant
PERSONAL_SECTIONS: dict[str, TransactionType] = {
    "Deposits and Other Additions": TransactionType.CREDIT,
    "Banking/Debit Card Withdrawals and Purchases": TransactionType.DEBIT,
    "Online and Electronic Banking Deductions": TransactionType.DEBIT,
    "Other Deductions": TransactionType.DEBIT,
}

# Lines that close the current section without opening another
PERSONAL_SECTION_TERMINATORS = ("Daily Balance", "Service Charge", "Detail of Services")


class PersonalStatementParser(BaseStatementParser):
    """Parser for personal (Virtual Wallet) statements."""

    @property
    def name(self) -> str:
        return "personal"

    @property
    def priority(self) -> int:
        return 20

    def can_parse(self, text: str) -> bool:
        return PERSONAL_MARKER in text

    def _section_header(self, line: str) -> Optional[str]:
        for header in PERSONAL_SECTIONS:
            if line.startswith(header):
                return header
        return None

    def parse(self, text: str) -> ParsedStatement:
        period = extract_period(text)
        beginning, ending = extract_balances(text)
        diagnostics = ScanDiagnostics()
        transactions = []

        section: Optional[str] = None
        section_count = 0

        def close_section() -> None:
            if section is not None and section_count == 0:
                diagnostics.empty_section(section)

        for raw_line in text.splitlines():
            line = raw_line.strip()
            if not line:
                continue

            header = self._section_header(line)
            if header:
                close_section()
                section, section_count = header, 0
                logger.debug("Entering section: %s", header)
                continue

            if any(line.startswith(t) for t in PERSONAL_SECTION_TERMINATORS):
                close_section()
                section = None
                continue

            if section is None:
                continue

            txn_type = PERSONAL_SECTIONS[section]

            if DATE_AMOUNT_ONLY.match(line):
                diagnostics.skip(line, "date and amount without description")
                continue

            merged = split_merged_line(line)
            if merged:
                for entry in merged:
                    txn = self.build_transaction(
                        period, diagnostics, entry.month_day, entry.amount,
                        entry.description, txn_type, section, entry.raw_text,
                        entry.reference_number,
                    )
                    if txn:
                        transactions.append(txn)
                        section_count += 1
                continue

            match = TRANSACTION_LINE.match(line)
            if not match:
                if line[:1].isdigit():
                    diagnostics.skip(line, "no transaction pattern")
                continue

            month_day, amount, description = match.groups()
            txn = self.build_transaction(
                period, diagnostics, month_day, parse_amount(amount),
                description, txn_type, section, line,
            )
            if txn:
                transactions.append(txn)
                section_count += 1

        close_section()

        transactions.sort(key=lambda t: t.date)
        if diagnostics.skipped_lines:
            logger.info("Skipped %d unparseable lines", diagnostics.skipped_lines)
        logger.info(
            "Parsed personal statement %s to %s: %d transactions",
            period.start, period.end, len(transactions),
        )

        return ParsedStatement(
            statement_type=StatementType.PERSONAL,
            period_start=period.start,
            period_end=period.end,
            transactions=transactions,
            account_number=extract_account_number(text),
            beginning_balance=beginning,
            ending_balance=ending,
            skipped_line_count=diagnostics.skipped_lines,
            warnings=diagnostics.warnings,
        )
