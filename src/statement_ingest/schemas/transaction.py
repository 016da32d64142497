"""
Canonical transaction records (SSOT).

Statement parsers emit RawTransaction objects inside a ParsedStatement.
The deduplication engine consumes StagedTransaction objects, which are a
superset of RawTransaction plus the capturing source and a declared
confidence. Everything maps into/out of these.

Amounts are signed everywhere: credits positive, debits negative.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional

from .dedupe import generate_dedup_hash


class TransactionType(str, Enum):
    """Direction of money movement.

    Statement text speaks of credits and debits, ledgers speak of income
    and expense. The mapping lives in to_transaction_type() and ledger_label:

        credit <-> INCOME
        debit  <-> EXPENSE
    """

    CREDIT = "credit"
    DEBIT = "debit"

    @property
    def ledger_label(self) -> str:
        """INCOME/EXPENSE label used by ledger-side records."""
        return "INCOME" if self is TransactionType.CREDIT else "EXPENSE"

    def apply_sign(self, amount: Decimal) -> Decimal:
        """Return amount signed for this direction (credit +, debit -)."""
        magnitude = abs(amount)
        return magnitude if self is TransactionType.CREDIT else -magnitude


_TYPE_ALIASES = {
    "credit": TransactionType.CREDIT,
    "income": TransactionType.CREDIT,
    "debit": TransactionType.DEBIT,
    "expense": TransactionType.DEBIT,
}


def to_transaction_type(label: str | TransactionType) -> TransactionType:
    """Map either vocabulary (credit/debit or INCOME/EXPENSE) onto TransactionType.

    Raises:
        ValueError: If the label belongs to neither vocabulary
    """
    if isinstance(label, TransactionType):
        return label
    try:
        return _TYPE_ALIASES[str(label).strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown transaction type: {label!r}") from None


class TransactionSource(str, Enum):
    """Where a staged transaction was captured."""

    PDF = "PDF"
    MANUAL = "MANUAL"
    CSV = "CSV"


class StatementType(str, Enum):
    """Recognized statement dialects."""

    PERSONAL = "personal"
    BUSINESS = "business"


@dataclass(frozen=True)
class RawTransaction:
    """One transaction recovered from statement text."""

    date: date
    amount: Decimal  # Signed: credit positive, debit negative
    description: str
    type: TransactionType
    category: Optional[str] = None
    reference_number: Optional[str] = None
    raw_text: Optional[str] = None
    section: Optional[str] = None  # Statement section it was found in

    def to_dict(self) -> dict:
        """Serialize to a JSON-safe dictionary."""
        return {
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "description": self.description,
            "type": self.type.value,
            "category": self.category,
            "reference_number": self.reference_number,
            "raw_text": self.raw_text,
            "section": self.section,
        }


@dataclass
class ParsedStatement:
    """
    Result of parsing one statement.

    Transactions are sorted by date ascending. Diagnostics (skipped line
    count, warnings) are kept for logging and are never user-facing.
    """

    statement_type: StatementType
    period_start: date
    period_end: date
    transactions: list[RawTransaction] = field(default_factory=list)
    account_number: Optional[str] = None  # Masked, e.g. ****1234
    account_name: Optional[str] = None  # Business statements only
    beginning_balance: Optional[Decimal] = None
    ending_balance: Optional[Decimal] = None

    # Diagnostics
    skipped_line_count: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def total_credits(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions if t.type is TransactionType.CREDIT),
            Decimal("0"),
        )

    @property
    def total_debits(self) -> Decimal:
        """Sum of debit magnitudes (a positive number)."""
        return sum(
            (-t.amount for t in self.transactions if t.type is TransactionType.DEBIT),
            Decimal("0"),
        )

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON output."""
        return {
            "statement_type": self.statement_type.value,
            "account_number": self.account_number,
            "account_name": self.account_name,
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "beginning_balance": (
                str(self.beginning_balance) if self.beginning_balance is not None else None
            ),
            "ending_balance": (
                str(self.ending_balance) if self.ending_balance is not None else None
            ),
            "transactions": [t.to_dict() for t in self.transactions],
            "skipped_line_count": self.skipped_line_count,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class StagedTransaction:
    """
    Transaction input to the deduplication engine.

    confidence is the source's declared reliability (0..1). None means
    "not declared"; the engine substitutes the per-source default.
    """

    date: date
    amount: Decimal  # Signed: credit positive, debit negative
    description: str
    type: TransactionType
    source: TransactionSource
    confidence: Optional[float] = None
    category: Optional[str] = None
    merchant: Optional[str] = None
    reference_number: Optional[str] = None
    raw_text: Optional[str] = None

    @classmethod
    def from_raw(
        cls,
        raw: RawTransaction,
        source: TransactionSource = TransactionSource.PDF,
        confidence: Optional[float] = None,
    ) -> StagedTransaction:
        """Stage a parsed statement transaction for deduplication."""
        return cls(
            date=raw.date,
            amount=raw.amount,
            description=raw.description,
            type=raw.type,
            source=source,
            confidence=confidence,
            category=raw.category,
            reference_number=raw.reference_number,
            raw_text=raw.raw_text,
        )

    @property
    def dedup_hash(self) -> str:
        """Normalized date|amount|description key (see generate_dedup_hash)."""
        return generate_dedup_hash(self)

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON storage."""
        return {
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "description": self.description,
            "type": self.type.value,
            "source": self.source.value,
            "confidence": self.confidence,
            "category": self.category,
            "merchant": self.merchant,
            "reference_number": self.reference_number,
            "raw_text": self.raw_text,
            "dedup_hash": self.dedup_hash,
        }

    @classmethod
    def from_dict(cls, data: dict) -> StagedTransaction:
        """Deserialize from dictionary.

        Accepts either type vocabulary and derives the type from the amount
        sign when no type is given. The amount is re-signed to match the type.

        Raises:
            ValueError: If date, amount or type cannot be interpreted
        """
        try:
            amount = Decimal(str(data["amount"]))
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {data['amount']!r}") from None
        raw_type = data.get("type")
        if raw_type:
            txn_type = to_transaction_type(raw_type)
        else:
            txn_type = TransactionType.DEBIT if amount < 0 else TransactionType.CREDIT

        confidence = data.get("confidence")
        return cls(
            date=date.fromisoformat(str(data["date"])[:10]),
            amount=txn_type.apply_sign(amount),
            description=data.get("description", ""),
            type=txn_type,
            source=TransactionSource(str(data.get("source", "MANUAL")).upper()),
            confidence=float(confidence) if confidence is not None else None,
            category=data.get("category"),
            merchant=data.get("merchant"),
            reference_number=data.get("reference_number"),
            raw_text=data.get("raw_text"),
        )
