"""
Normalization and dedupe key generation (CRITICAL).

These functions turn raw date/amount/description values into canonical,
comparable forms. They are the ONLY normalizers used for matching.

All four functions are:
- Deterministic: same input always produces the same output
- Side-effect free
- Total: invalid input maps to the sentinel UNKNOWN (or "" for
  descriptions) instead of raising

Normalized descriptions are for comparison only and never stored.
"""

import hashlib
import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from dateutil import parser as date_parser

# ============================================================================
# SSOT Constants for normalization
# ============================================================================

# Sentinel for values that could not be normalized
UNKNOWN = "unknown"

# Whole words removed from descriptions before fuzzy comparison
DESCRIPTION_STOPWORDS = ("debit", "credit", "card", "purchase", "payment", "pos", "ach", "web")

# Number of normalized description characters in the dedup hash
HASH_DESCRIPTION_LENGTH = 30

_WHITESPACE_RE = re.compile(r"\s+")
# ASCII word characters only, so accented letters are stripped like punctuation
_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)
_STOPWORD_RE = re.compile(
    r"\b(?:" + "|".join(DESCRIPTION_STOPWORDS) + r")\b", re.IGNORECASE
)
_CENTS = Decimal("0.01")
_PARTIAL_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


def normalize_date(value: Any) -> str:
    """
    Normalize a date value to YYYY-MM-DD.

    Args:
        value: date, datetime, or a parseable date string

    Returns:
        ISO date string, or UNKNOWN if the value is not a date
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not value.strip():
        return UNKNOWN

    # Parse twice with different fill-in defaults; a partial date such as
    # "15" or "March 2024" comes out differently and is rejected
    try:
        parsed = [
            date_parser.parse(value.strip(), default=default).date()
            for default in _PARTIAL_DATE_DEFAULTS
        ]
    except (ValueError, OverflowError):
        return UNKNOWN
    if parsed[0] != parsed[1]:
        return UNKNOWN
    return parsed[0].isoformat()


def normalize_amount(value: Any) -> str:
    """
    Normalize an amount to its absolute value with exactly 2 decimals.

    Sign is not part of "amount" for matching: normalize_amount(-5) ==
    normalize_amount(5) == "5.00".

    Args:
        value: Decimal, int, float, or numeric string ("$1,234.50", "(12.00)")

    Returns:
        Amount string, or UNKNOWN if the value is not a finite number
    """
    if isinstance(value, bool):
        return UNKNOWN
    if isinstance(value, float):
        if not math.isfinite(value):
            return UNKNOWN
        value = Decimal(str(value))
    elif isinstance(value, int):
        value = Decimal(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "").strip("()")
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return UNKNOWN
    elif not isinstance(value, Decimal):
        return UNKNOWN

    if not value.is_finite():
        return UNKNOWN
    try:
        return str(abs(value).quantize(_CENTS, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # Too many digits for the decimal context
        return UNKNOWN


def normalize_description(value: Any) -> str:
    """
    Normalize a description for fuzzy comparison.

    Steps: lowercase, collapse whitespace, strip punctuation, drop the
    stopwords in DESCRIPTION_STOPWORDS as whole words, collapse again.

    Examples:
        >>> normalize_description("POS Purchase  -  ACME Markets #123")
        'acme markets 123'
    """
    if not isinstance(value, str):
        return ""
    text = _WHITESPACE_RE.sub(" ", value.lower())
    text = _NON_WORD_RE.sub("", text)
    text = _STOPWORD_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def transaction_field(txn: Any, name: str) -> Any:
    """Read a field from a transaction object or a plain dict."""
    if isinstance(txn, dict):
        return txn.get(name)
    return getattr(txn, name, None)


def generate_dedup_hash(txn: Any) -> str:
    """
    Compute the dedup hash for a transaction.

    Hash input: normalized_date|normalized_amount|normalized_description[:30],
    lowercased, MD5 hex digest. This is a fast pre-filter and idempotence
    key, never the sole matching mechanism.

    Args:
        txn: Any object (or dict) with date, amount and description

    Returns:
        32-character lowercase hex digest
    """
    key = "|".join(
        (
            normalize_date(transaction_field(txn, "date")),
            normalize_amount(transaction_field(txn, "amount")),
            normalize_description(transaction_field(txn, "description"))[:HASH_DESCRIPTION_LENGTH],
        )
    ).lower()
    return hashlib.md5(key.encode("utf-8")).hexdigest()
