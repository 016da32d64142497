"""
SSOT (Single Source of Truth) schemas for the pipeline.

These canonical schemas are the ONLY models used across all modules.
No duplicated "near-same" models allowed.
"""

from .dedupe import (
    DESCRIPTION_STOPWORDS,
    UNKNOWN,
    generate_dedup_hash,
    normalize_amount,
    normalize_date,
    normalize_description,
    transaction_field,
)
from .transaction import (
    ParsedStatement,
    RawTransaction,
    StagedTransaction,
    StatementType,
    TransactionSource,
    TransactionType,
    to_transaction_type,
)

__all__ = [
    # Transactions (canonical records)
    "RawTransaction",
    "ParsedStatement",
    "StagedTransaction",
    "StatementType",
    "TransactionSource",
    "TransactionType",
    "to_transaction_type",
    # Normalization / dedupe
    "UNKNOWN",
    "DESCRIPTION_STOPWORDS",
    "normalize_date",
    "normalize_amount",
    "normalize_description",
    "generate_dedup_hash",
    "transaction_field",
]
