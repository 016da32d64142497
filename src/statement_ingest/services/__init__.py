"""Deduplication service."""

from statement_ingest.services.deduplication import (
    DeduplicationEngine,
    DeduplicationResult,
    GreedyMatchingStrategy,
    MatchingStrategy,
    MergedPair,
    OptimalMatchingStrategy,
    ReviewPair,
    as_staged_transactions,
    deduplicate_transactions,
    get_strategy,
    merge_transactions,
)

__all__ = [
    "DeduplicationEngine",
    "DeduplicationResult",
    "GreedyMatchingStrategy",
    "MatchingStrategy",
    "MergedPair",
    "OptimalMatchingStrategy",
    "ReviewPair",
    "as_staged_transactions",
    "deduplicate_transactions",
    "get_strategy",
    "merge_transactions",
]
