"""Match scoring for transaction deduplication."""

from .engine import (
    MatchResult,
    MatchScore,
    MatchThresholds,
    Recommendation,
    TransactionMatcher,
    calculate_match_score,
    get_match_recommendation,
    levenshtein_distance,
    string_similarity,
)

__all__ = [
    "MatchResult",
    "MatchScore",
    "MatchThresholds",
    "Recommendation",
    "TransactionMatcher",
    "calculate_match_score",
    "get_match_recommendation",
    "levenshtein_distance",
    "string_similarity",
]
