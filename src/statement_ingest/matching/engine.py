"""Match scoring between transactions captured by two independent sources.

Each candidate pair gets a 0..100 score built from independent signals:

- Date proximity (max 40): same day 40, within 1 day 35, within 3 days 20
- Amount proximity (max 40, absolute values): exact 40, within 1% 35, within 5% 20
- Description similarity (max 20): normalized Levenshtein similarity x 20, rounded
- Merchant bonus (+5): both merchants present and similar

The total is clamped to 0..100 and mapped onto a recommendation by
configurable thresholds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from rapidfuzz.distance import Levenshtein

from ..schemas.dedupe import UNKNOWN, normalize_date, normalize_description, transaction_field

if TYPE_CHECKING:
    from statement_ingest.config import MatchingConfig, ParserConfig

logger = logging.getLogger(__name__)

MAX_SCORE = 100
DATE_POINTS = ((0, 40), (1, 35), (3, 20))  # max days apart -> points
MAX_DATE_POINTS = 40
AMOUNT_POINTS = ((Decimal("0.01"), 35), (Decimal("0.05"), 20))  # max relative diff -> points
EXACT_AMOUNT_POINTS = 40
DESCRIPTION_POINTS = 20
MERCHANT_BONUS = 5


class Recommendation(str, Enum):
    """What to do with a scored pair."""

    AUTO_MERGE = "AUTO_MERGE"
    REVIEW_NEEDED = "REVIEW_NEEDED"
    NO_MATCH = "NO_MATCH"


@dataclass(frozen=True)
class MatchThresholds:
    """Score policy: >= auto_merge merges, >= review goes to a human."""

    auto_merge: int = 85
    review: int = 60

    @classmethod
    def from_config(cls, config: MatchingConfig) -> MatchThresholds:
        return cls(auto_merge=config.auto_merge_threshold, review=config.review_threshold)


@dataclass
class MatchScore:
    """Individual signal contribution to a match score."""

    signal: str
    points: int
    max_points: int
    detail: str = ""


@dataclass
class MatchResult:
    """Score and evidence for one candidate pair."""

    score: int
    signals: list[MatchScore] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "score": self.score,
            "reasons": list(self.reasons),
            "signals": [
                {
                    "signal": s.signal,
                    "points": s.points,
                    "max_points": s.max_points,
                    "detail": s.detail,
                }
                for s in self.signals
            ],
        }


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance (insertions, deletions, substitutions)."""
    return Levenshtein.distance(a, b)


def string_similarity(a: Optional[str], b: Optional[str]) -> float:
    """1 - distance / longer length; 0.0 if either string is empty."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _as_date(value: Any) -> Optional[date]:
    normalized = normalize_date(value)
    if normalized == UNKNOWN:
        return None
    return date.fromisoformat(normalized)


def _as_amount(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return None
    return abs(amount) if amount.is_finite() else None


def score_date(d1: Any, d2: Any) -> tuple[MatchScore, Optional[str]]:
    first, second = _as_date(d1), _as_date(d2)
    if first is None or second is None:
        return MatchScore("date", 0, MAX_DATE_POINTS, "unknown date"), None
    days = abs((first - second).days)
    detail = "1 day" if days == 1 else f"{days} days"
    for limit, points in DATE_POINTS:
        if days <= limit:
            if limit == 0:
                return MatchScore("date", points, MAX_DATE_POINTS, detail), "Exact date match"
            unit = "day" if limit == 1 else "days"
            return MatchScore("date", points, MAX_DATE_POINTS, detail), f"Date within {limit} {unit}"
    return MatchScore("date", 0, MAX_DATE_POINTS, detail), None


def score_amount(a1: Any, a2: Any) -> tuple[MatchScore, Optional[str]]:
    first, second = _as_amount(a1), _as_amount(a2)
    if first is None or second is None:
        return MatchScore("amount", 0, 40, "unknown amount"), None
    diff = abs(first - second)
    if diff == 0:
        return MatchScore("amount", EXACT_AMOUNT_POINTS, 40, "exact"), "Exact amount match"
    pct = diff / max(first, second, Decimal("0.01"))
    detail = f"{float(pct) * 100:.2f}% apart"
    for limit, points in AMOUNT_POINTS:
        if pct <= limit:
            return MatchScore("amount", points, 40, detail), f"Amount within {int(limit * 100)}%"
    return MatchScore("amount", 0, 40, detail), None


def score_description(
    desc1: Optional[str], desc2: Optional[str], max_length: int = 500
) -> tuple[MatchScore, Optional[str]]:
    similarity = string_similarity(
        normalize_description(desc1)[:max_length],
        normalize_description(desc2)[:max_length],
    )
    points = _round_half_up(similarity * DESCRIPTION_POINTS)
    percent = _round_half_up(similarity * 100)
    reason = None
    if similarity >= 0.8:
        reason = f"Description highly similar ({percent}%)"
    elif similarity >= 0.5:
        reason = f"Description partially similar ({percent}%)"
    return MatchScore("description", points, DESCRIPTION_POINTS, f"{percent}%"), reason


def score_merchant(
    m1: Optional[str], m2: Optional[str], threshold: float = 0.8
) -> tuple[MatchScore, Optional[str]]:
    if not m1 or not m2:
        return MatchScore("merchant", 0, MERCHANT_BONUS, "missing"), None
    similarity = string_similarity(m1.lower(), m2.lower())
    if similarity >= threshold:
        return MatchScore("merchant", MERCHANT_BONUS, MERCHANT_BONUS, f"{similarity:.2f}"), "Merchant names match"
    return MatchScore("merchant", 0, MERCHANT_BONUS, f"{similarity:.2f}"), None


class TransactionMatcher:
    """Scores candidate pairs and maps scores onto recommendations.

    Works on transaction objects or plain dicts carrying date, amount,
    description and (optionally) merchant.
    """

    def __init__(
        self,
        thresholds: Optional[MatchThresholds] = None,
        merchant_similarity_threshold: float = 0.8,
        max_description_length: int = 500,
    ) -> None:
        self.thresholds = thresholds or MatchThresholds()
        self.merchant_similarity_threshold = merchant_similarity_threshold
        self.max_description_length = max_description_length

    @classmethod
    def from_config(
        cls, matching: MatchingConfig, parser: Optional[ParserConfig] = None
    ) -> TransactionMatcher:
        return cls(
            thresholds=MatchThresholds.from_config(matching),
            merchant_similarity_threshold=matching.merchant_similarity_threshold,
            max_description_length=parser.max_description_length if parser else 500,
        )

    def score(self, t1: Any, t2: Any) -> MatchResult:
        """Compute the match score and the reasons behind it."""
        results = [
            score_date(transaction_field(t1, "date"), transaction_field(t2, "date")),
            score_amount(transaction_field(t1, "amount"), transaction_field(t2, "amount")),
            score_description(
                transaction_field(t1, "description"),
                transaction_field(t2, "description"),
                self.max_description_length,
            ),
            score_merchant(
                transaction_field(t1, "merchant"),
                transaction_field(t2, "merchant"),
                self.merchant_similarity_threshold,
            ),
        ]
        signals = [signal for signal, _ in results]
        reasons = [reason for _, reason in results if reason]
        total = sum(s.points for s in signals)
        return MatchResult(score=max(0, min(MAX_SCORE, total)), signals=signals, reasons=reasons)

    def __call__(self, t1: Any, t2: Any) -> MatchResult:
        return self.score(t1, t2)

    def recommend(self, score: int) -> Recommendation:
        return get_match_recommendation(score, self.thresholds)


def calculate_match_score(t1: Any, t2: Any) -> MatchResult:
    """Score a pair with default settings."""
    return TransactionMatcher().score(t1, t2)


def get_match_recommendation(
    score: float, thresholds: Optional[MatchThresholds] = None
) -> Recommendation:
    """Map a score onto AUTO_MERGE / REVIEW_NEEDED / NO_MATCH."""
    thresholds = thresholds or MatchThresholds()
    if score >= thresholds.auto_merge:
        return Recommendation.AUTO_MERGE
    if score >= thresholds.review:
        return Recommendation.REVIEW_NEEDED
    return Recommendation.NO_MATCH
