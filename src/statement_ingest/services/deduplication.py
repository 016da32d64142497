"""Transaction deduplication across two independently captured sets.

Set A is typically statement-parser output (source PDF), set B manually
entered or CSV-imported records. Every pair is scored by the match scorer;
a matching strategy picks which pairs to consider matched, and each matched
pair is routed by score:

- score >= auto-merge threshold: merged automatically into one record
- score >= review threshold: surfaced for human review, no merge
- otherwise: both elements stay unmatched

Every input element ends up in exactly one of auto_merged, needs_review,
pdf_only or manual_only. Nothing is dropped.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Optional

from statement_ingest.config import ConfidenceDefaults
from statement_ingest.matching.engine import MatchResult, MatchThresholds, TransactionMatcher
from statement_ingest.schemas.transaction import StagedTransaction, TransactionSource

if TYPE_CHECKING:
    from statement_ingest.config import Config

logger = logging.getLogger(__name__)

Scorer = Callable[[Any, Any], MatchResult]


# ============================================================================
# Result types
# ============================================================================


@dataclass
class MergedPair:
    """Confident match, resolved into one merged record."""

    pdf: StagedTransaction
    manual: StagedTransaction
    merged: StagedTransaction
    score: int
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "pdf": self.pdf.to_dict(),
            "manual": self.manual.to_dict(),
            "merged": self.merged.to_dict(),
            "score": self.score,
            "reasons": list(self.reasons),
        }


@dataclass
class ReviewPair:
    """Plausible match left for a human to resolve."""

    pdf: StagedTransaction
    manual: StagedTransaction
    score: int
    reasons: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "pdf": self.pdf.to_dict(),
            "manual": self.manual.to_dict(),
            "score": self.score,
            "reasons": list(self.reasons),
        }


@dataclass
class DeduplicationResult:
    """Four-way partition of both input sets plus summary counts."""

    auto_merged: list[MergedPair] = field(default_factory=list)
    needs_review: list[ReviewPair] = field(default_factory=list)
    pdf_only: list[StagedTransaction] = field(default_factory=list)
    manual_only: list[StagedTransaction] = field(default_factory=list)
    total_pdf: int = 0
    total_manual: int = 0
    duplicates_found: int = 0

    @property
    def matched_count(self) -> int:
        return len(self.auto_merged) + len(self.needs_review)

    @property
    def is_exhaustive(self) -> bool:
        """True if every input element is accounted for exactly once."""
        return (
            len(self.pdf_only) + self.matched_count == self.total_pdf
            and len(self.manual_only) + self.matched_count == self.total_manual
        )

    def to_dict(self) -> dict:
        """Serialize to dictionary for JSON output."""
        return {
            "auto_merged": [p.to_dict() for p in self.auto_merged],
            "needs_review": [p.to_dict() for p in self.needs_review],
            "pdf_only": [t.to_dict() for t in self.pdf_only],
            "manual_only": [t.to_dict() for t in self.manual_only],
            "total_pdf": self.total_pdf,
            "total_manual": self.total_manual,
            "duplicates_found": self.duplicates_found,
        }


# ============================================================================
# Matching strategies
# ============================================================================


@dataclass(frozen=True)
class CandidateMatch:
    """A chosen pair: indices into set A and set B plus its score."""

    a_index: int
    b_index: int
    result: MatchResult


class MatchingStrategy(ABC):
    """Policy deciding which scored pairs count as matched."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def match(
        self,
        set_a: Sequence[Any],
        set_b: Sequence[Any],
        scorer: Scorer,
        min_score: int,
    ) -> list[CandidateMatch]:
        """Return disjoint pairs, each scoring at least min_score."""
        pass


class GreedyMatchingStrategy(MatchingStrategy):
    """Order-dependent greedy matching.

    Each element of set A, in order, claims the best-scoring unclaimed
    element of set B (first one wins on ties). An earlier element may take
    a partner a later element would have matched better.
    """

    @property
    def name(self) -> str:
        return "greedy"

    def match(self, set_a, set_b, scorer, min_score):
        claimed: set[int] = set()
        matches: list[CandidateMatch] = []

        for i, a in enumerate(set_a):
            best: Optional[CandidateMatch] = None
            for j, b in enumerate(set_b):
                if j in claimed:
                    continue
                result = scorer(a, b)
                if result.score >= min_score and (best is None or result.score > best.result.score):
                    best = CandidateMatch(i, j, result)
            if best is not None:
                claimed.add(best.b_index)
                matches.append(best)

        return matches


class OptimalMatchingStrategy(MatchingStrategy):
    """Maximum-total-score assignment over eligible pairs (Hungarian algorithm).

    Pairs scoring below min_score carry zero weight and are never reported.
    """

    @property
    def name(self) -> str:
        return "optimal"

    def match(self, set_a, set_b, scorer, min_score):
        if not set_a or not set_b:
            return []

        results = [[scorer(a, b) for b in set_b] for a in set_a]
        weights = [
            [r.score if r.score >= min_score else 0 for r in row]
            for row in results
        ]

        transposed = len(set_a) > len(set_b)
        if transposed:
            weights = [list(col) for col in zip(*weights)]

        matches = []
        for row, col in _max_weight_assignment(weights):
            i, j = (col, row) if transposed else (row, col)
            if results[i][j].score >= min_score:
                matches.append(CandidateMatch(i, j, results[i][j]))
        matches.sort(key=lambda m: m.a_index)
        return matches


def _max_weight_assignment(weights: list[list[int]]) -> list[tuple[int, int]]:
    """Assign each row to a distinct column maximizing total weight.

    Requires len(rows) <= len(columns). Shortest augmenting path variant
    with row/column potentials, O(n^2 m).
    """
    n, m = len(weights), len(weights[0])
    inf = float("inf")
    # 1-indexed; cost is negated weight
    u = [0.0] * (n + 1)
    v = [0.0] * (m + 1)
    owner = [0] * (m + 1)  # owner[j] = row assigned to column j
    way = [0] * (m + 1)

    for i in range(1, n + 1):
        owner[0] = i
        j0 = 0
        min_v = [inf] * (m + 1)
        used = [False] * (m + 1)
        while True:
            used[j0] = True
            i0 = owner[j0]
            delta = inf
            j1 = 0
            for j in range(1, m + 1):
                if used[j]:
                    continue
                cur = -weights[i0 - 1][j - 1] - u[i0] - v[j]
                if cur < min_v[j]:
                    min_v[j] = cur
                    way[j] = j0
                if min_v[j] < delta:
                    delta = min_v[j]
                    j1 = j
            for j in range(m + 1):
                if used[j]:
                    u[owner[j]] += delta
                    v[j] -= delta
                else:
                    min_v[j] -= delta
            j0 = j1
            if owner[j0] == 0:
                break
        while True:
            j1 = way[j0]
            owner[j0] = owner[j1]
            j0 = j1
            if j0 == 0:
                break

    return [(owner[j] - 1, j - 1) for j in range(1, m + 1) if owner[j]]


STRATEGIES: dict[str, type[MatchingStrategy]] = {
    "greedy": GreedyMatchingStrategy,
    "optimal": OptimalMatchingStrategy,
}


def get_strategy(name: str) -> MatchingStrategy:
    """Look up a matching strategy by name.

    Raises:
        ValueError: If the name is not a known strategy
    """
    try:
        return STRATEGIES[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown matching strategy: {name}") from None


# ============================================================================
# Merge policy
# ============================================================================


def merge_transactions(
    first: StagedTransaction,
    second: StagedTransaction,
    confidence_defaults: Optional[ConfidenceDefaults] = None,
) -> StagedTransaction:
    """Synthesize one record from a confidently matched pair.

    - date, amount and type come from the statement (PDF) side; if neither
      or both sides are PDF, from the first argument
    - description: the longer one (the PDF side on ties)
    - category: from the side with the higher declared confidence (PDF side
      on ties), falling back to the other side if that one has none
    - confidence: the higher of the two
    """
    defaults = confidence_defaults or ConfidenceDefaults()
    if second.source is TransactionSource.PDF and first.source is not TransactionSource.PDF:
        primary, other = second, first
    else:
        primary, other = first, second

    primary_conf = primary.confidence if primary.confidence is not None else defaults.for_source(primary.source)
    other_conf = other.confidence if other.confidence is not None else defaults.for_source(other.source)

    description = (
        primary.description
        if len(primary.description or "") >= len(other.description or "")
        else other.description
    )
    if primary_conf >= other_conf:
        category = primary.category or other.category
    else:
        category = other.category or primary.category

    return replace(
        primary,
        description=description,
        category=category,
        merchant=primary.merchant or other.merchant,
        reference_number=primary.reference_number or other.reference_number,
        raw_text=other.raw_text or primary.raw_text,
        confidence=max(primary_conf, other_conf),
    )


# ============================================================================
# Engine
# ============================================================================


def as_staged_transactions(
    records: Sequence[StagedTransaction | dict], default_source: TransactionSource
) -> list[StagedTransaction]:
    """Accept staged transactions or their dict form (as produced by to_dict).

    Dicts without a "source" key get default_source.

    Raises:
        ValueError: If a dict cannot be interpreted as a transaction
        KeyError: If a dict lacks date or amount
    """
    return [
        StagedTransaction.from_dict({"source": default_source.value, **record})
        if isinstance(record, dict)
        else record
        for record in records
    ]


class DeduplicationEngine:
    """Partitions two transaction sets into merged / review / unique.

    Usage:
        engine = DeduplicationEngine.from_config(config)
        result = engine.deduplicate(pdf_transactions, manual_transactions)
    """

    def __init__(
        self,
        scorer: Optional[Scorer] = None,
        strategy: Optional[MatchingStrategy] = None,
        thresholds: Optional[MatchThresholds] = None,
        confidence_defaults: Optional[ConfidenceDefaults] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            scorer: Callable scoring a pair; defaults to TransactionMatcher.
            strategy: Pair selection policy; defaults to greedy.
            thresholds: Auto-merge / review thresholds.
            confidence_defaults: Per-source confidence used when a record has none.
        """
        self.thresholds = thresholds or MatchThresholds()
        self.scorer = scorer or TransactionMatcher(self.thresholds)
        self.strategy = strategy or GreedyMatchingStrategy()
        self.confidence_defaults = confidence_defaults or ConfidenceDefaults()

    @classmethod
    def from_config(cls, config: Config, strategy: Optional[str] = None) -> DeduplicationEngine:
        thresholds = MatchThresholds.from_config(config.matching)
        return cls(
            scorer=TransactionMatcher.from_config(config.matching, config.parser),
            strategy=get_strategy(strategy or config.matching.strategy),
            thresholds=thresholds,
            confidence_defaults=config.confidence,
        )

    def deduplicate(
        self,
        set_a: Sequence[StagedTransaction | dict],
        set_b: Sequence[StagedTransaction | dict],
    ) -> DeduplicationResult:
        """Match set A (statement side) against set B (manual side).

        Dict records are converted first, defaulting to source PDF in set A
        and MANUAL in set B.
        """
        set_a = as_staged_transactions(set_a, TransactionSource.PDF)
        set_b = as_staged_transactions(set_b, TransactionSource.MANUAL)
        result = DeduplicationResult(total_pdf=len(set_a), total_manual=len(set_b))
        matches = self.strategy.match(set_a, set_b, self.scorer, self.thresholds.review)

        matched_a: set[int] = set()
        matched_b: set[int] = set()
        for match in matches:
            a, b = set_a[match.a_index], set_b[match.b_index]
            matched_a.add(match.a_index)
            matched_b.add(match.b_index)
            score = match.result.score

            if score >= self.thresholds.auto_merge:
                merged = merge_transactions(a, b, self.confidence_defaults)
                result.auto_merged.append(
                    MergedPair(pdf=a, manual=b, merged=merged, score=score, reasons=list(match.result.reasons))
                )
                result.duplicates_found += 1
                logger.debug("Auto-merged (score %d): %s <-> %s", score, a.description, b.description)
            else:
                result.needs_review.append(
                    ReviewPair(pdf=a, manual=b, score=score, reasons=list(match.result.reasons))
                )
                logger.debug("Needs review (score %d): %s <-> %s", score, a.description, b.description)

        result.pdf_only = [t for i, t in enumerate(set_a) if i not in matched_a]
        result.manual_only = [t for j, t in enumerate(set_b) if j not in matched_b]

        logger.info(
            "Deduplication (%s): %d auto-merged, %d need review, %d statement-only, %d manual-only",
            self.strategy.name,
            len(result.auto_merged),
            len(result.needs_review),
            len(result.pdf_only),
            len(result.manual_only),
        )
        return result


def deduplicate_transactions(
    set_a: Sequence[StagedTransaction | dict],
    set_b: Sequence[StagedTransaction | dict],
    scorer: Optional[Scorer] = None,
    strategy: Optional[MatchingStrategy] = None,
    thresholds: Optional[MatchThresholds] = None,
) -> DeduplicationResult:
    """Deduplicate two sets with default settings (greedy, 85/60)."""
    engine = DeduplicationEngine(scorer=scorer, strategy=strategy, thresholds=thresholds)
    return engine.deduplicate(set_a, set_b)
