"""Bracket series collapsing.

Venues list one market per threshold ("BTC above 90k", "above 95k", ...) for
the same entity and settle date. Matching a left market against every line of
such a ladder multiplies candidates without adding information, so candidates
are grouped by ``entity|date|comparator`` and only a few lines per group are
kept.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from market_linker.engine.extraction import BETWEEN, UNKNOWN
from market_linker.engine.pipelines.base import MarketSignal
from market_linker.engine.scoring import ScoreResult

BEST_SCORE = "best_score"
CENTRAL_THRESHOLD = "central_threshold"
STRATEGIES = (BEST_SCORE, CENTRAL_THRESHOLD)


@dataclass
class BracketCandidate:
    left: MarketSignal
    right: MarketSignal
    result: ScoreResult
    key: str = ""

    def __post_init__(self) -> None:
        if not self.key:
            sig = self.right.signal
            self.key = build_bracket_key(sig.entity, sig.date_key, sig.comparator)

    @property
    def score(self) -> float:
        return self.result.score

    @property
    def threshold(self) -> Optional[float]:
        numbers = self.right.signal.numbers
        if not numbers:
            return None
        if normalize_comparator(self.right.signal.comparator) == BETWEEN and len(numbers) >= 2:
            return (min(numbers) + max(numbers)) / 2.0
        return numbers[0]


@dataclass
class BracketGroup:
    key: str
    candidates: List[BracketCandidate] = field(default_factory=list)
    best_score: float = 0.0

    @property
    def entity(self) -> str:
        return self.key.split("|")[0]

    @property
    def comparator(self) -> str:
        return self.key.split("|")[-1]


@dataclass
class BracketStats:
    total_candidates: int = 0
    unique_groups: int = 0
    saved_candidates: int = 0
    dropped_by_group_limit: int = 0
    dropped_within_groups: int = 0

    def merge(self, other: "BracketStats") -> None:
        self.total_candidates += other.total_candidates
        self.unique_groups += other.unique_groups
        self.saved_candidates += other.saved_candidates
        self.dropped_by_group_limit += other.dropped_by_group_limit
        self.dropped_within_groups += other.dropped_within_groups

    def as_dict(self) -> Dict[str, int]:
        return {
            "total_candidates": self.total_candidates,
            "unique_groups": self.unique_groups,
            "saved_candidates": self.saved_candidates,
            "dropped_by_group_limit": self.dropped_by_group_limit,
            "dropped_within_groups": self.dropped_within_groups,
        }


@dataclass
class BracketAnalysis:
    total: int
    unique_groups: int
    sizes: Dict[int, int]
    largest: List[Tuple[str, int, List[float]]]


def normalize_comparator(comparator: Optional[str]) -> str:
    if not comparator:
        return UNKNOWN
    upper = comparator.upper()
    return COMPARATOR_ALIASES.get(upper, upper)


def build_bracket_key(entity: Optional[str], date_key: Optional[str], comparator: Optional[str]) -> str:
    return f"{entity or UNKNOWN}|{date_key or UNKNOWN}|{normalize_comparator(comparator)}"


def group_by_bracket(candidates: Iterable[BracketCandidate]) -> Dict[str, BracketGroup]:
    groups: Dict[str, BracketGroup] = {}
    for candidate in candidates:
        group = groups.get(candidate.key)
        if group is None:
            group = groups[candidate.key] = BracketGroup(key=candidate.key)
        group.candidates.append(candidate)
        group.best_score = max(group.best_score, candidate.score)
    return groups


def _best(candidates: Sequence[BracketCandidate]) -> BracketCandidate:
    return min(candidates, key=lambda c: (-c.score, c.right.market_id))


def select_representative(group: BracketGroup, strategy: str = BEST_SCORE) -> Optional[BracketCandidate]:
    """Pick the line that stands for the group.

    ``central_threshold`` takes the line whose threshold sits nearest the
    median of the group's thresholds; ties go to the higher score, then the
    lowest market id. Groups without thresholds fall back to the best score.
    """
    if not group.candidates:
        return None
    if strategy == BEST_SCORE or len(group.candidates) == 1:
        return _best(group.candidates)

    with_threshold = [(c.threshold, c) for c in group.candidates if c.threshold is not None]
    if not with_threshold:
        return _best(group.candidates)
    values = sorted(t for t, _ in with_threshold)
    median = values[len(values) // 2]
    return min(with_threshold, key=lambda tc: (abs(tc[0] - median), -tc[1].score, tc[1].right.market_id))[1]


def apply_bracket_grouping(
    candidates: Sequence[BracketCandidate],
    max_groups_per_left: int = 3,
    max_lines_per_group: int = 1,
    strategy: str = BEST_SCORE,
) -> Tuple[List[BracketCandidate], BracketStats]:
    """Collapse the candidates of one left market; keeps the best groups only."""
    stats = BracketStats(total_candidates=len(candidates))
    if not candidates:
        return [], stats

    groups = group_by_bracket(candidates)
    stats.unique_groups = len(groups)
    ordered = sorted(groups.values(), key=lambda g: (-g.best_score, g.key))
    kept_groups = ordered[:max_groups_per_left]
    for group in ordered[max_groups_per_left:]:
        stats.dropped_by_group_limit += len(group.candidates)

    kept: List[BracketCandidate] = []
    for group in kept_groups:
        if max_lines_per_group == 1:
            rep = select_representative(group, strategy)
            lines = [rep] if rep else []
        else:
            lines = sorted(group.candidates, key=lambda c: (-c.score, c.right.market_id))[:max_lines_per_group]
        kept.extend(lines)
        stats.saved_candidates += len(lines)
        stats.dropped_within_groups += len(group.candidates) - len(lines)
    return kept, stats


def analyze_brackets(candidates: Sequence[BracketCandidate], top_n: int = 10) -> BracketAnalysis:
    groups = group_by_bracket(candidates)
    sizes = Counter(len(g.candidates) for g in groups.values())
    largest = sorted(groups.values(), key=lambda g: (-len(g.candidates), g.key))[:top_n]
    return BracketAnalysis(
        total=len(candidates),
        unique_groups=len(groups),
        sizes=dict(sizes),
        largest=[
            (g.key, len(g.candidates), sorted(c.threshold for c in g.candidates[:10] if c.threshold is not None))
            for g in largest
        ],
    )


COMPARATOR_ALIASES = {
    "GE": "GE",
    "GT": "GE",
    "ABOVE": "GE",
    "OVER": "GE",
    "REACH": "GE",
    "HIT": "GE",
    "LE": "LE",
    "LT": "LE",
    "BELOW": "LE",
    "UNDER": "LE",
    "BETWEEN": "BETWEEN",
    "RANGE": "BETWEEN",
    "EQ": "EQ",
    "EQUAL": "EQ",
}
