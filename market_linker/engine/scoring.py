from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple, Union

from market_linker.engine.diagnostics import TIER_STRONG, TIER_WEAK, Diagnostic
from market_linker.engine.normalize import jaccard

# (max distance, score) breakpoints, checked in order; past the last one the score is the fallback.
GENERIC_DATE_DECAY: Tuple[Tuple[int, float], ...] = ((0, 1.0), (1, 0.95), (7, 0.8), (30, 0.5), (90, 0.2))
CRYPTO_DATE_DECAY: Tuple[Tuple[int, float], ...] = ((0, 1.0), (1, 0.6))

# Relative gap between non-overlapping thresholds -> score.
NUMBER_GAP_GRADES: Tuple[Tuple[float, float], ...] = ((0.01, 0.9), (0.05, 0.7), (0.10, 0.4))

STRONG_NUMBER_MIN = 0.6


@dataclass(frozen=True)
class Weights:
    entity: float
    date: float
    number: float
    text: float
    extra: float = 0.0

    def __post_init__(self) -> None:
        total = self.entity + self.date + self.number + self.text + self.extra
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"weights must sum to 1.0, got {total:.4f}")

    def combine(self, entity: float, date: float, number: float, text: float, extra: float = 0.0) -> float:
        return clamp_score(
            self.entity * entity + self.date * date + self.number * number + self.text * text + self.extra * extra
        )


@dataclass
class ScoreResult:
    score: float
    entity: float
    date: float
    number: float
    text: float
    tier: str
    diagnostic: Diagnostic
    algo_version: str = ""

    @property
    def reason(self) -> str:
        return self.diagnostic.to_reason()

    @property
    def is_strong(self) -> bool:
        return self.tier == TIER_STRONG


@dataclass(frozen=True)
class GateRejection:
    """A pair that is ineligible to score; distinct from a low score."""

    gate: str
    detail: str = ""

    @property
    def reason(self) -> str:
        return f"{self.gate}: {self.detail}" if self.detail else self.gate


ScoreOutcome = Union[ScoreResult, GateRejection]


def clamp_score(value: float) -> float:
    return round(max(0.0, min(1.0, value)), 6)


def decay_score(distance: Optional[int], table: Sequence[Tuple[int, float]], fallback: float = 0.0) -> float:
    if distance is None:
        return 0.0
    for limit, value in table:
        if distance <= limit:
            return value
    return fallback


def number_score(left: Iterable[float], right: Iterable[float], when_both_empty: float = 1.0) -> float:
    """1.0 when the two threshold ranges overlap, else graded by their relative gap."""
    a = sorted(left)
    b = sorted(right)
    if not a and not b:
        return when_both_empty
    if not a or not b:
        return 0.0
    if a[0] <= b[-1] and b[0] <= a[-1]:
        return 1.0
    gap = b[0] - a[-1] if a[-1] < b[0] else a[0] - b[-1]
    avg = (sum(a) / len(a) + sum(b) / len(b)) / 2.0
    if avg <= 0:
        return 0.0
    rel = gap / avg
    for limit, value in NUMBER_GAP_GRADES:
        if rel < limit:
            return value
    return 0.0


def text_score(left: Iterable[str], right: Iterable[str]) -> float:
    return jaccard(left, right)


def tier_for(date_exact: bool, number: float) -> str:
    return TIER_STRONG if date_exact and number >= STRONG_NUMBER_MIN else TIER_WEAK


def numbers_close(a: float, b: float, abs_tol: float = 1.0, rel_tol: float = 0.001) -> bool:
    diff = abs(a - b)
    return diff <= abs_tol or diff <= rel_tol * max(abs(a), abs(b))


def is_match(outcome: ScoreOutcome) -> bool:
    return isinstance(outcome, ScoreResult)
