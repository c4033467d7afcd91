"""Auto-reject gate.

Conservative: a link is rejected only on clear defects, and never before it
has existed long enough to be re-scored by a later run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from market_linker.engine.diagnostics import (
    FLAG_DATE_GATE,
    FLAG_ENTITY_MISMATCH,
    FLAG_TEXT_GATE,
    EventDiagnostic,
    MacroDiagnostic,
    parse_reason,
)
from market_linker.engine.extraction import as_utc
from market_linker.engine.signals.macro import KIND_NONE
from market_linker.models import MarketLink

TEXT_SANITY_FLOOR = 0.05
DEFAULT_FLOOR = 0.50

INTRADAY = "intraday"
DAILY = "daily"


@dataclass(frozen=True)
class RejectRuleResult:
    rule_id: str
    reject: bool
    detail: str = ""


@dataclass
class RejectEvaluation:
    topic: str
    score: float
    age_hours: float
    results: List[RejectRuleResult] = field(default_factory=list)

    @property
    def reject(self) -> bool:
        return any(r.reject for r in self.results)

    @property
    def rejection_reasons(self) -> List[str]:
        return [r.rule_id for r in self.results if r.reject]


def link_age_hours(link: MarketLink, now: Optional[datetime] = None) -> float:
    created = as_utc(link.created_at)
    if created is None:
        return float("inf")
    current = as_utc(now) if now else datetime.now(timezone.utc)
    return (current - created).total_seconds() / 3600.0


def title_market_type(title: str) -> Optional[str]:
    if any(re.search(p, title or "", re.I) for p in INTRADAY_TITLE_PATTERNS):
        return INTRADAY
    if any(re.search(p, title or "", re.I) for p in DAILY_TITLE_PATTERNS):
        return DAILY
    return None


def incompatible_market_types(left_title: str, right_title: str) -> Tuple[bool, str, str]:
    """Only a confident intraday-vs-daily reading on both sides counts."""
    left = title_market_type(left_title)
    right = title_market_type(right_title)
    incompatible = {left, right} == {INTRADAY, DAILY}
    return incompatible, left or "unknown", right or "unknown"


def evaluate_reject_rules(
    link: MarketLink,
    topic: Optional[str] = None,
    min_age_hours: float = 24.0,
    now: Optional[datetime] = None,
) -> RejectEvaluation:
    effective_topic = link.topic or topic or "all"
    age = link_age_hours(link, now)
    evaluation = RejectEvaluation(topic=effective_topic, score=link.score, age_hours=age)
    results = evaluation.results

    if age < min_age_hours:
        results.append(RejectRuleResult("AGE_TOO_FRESH", False, f"age={age:.1f}h < {min_age_hours:g}h"))
        return evaluation

    floor = HARD_FLOOR_SCORES.get(effective_topic, DEFAULT_FLOOR)
    results.append(
        RejectRuleResult(
            "SCORE_BELOW_FLOOR",
            link.score < floor,
            f"score={link.score:.3f} floor={floor} ({effective_topic})",
        )
    )

    diagnostic = parse_reason(link.reason)
    flags = diagnostic.flags

    if FLAG_ENTITY_MISMATCH in flags:
        results.append(RejectRuleResult("ENTITY_MISMATCH", True, "entity mismatch in reason"))

    incompatible, left_type, right_type = incompatible_market_types(link.left_title, link.right_title)
    if incompatible:
        results.append(RejectRuleResult("MARKET_TYPE_MISMATCH", True, f"{left_type} vs {right_type}"))

    if isinstance(diagnostic, EventDiagnostic) and "cmp" in diagnostic.details:
        comparator, sides, _ = diagnostic.scored_detail("cmp")
        if comparator == 0.0 and sides:
            results.append(RejectRuleResult("COMPARATOR_CONFLICT", True, f"opposite comparators {sides}"))

    days = diagnostic.day_diff
    if days is not None and days > 1:
        results.append(RejectRuleResult("DATE_MISMATCH_LARGE", True, f"day diff {days}"))
    elif isinstance(diagnostic, MacroDiagnostic) and diagnostic.period_kind == KIND_NONE:
        results.append(RejectRuleResult("DATE_MISMATCH_LARGE", True, "incompatible periods"))

    text = diagnostic.text
    if text is not None and text < TEXT_SANITY_FLOOR:
        results.append(RejectRuleResult("TEXT_SANITY_FLOOR", True, f"text={text:.2f} < {TEXT_SANITY_FLOOR}"))

    if FLAG_TEXT_GATE in flags:
        results.append(RejectRuleResult("TEXT_GATE_FAILED", True, "text gate failure in reason"))
    if FLAG_DATE_GATE in flags:
        results.append(RejectRuleResult("DATE_GATE_FAILED", True, "date gate failure in reason"))
    return evaluation


def format_reject_evaluation(evaluation: RejectEvaluation) -> str:
    status = "REJECT" if evaluation.reject else "KEEP"
    lines = [
        f"{status} [{evaluation.topic}] score={evaluation.score:.3f} age={evaluation.age_hours:.1f}h",
    ]
    for r in evaluation.results:
        mark = "x" if r.reject else "o"
        lines.append(f"  {mark} {r.rule_id}: {r.detail}")
    return "\n".join(lines)


HARD_FLOOR_SCORES: Dict[str, float] = {
    "crypto_daily": 0.55,
    "crypto_intraday": 0.65,
    "macro": 0.60,
    "sports": 0.55,
    "commodities": 0.50,
    "geopolitics": 0.55,
}

INTRADAY_TITLE_PATTERNS = (
    r"in (the )?next \d+ ?min",
    r"in (the )?next hour",
    r"\d{1,2}:\d{2}",
    r"\d+ ?minute",
    r"hourly",
    r"intraday",
)

DAILY_TITLE_PATTERNS = (
    r"on [a-z]+ \d+",
    r"by end of day",
    r"daily",
    r"close price",
    r"settle",
    r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\b.*\d{1,2}",
)
