"""Auto-confirm gate.

A suggested link is confirmed only when its score clears the topic minimum
and every strict check on its diagnostic passes. The checks are stricter than
scoring: a one-day settle offset scores well but never auto-confirms.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from market_linker.engine.diagnostics import (
    TIER_STRONG,
    CryptoDailyDiagnostic,
    Diagnostic,
    EventDiagnostic,
    IntradayDiagnostic,
    MacroDiagnostic,
    SportsDiagnostic,
    parse_reason,
)
from market_linker.engine.extraction import UNKNOWN, WIN, extract_comparator, extract_numbers
from market_linker.engine.scoring import STRONG_NUMBER_MIN, numbers_close
from market_linker.engine.signals.crypto import DAY_TYPES, PERIOD_TYPES
from market_linker.engine.signals.macro import KIND_EXACT
from market_linker.engine.signals.sports import MONEYLINE
from market_linker.models import MarketLink

# Sub-scores are persisted with two decimals.
EXACT_MIN = 0.99

CRYPTO_TEXT_MIN = 0.12
INTRADAY_TEXT_MIN = 0.15
MACRO_ENTITY_MIN = 0.50
MACRO_PERIOD_MIN = 0.22
TEXT_MIN = 0.10
CRYPTO_DATE_MIN = 0.90
COMMODITY_COMPARATOR_MIN = 0.8
COMMODITY_NUMBER_MIN = 0.8
GEO_OVERLAP_MIN = 0.8


@dataclass(frozen=True)
class RuleResult:
    rule_id: str
    passed: bool
    detail: str = ""


@dataclass
class SafeEvaluation:
    topic: str
    score: float
    results: List[RuleResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return bool(self.results) and all(r.passed for r in self.results)

    @property
    def failed_rules(self) -> List[str]:
        return [r.rule_id for r in self.results if not r.passed]

    @property
    def passed_rules(self) -> List[str]:
        return [r.rule_id for r in self.results if r.passed]


def _check(rule_id: str, ok: bool, detail: str) -> RuleResult:
    return RuleResult(rule_id=rule_id, passed=ok, detail=detail)


def _grammar_mismatch(rule_ids: Sequence[str], diagnostic: Diagnostic) -> List[RuleResult]:
    kind = type(diagnostic).__name__
    return [_check(rule_id, False, f"reason is {kind}") for rule_id in rule_ids]


def _count(note: str) -> int:
    return int(note) if note.isdigit() else 0


def title_comparator(title: str) -> Optional[str]:
    comparator = extract_comparator(title)
    return None if comparator in (UNKNOWN, WIN) else comparator


def numbers_compatible(left: Sequence[float], right: Sequence[float]) -> RuleResult:
    if not left and not right:
        return _check("CD_NUMBERS", True, "no numbers")
    if not left or not right:
        return _check("CD_NUMBERS", False, "missing numbers")
    for a in left:
        for b in right:
            if numbers_close(a, b):
                return _check("CD_NUMBERS", True, f"match {a:g}~{b:g}")
    shown_left = ",".join(f"{n:g}" for n in left)
    shown_right = ",".join(f"{n:g}" for n in right)
    return _check("CD_NUMBERS", False, f"no match {shown_left} vs {shown_right}")


def crypto_daily_rules(link: MarketLink, diagnostic: Diagnostic) -> List[RuleResult]:
    if not isinstance(diagnostic, CryptoDailyDiagnostic):
        return _grammar_mismatch(CRYPTO_DAILY_RULES, diagnostic)
    d = diagnostic
    date_types = d.date_type.split("/")
    left_cmp = title_comparator(link.left_title)
    right_cmp = title_comparator(link.right_title)
    return [
        _check("CD_ENTITY_PRESENT", bool(d.entity), f"entity={d.entity or 'missing'}"),
        _check(
            "CD_DATETYPE_VALID",
            all(t in VALID_CRYPTO_DATE_TYPES for t in date_types),
            f"dateType={d.date_type}",
        ),
        _check("CD_DATE_EXACT", d.days == 0, f"days={d.days if d.days is not None else 'period'}"),
        _check(
            "CD_COMPARATOR",
            left_cmp is None or right_cmp is None or left_cmp == right_cmp,
            f"{left_cmp or 'none'}/{right_cmp or 'none'}",
        ),
        numbers_compatible(extract_numbers(link.left_title), extract_numbers(link.right_title)),
        _check("CD_TEXT_SANITY", d.text_score >= CRYPTO_TEXT_MIN, f"text={d.text_score:.2f}"),
        _check("CD_DATE_SCORE", d.date_score >= CRYPTO_DATE_MIN, f"date={d.date_score:.2f}"),
    ]


def crypto_intraday_rules(link: MarketLink, diagnostic: Diagnostic) -> List[RuleResult]:
    if not isinstance(diagnostic, IntradayDiagnostic):
        return _grammar_mismatch(INTRADAY_RULES, diagnostic)
    d = diagnostic
    directions_known = d.left_direction != "none" and d.right_direction != "none"
    return [
        _check("CI_ENTITY_PRESENT", bool(d.entity), f"entity={d.entity or 'missing'}"),
        _check("CI_BUCKET_PRESENT", bool(d.bucket), f"bucket={d.bucket or 'missing'}"),
        _check(
            "CI_DIRECTION",
            not directions_known or d.direction_matches,
            f"{d.left_direction}/{d.right_direction}",
        ),
        _check("CI_TEXT_SANITY", d.text_score >= INTRADAY_TEXT_MIN, f"text={d.text_score:.2f}"),
    ]


def macro_rules(link: MarketLink, diagnostic: Diagnostic) -> List[RuleResult]:
    if not isinstance(diagnostic, MacroDiagnostic):
        return _grammar_mismatch(MACRO_RULES, diagnostic)
    d = diagnostic
    return [
        _check("MA_ENTITY_MATCH", d.entity_score >= MACRO_ENTITY_MIN, f"me={d.entity_score:.2f}"),
        _check("MA_PERIOD_KIND", d.period_kind == KIND_EXACT, f"kind={d.period_kind}"),
        _check("MA_PERIOD_SCORE", d.period_score >= MACRO_PERIOD_MIN, f"per={d.period_score:.2f}"),
        _check("MA_TEXT_SANITY", d.text_score >= TEXT_MIN, f"txt={d.text_score:.2f}"),
        _check("MA_TIER_STRONG", d.tier == TIER_STRONG, f"tier={d.tier}"),
    ]


def sports_rules(link: MarketLink, diagnostic: Diagnostic) -> List[RuleResult]:
    if not isinstance(diagnostic, SportsDiagnostic):
        return _grammar_mismatch(SPORTS_RULES, diagnostic)
    d = diagnostic
    return [
        _check("SP_MONEYLINE_ONLY", d.market_type == MONEYLINE, f"type={d.market_type}"),
        _check("SP_EVENT_EXACT", d.event_score >= EXACT_MIN, f"event={d.event_score:.2f}"),
        _check("SP_TEXT_SANITY", d.text_score >= TEXT_MIN, f"text={d.text_score:.2f}"),
        _check("SP_TIER_STRONG", d.tier == TIER_STRONG, f"tier={d.tier}"),
    ]


def event_rules(link: MarketLink, diagnostic: Diagnostic) -> List[RuleResult]:
    if not isinstance(diagnostic, EventDiagnostic):
        return _grammar_mismatch(EVENT_RULES, diagnostic)
    d = diagnostic
    return [
        _check("EV_DATE_EXACT", d.date_score >= EXACT_MIN, f"date={d.date_score:.2f}[{d.date_kind}]"),
        _check("EV_NUMBERS", d.number_score >= STRONG_NUMBER_MIN, f"num={d.number_score:.2f}"),
        _check("EV_TEXT_SANITY", d.text_score >= TEXT_MIN, f"text={d.text_score:.2f}"),
        _check("EV_TIER_STRONG", d.tier == TIER_STRONG, f"tier={d.tier}"),
    ]


def commodities_rules(link: MarketLink, diagnostic: Diagnostic) -> List[RuleResult]:
    if not isinstance(diagnostic, EventDiagnostic):
        return _grammar_mismatch(COMMODITIES_RULES, diagnostic)
    d = diagnostic
    comparator, sides, _ = d.scored_detail("cmp")
    return [
        _check("CO_DATE_EXACT", d.date_score >= EXACT_MIN, f"date={d.date_score:.2f}[{d.date_kind}]"),
        _check("CO_COMPARATOR", comparator >= COMMODITY_COMPARATOR_MIN, f"cmp={comparator:.2f}[{sides or 'none'}]"),
        _check("CO_NUMBERS", d.number_score >= COMMODITY_NUMBER_MIN, f"num={d.number_score:.2f}"),
    ]


def geopolitics_rules(link: MarketLink, diagnostic: Diagnostic) -> List[RuleResult]:
    if not isinstance(diagnostic, EventDiagnostic):
        return _grammar_mismatch(GEOPOLITICS_RULES, diagnostic)
    d = diagnostic
    left_region, _, right_region = d.details.get("reg", "").partition("/")
    countries, _, shared_countries = d.scored_detail("cty")
    _, events, _ = d.scored_detail("event")
    left_event, _, right_event = events.partition("/")
    _, _, shared_actors = d.scored_detail("act")
    anchored = _count(shared_actors) >= 1 or (
        d.entity_score >= GEO_OVERLAP_MIN and countries >= GEO_OVERLAP_MIN
    )
    return [
        _check(
            "GP_REGION_SAME",
            left_region == right_region and left_region not in ("", UNKNOWN),
            f"reg={left_region or 'none'}/{right_region or 'none'}",
        ),
        _check("GP_COUNTRY_OVERLAP", _count(shared_countries) >= 1, f"shared={shared_countries or 0}"),
        _check("GP_EVENT_SAME", bool(left_event) and left_event == right_event, f"event={events or 'none'}"),
        _check("GP_ANCHOR", anchored, f"actors={shared_actors or 0} region={d.entity_score:.2f} cty={countries:.2f}"),
    ]


def evaluate_safe_rules(link: MarketLink, topic: str, min_score: Optional[float] = None) -> SafeEvaluation:
    evaluation = SafeEvaluation(topic=topic, score=link.score)
    evaluator = TOPIC_RULES.get(topic)
    if evaluator is None:
        evaluation.results.append(_check("UNKNOWN_TOPIC", False, f"unknown topic {topic}"))
        return evaluation

    minimum = min_score if min_score is not None else DEFAULT_MIN_SCORES[topic]
    if link.score < minimum:
        evaluation.results.append(_check("SCORE_MINIMUM", False, f"score={link.score:.3f} < {minimum}"))
        return evaluation

    evaluation.results.extend(evaluator(link, parse_reason(link.reason)))
    return evaluation


def format_evaluation(evaluation: SafeEvaluation) -> str:
    status = "PASS" if evaluation.passed else "FAIL"
    lines = [f"{status} [{evaluation.topic}] score={evaluation.score:.3f}"]
    for r in evaluation.results:
        mark = "+" if r.passed else "-"
        lines.append(f"  {mark} {r.rule_id}: {r.detail}")
    return "\n".join(lines)


VALID_CRYPTO_DATE_TYPES = frozenset(DAY_TYPES + PERIOD_TYPES)

CRYPTO_DAILY_RULES = (
    "CD_ENTITY_PRESENT",
    "CD_DATETYPE_VALID",
    "CD_DATE_EXACT",
    "CD_COMPARATOR",
    "CD_NUMBERS",
    "CD_TEXT_SANITY",
    "CD_DATE_SCORE",
)
INTRADAY_RULES = ("CI_ENTITY_PRESENT", "CI_BUCKET_PRESENT", "CI_DIRECTION", "CI_TEXT_SANITY")
MACRO_RULES = ("MA_ENTITY_MATCH", "MA_PERIOD_KIND", "MA_PERIOD_SCORE", "MA_TEXT_SANITY", "MA_TIER_STRONG")
SPORTS_RULES = ("SP_MONEYLINE_ONLY", "SP_EVENT_EXACT", "SP_TEXT_SANITY", "SP_TIER_STRONG")
EVENT_RULES = ("EV_DATE_EXACT", "EV_NUMBERS", "EV_TEXT_SANITY", "EV_TIER_STRONG")
COMMODITIES_RULES = ("CO_DATE_EXACT", "CO_COMPARATOR", "CO_NUMBERS")
GEOPOLITICS_RULES = ("GP_REGION_SAME", "GP_COUNTRY_OVERLAP", "GP_EVENT_SAME", "GP_ANCHOR")

DEFAULT_MIN_SCORES: Dict[str, float] = {
    "crypto_daily": 0.88,
    "crypto_intraday": 0.85,
    "macro": 0.90,
    "rates": 0.90,
    "elections": 0.88,
    "finance": 0.88,
    "climate": 0.85,
    "sports": 0.90,
    "commodities": 0.90,
    "geopolitics": 0.90,
}

TOPIC_RULES: Dict[str, Callable[[MarketLink, Diagnostic], List[RuleResult]]] = {
    "crypto_daily": crypto_daily_rules,
    "crypto_intraday": crypto_intraday_rules,
    "macro": macro_rules,
    "sports": sports_rules,
    "climate": event_rules,
    "elections": event_rules,
    "rates": event_rules,
    "finance": event_rules,
    "commodities": commodities_rules,
    "geopolitics": geopolitics_rules,
}
