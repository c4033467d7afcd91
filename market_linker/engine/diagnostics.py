"""Typed scoring diagnostics.

Each topic family records its sub-scores in a dataclass. Rule engines read
these records directly; ``to_reason()`` renders the stable key=value grammar
that is persisted on a link, and ``parse_reason()`` reads persisted strings
back so links written by earlier runs can be re-evaluated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple, Union

TIER_STRONG = "STRONG"
TIER_WEAK = "WEAK"

# Markers that free-text reasons may carry.
FLAG_ENTITY_MISMATCH = "ENTITY_MISMATCH"
FLAG_DATE_GATE = "DATE_GATE_FAILED"
FLAG_TEXT_GATE = "TEXT_GATE_FAILED"

# Separator between the diagnostic and tags appended by later pipeline steps.
TAG_SEPARATOR = " | "


class _Diagnostic:
    topic: str = ""

    @property
    def flags(self) -> FrozenSet[str]:
        return frozenset()

    @property
    def text(self) -> Optional[float]:
        return None

    @property
    def day_diff(self) -> Optional[int]:
        return None

    def to_reason(self) -> str:
        raise NotImplementedError


@dataclass
class CryptoDailyDiagnostic(_Diagnostic):
    entity: str
    date_type: str
    date_score: float
    days: Optional[int]
    number_score: float
    number_context: str
    text_score: float

    topic = "crypto_daily"

    @property
    def text(self) -> Optional[float]:
        return self.text_score

    @property
    def day_diff(self) -> Optional[int]:
        return self.days

    def to_reason(self) -> str:
        span = f"{self.days}d" if self.days is not None else "period"
        return (
            f"entity={self.entity} dateType={self.date_type} date={self.date_score:.2f}({span}) "
            f"num={self.number_score:.2f}[{self.number_context}] text={self.text_score:.2f}"
        )


@dataclass
class IntradayDiagnostic(_Diagnostic):
    entity: str
    bucket: str
    left_direction: str
    right_direction: str
    text_score: float

    topic = "crypto_intraday"

    @property
    def text(self) -> Optional[float]:
        return self.text_score

    @property
    def direction_matches(self) -> bool:
        return self.left_direction == self.right_direction

    def to_reason(self) -> str:
        return (
            f"entity={self.entity} bucket={self.bucket} "
            f"dir={self.left_direction}/{self.right_direction} text={self.text_score:.2f}"
        )


@dataclass
class MacroDiagnostic(_Diagnostic):
    tier: str
    entity_score: float
    period_score: float
    period_kind: str
    left_period: str
    right_period: str
    number_score: float
    text_score: float

    topic = "macro"

    @property
    def text(self) -> Optional[float]:
        return self.text_score

    def to_reason(self) -> str:
        return (
            f"MACRO: tier={self.tier} me={self.entity_score:.2f} "
            f"per={self.period_score:.2f}[{self.period_kind}]({self.left_period}/{self.right_period}) "
            f"num={self.number_score:.2f} txt={self.text_score:.2f}"
        )


@dataclass
class SportsDiagnostic(_Diagnostic):
    tier: str
    league: str
    event_score: float
    line_score: float
    side_score: float
    market_type: str
    text_score: float

    topic = "sports"

    @property
    def text(self) -> Optional[float]:
        return self.text_score

    def to_reason(self) -> str:
        return (
            f"SPORTS: tier={self.tier} league={self.league} event={self.event_score:.2f} "
            f"line={self.line_score:.2f} side={self.side_score:.2f} type={self.market_type} "
            f"text={self.text_score:.2f}"
        )


@dataclass
class EventDiagnostic(_Diagnostic):
    """Shared grammar for the event-style topics; each adds its own details."""

    family: str
    tier: str
    entity_score: float
    date_score: float
    date_kind: str
    number_score: float
    text_score: float
    details: Dict[str, str] = field(default_factory=dict)

    @property
    def topic(self) -> str:
        return self.family.lower()

    @property
    def text(self) -> Optional[float]:
        return self.text_score

    def scored_detail(self, key: str) -> Tuple[float, str, str]:
        """Score, bracketed tag and parenthesised note of a detail such as ``0.60[WAR/PEACE]`` or ``0.50(1)``."""
        return _score_with_tag(self.details.get(key))

    def to_reason(self) -> str:
        base = (
            f"{self.family.upper()}: tier={self.tier} entity={self.entity_score:.2f} "
            f"date={self.date_score:.2f}[{self.date_kind}] num={self.number_score:.2f} text={self.text_score:.2f}"
        )
        if not self.details:
            return base
        tail = " ".join(f"{k}={v}" for k, v in self.details.items())
        return f"{base} {tail}"


@dataclass
class FreeTextDiagnostic(_Diagnostic):
    raw: str
    markers: FrozenSet[str] = frozenset()
    mismatched: Optional[tuple] = None
    text_score: Optional[float] = None

    @property
    def flags(self) -> FrozenSet[str]:
        return self.markers

    @property
    def text(self) -> Optional[float]:
        return self.text_score

    def to_reason(self) -> str:
        return self.raw


Diagnostic = Union[
    CryptoDailyDiagnostic,
    IntradayDiagnostic,
    MacroDiagnostic,
    SportsDiagnostic,
    EventDiagnostic,
    FreeTextDiagnostic,
]


def _pairs(text: str) -> Dict[str, str]:
    return {m.group(1): m.group(2) for m in re.finditer(r"(\w+)=(\S+)", text)}


def _float(value: Optional[str]) -> float:
    try:
        return float(value) if value is not None else 0.0
    except ValueError:
        return 0.0


def _score_with_tag(value: Optional[str]) -> Tuple[float, str, str]:
    """Split ``0.60[tag](rest)`` or ``0.60(rest)`` into its parts."""
    match = re.match(r"^([\d.]+)(?:\[([^\]]*)\])?(?:\(([^)]*)\))?$", value or "")
    if not match:
        return 0.0, "", ""
    return float(match.group(1)), match.group(2) or "", match.group(3) or ""


def _free_text(raw: str) -> FreeTextDiagnostic:
    markers = set()
    mismatched = None
    mismatch = re.search(r"entity mismatch:?\s*(\S+)\s+vs\.?\s+(\S+)", raw, re.I)
    if mismatch:
        mismatched = (mismatch.group(1), mismatch.group(2))
    for flag, patterns in FREE_TEXT_MARKERS.items():
        if any(re.search(p, raw, re.I) for p in patterns):
            markers.add(flag)
    text = None
    for key in ("text", "txt", "jaccard", "jc"):
        found = re.search(rf"\b{key}=([\d.]+)", raw)
        if found:
            text = _float(found.group(1))
            break
    return FreeTextDiagnostic(raw=raw, markers=frozenset(markers), mismatched=mismatched, text_score=text)


def parse_reason(reason: Optional[str]) -> Diagnostic:
    """Read a persisted reason string back into its diagnostic record."""
    raw = (reason or "").split(TAG_SEPARATOR)[0].strip()
    pairs = _pairs(raw)

    if raw.startswith("MACRO:"):
        score, kind, periods = _score_with_tag(pairs.get("per"))
        left, _, right = periods.partition("/")
        return MacroDiagnostic(
            tier=pairs.get("tier", TIER_WEAK),
            entity_score=_float(pairs.get("me")),
            period_score=score,
            period_kind=kind or "none",
            left_period=left,
            right_period=right,
            number_score=_float(pairs.get("num")),
            text_score=_float(pairs.get("txt")),
        )

    if raw.startswith("SPORTS:"):
        return SportsDiagnostic(
            tier=pairs.get("tier", TIER_WEAK),
            league=pairs.get("league", "UNKNOWN"),
            event_score=_float(pairs.get("event")),
            line_score=_float(pairs.get("line")),
            side_score=_float(pairs.get("side")),
            market_type=pairs.get("type", "UNKNOWN"),
            text_score=_float(pairs.get("text")),
        )

    family = re.match(r"^([A-Z_]+): tier=", raw)
    if family:
        date_score, date_kind, _ = _score_with_tag(pairs.get("date"))
        known = {"tier", "entity", "date", "num", "text"}
        return EventDiagnostic(
            family=family.group(1),
            tier=pairs.get("tier", TIER_WEAK),
            entity_score=_float(pairs.get("entity")),
            date_score=date_score,
            date_kind=date_kind,
            number_score=_float(pairs.get("num")),
            text_score=_float(pairs.get("text")),
            details={k: v for k, v in pairs.items() if k not in known},
        )

    if "dateType" in pairs and "entity" in pairs:
        date_score, _, span = _score_with_tag(pairs.get("date"))
        num_score, ctx, _ = _score_with_tag(pairs.get("num"))
        days = re.match(r"^(\d+)d$", span)
        return CryptoDailyDiagnostic(
            entity=pairs["entity"],
            date_type=pairs["dateType"],
            date_score=date_score,
            days=int(days.group(1)) if days else None,
            number_score=num_score,
            number_context=ctx or "unknown",
            text_score=_float(pairs.get("text")),
        )

    if "bucket" in pairs and "dir" in pairs:
        left, _, right = pairs["dir"].partition("/")
        return IntradayDiagnostic(
            entity=pairs.get("entity", ""),
            bucket=pairs["bucket"],
            left_direction=left,
            right_direction=right,
            text_score=_float(pairs.get("text")),
        )

    return _free_text(raw)


def topic_from_diagnostic(diagnostic: Diagnostic) -> Optional[str]:
    return diagnostic.topic or None


FREE_TEXT_MARKERS: Dict[str, tuple] = {
    FLAG_ENTITY_MISMATCH: (
        r"entity mismatch",
        r"different entit",
        r"wrong entity",
        r"asset mismatch",
        r"ENTITY_GATE_FAIL",
        r"MACRO_GATE_FAIL.*entities missing",
    ),
    FLAG_DATE_GATE: (
        r"date gate",
        r"date mismatch",
        r"settle mismatch",
        r"different date",
        r"incompatible period",
        r"period mismatch",
        r"DATE_GATE_FAIL",
        r"PERIOD_GATE_FAIL.*incompatible",
    ),
    FLAG_TEXT_GATE: (
        r"text gate",
        r"TEXT_GATE_FAIL",
    ),
}
