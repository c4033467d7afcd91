from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

from market_linker.engine.extraction import (
    BETWEEN,
    DAY,
    MONTH,
    MONTH_PATTERN,
    UNKNOWN,
    ExtractedDate,
    SignalQuality,
    as_utc,
    extract_comparator,
    first_matching_kind,
    parse_month,
    penalized_confidence,
)
from market_linker.engine.normalize import tokenize
from market_linker.engine.signals.base import BaseSignal

CUT = "CUT"
HIKE = "HIKE"
HOLD = "HOLD"
PAUSE = "PAUSE"

CONFIDENCE_PENALTIES = {
    "unknown_bank": 0.4,
    "missing_meeting": 0.3,
    "unknown_action": 0.2,
    "missing_amount": 0.1,
}

_FULL_DATE_RE = re.compile(
    rf"\b({MONTH_PATTERN})\s+(\d{{1,2}})(?:st|nd|rd|th)?\s*,?\s*(20\d{{2}})\b", re.I
)
_MONTH_YEAR_RE = re.compile(rf"\b({MONTH_PATTERN})\s*,?\s*(20\d{{2}})\b", re.I)


@dataclass(frozen=True)
class TargetRange:
    low: float
    high: float


@dataclass
class RateSignal(BaseSignal):
    central_bank: str = UNKNOWN
    meeting_date: Optional[str] = None
    meeting_month: Optional[str] = None
    meeting_source: str = "none"
    action: str = UNKNOWN
    basis_points: Optional[int] = None
    target_range: Optional[TargetRange] = None
    year: Optional[int] = None
    action_count: Optional[int] = None
    title_tokens: List[str] = field(default_factory=list)


def extract_central_bank(title: str) -> str:
    return first_matching_kind(title, CENTRAL_BANK_KEYWORDS, default=UNKNOWN)


def extract_rate_action(title: str) -> str:
    """CUT, then HIKE, then HOLD, then PAUSE."""
    return first_matching_kind(title, RATE_ACTION_KEYWORDS, default=UNKNOWN)


def extract_basis_points(title: str) -> Optional[int]:
    lower = (title or "").lower()
    match = re.search(r"(\d+)\s*(?:bps?|basis\s*points?)\b", lower)
    if match:
        return int(match.group(1))
    match = re.search(r"(\d+(?:\.\d+)?)\s*%", lower)
    if match and float(match.group(1)) <= 1:
        return int(round(float(match.group(1)) * 100))
    if re.search(r"quarter[\s-]*point", lower):
        return 25
    if re.search(r"half[\s-]*point", lower):
        return 50
    return None


def _full_date(title: str) -> Optional[ExtractedDate]:
    match = _FULL_DATE_RE.search(title or "")
    if not match:
        return None
    month = parse_month(match.group(1))
    if not month:
        return None
    return ExtractedDate(
        precision=DAY, year=int(match.group(3)), month=month, day=int(match.group(2)), raw=match.group(0)
    )


def extract_meeting(
    title: str, close_time: Optional[datetime] = None
) -> Tuple[Optional[ExtractedDate], str]:
    """Meeting descriptor from the title (day, then month), else the close date."""
    full = _full_date(title)
    if full is not None:
        return full, "title"
    match = _MONTH_YEAR_RE.search(title or "")
    if match and parse_month(match.group(1)):
        return ExtractedDate(precision=MONTH, year=int(match.group(2)), month=parse_month(match.group(1)), raw=match.group(0)), "title"
    close = as_utc(close_time)
    if close is not None:
        return ExtractedDate(precision=DAY, year=close.year, month=close.month, day=close.day, raw="closeTime"), "closeTime"
    return None, "none"


def extract_target_range(title: str) -> Optional[TargetRange]:
    text = title or ""
    match = re.search(r"(\d+(?:\.\d+)?)\s*%?\s*[-–]\s*(\d+(?:\.\d+)?)\s*%", text)
    if not match:
        match = re.search(r"between\s+(\d+(?:\.\d+)?)\s*%?\s+and\s+(\d+(?:\.\d+)?)\s*%", text, re.I)
    if not match:
        return None
    return TargetRange(float(match.group(1)), float(match.group(2)))


def extract_rate_year(title: str, close_time: Optional[datetime] = None) -> Optional[int]:
    match = re.search(r"\b(20\d{2})\b", title or "")
    if match:
        return int(match.group(1))
    close = as_utc(close_time)
    return close.year if close else None


def extract_action_count(title: str) -> Optional[int]:
    lower = (title or "").lower()
    match = re.search(r"(\d+)\s*(?:rate\s*)?(?:cut|hike)s?\b", lower)
    if match:
        return int(match.group(1))
    for word, count in _COUNT_WORDS:
        if re.search(rf"\b{word}\s*(?:rate\s*)?(?:cut|hike)s?\b", lower):
            return count
    return None


def is_rates_market(title: str) -> bool:
    if extract_central_bank(title) != UNKNOWN:
        return True
    return bool(re.search(r"\b(rate|interest|fomc|fed funds?|bps|basis points?)\b", (title or "").lower()))


def extract_rate_signals(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> RateSignal:
    bank = extract_central_bank(title)
    meeting, source = extract_meeting(title, close_time)
    action = extract_rate_action(title)
    bps = extract_basis_points(title)
    target = extract_target_range(title)

    numbers: List[float] = []
    if bps is not None:
        numbers.append(float(bps))
    elif target is not None:
        numbers.extend([target.low, target.high])

    sig = RateSignal(
        entity=bank if bank != UNKNOWN else None,
        central_bank=bank,
        date=meeting,
        date_type="MEETING_DAY" if meeting and meeting.precision == DAY else ("MEETING_MONTH" if meeting else UNKNOWN),
        meeting_date=meeting.key() if meeting and meeting.precision == DAY else None,
        meeting_month=f"{meeting.year:04d}-{meeting.month:02d}" if meeting else None,
        meeting_source=source,
        action=action,
        basis_points=bps,
        target_range=target,
        year=extract_rate_year(title, close_time),
        action_count=extract_action_count(title),
        numbers=numbers,
        comparator=BETWEEN if target is not None else extract_comparator(title),
        title=title,
        title_tokens=tokenize(title),
    )
    flags = {
        "unknown_bank": bank == UNKNOWN,
        "missing_meeting": meeting is None,
        "unknown_action": action == UNKNOWN,
        "missing_amount": bps is None and target is None,
    }
    sig.quality = SignalQuality(
        missing_entity=flags["unknown_bank"],
        missing_date=flags["missing_meeting"],
        missing_number=flags["missing_amount"],
        notes=[name for name, raised in flags.items() if raised],
    )
    sig.confidence = penalized_confidence(CONFIDENCE_PENALTIES, flags)
    sig.quality.low_confidence = sig.confidence < 0.5
    return sig


CENTRAL_BANK_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("FED", ("federal reserve", "fed", "fomc", "fed funds", "powell", "us interest rate", "us rate", "fed rate")),
    ("ECB", ("european central bank", "ecb", "lagarde", "eurozone rate", "euro area rate", "eu interest rate")),
    ("BOE", ("bank of england", "boe", "bailey", "uk interest rate", "uk rate", "sterling rate")),
    ("BOJ", ("bank of japan", "boj", "ueda", "japan interest rate", "japan rate", "yen rate")),
    ("RBA", ("reserve bank of australia", "rba", "australian rate")),
    ("BOC", ("bank of canada", "boc", "canada rate")),
    ("SNB", ("swiss national bank", "snb", "swiss rate")),
)

RATE_ACTION_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (
        CUT,
        ("cut", "cuts", "cutting", "lower", "lowering", "decrease", "decreasing", "reduce", "reducing", "reduction", "ease", "easing"),
    ),
    (
        HIKE,
        ("hike", "hikes", "hiking", "raise", "raising", "increase", "increasing", "tighten", "tightening", "higher"),
    ),
    (HOLD, ("hold", "holds", "holding", "unchanged", "no change", "maintain", "maintaining", "steady", "stable")),
    (PAUSE, ("pause", "pauses", "pausing", "skip", "skipping")),
)

_COUNT_WORDS: Tuple[Tuple[str, int], ...] = (
    ("no", 0),
    ("zero", 0),
    ("one", 1),
    ("two", 2),
    ("three", 3),
    ("four", 4),
    ("five", 5),
    ("six", 6),
    ("seven", 7),
    ("eight", 8),
    ("nine", 9),
    ("ten", 10),
)
