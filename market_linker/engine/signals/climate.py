from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from market_linker.engine.extraction import (
    BETWEEN,
    DAY,
    EQ,
    GE,
    LE,
    MONTH,
    MONTH_PATTERN,
    UNKNOWN,
    YEAR,
    ExtractedDate,
    SignalQuality,
    as_utc,
    contains_keyword,
    day_diff,
    first_matching_kind,
    parse_date_key,
    parse_month,
    penalized_confidence,
    valid_year,
)
from market_linker.engine.normalize import tokenize
from market_linker.engine.signals.base import BaseSignal
from market_linker.knowledge.regions import COUNTRIES, STATE_CODES, US_CITIES, US_STATES

OTHER = "OTHER"

# Climate date types.
DAY_EXACT = "DAY_EXACT"
DATE_MONTH = "MONTH"
DATE_YEAR = "YEAR"
DATE_RANGE = "DATE_RANGE"
SEASON = "SEASON"

CONFIDENCE_PENALTIES = {
    "unknown_kind": 0.3,
    "unknown_date": 0.2,
    "missing_region": 0.1,
    "missing_number": 0.1,
}


@dataclass(frozen=True)
class ClimateThreshold:
    value: float
    unit: str
    raw: str = ""


@dataclass
class ClimateSignal(BaseSignal):
    kind: str = OTHER
    region_key: Optional[str] = None
    region_raw: Optional[str] = None
    settle_key: Optional[str] = None
    settle_start: Optional[str] = None
    settle_end: Optional[str] = None
    thresholds: List[ClimateThreshold] = field(default_factory=list)
    title_tokens: List[str] = field(default_factory=list)


def extract_climate_kind(title: str) -> str:
    kind = first_matching_kind(title, CLIMATE_KIND_KEYWORDS)
    if kind:
        return kind
    if re.search(r"\d+\s*°\s*[fc]", title or "", re.I):
        return "TEMPERATURE"
    return OTHER


def is_climate_market(title: str) -> bool:
    return extract_climate_kind(title) != OTHER


def _find_phrase(lower: str, phrase: str) -> bool:
    return bool(re.search(rf"\b{re.escape(phrase)}\b", lower))


def extract_region(title: str) -> Tuple[Optional[str], Optional[str]]:
    """Region key and the text it came from: cities, then states, then countries."""
    text = title or ""
    lower = text.lower()
    for table in (US_CITIES, US_STATES):
        for name, code in table.items():
            if _find_phrase(lower, name):
                return code, name
    # Postal codes only count in upper case ("FL", not "in").
    for match in re.finditer(r"\b([A-Z]{2})\b", text):
        code = STATE_CODES.get(match.group(1))
        if code:
            return code, match.group(1)
    for name, code in COUNTRIES.items():
        if _find_phrase(lower, name):
            return code, name
    if re.search(r"\bin\s+the\s+u\.?s\.?a?\b", lower):
        return "US", "US"
    return None, None


def extract_date_info(
    title: str, close_time: Optional[datetime] = None
) -> Tuple[str, Optional[str], Optional[str], Optional[str]]:
    """(date_type, settle_key, range_start, range_end)."""
    text = title or ""
    close = as_utc(close_time)
    ref_year = close.year if close else None

    exact = re.search(rf"\b({MONTH_PATTERN})\s+(\d{{1,2}})(?:st|nd|rd|th)?[,\s]+(\d{{4}})\b", text, re.I)
    if exact:
        month, day, year = parse_month(exact.group(1)), int(exact.group(2)), int(exact.group(3))
        if month and valid_year(year) and _iso(year, month, day):
            return DAY_EXACT, _iso(year, month, day), None, None

    month_year = re.search(rf"\b(?:in|during|for|by)\s+({MONTH_PATTERN})\s+(\d{{4}})\b", text, re.I)
    if month_year:
        month, year = parse_month(month_year.group(1)), int(month_year.group(2))
        if month and valid_year(year):
            return DATE_MONTH, f"{year:04d}-{month:02d}", None, None

    year_only = re.search(r"\b(?:in|during|before|by)\s+(\d{4})\b", text, re.I)
    if year_only and valid_year(int(year_only.group(1))):
        return DATE_YEAR, year_only.group(1), None, None

    date_range = re.search(
        rf"\bbetween\s+({MONTH_PATTERN})\s+(\d{{1,2}})\s+and\s+({MONTH_PATTERN})\s+(\d{{1,2}})", text, re.I
    )
    if date_range and ref_year:
        start = _iso(ref_year, parse_month(date_range.group(1)), int(date_range.group(2)))
        end = _iso(ref_year, parse_month(date_range.group(3)), int(date_range.group(4)))
        if start and end:
            return DATE_RANGE, f"{start}/{end}", start, end

    lower = text.lower()
    if re.search(r"\bthis\s+(winter|summer|spring|fall|autumn)\b|\b(winter|summer)\s+\d{4}|\bhurricane\s+season\b", lower):
        if ref_year:
            return SEASON, f"SEASON-{ref_year}", None, None

    if close is not None:
        return DAY_EXACT, close.date().isoformat(), None, None
    return UNKNOWN, None, None, None


def extract_climate_comparator(title: str) -> str:
    """GE, then LE, then BETWEEN, then EQ."""
    lower = (title or "").lower()
    if any(contains_keyword(lower, kw, negations=("not",)) for kw in _CLIMATE_GE):
        return GE
    if any(contains_keyword(lower, kw) for kw in _CLIMATE_LE):
        return LE
    if re.search(r"\bbetween\s+\d+(?:\.\d+)?\s+and\s+\d+", lower):
        return BETWEEN
    if re.search(r"\b(exactly|precisely)\b", lower):
        return EQ
    return UNKNOWN


def extract_thresholds(title: str) -> List[ClimateThreshold]:
    text = title or ""
    out: List[ClimateThreshold] = []
    for match in re.finditer(r"(-?\d+(?:\.\d+)?)\s*(?:°\s*|degrees?\s*)([fc])(?:ahrenheit|elsius)?\b", text, re.I):
        unit = "°F" if match.group(2).lower() == "f" else "°C"
        out.append(ClimateThreshold(float(match.group(1)), unit, match.group(0)))
    for match in re.finditer(r"(\d+(?:\.\d+)?)\s*(mph|km/h|kmh|knots?)\b", text, re.I):
        unit = match.group(2).lower().replace("kmh", "km/h")
        out.append(ClimateThreshold(float(match.group(1)), unit, match.group(0)))
    for match in re.finditer(
        r"(\d+(?:\.\d+)?)\s*(inches|inch|in\.(?=\s|$)|mm|cm|millimeters?|centimeters?)(?![a-z])", text, re.I
    ):
        out.append(ClimateThreshold(float(match.group(1)), _PRECIP_UNITS[match.group(2).lower()[:2]], match.group(0)))
    for match in re.finditer(r"\bmagnitude\s+(\d+(?:\.\d+)?)", text, re.I):
        out.append(ClimateThreshold(float(match.group(1)), "magnitude", match.group(0)))
    for match in re.finditer(r"(\d+)\s+(earthquake|hurricane|tornado|storm|flood|wildfire)(?:e?s)?\b", text, re.I):
        out.append(ClimateThreshold(float(match.group(1)), "count", match.group(0)))
    for match in re.finditer(r"\bvei\s*(?:≥|>=|>)?\s*(\d+)\+?", text, re.I):
        out.append(ClimateThreshold(float(match.group(1)), "VEI", match.group(0)))
    for match in re.finditer(r"\bbetween\s+(\d+(?:\.\d+)?)\s+and\s+(\d+(?:\.\d+)?)\b", text, re.I):
        out.append(ClimateThreshold(float(match.group(1)), "range_low", match.group(0)))
        out.append(ClimateThreshold(float(match.group(2)), "range_high", match.group(0)))
    return out


def climate_title_tokens(title: str) -> List[str]:
    return [t for t in tokenize(title) if len(t) >= 2 and t not in _TITLE_STOPWORDS]


def extract_climate_signals(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> ClimateSignal:
    kind = extract_climate_kind(title)
    region_key, region_raw = extract_region(title)
    date_type, settle_key, start, end = extract_date_info(title, close_time)
    thresholds = extract_thresholds(title)

    sig = ClimateSignal(
        entity=kind,
        kind=kind,
        region_key=region_key,
        region_raw=region_raw,
        date_type=date_type,
        date=_settle_descriptor(date_type, settle_key),
        settle_key=settle_key,
        settle_start=start,
        settle_end=end,
        thresholds=thresholds,
        numbers=sorted({t.value for t in thresholds}),
        comparator=extract_climate_comparator(title),
        title=title,
        title_tokens=climate_title_tokens(title),
    )
    flags = {
        "unknown_kind": kind == OTHER,
        "unknown_date": date_type == UNKNOWN,
        "missing_region": region_key is None,
        "missing_number": not thresholds,
    }
    sig.quality = SignalQuality(
        missing_entity=flags["unknown_kind"],
        missing_date=flags["unknown_date"],
        missing_number=flags["missing_number"],
        notes=[name for name, raised in flags.items() if raised],
    )
    sig.confidence = penalized_confidence(CONFIDENCE_PENALTIES, flags)
    sig.quality.low_confidence = sig.confidence < 0.5
    return sig


def are_date_types_compatible(a: str, b: str) -> bool:
    if a == b:
        return True
    pair = {a, b}
    if pair in ({DAY_EXACT, DATE_MONTH}, {DATE_RANGE, DATE_MONTH}):
        return True
    # Years and seasons are broad enough to sit next to anything.
    return bool(pair & {DATE_YEAR, SEASON})


def climate_date_score(a_type: str, a_key: Optional[str], b_type: str, b_key: Optional[str]) -> float:
    if not a_key or not b_key:
        return 0.3
    if a_key == b_key and a_type == b_type:
        return 1.0
    if a_type == DAY_EXACT and b_type == DAY_EXACT:
        diff = day_diff(parse_date_key(a_key), parse_date_key(b_key))
        if diff is None:
            return 0.3
        for limit, value in CLIMATE_DAY_DECAY:
            if diff <= limit:
                return value
        return 0.2
    if a_type == DATE_MONTH and b_type == DATE_MONTH:
        a_year, a_month = (int(x) for x in a_key.split("-")[:2])
        b_year, b_month = (int(x) for x in b_key.split("-")[:2])
        return 0.6 if abs((a_year * 12 + a_month) - (b_year * 12 + b_month)) == 1 else 0.2
    if {a_type, b_type} == {DAY_EXACT, DATE_MONTH}:
        day_key, month_key = (a_key, b_key) if a_type == DAY_EXACT else (b_key, a_key)
        return 0.8 if day_key[:7] == month_key else 0.3
    if DATE_YEAR in (a_type, b_type):
        return 0.6 if a_key[:4] == b_key[:4] else 0.2
    return 0.3


def threshold_score(left: List[ClimateThreshold], right: List[ClimateThreshold]) -> float:
    """Best same-unit agreement averaged over the units both sides share."""
    if not left or not right:
        return 0.5
    by_unit_left: Dict[str, List[float]] = {}
    by_unit_right: Dict[str, List[float]] = {}
    for t in left:
        by_unit_left.setdefault(t.unit, []).append(t.value)
    for t in right:
        by_unit_right.setdefault(t.unit, []).append(t.value)
    common = [unit for unit in by_unit_left if unit in by_unit_right]
    if not common:
        return 0.4
    total = 0.0
    for unit in common:
        best = 0.0
        for a in by_unit_left[unit]:
            for b in by_unit_right[unit]:
                rel = abs(a - b) / max(abs(a), abs(b), 1.0)
                best = max(best, _relative_match(rel))
        total += best
    return total / len(common)


def _relative_match(rel: float) -> float:
    if rel == 0:
        return 1.0
    if rel <= 0.01:
        return 0.95
    if rel <= 0.05:
        return 0.8
    if rel <= 0.10:
        return 0.6
    return 0.3


def _iso(year: int, month: Optional[int], day: int) -> Optional[str]:
    if not month:
        return None
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _settle_descriptor(date_type: str, settle_key: Optional[str]) -> Optional[ExtractedDate]:
    if not settle_key:
        return None
    if date_type == DAY_EXACT:
        parsed = parse_date_key(settle_key)
        if parsed:
            return ExtractedDate(precision=DAY, year=parsed.year, month=parsed.month, day=parsed.day, raw=settle_key)
    if date_type == DATE_MONTH:
        year, month = settle_key.split("-")
        return ExtractedDate(precision=MONTH, year=int(year), month=int(month), raw=settle_key)
    if date_type == DATE_YEAR:
        return ExtractedDate(precision=YEAR, year=int(settle_key), raw=settle_key)
    return None


# (max day difference, score), checked in order.
CLIMATE_DAY_DECAY: Tuple[Tuple[int, float], ...] = ((0, 1.0), (1, 0.9), (3, 0.7), (7, 0.5))

CLIMATE_KIND_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (
        "HURRICANE",
        (
            "hurricane",
            "hurricanes",
            "tropical storm",
            "cyclone",
            "typhoon",
            "category 1",
            "category 2",
            "category 3",
            "category 4",
            "category 5",
            "cat 1",
            "cat 2",
            "cat 3",
            "cat 4",
            "cat 5",
            "landfall",
        ),
    ),
    ("TORNADO", ("tornado", "tornadoes", "twister", "funnel cloud", "ef0", "ef1", "ef2", "ef3", "ef4", "ef5")),
    ("EARTHQUAKE", ("earthquake", "earthquakes", "quake", "seismic", "magnitude", "richter", "tremor", "aftershock")),
    ("VOLCANO", ("volcano", "volcanic", "eruption", "erupts", "lava", "vei")),
    ("WILDFIRE", ("wildfire", "wildfires", "forest fire", "brush fire", "fire season", "acres burned", "fire danger")),
    ("FLOOD", ("flood", "flooding", "flash flood", "river flood", "coastal flood", "flood warning", "flood stage")),
    ("DROUGHT", ("drought", "dry spell", "water shortage", "drought conditions")),
    (
        "SNOW",
        ("snow", "snowfall", "snowstorm", "blizzard", "winter storm", "inches of snow", "snow accumulation", "white christmas"),
    ),
    ("RAINFALL", ("rain", "rainfall", "precipitation", "inches of rain", "rainy", "monsoon", "el nino", "la nina")),
    ("STORM", ("storm", "thunderstorm", "severe storm", "ice storm", "hailstorm", "wind storm", "derecho")),
    (
        "TEMPERATURE",
        (
            "temperature",
            "temp",
            "high temp",
            "low temp",
            "highest temp",
            "lowest temp",
            "degrees",
            "°f",
            "°c",
            "fahrenheit",
            "celsius",
            "heat wave",
            "cold snap",
            "record high",
            "record low",
            "average temp",
            "warming",
        ),
    ),
)

CLIMATE_KEYWORDS = (
    "hurricane",
    "storm",
    "snow",
    "temperature",
    "heat",
    "wildfire",
    "flood",
    "drought",
    "rainfall",
    "earthquake",
    "volcano",
    "tornado",
    "natural disaster",
    "weather",
    "climate",
)

_CLIMATE_GE = ("at least", "or more", "above", "over", "exceed", "exceeds", "≥", ">=", "more than", "greater than", "reach")
_CLIMATE_LE = ("at most", "or less", "under", "below", "less than", "fewer than", "≤", "<=", "not exceed")

_PRECIP_UNITS = {"in": "in", "mm": "mm", "mi": "mm", "cm": "cm", "ce": "cm"}

_TITLE_STOPWORDS = frozenset({"the", "a", "an", "in", "on", "at", "to", "of", "be", "will", "is", "are"})
