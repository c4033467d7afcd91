from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

from market_linker.engine.extraction import (
    DAY,
    MONTH,
    QUARTER,
    ExtractedDate,
    SignalQuality,
    as_utc,
    extract_comparator,
    extract_dates,
    extract_numbers,
    penalized_confidence,
)
from market_linker.engine.normalize import extract_entities
from market_linker.engine.signals.base import BaseSignal
from market_linker.knowledge.aliases import MACRO_ENTITIES
from market_linker.knowledge.venue_rules import has_sports_title_keyword, is_kalshi_sports

PERIOD_MONTH = "month"
PERIOD_QUARTER = "quarter"
PERIOD_YEAR = "year"

KIND_EXACT = "exact"
KIND_MONTH_IN_QUARTER = "month_in_quarter"
KIND_QUARTER_IN_YEAR = "quarter_in_year"
KIND_MONTH_IN_YEAR = "month_in_year"
KIND_NONE = "none"

PERIOD_COMPATIBILITY_SCORES = {
    KIND_EXACT: 1.0,
    KIND_MONTH_IN_QUARTER: 0.60,
    KIND_QUARTER_IN_YEAR: 0.55,
    KIND_MONTH_IN_YEAR: 0.45,
    KIND_NONE: 0.0,
}

CONFIDENCE_PENALTIES = {
    "missing_entity": 0.5,
    "missing_period": 0.3,
    "period_from_close_time": 0.1,
}


@dataclass(frozen=True)
class MacroPeriod:
    type: str
    year: int
    month: Optional[int] = None
    quarter: Optional[int] = None

    @property
    def key(self) -> str:
        if self.type == PERIOD_MONTH:
            return f"{self.year:04d}-{self.month:02d}"
        if self.type == PERIOD_QUARTER:
            return f"{self.year:04d}-Q{self.quarter}"
        return f"{self.year:04d}"


@dataclass
class MacroSignal(BaseSignal):
    entities: List[str] = field(default_factory=list)
    period: Optional[MacroPeriod] = None
    period_source: str = "none"

    @property
    def period_key(self) -> Optional[str]:
        return self.period.key if self.period else None


def extract_macro_entities(text: str) -> List[str]:
    entities = [e for e in extract_entities(text) if e in MACRO_ENTITIES]
    lower = (text or "").lower()
    for pattern, entity in _EXTRA_ENTITY_PATTERNS:
        if entity not in entities and re.search(pattern, lower):
            entities.append(entity)
    return sorted(entities)


def period_from_date(found: ExtractedDate) -> MacroPeriod:
    """Macro releases settle on a period; a day-level date collapses to its month."""
    if found.precision in (DAY, MONTH) and found.month:
        return MacroPeriod(PERIOD_MONTH, found.year, month=found.month)
    if found.precision == QUARTER and found.quarter:
        return MacroPeriod(PERIOD_QUARTER, found.year, quarter=found.quarter)
    return MacroPeriod(PERIOD_YEAR, found.year)


def extract_period(title: str, close_time: Optional[datetime] = None) -> Tuple[Optional[MacroPeriod], str]:
    close = as_utc(close_time)
    dates = extract_dates(title, reference_year=close.year if close else None)
    if dates:
        return period_from_date(dates[0]), "title"
    if close is not None:
        return MacroPeriod(PERIOD_MONTH, close.year, month=close.month), "closeTime"
    return None, "none"


def parse_period_key(key: Optional[str]) -> Optional[MacroPeriod]:
    if not key:
        return None
    match = re.match(r"^(\d{4})-(\d{2})$", key)
    if match:
        return MacroPeriod(PERIOD_MONTH, int(match.group(1)), month=int(match.group(2)))
    match = re.match(r"^(\d{4})-Q([1-4])$", key)
    if match:
        return MacroPeriod(PERIOD_QUARTER, int(match.group(1)), quarter=int(match.group(2)))
    match = re.match(r"^(\d{4})$", key)
    if match:
        return MacroPeriod(PERIOD_YEAR, int(match.group(1)))
    return None


def is_period_compatible(key_a: Optional[str], key_b: Optional[str]) -> str:
    """Relation between two period keys; symmetric in its arguments."""
    if not key_a or not key_b:
        return KIND_NONE
    if key_a == key_b:
        return KIND_EXACT
    a = parse_period_key(key_a)
    b = parse_period_key(key_b)
    if a is None or b is None or a.year != b.year or a.type == b.type:
        return KIND_NONE
    types = {a.type, b.type}
    if types == {PERIOD_MONTH, PERIOD_QUARTER}:
        month = a if a.type == PERIOD_MONTH else b
        quarter = b if month is a else a
        if math.ceil(month.month / 3) == quarter.quarter:
            return KIND_MONTH_IN_QUARTER
        return KIND_NONE
    if types == {PERIOD_MONTH, PERIOD_YEAR}:
        return KIND_MONTH_IN_YEAR
    return KIND_QUARTER_IN_YEAR


def period_compatibility_score(kind: str) -> float:
    return PERIOD_COMPATIBILITY_SCORES.get(kind, 0.0)


def extract_macro_signals(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> MacroSignal:
    entities = extract_macro_entities(title)
    period, source = extract_period(title, close_time)
    sig = MacroSignal(
        entity=entities[0] if entities else None,
        entities=entities,
        period=period,
        period_source=source,
        date_type=period.type.upper() if period else "UNKNOWN",
        numbers=extract_numbers(title),
        comparator=extract_comparator(title),
        title=title,
    )
    flags = {
        "missing_entity": not entities,
        "missing_period": period is None,
        "period_from_close_time": source == "closeTime",
    }
    sig.quality = SignalQuality(
        missing_entity=flags["missing_entity"],
        missing_date=flags["missing_period"],
        missing_number=not sig.numbers,
        notes=[name for name, raised in flags.items() if raised],
    )
    sig.confidence = penalized_confidence(CONFIDENCE_PENALTIES, flags)
    sig.quality.low_confidence = sig.confidence < 0.5
    if is_kalshi_sports(metadata) or has_sports_title_keyword(title):
        sig.exclude("sports market")
    return sig


_EXTRA_ENTITY_PATTERNS: Tuple[Tuple[str, str], ...] = (
    (r"\bconsumer price index\b", "CPI"),
    (r"\bgross domestic product\b", "GDP"),
    (r"\bproducer price index\b", "PPI"),
    (r"\bpersonal consumption expenditures?\b", "PCE"),
    (r"\b(?:non-?farm\s+)?payrolls\b|\bjobs report\b", "NFP"),
    (r"\b(?:initial\s+)?jobless claims\b|\binitial claims\b", "JOBLESS_CLAIMS"),
    (r"\bfed(?:eral reserve)?\s+(?:funds\s+)?rate\b", "FED_RATE"),
)

