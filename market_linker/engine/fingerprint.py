from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional

from market_linker.engine.extraction import (
    BETWEEN,
    DAY,
    GE,
    LE,
    UNKNOWN,
    ExtractedDate,
    as_utc,
    contains_any,
    date_from_close_time,
    extract_comparator,
    extract_dates,
    extract_numbers,
)
from market_linker.engine.normalize import extract_entities
from market_linker.knowledge.aliases import MACRO_ENTITIES, PRICE_ENTITIES
from market_linker.knowledge.venue_rules import crypto_entity_from_ticker, event_ticker

PRICE_DATE = "PRICE_DATE"
ELECTION = "ELECTION"
METRIC_DATE = "METRIC_DATE"
GENERAL = "GENERAL"


@dataclass
class MarketFingerprint:
    entities: List[str] = field(default_factory=list)
    numbers: List[float] = field(default_factory=list)
    dates: List[ExtractedDate] = field(default_factory=list)
    comparator: str = UNKNOWN
    intent: str = GENERAL
    key: str = UNKNOWN

    @property
    def primary_date(self) -> Optional[ExtractedDate]:
        return self.dates[0] if self.dates else None


def fingerprint_entities(title: str, metadata: Optional[Mapping[str, Any]] = None) -> List[str]:
    entities = set(extract_entities(title))
    from_ticker = crypto_entity_from_ticker(event_ticker(metadata))
    if from_ticker:
        entities.add(from_ticker)
    return sorted(entities)


def classify_intent(
    title: str, entities: List[str], numbers: List[float], dates: List[ExtractedDate], comparator: str
) -> str:
    has_price_entity = any(e in PRICE_ENTITIES for e in entities)
    has_big_number = any(n >= 1000 for n in numbers)
    has_day = any(d.precision == DAY for d in dates)
    if has_price_entity and has_big_number and has_day and comparator in (GE, LE, BETWEEN):
        return PRICE_DATE
    if contains_any(title, ELECTION_KEYWORDS):
        return ELECTION
    if dates and (any(e in MACRO_ENTITIES for e in entities) or contains_any(title, MACRO_KEYWORDS)):
        return METRIC_DATE
    return GENERAL


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return f"{value:g}"


def key_number(numbers: List[float]) -> Optional[float]:
    """First round thousand, else the largest number."""
    for value in numbers:
        if value >= 1000 and value % 1000 == 0:
            return value
    return max(numbers) if numbers else None


def fingerprint_key(
    entities: List[str], numbers: List[float], date: Optional[ExtractedDate], comparator: str
) -> str:
    parts: List[str] = []
    if entities:
        parts.append("+".join(entities))
    number = key_number(numbers)
    if number is not None:
        parts.append(f"N{_format_number(number)}")
    if date is not None:
        parts.append(f"D{date.compact()}")
    if comparator != UNKNOWN:
        parts.append(comparator)
    return "|".join(parts) if parts else UNKNOWN


def build_fingerprint(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> MarketFingerprint:
    close = as_utc(close_time)
    entities = fingerprint_entities(title, metadata)
    numbers = extract_numbers(title)
    dates = extract_dates(title, reference_year=close.year if close else None)
    comparator = extract_comparator(title)

    key_date = dates[0] if dates else date_from_close_time(close)
    return MarketFingerprint(
        entities=entities,
        numbers=numbers,
        dates=dates,
        comparator=comparator,
        intent=classify_intent(title, entities, numbers, dates, comparator),
        key=fingerprint_key(entities, numbers, key_date, comparator),
    )


ELECTION_KEYWORDS = (
    "election",
    "elected",
    "president",
    "presidential",
    "senate",
    "governor",
    "mayor",
    "prime minister",
    "nominee",
    "primary",
    "electoral",
    "ballot",
    "vote",
)

MACRO_KEYWORDS = (
    "cpi",
    "inflation",
    "gdp",
    "unemployment",
    "jobless",
    "payrolls",
    "nfp",
    "fomc",
    "fed rate",
    "interest rate",
    "ppi",
    "pce",
)
