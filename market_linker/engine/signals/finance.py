from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

from market_linker.engine.extraction import (
    BETWEEN,
    DAY,
    EQ,
    GE,
    LE,
    UNKNOWN,
    ExtractedDate,
    SignalQuality,
    as_utc,
    date_from_close_time,
    extract_dates,
    is_date_component,
    keyword_pattern,
    parse_number_token,
    penalized_confidence,
    scan_numbers,
    valid_year,
)
from market_linker.engine.normalize import tokenize
from market_linker.engine.signals.base import BaseSignal

INDEX = "INDEX"
FOREX = "FOREX"
BOND = "BOND"

ABOVE = "ABOVE"
BELOW = "BELOW"
CLOSE = "CLOSE"

DAY_EXACT = "DAY_EXACT"
CLOSE_TIME = "CLOSE_TIME"

CONFIDENCE_PENALTIES = {
    "unknown_asset_class": 0.25,
    "missing_instrument": 0.25,
    "unknown_direction": 0.15,
    "missing_amount": 0.20,
    "missing_date": 0.10,
    "missing_timeframe": 0.05,
}

_DIRECTION_COMPARATORS = {ABOVE: GE, BELOW: LE, CLOSE: EQ, BETWEEN: BETWEEN}


@dataclass
class FinanceSignal(BaseSignal):
    asset_class: str = UNKNOWN
    instrument: Optional[str] = None
    direction: str = UNKNOWN
    target_value: Optional[float] = None
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None
    timeframe: Optional[str] = None
    title_tokens: List[str] = field(default_factory=list)

    @property
    def has_range(self) -> bool:
        return self.lower_bound is not None and self.upper_bound is not None


def _alias_pattern(alias: str) -> str:
    """Loose alias regex: separators optional, word boundaries on alphanumeric ends."""
    parts = []
    for ch in alias.lower():
        if ch == " ":
            parts.append(r"\s*")
        elif ch in "/-":
            parts.append(re.escape(ch) + "?")
        else:
            parts.append(re.escape(ch))
    head = r"(?<![a-z0-9])" if alias[:1].isalnum() else ""
    tail = r"(?![a-z0-9])" if alias[-1:].isalnum() else ""
    return head + "".join(parts) + tail


def match_instrument(title: str) -> Tuple[str, Optional[str]]:
    """(asset_class, instrument): indices first, then forex pairs, then bonds."""
    lower = (title or "").lower()
    for asset_class, table in INSTRUMENT_TABLES:
        for instrument, aliases in table:
            if any(re.search(_alias_pattern(alias), lower) for alias in aliases):
                return asset_class, instrument
    return UNKNOWN, None


def extract_direction(title: str) -> str:
    lower = (title or "").lower()
    for direction, keywords in DIRECTION_KEYWORDS:
        if any(re.search(keyword_pattern(kw), lower) for kw in keywords):
            return direction
    return UNKNOWN


def _strip_index_names(title: str) -> str:
    return _INDEX_NUMBER_RE.sub(" ", title or "")


def extract_target_value(title: str) -> Optional[float]:
    """Currency amounts, then percentages, then k-suffixed values, then large or fractional numbers."""
    text = _strip_index_names(title)
    tokens = [t for t in scan_numbers(text) if not is_date_component(text, t)]
    for predicate in (
        lambda t: t.currency,
        lambda t: t.percent,
        lambda t: bool(t.suffix),
        lambda t: t.value >= 100,
        lambda t: not t.value.is_integer(),
    ):
        for token in tokens:
            if predicate(token):
                return token.value
    return None


def extract_range(title: str) -> Tuple[Optional[float], Optional[float]]:
    text = re.sub(r"\b\d{4}-\d{2}-\d{2}\b", " ", _strip_index_names(title))
    for pattern in _RANGE_PATTERNS:
        match = re.search(pattern, text, re.I)
        if match:
            low = parse_number_token(match.group(1), match.group(2) or "")
            high = parse_number_token(match.group(3), match.group(4) or "")
            if low is not None and high is not None:
                return min(low, high), max(low, high)
    return None, None


def extract_finance_date(title: str, close_time: Optional[datetime] = None) -> Tuple[Optional[ExtractedDate], str]:
    for found in extract_dates(title):
        if found.precision == DAY:
            return found, DAY_EXACT
    us_date = re.search(r"\b(0[1-9]|1[0-2])/(0[1-9]|[12]\d|3[01])/(20\d{2})\b", title or "")
    if us_date and valid_year(int(us_date.group(3))):
        return (
            ExtractedDate(
                precision=DAY,
                year=int(us_date.group(3)),
                month=int(us_date.group(1)),
                day=int(us_date.group(2)),
                raw=us_date.group(0),
            ),
            DAY_EXACT,
        )
    closing = date_from_close_time(as_utc(close_time))
    if closing is not None:
        return closing, CLOSE_TIME
    return None, UNKNOWN


def extract_timeframe(title: str) -> Optional[str]:
    lower = (title or "").lower()
    for timeframe, pattern in _TIMEFRAME_PATTERNS:
        if re.search(pattern, lower):
            return timeframe
    return None


def is_finance_market(title: str) -> bool:
    lower = (title or "").lower()
    return any(kw in lower for kw in FINANCE_KEYWORDS)


def extract_finance_signals(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> FinanceSignal:
    asset_class, instrument = match_instrument(title)
    direction = extract_direction(title)
    low, high = extract_range(title)
    if low is not None and direction == UNKNOWN:
        direction = BETWEEN
    target = extract_target_value(title)
    found_date, date_type = extract_finance_date(title, close_time)

    if low is not None and high is not None:
        numbers = [low, high]
    else:
        numbers = [target] if target is not None else []

    sig = FinanceSignal(
        entity=instrument,
        asset_class=asset_class,
        instrument=instrument,
        direction=direction,
        target_value=target,
        lower_bound=low,
        upper_bound=high,
        date=found_date,
        date_type=date_type,
        timeframe=extract_timeframe(title),
        numbers=numbers,
        comparator=_DIRECTION_COMPARATORS.get(direction, UNKNOWN),
        title=title,
        title_tokens=tokenize(title),
    )
    flags = {
        "unknown_asset_class": asset_class == UNKNOWN,
        "missing_instrument": instrument is None,
        "unknown_direction": direction == UNKNOWN,
        "missing_amount": not numbers,
        "missing_date": found_date is None,
        "missing_timeframe": sig.timeframe is None,
    }
    sig.quality = SignalQuality(
        missing_entity=flags["missing_instrument"],
        missing_date=flags["missing_date"],
        missing_number=flags["missing_amount"],
        notes=[name for name, raised in flags.items() if raised],
    )
    sig.confidence = penalized_confidence(CONFIDENCE_PENALTIES, flags)
    sig.quality.low_confidence = sig.confidence < 0.5
    return sig


INDICES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("SP500", ("s&p 500", "s&p500", "sp500", "spx", "s&p", "sp 500")),
    ("NASDAQ", ("nasdaq", "nasdaq-100", "nasdaq 100", "qqq", "ndx")),
    ("DOW", ("dow jones", "dow", "djia", "dow 30")),
    ("RUSSELL", ("russell 2000", "russell2000", "rut")),
    ("VIX", ("vix", "volatility index", "cboe volatility")),
)

FOREX_PAIRS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("EURUSD", ("eur/usd", "euro dollar")),
    ("USDJPY", ("usd/jpy", "dollar yen")),
    ("GBPUSD", ("gbp/usd", "cable", "pound dollar")),
    ("USDCHF", ("usd/chf", "swissy")),
    ("AUDUSD", ("aud/usd", "aussie")),
    ("USDCAD", ("usd/cad", "loonie")),
    ("NZDUSD", ("nzd/usd", "kiwi")),
)

BONDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("10Y", ("10-year", "10y", "ten-year", "10yr")),
    ("2Y", ("2-year", "2y", "two-year", "2yr")),
    ("5Y", ("5-year", "5y", "five-year", "5yr")),
    ("30Y", ("30-year", "30y", "thirty-year", "30yr")),
    ("TBILL", ("t-bill", "treasury bill")),
    ("TREASURY", ("treasury", "treasuries", "bond yield")),
)

INSTRUMENT_TABLES = ((INDEX, INDICES), (FOREX, FOREX_PAIRS), (BOND, BONDS))

DIRECTION_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (ABOVE, ("above", "over", "higher than", "exceed", "at or above", "close above")),
    (BELOW, ("below", "under", "lower than", "at or below", "close below")),
    (CLOSE, ("close at", "settle at", "end at", "finish at")),
    (BETWEEN, ("between", "range")),
)

FINANCE_KEYWORDS = (
    "s&p",
    "sp500",
    "nasdaq",
    "dow",
    "djia",
    "russell",
    "eur/usd",
    "usd/jpy",
    "gbp/usd",
    "forex",
    "treasury",
    "treasuries",
    "10-year",
    "2-year",
    "bond yield",
    "index",
    "indices",
)

# Index names carry numbers that are never thresholds ("S&P 500", "Russell 2000").
_INDEX_NUMBER_RE = re.compile(r"(?:s&p|sp|nasdaq|nasdaq-|russell|dow)\s*(?:500|100|2000|30)\b", re.I)

_NUM = r"\$?\s*(\d[\d,]*(?:\.\d+)?)\s*([kmbt])?"
_RANGE_PATTERNS = (
    rf"\bbetween\s+{_NUM}\s+and\s+{_NUM}",
    rf"\bfrom\s+{_NUM}\s+to\s+{_NUM}",
    rf"{_NUM}\s*(?:-|–|to)\s*{_NUM}",
)

_TIMEFRAME_PATTERNS: Tuple[Tuple[str, str], ...] = (
    ("daily", r"\bdaily\b|\btoday\b|\btonight\b"),
    ("weekly", r"\bweekly\b|\bthis week\b|\bweek of\b"),
    ("monthly", r"\bmonthly\b|\bthis month\b|\bend of month\b"),
    ("quarterly", r"\bquarterly\b|\bq[1-4]\b"),
    ("yearly", r"\byearly\b|\bannual\b|\bend of year\b"),
)
