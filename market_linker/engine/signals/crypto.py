from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Tuple

from market_linker.engine.extraction import (
    DAY,
    MONTH,
    MONTH_PATTERN,
    QUARTER,
    UNKNOWN,
    ExtractedDate,
    SignalQuality,
    as_utc,
    extract_comparator,
    extract_dates,
    last_day_of_month,
    parse_month,
    parse_number_token,
    penalized_confidence,
)
from market_linker.engine.normalize import tokenize
from market_linker.engine.signals.base import BaseSignal, detect_mve
from market_linker.knowledge.venue_rules import (
    crypto_entity_from_ticker,
    event_ticker,
    has_sports_title_keyword,
    is_daily_ticker,
    is_intraday_ticker,
    is_kalshi_sports,
    metadata_value,
)

# Settlement date types.
DAY_EXACT = "DAY_EXACT"
MONTH_END = "MONTH_END"
DATE_QUARTER = "QUARTER"
CLOSE_TIME = "CLOSE_TIME"

DAY_TYPES = (DAY_EXACT, CLOSE_TIME)
PERIOD_TYPES = (MONTH_END, DATE_QUARTER)

# Number contexts.
CTX_PRICE = "price"
CTX_THRESHOLD = "threshold"
CTX_UNKNOWN = "unknown"

# Market kinds.
KIND_DAILY = "DAILY"
KIND_INTRADAY = "INTRADAY"

DIRECTION_UP = "UP"
DIRECTION_DOWN = "DOWN"

CONFIDENCE_PENALTIES = {
    "missing_entity": 0.5,
    "missing_date": 0.3,
    "missing_number": 0.1,
    "close_time_date": 0.1,
}

_MARKET_TICKER_KEYS = ("ticker", "market_ticker", "marketTicker")


@dataclass
class CryptoSignal(BaseSignal):
    settle_period: Optional[str] = None
    number_context: str = CTX_UNKNOWN
    market_kind: str = KIND_DAILY
    time_bucket: Optional[str] = None
    direction: Optional[str] = None

    @property
    def settle_date(self) -> Optional[date]:
        return self.date.as_date() if self.date else None

    @property
    def settle_key(self) -> Optional[str]:
        settle = self.settle_date
        return settle.isoformat() if settle else None

    @property
    def is_day_type(self) -> bool:
        return self.date_type in DAY_TYPES


def extract_crypto_entity(title: str, metadata: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    tokens = set(tokenize(title))
    if tokens & {"bitcoin", "btc"}:
        return "BITCOIN"
    # Token match keeps "hegseth" from reading as ETH.
    if tokens & {"ethereum", "eth"}:
        return "ETHEREUM"
    ticker_match = re.search(r"\$(BTC|ETH)\b", title or "", re.I)
    if ticker_match:
        return "BITCOIN" if ticker_match.group(1).upper() == "BTC" else "ETHEREUM"
    from_ticker = crypto_entity_from_ticker(event_ticker(metadata))
    if from_ticker in ("BITCOIN", "ETHEREUM"):
        return from_ticker
    for aliases, entity in _EXTENDED_ENTITIES:
        if tokens & aliases:
            return entity
    return None


def extract_settle_date(
    title: str, close_time: Optional[datetime] = None
) -> Tuple[Optional[ExtractedDate], str, Optional[str]]:
    """Settlement descriptor, its date type and the period key for period types.

    End-of-month phrasing wins over quarters, which win over explicit days. A
    bare month+year settles at month end. A missing year comes from close_time.
    """
    lower = (title or "").lower()
    close = as_utc(close_time)
    fallback_year = close.year if close else None

    end_of_month = re.search(
        rf"\b(?:end of|by end of|month[- ]end)\s+({MONTH_PATTERN})\s*,?\s*(20\d{{2}})?\b", lower
    )
    if end_of_month:
        month = parse_month(end_of_month.group(1))
        year = int(end_of_month.group(2)) if end_of_month.group(2) else fallback_year
        if month and year:
            settle = ExtractedDate(
                precision=MONTH,
                year=year,
                month=month,
                day=last_day_of_month(year, month),
                raw=end_of_month.group(0),
            )
            return settle, MONTH_END, f"{year:04d}-{month:02d}"

    quarter = re.search(r"\b(?:q([1-4])|(first|second|third|fourth)\s+quarter)\s*(20\d{2})?\b", lower)
    if quarter:
        number = int(quarter.group(1)) if quarter.group(1) else _QUARTER_NAMES[quarter.group(2)]
        year = int(quarter.group(3)) if quarter.group(3) else fallback_year
        if year:
            settle = ExtractedDate(precision=QUARTER, year=year, quarter=number, raw=quarter.group(0))
            return settle, DATE_QUARTER, f"{year:04d}-Q{number}"

    dates = extract_dates(title, reference_year=fallback_year)
    for found in dates:
        if found.precision == DAY:
            return found, DAY_EXACT, None
    for found in dates:
        if found.precision == MONTH and found.month:
            return found, MONTH_END, f"{found.year:04d}-{found.month:02d}"

    if close is not None:
        settle = ExtractedDate(precision=DAY, year=close.year, month=close.month, day=close.day, raw="closeTime")
        return settle, CLOSE_TIME, None
    return None, UNKNOWN, None


def _date_context_spans(lower: str) -> List[Tuple[int, int]]:
    spans = [m.span() for m in re.finditer(rf"\b(?:{MONTH_PATTERN})\s+\d{{1,2}}(?:st|nd|rd|th)?\b", lower)]
    for year in re.finditer(r"\b20\d{2}\b", lower):
        before = lower[max(0, year.start() - 30): year.start()]
        if re.search(rf"\b(?:{MONTH_PATTERN})\b", before) or re.search(r"q[1-4]", before):
            spans.append(year.span())
    return spans


def extract_crypto_numbers(title: str) -> Tuple[List[float], str]:
    """Price thresholds in a crypto title and the context they were found in.

    ``$`` amounts are prices. Suffixed values of at least 1000 are thresholds.
    Plain numbers of at least 100 count only in comparator or price context,
    and never when they sit inside a date.
    """
    text = title or ""
    lower = text.lower()
    spans = _date_context_spans(lower)

    def in_date_context(idx: int) -> bool:
        return any(start <= idx < end for start, end in spans)

    numbers: List[float] = []
    context = CTX_UNKNOWN

    for match in re.finditer(r"\$([\d,]+(?:\.\d+)?)\s*([kmbt])?\b", text, re.I):
        value = parse_number_token(match.group(1), match.group(2) or "")
        if value is not None and value >= 1 and value not in numbers:
            numbers.append(value)
            context = CTX_PRICE

    for match in re.finditer(r"([\d,]+(?:\.\d+)?)\s*([kmbt])\b", text, re.I):
        if in_date_context(match.start()):
            continue
        value = parse_number_token(match.group(1), match.group(2))
        if value is not None and value >= 1000 and value not in numbers:
            numbers.append(value)
            if context == CTX_UNKNOWN:
                context = CTX_THRESHOLD

    has_comparator = re.search(r"\b(above|below|over|under|exceed|reach|hit|between|from|to)\b", lower)
    if has_comparator or re.search(r"\bprice\b", lower):
        # Suffixed values were read above; skip their bare digits.
        for match in re.finditer(r"\d[\d,]*(?:\.\d+)?(?![\d.,]*\s*[kmbt]\b)", text, re.I):
            if in_date_context(match.start()):
                continue
            value = parse_number_token(match.group(0))
            if value is None:
                continue
            if 1 <= value <= 31 or 2020 <= value <= 2100:
                continue
            if value >= 100 and value not in numbers:
                numbers.append(value)
                if context == CTX_UNKNOWN:
                    context = CTX_THRESHOLD

    return sorted(numbers), context


def _market_ticker(metadata: Optional[Mapping[str, Any]]) -> str:
    return metadata_value(metadata, _MARKET_TICKER_KEYS) or event_ticker(metadata)


def is_intraday_market(title: str, metadata: Optional[Mapping[str, Any]] = None) -> bool:
    ticker = _market_ticker(metadata)
    if ticker and is_daily_ticker(ticker) and not is_intraday_ticker(ticker):
        return False
    if is_intraday_ticker(ticker):
        return True
    return bool(re.search(_INTRADAY_TITLE_PATTERN, (title or "").lower()))


def extract_direction(title: str) -> Optional[str]:
    lower = (title or "").lower()
    if re.search(r"\bup\s+or\s+down\b", lower):
        return None
    if re.search(r"\b(up|higher|rise|rises|green)\b", lower):
        return DIRECTION_UP
    if re.search(r"\b(down|lower|fall|falls|drop|drops|red)\b", lower):
        return DIRECTION_DOWN
    return None


def intraday_time_bucket(close_time: Optional[datetime]) -> Optional[str]:
    """Close time floored to the hour, in UTC."""
    close = as_utc(close_time)
    if close is None:
        return None
    return close.replace(minute=0, second=0, microsecond=0).strftime("%Y-%m-%dT%H:00")


def crypto_exclusion_reason(title: str, metadata: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    if is_kalshi_sports(metadata):
        return "sports ticker prefix"
    if has_sports_title_keyword(title):
        return "sports title keyword"
    mve = detect_mve(title, metadata)
    if mve.is_mve:
        return f"mve:{mve.source}"
    return None


def extract_crypto_signals(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> CryptoSignal:
    entity = extract_crypto_entity(title, metadata)
    settle, date_type, period = extract_settle_date(title, close_time)
    numbers, number_context = extract_crypto_numbers(title)
    intraday = is_intraday_market(title, metadata)

    sig = CryptoSignal(
        entity=entity,
        date=settle,
        date_type=date_type,
        settle_period=period,
        numbers=numbers,
        number_context=number_context,
        comparator=extract_comparator(title),
        market_kind=KIND_INTRADAY if intraday else KIND_DAILY,
        title=title,
    )
    if intraday:
        sig.time_bucket = intraday_time_bucket(close_time)
        sig.direction = extract_direction(title)

    flags = {
        "missing_entity": entity is None,
        "missing_date": settle is None,
        "missing_number": not numbers and not intraday,
        "close_time_date": date_type == CLOSE_TIME,
    }
    sig.quality = SignalQuality(
        missing_entity=flags["missing_entity"],
        missing_date=flags["missing_date"],
        missing_number=flags["missing_number"],
        notes=[name for name, raised in flags.items() if raised],
    )
    sig.confidence = penalized_confidence(CONFIDENCE_PENALTIES, flags)
    sig.quality.low_confidence = sig.confidence < 0.5

    reason = crypto_exclusion_reason(title, metadata)
    if reason:
        sig.exclude(reason)
    return sig


def are_date_types_compatible(type_a: str, type_b: str) -> bool:
    if type_a in DAY_TYPES and type_b in DAY_TYPES:
        return True
    return type_a == type_b and type_a in PERIOD_TYPES


_QUARTER_NAMES = {"first": 1, "second": 2, "third": 3, "fourth": 4}

_EXTENDED_ENTITIES: Tuple[Tuple[frozenset, str], ...] = (
    (frozenset({"solana", "sol"}), "SOLANA"),
    (frozenset({"xrp", "ripple"}), "XRP"),
    (frozenset({"dogecoin", "doge"}), "DOGECOIN"),
)

_INTRADAY_TITLE_PATTERN = (
    r"\bup\s+or\s+down\b|\bupdown\b|\bintraday\b|\b15\s*min(?:ute)?s?\b|\b30\s*min(?:ute)?s?\b|"
    r"\b1\s*hr\b|\bhourly\b|\bnext\s+hour\b"
)
