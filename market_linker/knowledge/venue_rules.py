from __future__ import annotations

import re
from typing import Any, Mapping, Optional, Tuple

# Kalshi multivariate ("MVE") combo markets. Never linkable.
MVE_TICKER_PREFIXES: Tuple[str, ...] = ("KXMV",)

KALSHI_SPORTS_PREFIXES: Tuple[str, ...] = (
    "KXMVESPORT",
    "KXMVENBASI",
    "KXNCAAMBGA",
    "KXTABLETEN",
    "KXNBAREB",
    "KXNFL",
)

# Event-ticker prefix -> crypto entity.
CRYPTO_TICKER_ENTITIES: Tuple[Tuple[str, str], ...] = (
    ("KXBTC", "BITCOIN"),
    ("KXETH", "ETHEREUM"),
    ("KXSOL", "SOLANA"),
    ("KXXRP", "XRP"),
    ("KXDOGE", "DOGECOIN"),
)

INTRADAY_TICKER_PATTERNS: Tuple[str, ...] = (
    r"UPDOWN|INTRADAY|15MIN|30MIN|1HR|HOURLY",
    r"KX(BTC|ETH|SOL|XRP|DOGE)UPDOWN",
)

DAILY_TICKER_PATTERNS: Tuple[str, ...] = (r"KX(BTC|ETH|SOL|XRP|DOGE)[DP]-",)

# Ticker date stamp such as 26JAN15.
_TICKER_DATE_STAMP = re.compile(r"\d{2}[A-Z]{3}\d{2}")

SPORTS_TITLE_KEYWORDS: Tuple[str, ...] = (
    "yes ",
    ": 1+",
    ": 2+",
    ": 3+",
    ": 4+",
    ": 5+",
    ": 6+",
    ": 7+",
    ": 8+",
    ": 9+",
    ": 10+",
    ": 15+",
    ": 20+",
    ": 25+",
    ": 30+",
    ": 40+",
    ": 50+",
    "points scored",
    "wins by over",
    "wins by under",
    "steals",
    "rebounds",
    "assists",
    "touchdowns",
    "yards",
    "kill handicap",
    "tower handicap",
    "map handicap",
)

# Metadata keys each venue uses for the same concept, tried in order.
EVENT_TICKER_KEYS: Tuple[str, ...] = ("eventTicker", "event_ticker")
SERIES_TICKER_KEYS: Tuple[str, ...] = ("seriesTicker", "series_ticker")
MULTIVARIATE_KEYS: Tuple[str, ...] = ("is_multivariate", "isMultivariate")


def metadata_value(metadata: Optional[Mapping[str, Any]], keys: Tuple[str, ...]) -> str:
    if not metadata:
        return ""
    for key in keys:
        value = metadata.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip().upper()
    return ""


def event_ticker(metadata: Optional[Mapping[str, Any]]) -> str:
    return metadata_value(metadata, EVENT_TICKER_KEYS)


def series_ticker(metadata: Optional[Mapping[str, Any]]) -> str:
    return metadata_value(metadata, SERIES_TICKER_KEYS)


def has_prefix(ticker: str, prefixes: Tuple[str, ...]) -> bool:
    return bool(ticker) and any(ticker.startswith(prefix) for prefix in prefixes)


def is_intraday_ticker(ticker: str) -> bool:
    upper = (ticker or "").upper()
    return bool(upper) and any(re.search(p, upper) for p in INTRADAY_TICKER_PATTERNS)


def is_daily_ticker(ticker: str) -> bool:
    upper = (ticker or "").upper()
    if not upper:
        return False
    if any(re.search(p, upper) for p in DAILY_TICKER_PATTERNS):
        return True
    return bool(_TICKER_DATE_STAMP.search(upper)) and not is_intraday_ticker(upper)


def crypto_entity_from_ticker(ticker: str) -> Optional[str]:
    for prefix, entity in CRYPTO_TICKER_ENTITIES:
        if ticker.startswith(prefix):
            return entity
    return None


def is_kalshi_sports(metadata: Optional[Mapping[str, Any]]) -> bool:
    return has_prefix(event_ticker(metadata), KALSHI_SPORTS_PREFIXES)


def has_sports_title_keyword(title: str) -> bool:
    lower = (title or "").lower()
    return any(kw in lower for kw in SPORTS_TITLE_KEYWORDS)


def multivariate_flag(metadata: Optional[Mapping[str, Any]]) -> Optional[bool]:
    """Explicit API multivariate flag, or None when the venue did not say."""
    if not metadata:
        return None
    for key in MULTIVARIATE_KEYS:
        value: Any = metadata.get(key)
        if isinstance(value, bool):
            return value
    return None
