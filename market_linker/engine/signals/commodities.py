from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

from market_linker.engine.extraction import (
    DAY,
    MONTH,
    MONTH_PATTERN,
    UNKNOWN,
    WIN,
    ExtractedDate,
    SignalQuality,
    as_utc,
    extract_comparator,
    find_day_dates,
    find_iso_dates,
    is_date_component,
    parse_month,
    penalized_confidence,
    scan_numbers,
)
from market_linker.engine.normalize import tokenize
from market_linker.engine.signals.base import BaseSignal
from market_linker.knowledge.venue_rules import has_sports_title_keyword, is_kalshi_sports

MONTH_END = "MONTH_END"
DAY_EXACT = "DAY_EXACT"
CONTRACT = "CONTRACT"

CONFIDENCE_PENALTIES = {
    "unknown_underlying": 0.5,
    "missing_date": 0.3,
    "missing_threshold": 0.1,
    "unknown_comparator": 0.1,
}

_MONTH_END_RE = re.compile(
    rf"\b(?:final\s+trading\s+day\s+of|end\s+of)\s+(?:the\s+month\s+of\s+)?({MONTH_PATTERN})[a-z]*\.?(?:\s*,?\s*(20\d{{2}}))?",
    re.I,
)
_CONTRACT_RE = re.compile(rf"\b(?:on|in|for|by)\s+({MONTH_PATTERN})[a-z]*\.?\s*,?\s*(20\d{{2}})\b", re.I)
_THRESHOLD_CUE_RE = re.compile(r"\b(?:over|above|below|under|at|between|and|to)\s*$", re.I)


@dataclass
class CommoditySignal(BaseSignal):
    underlying: Optional[str] = None
    contract_code: Optional[str] = None
    target_date: Optional[str] = None
    contract_month: Optional[str] = None
    date_source: str = "none"
    title_tokens: List[str] = field(default_factory=list)

    @property
    def month(self) -> Optional[str]:
        """Calendar month the market settles in, ``YYYY-MM``."""
        if self.target_date:
            return self.target_date[:7]
        return self.contract_month


def extract_underlying(title: str) -> Tuple[Optional[str], Optional[str]]:
    """(underlying, futures contract code) of the first commodity named in the title."""
    for pattern, underlying, code in COMMODITY_PATTERNS:
        if re.search(pattern, title or "", re.I):
            return underlying, code
    return None, None


def extract_commodity_comparator(title: str) -> str:
    comparator = extract_comparator(title)
    return UNKNOWN if comparator == WIN else comparator


def extract_thresholds(title: str) -> List[float]:
    """Dollar amounts, plus bare prices right after a cue word ("over 75")."""
    text = title or ""
    values = set()
    for tok in scan_numbers(text):
        if is_date_component(text, tok):
            continue
        if tok.currency or _THRESHOLD_CUE_RE.search(text[: tok.start]):
            values.add(tok.value)
    return sorted(values)


def extract_commodity_date(
    title: str, close_time: Optional[datetime] = None
) -> Tuple[str, Optional[ExtractedDate], str]:
    """(date type, settle date, source): month end, then an exact day, then a contract month.

    A title without any of them settles on the market's close date.
    """
    text = title or ""
    close = as_utc(close_time)

    match = _MONTH_END_RE.search(text)
    if match:
        month = parse_month(match.group(1))
        year = int(match.group(2)) if match.group(2) else (close.year if close else None)
        if month and year:
            return MONTH_END, ExtractedDate(precision=MONTH, year=year, month=month, raw=match.group(0)), "title"

    days = find_iso_dates(text) + find_day_dates(text)
    if days:
        return DAY_EXACT, days[0], "title"

    match = _CONTRACT_RE.search(text)
    if match and parse_month(match.group(1)):
        month = parse_month(match.group(1))
        return CONTRACT, ExtractedDate(precision=MONTH, year=int(match.group(2)), month=month, raw=match.group(0)), "title"

    if close is not None:
        settle = ExtractedDate(precision=DAY, year=close.year, month=close.month, day=close.day, raw="closeTime")
        return DAY_EXACT, settle, "closeTime"
    return UNKNOWN, None, "none"


def is_commodities_market(sig: CommoditySignal) -> bool:
    return sig.underlying is not None


def format_commodity_signal(sig: CommoditySignal) -> str:
    parts = []
    if sig.underlying:
        parts.append(f"underlying={sig.underlying}")
    if sig.contract_code:
        parts.append(f"code={sig.contract_code}")
    if sig.date_type != UNKNOWN:
        parts.append(f"dateType={sig.date_type}")
    if sig.target_date:
        parts.append(f"date={sig.target_date}")
    if sig.contract_month:
        parts.append(f"contract={sig.contract_month}")
    if sig.comparator != UNKNOWN:
        parts.append(f"cmp={sig.comparator}")
    if sig.numbers:
        parts.append("thresh=[" + ",".join(f"{n:g}" for n in sig.numbers) + "]")
    return " ".join(parts)


def extract_commodity_signals(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> CommoditySignal:
    underlying, code = extract_underlying(title)
    date_type, settle, source = extract_commodity_date(title, close_time)
    thresholds = extract_thresholds(title)
    comparator = extract_commodity_comparator(title)

    target_date = None
    contract_month = None
    if settle is not None:
        if date_type == CONTRACT:
            contract_month = settle.key()
        else:
            target_date = settle.key()

    sig = CommoditySignal(
        entity=underlying,
        underlying=underlying,
        contract_code=code,
        date=settle,
        date_type=date_type,
        target_date=target_date,
        contract_month=contract_month,
        date_source=source,
        numbers=thresholds,
        comparator=comparator,
        title=title,
        title_tokens=tokenize(title),
    )
    flags = {
        "unknown_underlying": underlying is None,
        "missing_date": source != "title",
        "missing_threshold": not thresholds,
        "unknown_comparator": comparator == UNKNOWN,
    }
    sig.quality = SignalQuality(
        missing_entity=flags["unknown_underlying"],
        missing_date=flags["missing_date"],
        missing_number=flags["missing_threshold"],
        notes=[name for name, raised in flags.items() if raised],
    )
    sig.confidence = penalized_confidence(CONFIDENCE_PENALTIES, flags)
    sig.quality.low_confidence = sig.confidence < 0.5
    if is_kalshi_sports(metadata) or has_sports_title_keyword(title):
        sig.exclude("sports market")
    return sig


# (pattern, underlying, contract code); the first hit wins, so "crude oil" is read before "brent".
COMMODITY_PATTERNS: Tuple[Tuple[str, str, Optional[str]], ...] = (
    (r"\bcrude\s*oil\b", "OIL_WTI", "CL"),
    (r"\boil\s*\(cl\)", "OIL_WTI", "CL"),
    (r"\b(?:wti|west\s+texas)\b", "OIL_WTI", "CL"),
    (r"\bbrent\b", "OIL_BRENT", None),
    (r"\bnatural\s*gas\b", "NATGAS", "NG"),
    (r"\bnatgas\b", "NATGAS", "NG"),
    (r"\bgas\s*\(ng\)", "NATGAS", "NG"),
    (r"\bgold\b(?!\s*en)", "GOLD", "GC"),
    (r"\bsilver\b", "SILVER", "SI"),
    (r"\bplatinum\b", "PLATINUM", None),
    (r"\bpalladium\b", "PALLADIUM", None),
    (r"\bcopper\b", "COPPER", "HG"),
    (r"\bcorn\b", "CORN", "C"),
    (r"\bwheat\b", "WHEAT", "W"),
    (r"\bsoybeans?\b", "SOYBEANS", "S"),
    (r"\bcoffee\b", "COFFEE", None),
    (r"\bsugar\b", "SUGAR", None),
    (r"\bcocoa\b", "COCOA", None),
)
