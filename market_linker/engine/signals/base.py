from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional, Protocol

from market_linker.engine.extraction import UNKNOWN, ExtractedDate, SignalQuality
from market_linker.knowledge.venue_rules import (
    MVE_TICKER_PREFIXES,
    event_ticker,
    has_prefix,
    multivariate_flag,
    series_ticker,
)


@dataclass
class BaseSignal:
    """Capabilities every domain signal exposes to blocking and scoring."""

    entity: Optional[str] = None
    date: Optional[ExtractedDate] = None
    date_type: str = UNKNOWN
    numbers: List[float] = field(default_factory=list)
    comparator: str = UNKNOWN
    quality: SignalQuality = field(default_factory=SignalQuality)
    confidence: float = 0.0
    excluded: bool = False
    exclusion_reason: str = ""
    title: str = ""

    @property
    def date_key(self) -> Optional[str]:
        return self.date.key() if self.date else None

    def exclude(self, reason: str) -> None:
        self.excluded = True
        self.exclusion_reason = reason
        self.confidence = 0.0


class SignalExtractor(Protocol):
    def __call__(
        self,
        title: str,
        close_time: Optional[datetime] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> BaseSignal: ...


@dataclass(frozen=True)
class MveDetection:
    is_mve: bool
    source: str
    reason: str = ""


def detect_mve(title: str, metadata: Optional[Mapping[str, Any]] = None) -> MveDetection:
    """Multivariate/parlay detection: event ticker, series ticker, API flag, then title."""
    ev = event_ticker(metadata)
    if has_prefix(ev, MVE_TICKER_PREFIXES):
        return MveDetection(True, "event_ticker", f"event ticker {ev}")
    series = series_ticker(metadata)
    if has_prefix(series, MVE_TICKER_PREFIXES):
        return MveDetection(True, "series_ticker", f"series ticker {series}")
    flag = multivariate_flag(metadata)
    if flag is not None:
        return MveDetection(flag, "api_field", f"is_multivariate={str(flag).lower()}")
    for pattern in MVE_TITLE_PATTERNS:
        if re.search(pattern, title or "", re.I):
            return MveDetection(True, "title_pattern", pattern)
    return MveDetection(False, "unknown")


def structural_exclusion(title: str) -> Optional[str]:
    """Player-prop and multi-match shapes that no single-event market has."""
    if re.search(r"\w+\s+\w+:\s*\d+\+", title or ""):
        return "player prop pattern"
    segments = (title or "").split(",")
    if len(segments) >= 3:
        vs_count = len(re.findall(r"\bvs\.?(?=\W|$)", title, re.I))
        win_count = len(re.findall(r"\bwin\b", title, re.I))
        if vs_count >= 2 or win_count >= 2:
            return "multi-match list"
    return None


MVE_TITLE_PATTERNS = (
    r"^(yes|no)\s+\w+.*,\s*(yes|no)\s+",
    r"same\s+game\s+parlay",
    r"\bsgp\b",
    r"\bparlay\b",
    r"^(yes|no)\s+[^,]+,\s*(yes|no)\s+[^,]+,\s*(yes|no)\s+",
    r"(over|under)\s+[\d.]+\s+(points?\s+scored|total).*,\s*(yes|no)\s+",
    r"wins?\s+by\s+over.*,\s*(over|under)\s+[\d.]+",
)
