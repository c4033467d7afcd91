from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional, Tuple

from market_linker.engine.extraction import (
    DAY,
    GE,
    LE,
    MONTH_PATTERN,
    UNKNOWN,
    WIN,
    ExtractedDate,
    SignalQuality,
    contains_any,
    first_matching_pattern,
    is_date_component,
    parse_datetime_any,
    penalized_confidence,
    scan_numbers,
)
from market_linker.engine.normalize import normalize_team_name, tokenize
from market_linker.engine.signals.base import BaseSignal, detect_mve, structural_exclusion
from market_linker.knowledge.aliases import LEAGUE_KEYWORD_PRIORITY, LEAGUE_KEYWORDS, LEAGUE_PATTERNS

MONEYLINE = "MONEYLINE"
SPREAD = "SPREAD"
TOTAL = "TOTAL"
PROP = "PROP"
FUTURES = "FUTURES"
PARLAY = "PARLAY"

FULL_GAME = "FULL_GAME"

SIDE_OVER = "OVER"
SIDE_UNDER = "UNDER"
SIDE_HOME = "HOME"
SIDE_AWAY = "AWAY"
SIDE_YES = "YES"
SIDE_NO = "NO"

SUPPORTED_MARKET_TYPES = (MONEYLINE, SPREAD, TOTAL)

CONFIDENCE_PENALTIES = {
    "missing_teams": 0.4,
    "missing_start_time": 0.2,
    "unknown_league": 0.15,
    "unknown_market_type": 0.1,
    "not_full_game": 0.1,
}

_BUCKET_FORMAT = "%Y-%m-%dT%H:%M"


@dataclass
class SportsSignal(BaseSignal):
    league: str = UNKNOWN
    team_a: str = ""
    team_b: str = ""
    teams_source: str = "none"
    start_time: Optional[datetime] = None
    start_bucket: Optional[str] = None
    start_time_source: str = "none"
    venue_event_id: Optional[str] = None
    market_type: str = UNKNOWN
    period: str = FULL_GAME
    line_value: Optional[float] = None
    side: str = UNKNOWN
    event_key: Optional[str] = None
    title_tokens: List[str] = field(default_factory=list)

    @property
    def has_teams(self) -> bool:
        return bool(self.team_a and self.team_b)


def detect_league(text: str) -> str:
    """Explicit league markers first, then team/keyword hits in fixed league order."""
    explicit = first_matching_pattern(text, LEAGUE_PATTERNS)
    if explicit:
        return explicit
    for league in LEAGUE_KEYWORD_PRIORITY:
        if contains_any(text, LEAGUE_KEYWORDS[league]):
            return league
    return UNKNOWN


def strip_schedule(text: str) -> str:
    """Drop date and kickoff-time phrases ("on Jan 23", "2025-01-23", "at 7:30 PM ET")."""
    for pattern in _SCHEDULE_PATTERNS:
        text = re.sub(pattern, " ", text or "", flags=re.I)
    return re.sub(r"\s+", " ", text).strip()


def extract_teams(title: str) -> Tuple[Optional[str], Optional[str]]:
    text = strip_schedule(title)
    for pattern in _TEAM_PATTERNS:
        match = re.search(pattern, text, re.I)
        if not match:
            continue
        team_a = normalize_team_name(match.group(1).strip())
        team_b = normalize_team_name(match.group(2).strip())
        if team_a and team_b and team_a != team_b:
            return team_a, team_b
    return None, None


def detect_market_type(title: str) -> str:
    return first_matching_pattern(strip_schedule(title).lower(), _MARKET_TYPE_PATTERNS, default=UNKNOWN)


def detect_period(title: str) -> str:
    return first_matching_pattern((title or "").lower(), _PERIOD_PATTERNS, default=FULL_GAME)


def extract_line_value(title: str, market_type: str) -> Optional[float]:
    if market_type == SPREAD:
        return _spread_line(title or "")
    if market_type == TOTAL:
        match = re.search(r"(?:over|under|o/u|total)\s*(\d+\.?\d*)", title or "", re.I)
        if match:
            return float(match.group(1))
    return None


def _spread_line(title: str) -> Optional[float]:
    # A signed number is the line; dates and bare years never are.
    tokens = [tok for tok in scan_numbers(title) if not is_date_component(title, tok)]
    signed = [tok for tok in tokens if title[tok.start - 1 : tok.start] in ("+", "-")]
    pool = signed or tokens
    if not pool:
        return None
    tok = pool[0]
    return -tok.value if title[tok.start - 1 : tok.start] == "-" else tok.value


def extract_side(title: str) -> str:
    lower = (title or "").lower()
    for side in (SIDE_OVER, SIDE_UNDER, SIDE_HOME, SIDE_AWAY, SIDE_YES, SIDE_NO):
        if re.search(rf"\b{side.lower()}\b", lower):
            return side
    return UNKNOWN


def generate_time_bucket(dt: datetime) -> str:
    """UTC half-hour bucket, e.g. 2025-01-23T20:00 or 2025-01-23T20:30."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    minute = 0 if dt.minute < 30 else 30
    return dt.replace(minute=minute, second=0, microsecond=0).strftime(_BUCKET_FORMAT)


def parse_time_bucket(bucket: str) -> Optional[datetime]:
    try:
        return datetime.strptime(bucket, _BUCKET_FORMAT).replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def are_time_buckets_adjacent(bucket_a: str, bucket_b: str) -> bool:
    if bucket_a == bucket_b:
        return True
    a = parse_time_bucket(bucket_a)
    b = parse_time_bucket(bucket_b)
    if a is None or b is None:
        return False
    return abs(a - b) <= timedelta(minutes=30)


def neighbour_buckets(bucket: str) -> List[str]:
    parsed = parse_time_bucket(bucket)
    if parsed is None:
        return []
    step = timedelta(minutes=30)
    return [(parsed - step).strftime(_BUCKET_FORMAT), (parsed + step).strftime(_BUCKET_FORMAT)]


def generate_event_key(league: str, team_a: str, team_b: str, start_bucket: str) -> str:
    teams = sorted([normalize_team_name(team_a), normalize_team_name(team_b)])
    return f"{league}|{teams[0]}|{teams[1]}|{start_bucket}"


def exclusion_reason(title: str, metadata: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    mve = detect_mve(title, metadata)
    if mve.is_mve:
        return f"mve:{mve.source}"
    for keyword in EXCLUSION_KEYWORDS:
        if contains_any(title, (keyword,)):
            return f"excluded keyword: {keyword}"
    structural = structural_exclusion(title)
    if structural:
        return structural
    for pattern, reason in _PARLAY_PATTERNS:
        if re.search(pattern, title or "", re.I):
            return f"parlay: {reason}"
    return None


def _event_fields(metadata: Optional[Mapping[str, Any]]) -> Tuple[str, str, Optional[datetime]]:
    if not metadata:
        return "", "", None
    title = str(metadata.get("event_title") or metadata.get("eventTitle") or "").strip()
    subtitle = str(metadata.get("event_subtitle") or metadata.get("eventSubTitle") or "").strip()
    strike = parse_datetime_any(metadata.get("strike_date") or metadata.get("strikeDate"))
    return title, subtitle, strike


def _start_time(
    close_time: Optional[datetime],
    metadata: Optional[Mapping[str, Any]],
    strike: Optional[datetime],
) -> Tuple[Optional[datetime], str]:
    if strike is not None:
        return strike, "event"
    if metadata:
        for key in ("eventStartTime", "openTime"):
            parsed = parse_datetime_any(metadata.get(key))
            if parsed is not None:
                return parsed, "market"
    if close_time is not None:
        return parse_datetime_any(close_time), "closeTime"
    return None, "none"


def _venue_event_id(metadata: Optional[Mapping[str, Any]]) -> Optional[str]:
    if not metadata:
        return None
    for key in ("game_id", "event_ticker", "eventTicker", "series_ticker", "seriesTicker"):
        value = metadata.get(key)
        if value:
            return str(value)
    return None


def extract_sports_signals(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> SportsSignal:
    event_title, event_subtitle, strike = _event_fields(metadata)

    teams_source = "none"
    team_a, team_b = None, None
    for source_text in (event_title, event_subtitle):
        if source_text:
            team_a, team_b = extract_teams(source_text)
            if team_a and team_b:
                teams_source = "event"
                break
    if teams_source == "none":
        team_a, team_b = extract_teams(title)
        if team_a and team_b:
            teams_source = "market"

    start_time, start_source = _start_time(close_time, metadata, strike)
    start_bucket = generate_time_bucket(start_time) if start_time else None

    league = detect_league(event_title or title)
    market_type = detect_market_type(title)
    period = detect_period(title)
    line_value = extract_line_value(title, market_type)
    side = extract_side(title)

    sig = SportsSignal(
        entity=league,
        league=league,
        team_a=team_a or "",
        team_b=team_b or "",
        teams_source=teams_source,
        start_time=start_time,
        start_bucket=start_bucket,
        start_time_source=start_source,
        venue_event_id=_venue_event_id(metadata),
        market_type=market_type,
        period=period,
        line_value=line_value,
        side=side,
        numbers=[line_value] if line_value is not None else [],
        comparator=_comparator_for(market_type, side),
        title=title,
        title_tokens=[t for t in tokenize(title) if len(t) >= 2 and t not in _TITLE_STOPWORDS],
    )
    if start_time is not None:
        sig.date = ExtractedDate(
            precision=DAY, year=start_time.year, month=start_time.month, day=start_time.day, raw=start_source
        )
        sig.date_type = "EVENT_TIME"

    flags = {
        "missing_teams": not sig.has_teams,
        "missing_start_time": start_bucket is None,
        "unknown_league": league == UNKNOWN,
        "unknown_market_type": market_type == UNKNOWN,
        "not_full_game": period != FULL_GAME,
    }
    sig.quality = SignalQuality(
        missing_entity=flags["missing_teams"] or flags["unknown_league"],
        missing_date=flags["missing_start_time"],
        missing_number=market_type in (SPREAD, TOTAL) and line_value is None,
        notes=[name for name, raised in flags.items() if raised],
    )
    sig.confidence = penalized_confidence(CONFIDENCE_PENALTIES, flags)
    sig.quality.low_confidence = sig.confidence < 0.5

    if sig.has_teams and start_bucket and league != UNKNOWN:
        sig.event_key = generate_event_key(league, sig.team_a, sig.team_b, start_bucket)

    reason = exclusion_reason(title, metadata)
    if reason is None and market_type in (PROP, FUTURES, PARLAY):
        reason = f"market type {market_type}"
    if reason:
        sig.exclude(reason)
    return sig


def is_eligible_sports_signal(sig: SportsSignal) -> bool:
    return (
        sig.has_teams
        and sig.start_bucket is not None
        and not sig.excluded
        and sig.period == FULL_GAME
        and sig.market_type in SUPPORTED_MARKET_TYPES
        and sig.league != UNKNOWN
    )


def _comparator_for(market_type: str, side: str) -> str:
    if side == SIDE_OVER:
        return GE
    if side == SIDE_UNDER:
        return LE
    if market_type == MONEYLINE:
        return WIN
    return UNKNOWN


_SCHEDULE_PATTERNS = (
    r"\b(?:on\s+)?\d{4}-\d{2}-\d{2}(?:[t ]\d{1,2}:\d{2}(?::\d{2})?z?)?\b",
    rf"\b(?:on\s+)?(?:{MONTH_PATTERN})\.?\s+\d{{1,2}}(?:st|nd|rd|th)?\b(?:,?\s+\d{{4}}\b)?",
    r"\b(?:on\s+)?\d{1,2}/\d{1,2}(?:/\d{2,4})?\b",
    r"\b(?:at\s+)?\d{1,2}(?::\d{2})?\s*(?:am|pm)\b(?:\s+(?:et|est|edt|ct|cst|cdt|pt|pst|pdt|utc)\b)?",
    r"\b(?:today|tonight|tomorrow)\b",
)

_TEAM_PATTERNS = (
    r"^(.+?)\s+(?:vs\.?|v\.?|versus)\s+(.+?)(?:\s*[-–—:]\s*|\s*$)",
    r"^(.+?)\s+@\s+(.+?)(?:\s*[-–—:]\s*|\s*$)",
    r"^(.+?)\s+at\s+(.+?)(?:\s*[-–—:]\s*|\s*$)",
)

# Order is the market-type priority: the first hit wins.
_MARKET_TYPE_PATTERNS: Tuple[Tuple[str, str], ...] = (
    (r"parlay|multi|combo|accumulator|acca", PARLAY),
    (
        r"\bpoints\b.*\b\d+\+|\bpassing\s+yards|\brushing\s+yards|\breceiving\s+yards|\btouchdown|"
        r"first\s+scorer|\blast\s+scorer|\bgoals?\b.*\b\d+|\bassist|\brebound|\bstrikeout|\bhome\s+run|\bhr\b|\brbi\b",
        PROP,
    ),
    (
        r"champion|winner\s+of\s+the\s+(season|tournament|league|cup)|mvp|rookie|draft|award|playoffs?\s+berth|"
        r"make\s+playoffs|win\s+total\s+(season|20\d\d)|next\s+(team|coach|manager)|fired|hired",
        FUTURES,
    ),
    (r"spread|handicap|\+\d+\.?\d*|\-\d+\.?\d*\s*(point|pts)?", SPREAD),
    (
        r"over/under|over\s*/?\s*under|total\s+(points|goals|runs)|o/u|\bo\s*\d+\.?\d*\b|\bu\s*\d+\.?\d*\b|"
        r"over\s+\d+\.?\d*|under\s+\d+\.?\d*",
        TOTAL,
    ),
    (r"(?:will\s+)?(.+?)\s+(win|beat|defeat)|moneyline|money\s+line|to\s+win|winner(\s+of)?", MONEYLINE),
    (r"^(.+?)\s+(?:vs\.?|v\.?|@)\s+(.+?)$", MONEYLINE),
)

_PERIOD_PATTERNS: Tuple[Tuple[str, str], ...] = (
    (r"\b(1st|first)\s+(half|h)\b|\b1h\b", "1H"),
    (r"\b(2nd|second)\s+(half|h)\b|\b2h\b", "2H"),
    (r"\b(1st|first)\s+(quarter|q)\b|\bq1\b", "Q1"),
    (r"\b(2nd|second)\s+(quarter|q)\b|\bq2\b", "Q2"),
    (r"\b(3rd|third)\s+(quarter|q)\b|\bq3\b", "Q3"),
    (r"\b(4th|fourth)\s+(quarter|q)\b|\bq4\b", "Q4"),
    (r"\b(1st|first)\s+period\b|\bp1\b", "P1"),
    (r"\b(2nd|second)\s+period\b|\bp2\b", "P2"),
    (r"\b(3rd|third)\s+period\b|\bp3\b", "P3"),
    (r"overtime|ot\b", "OT"),
)

EXCLUSION_KEYWORDS = (
    # player props
    "yards",
    "passing",
    "rushing",
    "receiving",
    "touchdown",
    "td",
    "first scorer",
    "last scorer",
    "anytime scorer",
    "goalscorer",
    "assist",
    "rebound",
    "block",
    "steal",
    "double double",
    "triple double",
    "strikeout",
    "home run",
    "hr",
    "rbi",
    "hit",
    "save",
    "shots on goal",
    "shots on target",
    "corner",
    "card",
    "booking",
    # futures
    "champion",
    "championship",
    "mvp",
    "rookie of the year",
    "draft pick",
    "win total",
    "playoff",
    "make playoffs",
    "division winner",
    "conference winner",
    "regular season",
    "postseason",
    "award",
    # parlays
    "parlay",
    "multi",
    "combo",
    "accumulator",
    "acca",
    "same game parlay",
    "sgp",
    # live trading
    "live",
    "in-play",
    "in play",
    "next point",
    "next goal",
    "current",
    # specials
    "special",
    "novelty",
    "entertainment",
    "promotion",
    "boost",
    "correct score",
    "exact score",
    "first to score",
    "fired",
    "hired",
    "next coach",
    "next manager",
    "next team",
    "transfer",
    "trade",
    "signing",
)

_PARLAY_PATTERNS: Tuple[Tuple[str, str], ...] = (
    (r"^yes\s+.+,\s*yes\s+", "yes X, yes Y"),
    (r"\+\s*[a-z]\w*.*\+\s*[a-z]\w*", "multiple + combinations"),
    (r"\band\b.*\band\b.*\band\b", "triple and"),
    (r"\bparlay\b|\baccumulator\b|\bsgp\b", "explicit parlay keyword"),
    (r"\d+\s*-?\s*leg\b", "multi-leg"),
    (r"\ball\s+\d+\b", "all N"),
)

_TITLE_STOPWORDS = frozenset(
    {"the", "a", "an", "in", "on", "at", "to", "of", "be", "will", "is", "are", "vs", "versus"}
)
