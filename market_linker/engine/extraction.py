from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

# Comparators shared by every signal family.
GE = "GE"
LE = "LE"
BETWEEN = "BETWEEN"
EQ = "EQ"
WIN = "WIN"
UNKNOWN = "UNKNOWN"

# Date precisions, finest first.
DAY = "DAY"
MONTH = "MONTH"
QUARTER = "QUARTER"
YEAR = "YEAR"
PRECISION_RANK = {DAY: 0, MONTH: 1, QUARTER: 2, YEAR: 3}

MIN_YEAR = 2020
MAX_YEAR = 2035

MONTH_PATTERN = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|jul(?:y)?|aug(?:ust)?|"
    r"sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)

MAGNITUDES = {
    "k": 1_000.0,
    "thousand": 1_000.0,
    "m": 1_000_000.0,
    "million": 1_000_000.0,
    "b": 1_000_000_000.0,
    "billion": 1_000_000_000.0,
    "t": 1_000_000_000_000.0,
    "trillion": 1_000_000_000_000.0,
}

_NUMBER_RE = re.compile(
    r"(?P<cur>[$€£])?\s*(?<![a-z0-9.])(?P<num>\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
    r"(?:\s*(?P<suf>thousand|million|billion|trillion|[kmbt])(?![a-z]))?"
    r"(?P<pct>\s*%)?",
    re.I,
)

DEADLINE_PREPOSITIONS = ("by", "in", "before", "until", "during")


@dataclass(frozen=True)
class ExtractedDate:
    precision: str
    year: int
    month: Optional[int] = None
    day: Optional[int] = None
    quarter: Optional[int] = None
    raw: str = ""

    def as_date(self) -> Optional[date]:
        """Settlement day implied by the descriptor (period ends for coarse precisions)."""
        if self.precision == DAY and self.month and self.day:
            return _safe_date(self.year, self.month, self.day)
        if self.precision == MONTH and self.month:
            return _safe_date(self.year, self.month, last_day_of_month(self.year, self.month))
        if self.precision == QUARTER and self.quarter:
            end_month = self.quarter * 3
            return _safe_date(self.year, end_month, last_day_of_month(self.year, end_month))
        return _safe_date(self.year, 12, 31)

    def key(self) -> str:
        if self.precision == DAY:
            return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"
        if self.precision == MONTH:
            return f"{self.year:04d}-{self.month:02d}"
        if self.precision == QUARTER:
            return f"{self.year:04d}-Q{self.quarter}"
        return f"{self.year:04d}"

    def compact(self) -> str:
        if self.precision == DAY:
            return f"{self.year:04d}{self.month:02d}{self.day:02d}"
        if self.precision == MONTH:
            return f"{self.year:04d}{self.month:02d}"
        if self.precision == QUARTER:
            return f"{self.year:04d}{self.quarter * 3:02d}"
        return f"{self.year:04d}"


@dataclass
class SignalQuality:
    missing_entity: bool = False
    missing_date: bool = False
    missing_number: bool = False
    low_confidence: bool = False
    notes: List[str] = field(default_factory=list)


def penalized_confidence(penalties: Mapping[str, float], flags: Mapping[str, bool]) -> float:
    """1.0 minus the fixed penalty of every raised flag, floored at 0."""
    total = sum(penalties.get(name, 0.0) for name, raised in flags.items() if raised)
    return round(max(0.0, 1.0 - total), 4)


def clamp01(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def parse_month(name: str) -> Optional[int]:
    key = (name or "").strip().lower()
    if key in MONTHS:
        return MONTHS[key]
    return MONTHS.get(key[:3])


def valid_year(year: int) -> bool:
    return MIN_YEAR <= year <= MAX_YEAR


def day_diff(a: Optional[date], b: Optional[date]) -> Optional[int]:
    if a is None or b is None:
        return None
    return abs((a - b).days)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime_any(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, (int, float)):
        # Venues mix epoch seconds and milliseconds.
        seconds = value / 1000.0 if value > 10_000_000_000 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    raw = str(value).strip()
    if not raw:
        return None
    try:
        return as_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return None


def date_from_close_time(close_time: Optional[datetime]) -> Optional[ExtractedDate]:
    dt = as_utc(close_time)
    if dt is None:
        return None
    return ExtractedDate(precision=DAY, year=dt.year, month=dt.month, day=dt.day, raw="closeTime")


def parse_date_key(key: Optional[str]) -> Optional[date]:
    match = re.match(r"^(\d{4})-(\d{2})-(\d{2})$", key or "")
    if not match:
        return None
    return _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def find_day_dates(text: str, reference_year: Optional[int] = None) -> List[ExtractedDate]:
    """Month-day dates, with the year taken from the title or ``reference_year``."""
    out: List[ExtractedDate] = []
    pattern = rf"\b({MONTH_PATTERN})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?:,?\s+(\d{{4}}))?"
    for match in re.finditer(pattern, text, re.I):
        month = parse_month(match.group(1))
        day = int(match.group(2))
        year = int(match.group(3)) if match.group(3) else reference_year
        if month is None or year is None or not valid_year(year):
            continue
        if _safe_date(year, month, day) is None:
            continue
        out.append(ExtractedDate(precision=DAY, year=year, month=month, day=day, raw=match.group(0)))
    return out


def find_iso_dates(text: str) -> List[ExtractedDate]:
    out: List[ExtractedDate] = []
    for match in re.finditer(r"\b(\d{4})-(\d{2})-(\d{2})\b", text):
        year, month, day = int(match.group(1)), int(match.group(2)), int(match.group(3))
        if valid_year(year) and _safe_date(year, month, day) is not None:
            out.append(ExtractedDate(precision=DAY, year=year, month=month, day=day, raw=match.group(0)))
    return out


def find_month_years(text: str) -> List[ExtractedDate]:
    out: List[ExtractedDate] = []
    pattern = rf"\b({MONTH_PATTERN})\.?,?\s+(\d{{4}})\b"
    for match in re.finditer(pattern, text, re.I):
        month = parse_month(match.group(1))
        year = int(match.group(2))
        if month is None or not valid_year(year):
            continue
        out.append(ExtractedDate(precision=MONTH, year=year, month=month, raw=match.group(0)))
    return out


def find_quarters(text: str, reference_year: Optional[int] = None) -> List[ExtractedDate]:
    out: List[ExtractedDate] = []
    pattern = r"\b(?:q([1-4])|(first|second|third|fourth|1st|2nd|3rd|4th)\s+quarter)(?:\s+(?:of\s+)?(\d{4}))?\b"
    for match in re.finditer(pattern, text, re.I):
        if match.group(1):
            quarter = int(match.group(1))
        else:
            quarter = _QUARTER_WORDS[match.group(2).lower()]
        year = int(match.group(3)) if match.group(3) else reference_year
        if year is None or not valid_year(year):
            continue
        out.append(ExtractedDate(precision=QUARTER, year=year, quarter=quarter, raw=match.group(0)))
    return out


def find_end_of_years(text: str) -> List[ExtractedDate]:
    out: List[ExtractedDate] = []
    pattern = r"\b(?:by\s+)?(?:the\s+)?(?:end\s+of|year[- ]end|eoy)\s*(\d{4})\b"
    for match in re.finditer(pattern, text, re.I):
        year = int(match.group(1))
        if valid_year(year):
            out.append(ExtractedDate(precision=YEAR, year=year, raw=match.group(0)))
    return out


def find_deadline_years(text: str) -> List[ExtractedDate]:
    """Bare years, kept only with a deadline preposition in the preceding 20 characters."""
    out: List[ExtractedDate] = []
    prepositions = "|".join(DEADLINE_PREPOSITIONS)
    for match in re.finditer(r"\b(\d{4})\b", text):
        year = int(match.group(1))
        if not valid_year(year):
            continue
        before = text[max(0, match.start() - 20): match.start()].lower()
        if re.search(rf"\b(?:{prepositions})\b", before):
            out.append(ExtractedDate(precision=YEAR, year=year, raw=match.group(0)))
    return out


def extract_dates(text: str, reference_year: Optional[int] = None) -> List[ExtractedDate]:
    """All dates in a title, finest precision first.

    Extraction order: day-level dates, month+year, end-of-year, bare quarters,
    deadline years (only when nothing else matched), ISO dates. The result is
    stably re-ordered by precision so a coarser date never outranks a finer one.
    """
    found: List[ExtractedDate] = []
    found.extend(find_day_dates(text, reference_year))
    found.extend(find_month_years(text))
    found.extend(find_end_of_years(text))
    found.extend(find_quarters(text))
    if not found:
        found.extend(find_deadline_years(text))
    found.extend(find_iso_dates(text))

    seen: set[str] = set()
    unique: List[ExtractedDate] = []
    for item in found:
        key = item.key()
        if key in seen:
            continue
        # A month already pinned to a day adds nothing.
        if item.precision == MONTH and any(
            d.precision == DAY and d.year == item.year and d.month == item.month for d in unique
        ):
            continue
        seen.add(key)
        unique.append(item)
    unique.sort(key=lambda d: PRECISION_RANK[d.precision])
    return unique


def best_date(text: str, reference_year: Optional[int] = None) -> Optional[ExtractedDate]:
    dates = extract_dates(text, reference_year)
    return dates[0] if dates else None


# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumberToken:
    value: float
    start: int
    end: int
    currency: bool = False
    suffix: str = ""
    percent: bool = False
    grouped: bool = False

    @property
    def qualified(self) -> bool:
        return self.currency or bool(self.suffix)


def parse_number_token(raw: str, suffix: str = "") -> Optional[float]:
    cleaned = (raw or "").replace("$", "").replace(",", "").strip().lower()
    if not cleaned:
        return None
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return value * MAGNITUDES.get((suffix or "").lower(), 1.0)


def scan_numbers(text: str) -> List[NumberToken]:
    out: List[NumberToken] = []
    for match in _NUMBER_RE.finditer(text or ""):
        suffix = (match.group("suf") or "").lower()
        value = parse_number_token(match.group("num"), suffix)
        if value is None:
            continue
        out.append(
            NumberToken(
                value=value,
                start=match.start("num"),
                end=match.end(),
                currency=bool(match.group("cur")),
                suffix=suffix,
                percent=bool(match.group("pct")),
                grouped="," in match.group("num"),
            )
        )
    return out


def is_date_component(text: str, token: NumberToken) -> bool:
    """True for bare day-of-month values after a month token and bare calendar years."""
    if token.qualified or token.percent:
        return False
    if token.value.is_integer():
        if 1 <= token.value <= 31 and re.search(rf"\b(?:{MONTH_PATTERN})\.?\s*$", text[: token.start], re.I):
            return True
        if 1900 <= token.value <= 2100 and not token.grouped:
            return True
    for iso in re.finditer(r"\b\d{4}-\d{2}-\d{2}\b", text):
        if iso.start() <= token.start < iso.end():
            return True
    return False


def extract_numbers(text: str) -> List[float]:
    values = {tok.value for tok in scan_numbers(text) if not is_date_component(text, tok)}
    return sorted(values)


# ---------------------------------------------------------------------------
# Keywords
# ---------------------------------------------------------------------------


def keyword_pattern(keyword: str) -> str:
    kw = keyword.lower()
    head = r"(?<![a-z0-9])" if kw[:1].isalnum() else ""
    tail = r"(?![a-z0-9])" if kw[-1:].isalnum() else ""
    return head + re.escape(kw) + tail


def contains_keyword(text: str, keyword: str, negations: Sequence[str] = ()) -> bool:
    lower = (text or "").lower()
    for match in re.finditer(keyword_pattern(keyword), lower):
        prefix = lower[: match.start()]
        if any(prefix.endswith(neg + " ") for neg in negations):
            continue
        return True
    return False


def contains_any(text: str, keywords: Sequence[str], negations: Sequence[str] = ()) -> bool:
    return any(contains_keyword(text, kw, negations) for kw in keywords)


def first_matching_kind(
    text: str,
    vocabulary: Sequence[Tuple[str, Sequence[str]]],
    default: Optional[str] = None,
    negations: Sequence[str] = (),
) -> Optional[str]:
    """Walk ``vocabulary`` in order and return the first kind with a keyword hit."""
    for kind, keywords in vocabulary:
        if contains_any(text, keywords, negations):
            return kind
    return default


def first_matching_pattern(
    text: str,
    patterns: Sequence[Tuple[str, str]],
    default: Optional[str] = None,
) -> Optional[str]:
    for pattern, kind in patterns:
        if re.search(pattern, text or "", re.I):
            return kind
    return default


def has_between_range(text: str) -> bool:
    lower = (text or "").lower()
    return any(re.search(p, lower) for p in _BETWEEN_PATTERNS)


def extract_comparator(text: str) -> str:
    """BETWEEN range phrasing, then GE, then LE, then WIN keywords."""
    if has_between_range(text):
        return BETWEEN
    kind = first_matching_kind(text, COMPARATOR_VOCABULARY, negations=_NEGATIONS)
    if kind:
        return kind
    # Negated GE phrasing ("not exceed") is an upper bound.
    if contains_any(text, GE_KEYWORDS):
        return LE
    return UNKNOWN


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


MONTHS: Dict[str, int] = {
    "jan": 1,
    "january": 1,
    "feb": 2,
    "february": 2,
    "mar": 3,
    "march": 3,
    "apr": 4,
    "april": 4,
    "may": 5,
    "jun": 6,
    "june": 6,
    "jul": 7,
    "july": 7,
    "aug": 8,
    "august": 8,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "oct": 10,
    "october": 10,
    "nov": 11,
    "november": 11,
    "dec": 12,
    "december": 12,
}

_QUARTER_WORDS = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "1st": 1,
    "2nd": 2,
    "3rd": 3,
    "4th": 4,
}

GE_KEYWORDS = (
    "above",
    "over",
    "exceed",
    "exceeds",
    "exceeding",
    "reach",
    "reaches",
    "reaching",
    "hit",
    "hits",
    "at least",
    "greater than",
    "more than",
    "higher than",
    "surpass",
    "surpasses",
    "top",
    "tops",
    ">=",
    ">",
    "≥",
)

LE_KEYWORDS = (
    "below",
    "under",
    "less than",
    "at most",
    "lower than",
    "fall below",
    "falls below",
    "drop below",
    "drops below",
    "not exceed",
    "not reach",
    "fail to reach",
    "<=",
    "<",
    "≤",
)

WIN_KEYWORDS = (
    "win",
    "wins",
    "winning",
    "winner",
    "beat",
    "beats",
    "defeat",
    "defeats",
    "elected",
    "election winner",
    "victory",
    "champion",
    "champions",
    "championship",
)

COMPARATOR_VOCABULARY: Tuple[Tuple[str, Sequence[str]], ...] = (
    (GE, GE_KEYWORDS),
    (LE, LE_KEYWORDS),
    (WIN, WIN_KEYWORDS),
)

_NEGATIONS = ("not", "fail to", "never")

_BETWEEN_PATTERNS = (
    r"\bbetween\s+\$?\d[\d,.]*\s*[kmbt]?\s*%?\s*(?:and|to|-)\s*\$?\d",
    r"\bfrom\s+\$?\d[\d,.]*\s*[kmbt]?\s*%?\s+to\s+\$?\d",
    r"\$\d[\d,.]*\s*[kmbt]?\s*(?:-|to)\s*\$\d",
    r"\b\d[\d,.]*\s*[kmbt]?\s*%?\s*(?:-|to)\s*\d[\d,.]*\s*[kmbt]?\s*%?\s+range\b",
)
