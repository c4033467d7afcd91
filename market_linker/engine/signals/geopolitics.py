"""Signals for war, peace, sanctions and international-relations markets.

A geopolitics market names a place (region and countries), an event type and
often the people involved. None of these is a single reliable entity, so the
pipeline blocks on each of them and gates on their overlap.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from market_linker.engine.extraction import (
    UNKNOWN,
    YEAR,
    ExtractedDate,
    SignalQuality,
    as_utc,
    contains_any,
    first_matching_kind,
    penalized_confidence,
)
from market_linker.engine.normalize import tokenize
from market_linker.engine.signals.base import BaseSignal
from market_linker.knowledge.venue_rules import is_kalshi_sports

WAR = "WAR"
PEACE = "PEACE"
SANCTIONS = "SANCTIONS"
LEADERSHIP = "LEADERSHIP"
TERRITORY = "TERRITORY"
MILITARY = "MILITARY"
DIPLOMACY = "DIPLOMACY"

CONFIDENCE_PENALTIES = {
    "unknown_region": 0.25,
    "no_countries": 0.25,
    "unknown_event": 0.20,
    "no_actors": 0.15,
    "missing_year": 0.10,
    "no_deadline": 0.05,
}


@dataclass
class GeopoliticsSignal(BaseSignal):
    region: str = UNKNOWN
    regions: List[str] = field(default_factory=list)
    countries: List[str] = field(default_factory=list)
    event_type: str = UNKNOWN
    actors: List[str] = field(default_factory=list)
    year: Optional[int] = None
    deadline: Optional[str] = None
    title_tokens: List[str] = field(default_factory=list)


def _names_in(title: str, table: Sequence[Tuple[str, Sequence[str]]]) -> List[str]:
    return [name for name, aliases in table if contains_any(title, aliases)]


def extract_region(title: str) -> str:
    return first_matching_kind(title, REGION_KEYWORDS, default=UNKNOWN)


def extract_all_regions(title: str) -> List[str]:
    return _names_in(title, REGION_KEYWORDS)


def extract_event_type(title: str) -> str:
    """Specific events first; WAR and MILITARY are the generic fallbacks."""
    return first_matching_kind(title, EVENT_TYPE_KEYWORDS, default=UNKNOWN)


def extract_countries(title: str) -> List[str]:
    return _names_in(title, COUNTRIES)


def extract_actors(title: str) -> List[str]:
    return _names_in(title, ACTORS)


def extract_geo_year(title: str, close_time: Optional[datetime] = None) -> Optional[int]:
    match = re.search(r"\b(202[4-9]|203\d)\b", title or "")
    if match:
        return int(match.group(1))
    close = as_utc(close_time)
    return close.year if close else None


def extract_deadline(title: str) -> Optional[str]:
    lower = (title or "").lower()
    for pattern in DEADLINE_PATTERNS:
        match = re.search(pattern, lower)
        if match:
            return match.group(0)
    return None


def is_geopolitics_market(title: str) -> bool:
    return contains_any(title, GEOPOLITICS_KEYWORDS)


def are_event_types_compatible(left: str, right: str) -> bool:
    if left == right or UNKNOWN in (left, right):
        return True
    return frozenset((left, right)) in COMPATIBLE_EVENT_TYPES


def are_event_types_conflicting(left: str, right: str) -> bool:
    return {left, right} == {WAR, PEACE}


def extract_geopolitics_signals(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> GeopoliticsSignal:
    region = extract_region(title)
    countries = extract_countries(title)
    event_type = extract_event_type(title)
    actors = extract_actors(title)
    year = extract_geo_year(title, close_time)
    deadline = extract_deadline(title)

    sig = GeopoliticsSignal(
        entity=region if region != UNKNOWN else (countries[0] if countries else None),
        region=region,
        regions=extract_all_regions(title),
        countries=countries,
        event_type=event_type,
        actors=actors,
        year=year,
        deadline=deadline,
        date=ExtractedDate(precision=YEAR, year=year, raw=str(year)) if year else None,
        date_type=YEAR if year else UNKNOWN,
        title=title,
        title_tokens=tokenize(title),
    )
    flags = {
        "unknown_region": region == UNKNOWN,
        "no_countries": not countries,
        "unknown_event": event_type == UNKNOWN,
        "no_actors": not actors,
        "missing_year": year is None,
        "no_deadline": deadline is None,
    }
    sig.quality = SignalQuality(
        missing_entity=flags["unknown_region"] and flags["no_countries"],
        missing_date=flags["missing_year"],
        notes=[name for name, raised in flags.items() if raised],
    )
    sig.confidence = penalized_confidence(CONFIDENCE_PENALTIES, flags)
    sig.quality.low_confidence = sig.confidence < 0.5

    if is_kalshi_sports(metadata) or contains_any(title, SPORTS_KEYWORDS):
        sig.exclude("sports market")
    elif not is_geopolitics_market(title):
        sig.exclude("no geopolitics keyword")
    return sig


# Walked in order; the first region with a hit is the primary one.
REGION_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (
        "UKRAINE",
        ("ukraine", "ukrainian", "kyiv", "kiev", "zelensky", "zelenskyy", "donbas", "donbass", "crimea", "kharkiv", "odessa", "lviv"),
    ),
    ("RUSSIA", ("russia", "russian", "moscow", "putin", "kremlin", "soviet", "siberia", "medvedev")),
    ("CHINA", ("china", "chinese", "beijing", "xi jinping", "xi", "ccp", "taiwan", "prc", "hong kong", "tibet", "xinjiang")),
    (
        "MIDDLE_EAST",
        (
            "israel", "israeli", "gaza", "hamas", "iran", "iranian", "yemen", "hezbollah", "syria", "syrian",
            "lebanon", "lebanese", "iraq", "iraqi", "saudi", "saudi arabia", "turkey", "turkish",
            "palestine", "palestinian", "west bank", "netanyahu",
        ),
    ),
    (
        "EUROPE",
        (
            "eu", "european union", "nato", "france", "french", "macron", "germany", "german", "merkel", "scholz",
            "uk", "britain", "british", "poland", "polish", "italy", "italian", "spain", "spanish",
        ),
    ),
    (
        "ASIA",
        (
            "india", "indian", "modi", "pakistan", "pakistani", "north korea", "kim jong", "pyongyang",
            "south korea", "korean", "seoul", "japan", "japanese", "tokyo", "philippines", "vietnam", "thailand",
        ),
    ),
    ("AMERICAS", ("canada", "canadian", "trudeau", "mexico", "mexican", "brazil", "brazilian", "venezuela", "cuba", "latin america")),
    ("AFRICA", ("africa", "african", "egypt", "egyptian", "south africa", "nigeria", "ethiopia", "sudan", "libya", "libyan")),
)

EVENT_TYPE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (
        PEACE,
        ("peace", "ceasefire", "truce", "armistice", "negotiation", "negotiate", "deal", "treaty", "agreement", "settlement", "diplomatic", "talks", "summit"),
    ),
    (SANCTIONS, ("sanction", "sanctions", "embargo", "tariff", "tariffs", "trade war", "trade ban", "economic pressure", "restriction")),
    (
        LEADERSHIP,
        (
            "resign", "resignation", "step down", "overthrow", "overthrown", "coup", "election", "leader",
            "president", "prime minister", "removed", "removal", "impeach", "impeachment", "succession",
        ),
    ),
    (
        TERRITORY,
        (
            "territory", "territorial", "annex", "annexation", "occupation", "occupy", "occupied", "border",
            "borders", "sovereignty", "independence", "secession", "separatist",
        ),
    ),
    (WAR, ("war", "warfare", "invasion", "invade", "invading", "conflict", "attack", "offensive", "battle", "combat", "fighting", "hostilities", "assault")),
    (
        MILITARY,
        ("military", "troops", "soldiers", "army", "forces", "deploy", "deployment", "mobilization", "missile", "missiles", "nuclear", "weapon", "weapons", "defense", "defence"),
    ),
    (DIPLOMACY, ("diplomacy", "diplomat", "embassy", "ambassador", "relations", "alliance", "ally", "allies", "cooperation", "partnership")),
)

COUNTRIES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("UKRAINE", ("ukraine", "ukrainian")),
    ("RUSSIA", ("russia", "russian")),
    ("CHINA", ("china", "chinese")),
    ("TAIWAN", ("taiwan", "taiwanese")),
    ("ISRAEL", ("israel", "israeli")),
    ("IRAN", ("iran", "iranian")),
    ("GAZA", ("gaza",)),
    ("YEMEN", ("yemen", "yemeni")),
    ("SYRIA", ("syria", "syrian")),
    ("LEBANON", ("lebanon", "lebanese")),
    ("NORTH_KOREA", ("north korea", "dprk")),
    ("SOUTH_KOREA", ("south korea", "rok")),
    ("INDIA", ("india", "indian")),
    ("PAKISTAN", ("pakistan", "pakistani")),
    ("TURKEY", ("turkey", "turkish", "turkiye")),
    ("POLAND", ("poland", "polish")),
    ("GERMANY", ("germany", "german")),
    ("FRANCE", ("france", "french")),
    ("UK", ("uk", "britain", "british", "england")),
    ("NATO", ("nato",)),
    ("EU", ("eu", "european union")),
)

ACTORS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("PUTIN", ("putin", "vladimir putin")),
    ("ZELENSKY", ("zelensky", "zelenskyy", "volodymyr zelensky")),
    ("LAVROV", ("lavrov", "sergei lavrov")),
    ("XI", ("xi jinping", "xi", "jinping")),
    ("NETANYAHU", ("netanyahu", "bibi")),
    ("SINWAR", ("sinwar", "yahya sinwar")),
    ("KHAMENEI", ("khamenei", "ayatollah")),
    ("MACRON", ("macron", "emmanuel macron")),
    ("SCHOLZ", ("scholz", "olaf scholz")),
    ("TRUMP", ("trump", "donald trump")),
    ("BIDEN", ("biden", "joe biden")),
)

COMPATIBLE_EVENT_TYPES = frozenset(
    frozenset(pair)
    for pair in ((WAR, MILITARY), (PEACE, DIPLOMACY), (TERRITORY, WAR), (TERRITORY, PEACE))
)

_MONTHS = "january|february|march|april|may|june|july|august|september|october|november|december"
_SEASONS = "spring|summer|fall|autumn|winter"

DEADLINE_PATTERNS = (
    rf"\bby\s+(?:{_MONTHS})\b",
    rf"\bbefore\s+(?:{_MONTHS})\b",
    rf"\bby\s+(?:{_SEASONS})\b",
    rf"\bbefore\s+(?:{_SEASONS})\b",
    rf"\bby\s+end\s+of\s+(?:{_MONTHS}|\d{{4}})\b",
    r"\bbefore\s+\d{4}\b",
    r"\bby\s+\d{4}\b",
    r"\bin\s+\d{4}\b",
)

GEOPOLITICS_KEYWORDS = (
    "war", "peace", "ceasefire", "invasion", "conflict", "sanctions",
    "ukraine", "russia", "china", "taiwan", "israel", "gaza", "iran",
    "nato", "military", "troops", "territory", "treaty", "negotiation",
    "putin", "zelensky", "zelenskyy", "xi", "netanyahu", "hezbollah", "hamas",
    "syria", "yemen", "korea", "nuclear", "missile", "missiles", "tariff", "tariffs",
    "russian", "ukrainian", "chinese", "israeli", "iranian",
)

SPORTS_KEYWORDS = (
    "nba", "nfl", "mlb", "nhl", "soccer", "football game",
    "points", "rebounds", "assists", "touchdowns",
    "esports", "dota", "league of legends",
)
