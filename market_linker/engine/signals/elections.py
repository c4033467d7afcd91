from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

from market_linker.engine.extraction import (
    UNKNOWN,
    WIN,
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
from market_linker.knowledge.regions import ELECTION_COUNTRIES, STATE_CODES, US_ELECTION_TERMS, US_STATES

# Intents.
MARGIN = "MARGIN"
NOMINEE = "NOMINEE"
TURNOUT = "TURNOUT"
PARTY_CONTROL = "PARTY_CONTROL"
WINNER = "WINNER"

PRIME_MINISTER = "PRIME_MINISTER"

CONFIDENCE_PENALTIES = {
    "unknown_country": 0.25,
    "unknown_office": 0.25,
    "missing_year": 0.15,
    "missing_candidates": 0.20,
    "unknown_intent": 0.15,
}


@dataclass
class ElectionSignal(BaseSignal):
    country: str = UNKNOWN
    office: str = UNKNOWN
    year: Optional[int] = None
    state: Optional[str] = None
    candidates: List[str] = field(default_factory=list)
    intent: str = UNKNOWN
    party: Optional[str] = None
    title_tokens: List[str] = field(default_factory=list)

    @property
    def race_key(self) -> str:
        parts = [self.country, self.office, str(self.year) if self.year else "null"]
        if self.state:
            parts.append(self.state)
        return "|".join(parts)


def extract_country(title: str) -> str:
    country = first_matching_kind(title, ELECTION_COUNTRIES)
    if country:
        return country
    if contains_any(title, US_ELECTION_TERMS):
        return "US"
    return UNKNOWN


def extract_office(title: str) -> str:
    if re.search(r"\bpm\b", title or "", re.I):
        return PRIME_MINISTER
    return first_matching_kind(title, OFFICE_KEYWORDS, default=UNKNOWN)


def extract_intent(title: str) -> str:
    """MARGIN, NOMINEE, TURNOUT, PARTY_CONTROL, WINNER; a bare office means WINNER."""
    intent = first_matching_kind(title, INTENT_KEYWORDS)
    if intent:
        return intent
    if extract_office(title) != UNKNOWN:
        return WINNER
    return UNKNOWN


def extract_election_year(title: str, close_time: Optional[datetime] = None) -> Optional[int]:
    match = re.search(r"\b(202[4-9]|203[0-9])\b", title or "")
    if match:
        return int(match.group(1))
    close = as_utc(close_time)
    return close.year if close else None


def extract_state(title: str) -> Optional[str]:
    lower = (title or "").lower()
    for name, code in US_STATES.items():
        if re.search(rf"\b{re.escape(name)}\b", lower):
            return code.split("-")[1]
    for match in re.finditer(r"\b([A-Z]{2})\b", title or ""):
        if match.group(1) in STATE_CODES and match.group(1) not in _STATE_CODE_FALSE_FRIENDS:
            return match.group(1)
    return None


def extract_candidates(title: str) -> List[str]:
    return [name for name, aliases in CANDIDATES if contains_any(title, aliases)]


def extract_party(title: str) -> Optional[str]:
    return first_matching_kind(title, PARTY_KEYWORDS)


def is_elections_market(title: str) -> bool:
    return contains_any(title, ELECTION_KEYWORDS)


def extract_election_signals(
    title: str,
    close_time: Optional[datetime] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> ElectionSignal:
    country = extract_country(title)
    office = extract_office(title)
    year = extract_election_year(title, close_time)
    candidates = extract_candidates(title)
    intent = extract_intent(title)

    sig = ElectionSignal(
        entity=country if country != UNKNOWN else None,
        country=country,
        office=office,
        year=year,
        state=extract_state(title),
        candidates=candidates,
        intent=intent,
        party=extract_party(title),
        date=ExtractedDate(precision=YEAR, year=year, raw=str(year)) if year else None,
        date_type=YEAR if year else UNKNOWN,
        comparator=WIN if intent in (WINNER, NOMINEE, PARTY_CONTROL) else UNKNOWN,
        title=title,
        title_tokens=[t for t in tokenize(title) if len(t) >= 2],
    )
    flags = {
        "unknown_country": country == UNKNOWN,
        "unknown_office": office == UNKNOWN,
        "missing_year": year is None,
        "missing_candidates": not candidates,
        "unknown_intent": intent == UNKNOWN,
    }
    sig.quality = SignalQuality(
        missing_entity=flags["unknown_country"],
        missing_date=flags["missing_year"],
        missing_number=True,
        notes=[name for name, raised in flags.items() if raised],
    )
    sig.confidence = penalized_confidence(CONFIDENCE_PENALTIES, flags)
    sig.quality.low_confidence = sig.confidence < 0.5
    return sig


OFFICE_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("VICE_PRESIDENT", ("vice president", "vp", "veep", "running mate")),
    ("PRESIDENT", ("president", "presidential", "potus", "commander in chief", "white house", "oval office")),
    ("SENATE", ("senate", "senator", "senatorial")),
    ("GOVERNOR", ("governor", "governorship", "gubernatorial", "state house")),
    ("HOUSE", ("house of representatives", "house", "congress", "congressional", "representative")),
    (PRIME_MINISTER, ("prime minister", "premier")),
    ("MAYOR", ("mayor", "mayoral", "city hall")),
    (PARTY_CONTROL, ("control", "flip", "majority", "trifecta")),
)

INTENT_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (MARGIN, ("margin", "popular vote", "electoral vote", "landslide", "close race", "by how many", "vote share")),
    (NOMINEE, ("nominee", "nomination", "primary", "nominated", "republican nominee", "democratic nominee")),
    (TURNOUT, ("turnout", "voter turnout", "participation", "how many vote")),
    (PARTY_CONTROL, ("control", "majority", "flip", "hold", "keep", "republicans control", "democrats control")),
    (WINNER, ("win", "wins", "winner", "winning", "elected", "become", "next president", "next governor", "next senator")),
)

CANDIDATES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("TRUMP", ("trump", "donald trump", "donald j trump", "djt")),
    ("BIDEN", ("biden", "joe biden", "joseph biden")),
    ("HARRIS", ("harris", "kamala harris", "kamala")),
    ("DESANTIS", ("desantis", "ron desantis")),
    ("HALEY", ("haley", "nikki haley")),
    ("NEWSOM", ("newsom", "gavin newsom")),
    ("VANCE", ("vance", "jd vance", "j.d. vance")),
    ("RAMASWAMY", ("ramaswamy", "vivek ramaswamy", "vivek")),
    ("PENCE", ("pence", "mike pence")),
    ("RFK_JR", ("rfk", "kennedy", "robert kennedy", "rfk jr")),
    ("SUNAK", ("sunak", "rishi sunak")),
    ("STARMER", ("starmer", "keir starmer")),
    ("MACRON", ("macron", "emmanuel macron")),
    ("LE_PEN", ("le pen", "marine le pen")),
)

PARTY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("REPUBLICAN", ("republican", "republicans", "gop", "red")),
    ("DEMOCRAT", ("democrat", "democrats", "democratic", "blue")),
    ("INDEPENDENT", ("independent", "third party")),
    ("CONSERVATIVE", ("conservative", "tory", "tories")),
    ("LABOUR", ("labour", "labor")),
)

ELECTION_KEYWORDS = (
    "election",
    "president",
    "senate",
    "congress",
    "governor",
    "vote",
    "ballot",
    "electoral",
    "primary",
    "nominee",
    "republican",
    "democrat",
    "trump",
    "biden",
    "harris",
)

# Upper-case words that read as postal codes in titles.
_STATE_CODE_FALSE_FRIENDS = frozenset({"US", "UK", "PM", "VP", "OR", "IN", "ME", "HI", "OK"})
