from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from market_linker.knowledge.aliases import CITY_ABBREVIATIONS, ENTITY_ALIASES, TEAM_ALIASES


def tokenize(text: str) -> List[str]:
    """Lowercase, collapse every non-alphanumeric run to a separator, drop empties."""
    return [tok for tok in re.split(r"[^a-z0-9]+", (text or "").lower()) if tok]


def clean_text(text: str) -> str:
    return " ".join(tokenize(text))


def _build_alias_lookup() -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for canonical, aliases in TEAM_ALIASES.items():
        for alias in aliases:
            # First canonical listed keeps a shared alias.
            lookup.setdefault(clean_text(alias), canonical)
    return lookup


_CANONICAL_NAMES = frozenset(TEAM_ALIASES.keys())
_ALIAS_LOOKUP = _build_alias_lookup()


def _lookup(cleaned: str) -> Optional[str]:
    if cleaned in _CANONICAL_NAMES:
        return cleaned
    return _ALIAS_LOOKUP.get(cleaned)


def _expand_city_abbreviation(cleaned: str) -> Optional[str]:
    for abbrev, full in CITY_ABBREVIATIONS:
        if cleaned.startswith(abbrev + " "):
            return full + cleaned[len(abbrev):]
    return None


def normalize_name(text: str) -> str:
    """Resolve a team/proper name to its canonical form.

    Pass one looks the cleaned string up directly. Pass two expands a leading
    city abbreviation ("la lakers" -> "los angeles lakers") and retries. An
    unresolved name comes back cleaned, which keeps the function idempotent.
    """
    cleaned = clean_text(text)
    if not cleaned:
        return ""
    resolved = _lookup(cleaned)
    if resolved:
        return resolved
    expanded = _expand_city_abbreviation(cleaned)
    if expanded:
        resolved = _lookup(expanded)
        if resolved:
            return resolved
    return cleaned


normalize_team_name = normalize_name


def extract_entities(text: str) -> List[str]:
    """Canonical entities whose alias appears as a whole token run, sorted and unique."""
    padded = f" {clean_text(text)} "
    found = {canonical for alias, canonical in _ENTITY_ALIASES if f" {alias} " in padded}
    return sorted(found)


_ENTITY_ALIASES = tuple((clean_text(alias), canonical) for alias, canonical in ENTITY_ALIASES.items())


def title_tokens(text: str, stopwords: Iterable[str] = ()) -> set[str]:
    skip = set(stopwords)
    return {tok for tok in tokenize(text) if tok not in skip}


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    left = set(a)
    right = set(b)
    if not left or not right:
        return 0.0
    union = len(left | right)
    if union == 0:
        return 0.0
    return len(left & right) / union


def text_similarity(left_title: str, right_title: str) -> float:
    return jaccard(tokenize(left_title), tokenize(right_title))
