from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Dict, Generic, Iterable, List, Sequence, Tuple, TypeVar, Union

from market_linker.engine.extraction import parse_date_key
from market_linker.engine.signals.sports import neighbour_buckets

T = TypeVar("T")

BlockKey = Tuple[str, str]
# A key function returns one key, several keys (multi-entity markets) or None.
KeyFn = Callable[[T], Union[BlockKey, Sequence[BlockKey], None]]

_DAY_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_KEY = re.compile(r"^(\d{4})-(\d{2})$")
_HALF_HOUR_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:(00|30)$")


@dataclass
class CandidateIndex(Generic[T]):
    key_fn: KeyFn
    buckets: Dict[BlockKey, List[T]] = field(default_factory=dict)
    skipped: int = 0

    def __len__(self) -> int:
        return sum(len(items) for items in self.buckets.values())


def item_keys(item: T, key_fn: KeyFn) -> List[BlockKey]:
    """Usable keys of an item, in order and without repeats."""
    raw = key_fn(item)
    if raw is None:
        return []
    candidates = [raw] if isinstance(raw, tuple) else list(raw)
    keys: List[BlockKey] = []
    for key in candidates:
        if key and key[0] and key[1] and key not in keys:
            keys.append(key)
    return keys


def build_index(items: Iterable[T], key_fn: KeyFn) -> CandidateIndex[T]:
    """Group items by (entity, date bucket); items without a key are counted and skipped."""
    index: CandidateIndex[T] = CandidateIndex(key_fn=key_fn)
    for item in items:
        keys = item_keys(item, key_fn)
        if not keys:
            index.skipped += 1
            continue
        for key in keys:
            index.buckets.setdefault(key, []).append(item)
    return index


def adjacent_buckets(bucket: str) -> List[str]:
    """Neighbours one step away in the bucket's own unit; keys without a unit have none."""
    if _DAY_KEY.match(bucket):
        day = parse_date_key(bucket)
        if day is None:
            return []
        return [(day - timedelta(days=1)).isoformat(), (day + timedelta(days=1)).isoformat()]
    month = _MONTH_KEY.match(bucket)
    if month:
        index = int(month.group(1)) * 12 + int(month.group(2)) - 1
        return [f"{i // 12:04d}-{i % 12 + 1:02d}" for i in (index - 1, index + 1)]
    if _HALF_HOUR_KEY.match(bucket):
        return neighbour_buckets(bucket)
    return []


def find_candidates(item: T, index: CandidateIndex[T], allow_adjacent: bool = False) -> List[T]:
    """Items sharing any key with ``item``; an item found under several keys is returned once."""
    found: List[T] = []
    seen = set()
    for entity, bucket in item_keys(item, index.key_fn):
        lookups = [(entity, bucket)]
        if allow_adjacent:
            lookups.extend((entity, neighbour) for neighbour in adjacent_buckets(bucket))
        for key in lookups:
            for candidate in index.buckets.get(key, []):
                if id(candidate) in seen:
                    continue
                seen.add(id(candidate))
                found.append(candidate)
    return found
