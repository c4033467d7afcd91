"""Watchlist expansion policy.

Priorities:
  100  both markets of every confirmed link
   80  suggested links that pass the auto-confirm rules (not confirmed yet)
   50  the top suggested links by score
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from market_linker.engine.diagnostics import parse_reason, topic_from_diagnostic
from market_linker.engine.pipelines.registry import PIPELINES, topic_for_algo_version
from market_linker.engine.safe_rules import DEFAULT_MIN_SCORES, evaluate_safe_rules
from market_linker.models import MarketLink

PRIORITY_CONFIRMED = 100
PRIORITY_CANDIDATE_SAFE = 80
PRIORITY_TOP_SUGGESTED = 50

PRIORITY_LABELS = {
    PRIORITY_CONFIRMED: "confirmed",
    PRIORITY_CANDIDATE_SAFE: "candidate-safe",
    PRIORITY_TOP_SUGGESTED: "top_suggested",
}


@dataclass
class WatchlistPolicyConfig:
    max_total: int = 2000
    max_per_venue: int = 1000
    min_score_safe: Dict[str, float] = field(
        default_factory=lambda: {"crypto_daily": 0.90, "crypto_intraday": 0.92, "macro": 0.88}
    )
    min_score_top_suggested: float = 0.85
    max_top_suggested: int = 500

    @classmethod
    def from_settings(cls, settings) -> "WatchlistPolicyConfig":
        return cls(
            max_total=settings.watchlist_max_total,
            max_per_venue=settings.watchlist_max_per_venue,
            min_score_safe={
                "crypto_daily": settings.watchlist_min_score_safe_crypto_daily,
                "crypto_intraday": settings.watchlist_min_score_safe_intraday,
                "macro": settings.watchlist_min_score_safe_macro,
            },
            min_score_top_suggested=settings.watchlist_min_score_suggested,
            max_top_suggested=settings.watchlist_max_top_suggested,
        )

    def safe_minimum(self, topic: str) -> Optional[float]:
        return self.min_score_safe.get(topic, DEFAULT_MIN_SCORES.get(topic))


@dataclass
class WatchlistCandidate:
    venue: str
    market_id: str
    priority: int
    reason: str
    link_id: Optional[str] = None
    score: float = 0.0


@dataclass
class PolicyStats:
    confirmed_markets: int = 0
    candidate_safe_markets: int = 0
    top_suggested_markets: int = 0
    total_unique: int = 0
    by_venue: Dict[str, int] = field(default_factory=dict)
    by_priority: Dict[int, int] = field(default_factory=dict)
    capped_by_venue: bool = False
    capped_by_total: bool = False
    dropped_by_venue_cap: int = 0
    dropped_by_total_cap: int = 0


@dataclass
class PolicyResult:
    candidates: List[WatchlistCandidate]
    stats: PolicyStats


def link_topic(link: MarketLink) -> Optional[str]:
    """Explicit topic, then the algorithm version, then the reason grammar."""
    if link.topic in PIPELINES:
        return link.topic
    topic = topic_for_algo_version(link.algo_version)
    if topic:
        return topic
    topic = topic_from_diagnostic(parse_reason(link.reason))
    return topic if topic in PIPELINES else None


class _Selection:
    def __init__(self, config: WatchlistPolicyConfig) -> None:
        self.config = config
        self.by_market: Dict[tuple, WatchlistCandidate] = {}
        self.venue_counts: Counter = Counter()
        self.stats = PolicyStats()

    def add(self, venue: str, market_id: str, priority: int, reason: str, link: MarketLink) -> bool:
        key = (venue, market_id)
        existing = self.by_market.get(key)
        if existing is not None:
            if existing.priority >= priority:
                return False
        else:
            if self.venue_counts[venue] >= self.config.max_per_venue:
                self.stats.dropped_by_venue_cap += 1
                return False
            if len(self.by_market) >= self.config.max_total:
                self.stats.dropped_by_total_cap += 1
                return False
            self.venue_counts[venue] += 1
        self.by_market[key] = WatchlistCandidate(
            venue=venue,
            market_id=market_id,
            priority=priority,
            reason=reason,
            link_id=link.id,
            score=link.score,
        )
        return True

    def add_link(self, link: MarketLink, priority: int, reason: str) -> int:
        added = 0
        if self.add(link.left_venue, link.left_market_id, priority, reason, link):
            added += 1
        if self.add(link.right_venue, link.right_market_id, priority, reason, link):
            added += 1
        return added


def apply_watchlist_policy(
    confirmed: Sequence[MarketLink],
    suggested: Sequence[MarketLink],
    config: Optional[WatchlistPolicyConfig] = None,
) -> PolicyResult:
    config = config or WatchlistPolicyConfig()
    selection = _Selection(config)
    stats = selection.stats

    for link in confirmed:
        stats.confirmed_markets += selection.add_link(link, PRIORITY_CONFIRMED, "confirmed_link")

    ranked = sorted(suggested, key=lambda link: link.score, reverse=True)
    for link in ranked:
        topic = link_topic(link)
        if topic is None:
            continue
        minimum = config.safe_minimum(topic)
        if minimum is None or link.score < minimum:
            continue
        if not evaluate_safe_rules(link, topic, minimum).passed:
            continue
        stats.candidate_safe_markets += selection.add_link(link, PRIORITY_CANDIDATE_SAFE, f"candidate_safe:{topic}")

    taken = 0
    for link in ranked:
        if taken >= config.max_top_suggested or link.score < config.min_score_top_suggested:
            break
        added = selection.add_link(link, PRIORITY_TOP_SUGGESTED, "top_suggested")
        if added:
            taken += 1
            stats.top_suggested_markets += added

    candidates = list(selection.by_market.values())
    stats.total_unique = len(candidates)
    stats.by_venue = dict(selection.venue_counts)
    stats.by_priority = dict(Counter(c.priority for c in candidates))
    stats.capped_by_venue = any(n >= config.max_per_venue for n in selection.venue_counts.values())
    stats.capped_by_total = len(candidates) >= config.max_total
    return PolicyResult(candidates=candidates, stats=stats)


def format_policy_result(result: PolicyResult) -> str:
    stats = result.stats
    lines = [
        "[watchlist policy]",
        f"  confirmed markets:      {stats.confirmed_markets}",
        f"  candidate-safe markets: {stats.candidate_safe_markets}",
        f"  top suggested markets:  {stats.top_suggested_markets}",
        f"  total unique:           {stats.total_unique}",
        "[by venue]",
    ]
    for venue, count in sorted(stats.by_venue.items()):
        lines.append(f"  {venue}: {count}")
    lines.append("[by priority]")
    for priority, count in sorted(stats.by_priority.items(), reverse=True):
        lines.append(f"  {priority} ({PRIORITY_LABELS.get(priority, '?')}): {count}")
    if stats.capped_by_venue:
        lines.append(f"capped by venue limit, dropped {stats.dropped_by_venue_cap}")
    if stats.capped_by_total:
        lines.append(f"capped by total limit, dropped {stats.dropped_by_total_cap}")
    return "\n".join(lines)
