from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from market_linker.engine.blocking import build_index, find_candidates
from market_linker.engine.brackets import (
    BEST_SCORE,
    BracketCandidate,
    BracketStats,
    analyze_brackets,
    apply_bracket_grouping,
)
from market_linker.engine.pipelines.base import MarketSignal, TopicPipeline
from market_linker.engine.scoring import GateRejection
from market_linker.models import LINK_SUGGESTED, MarketLink, MarketRecord

logger = logging.getLogger(__name__)


@dataclass
class MatchOptions:
    min_score: float = 0.60
    max_per_left: int = 5
    max_per_right: int = 5
    max_groups_per_left: int = 3
    max_lines_per_group: int = 1
    bracket_strategy: str = BEST_SCORE

    @classmethod
    def from_settings(cls, settings) -> "MatchOptions":
        return cls(
            min_score=settings.match_min_score,
            max_per_left=settings.match_max_per_left,
            max_per_right=settings.match_max_per_right,
            max_groups_per_left=settings.bracket_max_groups_per_left,
            max_lines_per_group=settings.bracket_max_lines_per_group,
            bracket_strategy=settings.bracket_strategy,
        )


@dataclass
class SuggestStats:
    topic: str
    left_markets: int = 0
    right_markets: int = 0
    left_eligible: int = 0
    right_eligible: int = 0
    right_unindexed: int = 0
    pairs_scored: int = 0
    below_min_score: int = 0
    gate_rejections: Counter = field(default_factory=Counter)
    brackets: BracketStats = field(default_factory=BracketStats)
    capped_per_left: int = 0
    capped_per_right: int = 0
    suggested: int = 0

    def as_dict(self) -> Dict[str, object]:
        return {
            "topic": self.topic,
            "left_markets": self.left_markets,
            "right_markets": self.right_markets,
            "left_eligible": self.left_eligible,
            "right_eligible": self.right_eligible,
            "pairs_scored": self.pairs_scored,
            "below_min_score": self.below_min_score,
            "gate_rejections": dict(self.gate_rejections),
            "brackets": self.brackets.as_dict(),
            "capped_per_left": self.capped_per_left,
            "capped_per_right": self.capped_per_right,
            "suggested": self.suggested,
        }


@dataclass
class SuggestResult:
    links: List[MarketLink]
    stats: SuggestStats


def _to_link(candidate: BracketCandidate, algo_version: str, topic: str) -> MarketLink:
    left = candidate.left.record
    right = candidate.right.record
    return MarketLink(
        left_venue=left.venue,
        left_market_id=left.id,
        right_venue=right.venue,
        right_market_id=right.id,
        score=candidate.score,
        status=LINK_SUGGESTED,
        reason=candidate.result.reason,
        topic=topic,
        algo_version=algo_version,
        left_title=left.title,
        right_title=right.title,
    )


def _score_left(
    pipeline: TopicPipeline,
    left: MarketSignal,
    candidates: Iterable[MarketSignal],
    options: MatchOptions,
    stats: SuggestStats,
) -> List[BracketCandidate]:
    matches: List[BracketCandidate] = []
    seen = set()
    for right in candidates:
        if right.market_id in seen:
            continue
        seen.add(right.market_id)
        stats.pairs_scored += 1
        outcome = pipeline.score(left, right)
        if isinstance(outcome, GateRejection):
            stats.gate_rejections[outcome.gate] += 1
            continue
        if outcome.score < options.min_score:
            stats.below_min_score += 1
            continue
        matches.append(BracketCandidate(left=left, right=right, result=outcome))

    if pipeline.groups_brackets:
        if len(matches) > 1 and logger.isEnabledFor(logging.DEBUG):
            analysis = analyze_brackets(matches, top_n=3)
            logger.debug(
                "Bracket groups",
                extra={"left": left.market_id, "groups": analysis.unique_groups, "largest": analysis.largest},
            )
        matches, bracket_stats = apply_bracket_grouping(
            matches,
            max_groups_per_left=options.max_groups_per_left,
            max_lines_per_group=options.max_lines_per_group,
            strategy=options.bracket_strategy,
        )
        stats.brackets.merge(bracket_stats)

    matches.sort(key=lambda c: (-c.score, c.right.market_id))
    stats.capped_per_left += max(0, len(matches) - options.max_per_left)
    return matches[: options.max_per_left]


def suggest_links(
    pipeline: TopicPipeline,
    left_records: Iterable[MarketRecord],
    right_records: Iterable[MarketRecord],
    options: Optional[MatchOptions] = None,
) -> SuggestResult:
    """Score left markets against blocked right candidates and return suggested links."""
    options = options or MatchOptions()
    left_records = list(left_records)
    right_records = list(right_records)
    stats = SuggestStats(topic=pipeline.topic, left_markets=len(left_records), right_markets=len(right_records))

    lefts = pipeline.prepare(left_records)
    rights = pipeline.prepare(right_records)
    stats.left_eligible = len(lefts)
    stats.right_eligible = len(rights)
    index = build_index(rights, pipeline.block_keys)
    stats.right_unindexed = index.skipped

    kept: List[BracketCandidate] = []
    for left in lefts:
        found = find_candidates(left, index, allow_adjacent=pipeline.allow_adjacent)
        if found:
            kept.extend(_score_left(pipeline, left, found, options, stats))

    kept.sort(key=lambda c: (-c.score, c.left.market_id, c.right.market_id))
    per_right: Dict[str, int] = defaultdict(int)
    links: List[MarketLink] = []
    for candidate in kept:
        right_key = candidate.right.record.market_key
        if per_right[right_key] >= options.max_per_right:
            stats.capped_per_right += 1
            continue
        per_right[right_key] += 1
        links.append(_to_link(candidate, pipeline.algo_version, pipeline.topic))

    stats.suggested = len(links)
    logger.info("Suggested links", extra=stats.as_dict())
    return SuggestResult(links=links, stats=stats)
