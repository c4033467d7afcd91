from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import TIER_STRONG, TIER_WEAK, EventDiagnostic
from market_linker.engine.extraction import UNKNOWN, YEAR
from market_linker.engine.normalize import jaccard
from market_linker.engine.pipelines.base import (
    GATE_DATE,
    GATE_EVENT,
    GATE_REGION,
    MarketSignal,
    TopicPipeline,
)
from market_linker.engine.scoring import (
    GateRejection,
    ScoreOutcome,
    ScoreResult,
    Weights,
    clamp_score,
    text_score,
)
from market_linker.engine.signals.geopolitics import (
    GeopoliticsSignal,
    are_event_types_compatible,
    are_event_types_conflicting,
    extract_geopolitics_signals,
)
from market_linker.models import MarketRecord

COUNTRY_BONUS = 0.05
ACTOR_BONUS = 0.05


def overlap_score(left: Sequence[str], right: Sequence[str]) -> Tuple[float, int]:
    """(Jaccard score, shared count); 0.5 when neither side names anything, 0.3 when one does."""
    if not left and not right:
        return 0.5, 0
    if not left or not right:
        return 0.3, 0
    return jaccard(left, right), len(set(left) & set(right))


def event_type_score(left: str, right: str) -> float:
    if left == right and left != UNKNOWN:
        return 1.0
    if are_event_types_compatible(left, right):
        return 0.6
    return 0.0


def year_score(left: Optional[int], right: Optional[int]) -> float:
    if left and right:
        return 1.0 if left == right else 0.0
    return 0.5


def _names(values: Sequence[str]) -> str:
    return ",".join(values) or "-"


class GeopoliticsPipeline(TopicPipeline):
    topic = "geopolitics"
    algo_version = "geopolitics@3.1.0"
    # region, event type, countries, text; actors ride in the extra slot.
    # The year is a gate only, so no slot carries it.
    weights = Weights(entity=0.30, date=0.20, number=0.25, text=0.10, extra=0.15)

    def extract_signal(self, record: MarketRecord) -> GeopoliticsSignal:
        return extract_geopolitics_signals(record.title, record.close_time, record.metadata)

    def block_keys(self, item: MarketSignal) -> List[BlockKey]:
        # Primary region, every country and every actor, each within the year.
        sig: GeopoliticsSignal = item.signal
        year = str(sig.year) if sig.year else UNKNOWN
        keys: List[BlockKey] = []
        if sig.region != UNKNOWN:
            keys.append((f"region:{sig.region}", year))
        keys.extend((f"country:{country}", year) for country in sig.countries)
        keys.extend((f"actor:{actor}", year) for actor in sig.actors)
        return keys

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        keys = self.block_keys(item)
        return keys[0] if keys else None

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: GeopoliticsSignal = left.signal
        rsig: GeopoliticsSignal = right.signal

        shared_regions = set(lsig.regions) & set(rsig.regions)
        shared_countries = set(lsig.countries) & set(rsig.countries)
        if not shared_regions and not shared_countries:
            return GateRejection(
                GATE_REGION,
                f"regions {_names(lsig.regions)} vs {_names(rsig.regions)}, "
                f"countries {_names(lsig.countries)} vs {_names(rsig.countries)}",
            )
        if are_event_types_conflicting(lsig.event_type, rsig.event_type):
            return GateRejection(GATE_EVENT, f"{lsig.event_type} vs {rsig.event_type}")
        if lsig.year and rsig.year and lsig.year != rsig.year:
            return GateRejection(GATE_DATE, f"year {lsig.year} vs {rsig.year}")

        region = jaccard(lsig.regions, rsig.regions)
        countries, country_overlap = overlap_score(lsig.countries, rsig.countries)
        event = event_type_score(lsig.event_type, rsig.event_type)
        actors, actor_overlap = overlap_score(lsig.actors, rsig.actors)
        text = text_score(left.tokens, right.tokens)

        score = self.weights.combine(region, event, countries, text, extra=actors)
        if country_overlap >= 2:
            score += COUNTRY_BONUS
        if actor_overlap >= 1:
            score += ACTOR_BONUS
        score = clamp_score(score)

        strong = region >= 0.5 and country_overlap >= 1 and event >= 0.6
        tier = TIER_STRONG if strong else TIER_WEAK
        year = year_score(lsig.year, rsig.year)
        diagnostic = EventDiagnostic(
            family="GEOPOLITICS",
            tier=tier,
            entity_score=region,
            date_score=year,
            date_kind=YEAR if lsig.year and rsig.year else f"{lsig.date_type}/{rsig.date_type}",
            number_score=countries,
            text_score=text,
            details={
                "reg": f"{lsig.region}/{rsig.region}",
                "cty": f"{countries:.2f}({country_overlap})",
                "event": f"{event:.2f}[{lsig.event_type}/{rsig.event_type}]",
                "act": f"{actors:.2f}({actor_overlap})",
            },
        )
        return ScoreResult(
            score=score,
            entity=region,
            date=year,
            number=countries,
            text=text,
            tier=tier,
            diagnostic=diagnostic,
            algo_version=self.algo_version,
        )
