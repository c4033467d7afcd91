from __future__ import annotations

from typing import Optional

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import SportsDiagnostic
from market_linker.engine.extraction import UNKNOWN
from market_linker.engine.pipelines.base import (
    GATE_DATE,
    GATE_ENTITY,
    GATE_MARKET_TYPE,
    MarketSignal,
    TopicPipeline,
)
from market_linker.engine.scoring import GateRejection, ScoreOutcome, ScoreResult, Weights, text_score, tier_for
from market_linker.engine.signals.sports import (
    SPREAD,
    TOTAL,
    SportsSignal,
    are_time_buckets_adjacent,
    extract_sports_signals,
    is_eligible_sports_signal,
)
from market_linker.models import MarketRecord

ADJACENT_BUCKET_SCORE = 0.7

# (max line difference, score), checked in order.
LINE_DIFF_GRADES = ((0.0, 1.0), (0.5, 0.9), (1.0, 0.7), (2.0, 0.4))


def line_value_score(lsig: SportsSignal, rsig: SportsSignal) -> float:
    if lsig.market_type not in (SPREAD, TOTAL):
        return 1.0
    if lsig.line_value is None or rsig.line_value is None:
        return 0.5
    diff = abs(lsig.line_value - rsig.line_value)
    for limit, value in LINE_DIFF_GRADES:
        if diff <= limit:
            return value
    return 0.1


def side_score(lsig: SportsSignal, rsig: SportsSignal) -> float:
    if lsig.side == UNKNOWN or rsig.side == UNKNOWN:
        return 0.5
    return 1.0 if lsig.side == rsig.side else 0.3


class SportsPipeline(TopicPipeline):
    """Single-game markets keyed by league, both teams and a half-hour start bucket."""

    topic = "sports"
    algo_version = "sports@3.0.14"
    allow_adjacent = True
    # league+teams, start time, line value; market type and side share the extra slot.
    weights = Weights(entity=0.65, date=0.10, number=0.10, text=0.0, extra=0.15)

    def extract_signal(self, record: MarketRecord) -> SportsSignal:
        return extract_sports_signals(record.title, record.close_time, record.metadata)

    def is_eligible(self, item: MarketSignal) -> bool:
        return is_eligible_sports_signal(item.signal) and self.block_key(item) is not None

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        sig: SportsSignal = item.signal
        if not sig.event_key or not sig.start_bucket:
            return None
        return sig.event_key.rsplit("|", 1)[0], sig.start_bucket

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: SportsSignal = left.signal
        rsig: SportsSignal = right.signal

        if lsig.league != rsig.league:
            return GateRejection(GATE_ENTITY, f"{lsig.league} vs {rsig.league}")
        if sorted([lsig.team_a, lsig.team_b]) != sorted([rsig.team_a, rsig.team_b]):
            return GateRejection(GATE_ENTITY, f"{lsig.team_a}/{lsig.team_b} vs {rsig.team_a}/{rsig.team_b}")
        if not are_time_buckets_adjacent(lsig.start_bucket or "", rsig.start_bucket or ""):
            return GateRejection(GATE_DATE, f"start {lsig.start_bucket} vs {rsig.start_bucket}")
        if lsig.market_type != rsig.market_type:
            return GateRejection(GATE_MARKET_TYPE, f"{lsig.market_type} vs {rsig.market_type}")
        if lsig.period != rsig.period:
            return GateRejection(GATE_MARKET_TYPE, f"period {lsig.period} vs {rsig.period}")

        time = 1.0 if lsig.start_bucket == rsig.start_bucket else ADJACENT_BUCKET_SCORE
        line = line_value_score(lsig, rsig)
        side = side_score(lsig, rsig)
        # Market type already matched at the gate.
        type_and_side = (0.10 * 1.0 + 0.05 * side) / 0.15
        text = text_score(left.tokens, right.tokens)
        score = self.weights.combine(1.0, time, line, 0.0, extra=type_and_side)

        event = (0.20 + 0.45 + 0.10 * time) / 0.75
        tier = tier_for(time == 1.0, line)
        diagnostic = SportsDiagnostic(
            tier=tier,
            league=lsig.league,
            event_score=event,
            line_score=line,
            side_score=side,
            market_type=lsig.market_type,
            text_score=text,
        )
        return ScoreResult(
            score=score,
            entity=1.0,
            date=time,
            number=line,
            text=text,
            tier=tier,
            diagnostic=diagnostic,
            algo_version=self.algo_version,
        )
