from __future__ import annotations

from typing import Optional

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import TIER_WEAK, EventDiagnostic
from market_linker.engine.extraction import UNKNOWN, day_diff, parse_date_key
from market_linker.engine.pipelines.base import GATE_DATE, MarketSignal, TopicPipeline, entity_gate
from market_linker.engine.scoring import (
    GateRejection,
    ScoreOutcome,
    ScoreResult,
    Weights,
    number_score,
    text_score,
    tier_for,
)
from market_linker.engine.signals.rates import HOLD, PAUSE, RateSignal, extract_rate_signals
from market_linker.models import MarketRecord

# (max basis-point difference, score).
BPS_GRADES = ((0, 1.0), (25, 0.7), (50, 0.4))


def action_score(left: str, right: str) -> float:
    if left == UNKNOWN or right == UNKNOWN:
        return 0.5
    if left == right:
        return 1.0
    if {left, right} == {HOLD, PAUSE}:
        return 0.8
    return 0.0


def amount_score(lsig: RateSignal, rsig: RateSignal) -> float:
    if lsig.basis_points is not None and rsig.basis_points is not None:
        diff = abs(lsig.basis_points - rsig.basis_points)
        for limit, value in BPS_GRADES:
            if diff <= limit:
                return value
        return 0.0
    return number_score(lsig.numbers, rsig.numbers)


def meeting_score(lsig: RateSignal, rsig: RateSignal) -> Optional[float]:
    """Score for the meeting dates, or None when they cannot describe the same meeting."""
    if lsig.meeting_month != rsig.meeting_month:
        return None
    if lsig.meeting_date and rsig.meeting_date:
        days = day_diff(parse_date_key(lsig.meeting_date), parse_date_key(rsig.meeting_date))
        if days is None or days > 1:
            return None
        return 1.0 if days == 0 else 0.9
    if lsig.meeting_date or rsig.meeting_date:
        return 0.8
    return 1.0


class RatesPipeline(TopicPipeline):
    topic = "rates"
    algo_version = "rates@3.0.0"
    # bank, meeting, amount, text; the action rides in the extra slot.
    weights = Weights(entity=0.40, date=0.30, number=0.10, text=0.05, extra=0.15)

    def extract_signal(self, record: MarketRecord) -> RateSignal:
        return extract_rate_signals(record.title, record.close_time, record.metadata)

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        sig: RateSignal = item.signal
        if sig.central_bank == UNKNOWN or not sig.meeting_month:
            return None
        return sig.central_bank, sig.meeting_month

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: RateSignal = left.signal
        rsig: RateSignal = right.signal

        rejected = entity_gate(lsig.entity, rsig.entity)
        if rejected:
            return rejected
        date = meeting_score(lsig, rsig)
        if date is None:
            left_meeting = lsig.meeting_date or lsig.meeting_month
            right_meeting = rsig.meeting_date or rsig.meeting_month
            return GateRejection(GATE_DATE, f"meeting {left_meeting} vs {right_meeting}")

        action = action_score(lsig.action, rsig.action)
        amount = amount_score(lsig, rsig)
        text = text_score(left.tokens, right.tokens)
        score = self.weights.combine(1.0, date, amount, text, extra=action)

        tier = tier_for(date >= 1.0, amount)
        if action < 0.5:
            tier = TIER_WEAK
        date_kind = lsig.date_type if lsig.date_type == rsig.date_type else f"{lsig.date_type}/{rsig.date_type}"
        diagnostic = EventDiagnostic(
            family="RATES",
            tier=tier,
            entity_score=1.0,
            date_score=date,
            date_kind=date_kind,
            number_score=amount,
            text_score=text,
            details={"bank": lsig.central_bank, "act": f"{action:.2f}[{lsig.action}/{rsig.action}]"},
        )
        return ScoreResult(
            score=score,
            entity=1.0,
            date=date,
            number=amount,
            text=text,
            tier=tier,
            diagnostic=diagnostic,
            algo_version=self.algo_version,
        )
