from __future__ import annotations

from typing import Optional

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import EventDiagnostic
from market_linker.engine.extraction import UNKNOWN, day_diff
from market_linker.engine.pipelines.base import GATE_DATE, MarketSignal, TopicPipeline, entity_gate
from market_linker.engine.scoring import GateRejection, ScoreOutcome, ScoreResult, Weights, text_score, tier_for
from market_linker.engine.signals.finance import FinanceSignal, extract_finance_signals
from market_linker.models import MarketRecord

EXACT_BONUS = 0.05

# Relative difference between single targets -> score.
TARGET_GRADES = ((0.001, 1.0), (0.01, 0.8), (0.05, 0.5), (0.10, 0.2))


def target_score(lsig: FinanceSignal, rsig: FinanceSignal) -> float:
    if lsig.has_range and rsig.has_range:
        low = max(lsig.lower_bound, rsig.lower_bound)
        high = min(lsig.upper_bound, rsig.upper_bound)
        if low > high:
            return 0.0
        union = max(lsig.upper_bound, rsig.upper_bound) - min(lsig.lower_bound, rsig.lower_bound)
        return 1.0 if union == 0 else (high - low) / union
    for ranged, other in ((lsig, rsig), (rsig, lsig)):
        if ranged.has_range and other.target_value is not None and not other.has_range:
            inside = ranged.lower_bound <= other.target_value <= ranged.upper_bound
            return 0.8 if inside else 0.2
    if lsig.target_value is None and rsig.target_value is None:
        return 0.5
    if lsig.target_value is None or rsig.target_value is None:
        return 0.3
    avg = (lsig.target_value + rsig.target_value) / 2.0
    rel = abs(lsig.target_value - rsig.target_value) / avg if avg > 0 else 0.0
    for limit, value in TARGET_GRADES:
        if rel < limit:
            return value
    return 0.0


def direction_score(left: str, right: str) -> float:
    if left == UNKNOWN or right == UNKNOWN:
        return 0.5
    return 1.0 if left == right else 0.2


class FinancePipeline(TopicPipeline):
    topic = "finance"
    algo_version = "finance@3.1.0"
    allow_adjacent = True
    groups_brackets = True
    # instrument, date, target, text; direction rides in the extra slot.
    weights = Weights(entity=0.35, date=0.15, number=0.25, text=0.10, extra=0.15)

    def extract_signal(self, record: MarketRecord) -> FinanceSignal:
        return extract_finance_signals(record.title, record.close_time, record.metadata)

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        sig: FinanceSignal = item.signal
        if not sig.instrument or sig.date is None:
            return None
        settle = sig.date.as_date()
        return sig.instrument, settle.isoformat() if settle else ""

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: FinanceSignal = left.signal
        rsig: FinanceSignal = right.signal

        rejected = entity_gate(lsig.instrument, rsig.instrument)
        if rejected:
            return rejected
        days = day_diff(lsig.date.as_date() if lsig.date else None, rsig.date.as_date() if rsig.date else None)
        if days is None or days > 1:
            return GateRejection(GATE_DATE, f"day diff {days}")

        date = 1.0 if days == 0 else 0.8
        direction = direction_score(lsig.direction, rsig.direction)
        target = target_score(lsig, rsig)
        text = text_score(left.tokens, right.tokens)
        score = self.weights.combine(1.0, date, target, text, extra=direction)
        if target >= 1.0:
            score = min(1.0, score + EXACT_BONUS)
        if date >= 1.0:
            score = min(1.0, score + EXACT_BONUS)

        neither_priced = not lsig.numbers and not rsig.numbers
        tier = tier_for(date >= 1.0, 1.0 if neither_priced else target)
        diagnostic = EventDiagnostic(
            family="FINANCE",
            tier=tier,
            entity_score=1.0,
            date_score=date,
            date_kind=f"{days}d",
            number_score=target,
            text_score=text,
            details={
                "inst": lsig.instrument or "",
                "dir": f"{direction:.2f}[{lsig.direction}/{rsig.direction}]",
            },
        )
        return ScoreResult(
            score=score,
            entity=1.0,
            date=date,
            number=target,
            text=text,
            tier=tier,
            diagnostic=diagnostic,
            algo_version=self.algo_version,
        )
