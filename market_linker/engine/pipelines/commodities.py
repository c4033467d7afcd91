from __future__ import annotations

from typing import Optional, Sequence

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import TIER_STRONG, TIER_WEAK, EventDiagnostic
from market_linker.engine.extraction import GE, LE, UNKNOWN
from market_linker.engine.pipelines.base import GATE_DATE, MarketSignal, TopicPipeline, entity_gate
from market_linker.engine.scoring import GateRejection, ScoreOutcome, ScoreResult, Weights, text_score
from market_linker.engine.signals.commodities import CommoditySignal, extract_commodity_signals
from market_linker.models import MarketRecord

# Relative gap between non-overlapping thresholds -> score; anything wider scores 0.3.
THRESHOLD_GAP_GRADES = ((0.01, 0.9), (0.05, 0.7))

STRONG_DATE_MIN = 0.8
STRONG_NUMBER_MIN = 0.7


def month_distance(left: Optional[str], right: Optional[str]) -> Optional[int]:
    if not left or not right:
        return None
    ly, lm = (int(part) for part in left.split("-")[:2])
    ry, rm = (int(part) for part in right.split("-")[:2])
    return abs((ly * 12 + lm) - (ry * 12 + rm))


def commodity_date_score(lsig: CommoditySignal, rsig: CommoditySignal) -> float:
    months = month_distance(lsig.month, rsig.month)
    if months is None:
        return 0.5
    if months == 0:
        return 1.0 if lsig.date_type == rsig.date_type else 0.8
    return 0.4


def comparator_score(left: str, right: str) -> float:
    if left == UNKNOWN or right == UNKNOWN:
        return 0.5
    if left == right:
        return 1.0
    if {left, right} == {GE, LE}:
        return 0.0
    return 0.3


def threshold_score(left: Sequence[float], right: Sequence[float]) -> float:
    if not left or not right:
        return 0.5
    lmin, lmax = min(left), max(left)
    rmin, rmax = min(right), max(right)
    if lmin <= rmax and rmin <= lmax:
        return 1.0
    gap = min(abs(lmax - rmin), abs(rmax - lmin))
    avg = (lmax + rmax) / 2.0
    if avg <= 0:
        return 0.3
    rel = gap / avg
    for limit, value in THRESHOLD_GAP_GRADES:
        if rel < limit:
            return value
    return 0.3


class CommoditiesPipeline(TopicPipeline):
    topic = "commodities"
    algo_version = "v3@3.0.6:COMMODITIES"
    # Neighbouring contract months still meet; the month gate decides.
    allow_adjacent = True
    groups_brackets = True
    # underlying, month, thresholds, text; the comparator rides in the extra slot.
    weights = Weights(entity=0.45, date=0.30, number=0.10, text=0.05, extra=0.10)

    def extract_signal(self, record: MarketRecord) -> CommoditySignal:
        return extract_commodity_signals(record.title, record.close_time, record.metadata)

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        sig: CommoditySignal = item.signal
        if not sig.underlying or not sig.month:
            return None
        return sig.underlying, sig.month

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: CommoditySignal = left.signal
        rsig: CommoditySignal = right.signal

        rejected = entity_gate(lsig.underlying, rsig.underlying)
        if rejected:
            return rejected
        months = month_distance(lsig.month, rsig.month)
        if months is not None and months > 1:
            return GateRejection(GATE_DATE, f"month {lsig.month} vs {rsig.month}")

        date = commodity_date_score(lsig, rsig)
        comparator = comparator_score(lsig.comparator, rsig.comparator)
        number = threshold_score(lsig.numbers, rsig.numbers)
        text = text_score(left.tokens, right.tokens)
        score = self.weights.combine(1.0, date, number, text, extra=comparator)

        tier = TIER_STRONG if date >= STRONG_DATE_MIN and number >= STRONG_NUMBER_MIN else TIER_WEAK
        date_kind = lsig.date_type if lsig.date_type == rsig.date_type else f"{lsig.date_type}/{rsig.date_type}"
        diagnostic = EventDiagnostic(
            family="COMMODITIES",
            tier=tier,
            entity_score=1.0,
            date_score=date,
            date_kind=date_kind,
            number_score=number,
            text_score=text,
            details={
                "underlying": lsig.underlying or UNKNOWN,
                "cmp": f"{comparator:.2f}[{lsig.comparator}/{rsig.comparator}]",
            },
        )
        return ScoreResult(
            score=score,
            entity=1.0,
            date=date,
            number=number,
            text=text,
            tier=tier,
            diagnostic=diagnostic,
            algo_version=self.algo_version,
        )
