from __future__ import annotations

from typing import Optional

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import TIER_WEAK, EventDiagnostic
from market_linker.engine.extraction import GE, LE, UNKNOWN
from market_linker.engine.pipelines.base import (
    GATE_COMPARATOR,
    GATE_DATE,
    GATE_ENTITY,
    GATE_REGION,
    MarketSignal,
    TopicPipeline,
)
from market_linker.engine.scoring import GateRejection, ScoreOutcome, ScoreResult, Weights, text_score, tier_for
from market_linker.engine.signals.climate import (
    OTHER,
    ClimateSignal,
    are_date_types_compatible,
    climate_date_score,
    extract_climate_signals,
    threshold_score,
)
from market_linker.models import MarketRecord

STRONG_MIN_SCORE = 0.85
STRONG_DATE_MIN = 0.8


def region_score(left: Optional[str], right: Optional[str]) -> float:
    if left and right:
        return 1.0 if left == right else 0.0
    if left or right:
        return 0.4
    return 0.5


class ClimatePipeline(TopicPipeline):
    topic = "climate"
    algo_version = "climate@3.0.10"
    # kind, settle date, threshold, text; region rides in the extra slot.
    weights = Weights(entity=0.35, date=0.30, number=0.10, text=0.05, extra=0.20)

    def extract_signal(self, record: MarketRecord) -> ClimateSignal:
        return extract_climate_signals(record.title, record.close_time, record.metadata)

    def is_eligible(self, item: MarketSignal) -> bool:
        sig: ClimateSignal = item.signal
        return super().is_eligible(item) and sig.kind != OTHER and sig.date_type != UNKNOWN

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        sig: ClimateSignal = item.signal
        if sig.kind == OTHER:
            return None
        return sig.kind, sig.region_key or UNKNOWN

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: ClimateSignal = left.signal
        rsig: ClimateSignal = right.signal

        if lsig.kind != rsig.kind:
            return GateRejection(GATE_ENTITY, f"{lsig.kind} vs {rsig.kind}")
        if not are_date_types_compatible(lsig.date_type, rsig.date_type):
            return GateRejection(GATE_DATE, f"dateType {lsig.date_type} vs {rsig.date_type}")
        if lsig.region_key and rsig.region_key and lsig.region_key != rsig.region_key:
            return GateRejection(GATE_REGION, f"{lsig.region_key} vs {rsig.region_key}")
        if {lsig.comparator, rsig.comparator} == {GE, LE}:
            return GateRejection(GATE_COMPARATOR, f"{lsig.comparator} vs {rsig.comparator}")

        date = climate_date_score(lsig.date_type, lsig.settle_key, rsig.date_type, rsig.settle_key)
        region = region_score(lsig.region_key, rsig.region_key)
        if not lsig.thresholds and not rsig.thresholds:
            number = 1.0
        else:
            number = threshold_score(lsig.thresholds, rsig.thresholds)
        text = text_score(left.tokens, right.tokens)
        score = self.weights.combine(1.0, date, number, text, extra=region)

        regions_ok = region >= 1.0 or not (lsig.region_key or rsig.region_key)
        tier = tier_for(date >= 1.0, number)
        if score < STRONG_MIN_SCORE or date < STRONG_DATE_MIN or not regions_ok:
            tier = TIER_WEAK

        date_kind = lsig.date_type if lsig.date_type == rsig.date_type else f"{lsig.date_type}/{rsig.date_type}"
        diagnostic = EventDiagnostic(
            family="CLIMATE",
            tier=tier,
            entity_score=1.0,
            date_score=date,
            date_kind=date_kind,
            number_score=number,
            text_score=text,
            details={
                "kind": lsig.kind,
                "region": f"{region:.2f}[{lsig.region_key or '-'}/{rsig.region_key or '-'}]",
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
