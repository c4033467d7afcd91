from __future__ import annotations

from typing import List, Optional

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import TIER_STRONG, TIER_WEAK, MacroDiagnostic
from market_linker.engine.normalize import jaccard
from market_linker.engine.pipelines.base import GATE_DATE, GATE_ENTITY, MarketSignal, TopicPipeline
from market_linker.engine.scoring import GateRejection, ScoreOutcome, ScoreResult, Weights, number_score, text_score
from market_linker.engine.signals.macro import (
    KIND_EXACT,
    KIND_NONE,
    MacroSignal,
    extract_macro_signals,
    is_period_compatible,
    period_compatibility_score,
)
from market_linker.models import MarketRecord

STRONG_ENTITY_MIN = 0.5
STRONG_NUMBER_MIN = 0.6


class MacroPipeline(TopicPipeline):
    """Economic releases. Periods may nest (a month inside its quarter) at a reduced score."""

    topic = "macro"
    algo_version = "v3@3.0.6:MACRO"
    weights = Weights(entity=0.45, date=0.35, number=0.05, text=0.15)

    def extract_signal(self, record: MarketRecord) -> MacroSignal:
        return extract_macro_signals(record.title, record.close_time, record.metadata)

    def is_eligible(self, item: MarketSignal) -> bool:
        return super().is_eligible(item) and item.signal.period is not None

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        # Blocked by year so nested periods still meet; the period gate decides.
        sig: MacroSignal = item.signal
        if not sig.entity or sig.period is None:
            return None
        return sig.entity, str(sig.period.year)

    def block_keys(self, item: MarketSignal) -> List[BlockKey]:
        # One key per entity: "CPI inflation" and "inflation" only share the second.
        sig: MacroSignal = item.signal
        if sig.period is None:
            return []
        year = str(sig.period.year)
        return [(entity, year) for entity in dict.fromkeys(sig.entities or [sig.entity]) if entity]

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: MacroSignal = left.signal
        rsig: MacroSignal = right.signal

        if not set(lsig.entities) & set(rsig.entities):
            return GateRejection(GATE_ENTITY, f"{'+'.join(lsig.entities)} vs {'+'.join(rsig.entities)}")
        kind = is_period_compatible(lsig.period_key, rsig.period_key)
        if kind == KIND_NONE:
            return GateRejection(GATE_DATE, f"period {lsig.period_key} vs {rsig.period_key}")

        entity = jaccard(lsig.entities, rsig.entities)
        period = period_compatibility_score(kind)
        number = number_score(lsig.numbers, rsig.numbers)
        text = text_score(left.tokens, right.tokens)
        score = self.weights.combine(entity, period, number, text)

        strong = kind == KIND_EXACT and entity >= STRONG_ENTITY_MIN and number >= STRONG_NUMBER_MIN
        tier = TIER_STRONG if strong else TIER_WEAK
        diagnostic = MacroDiagnostic(
            tier=tier,
            entity_score=entity,
            period_score=period,
            period_kind=kind,
            left_period=lsig.period_key or "",
            right_period=rsig.period_key or "",
            number_score=number,
            text_score=text,
        )
        return ScoreResult(
            score=score,
            entity=entity,
            date=period,
            number=number,
            text=text,
            tier=tier,
            diagnostic=diagnostic,
            algo_version=self.algo_version,
        )
