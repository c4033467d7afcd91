from __future__ import annotations

from typing import Optional

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import TIER_STRONG, TIER_WEAK, IntradayDiagnostic
from market_linker.engine.pipelines.base import GATE_DATE, GATE_DIRECTION, MarketSignal, TopicPipeline, entity_gate
from market_linker.engine.scoring import GateRejection, ScoreOutcome, ScoreResult, Weights, text_score
from market_linker.engine.signals.crypto import KIND_INTRADAY, CryptoSignal, extract_crypto_signals
from market_linker.models import MarketRecord

STRONG_MIN_SCORE = 0.85


class CryptoIntradayPipeline(TopicPipeline):
    """Hourly up/down crypto markets; the close-hour bucket must match exactly."""

    topic = "crypto_intraday"
    algo_version = "v3@3.0.6:CRYPTO_INTRADAY"
    weights = Weights(entity=0.60, date=0.30, number=0.0, text=0.10)

    def extract_signal(self, record: MarketRecord) -> CryptoSignal:
        return extract_crypto_signals(record.title, record.close_time, record.metadata)

    def is_eligible(self, item: MarketSignal) -> bool:
        return super().is_eligible(item) and item.signal.market_kind == KIND_INTRADAY

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        sig = item.signal
        if not sig.entity or not sig.time_bucket:
            return None
        return sig.entity, sig.time_bucket

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: CryptoSignal = left.signal
        rsig: CryptoSignal = right.signal

        rejected = entity_gate(lsig.entity, rsig.entity)
        if rejected:
            return rejected
        if not lsig.time_bucket or lsig.time_bucket != rsig.time_bucket:
            return GateRejection(GATE_DATE, f"bucket {lsig.time_bucket} vs {rsig.time_bucket}")
        if lsig.direction and rsig.direction and lsig.direction != rsig.direction:
            return GateRejection(GATE_DIRECTION, f"{lsig.direction} vs {rsig.direction}")

        text = text_score(left.tokens, right.tokens)
        score = self.weights.combine(1.0, 1.0, 0.0, text)
        diagnostic = IntradayDiagnostic(
            entity=lsig.entity or "",
            bucket=lsig.time_bucket,
            left_direction=lsig.direction or "none",
            right_direction=rsig.direction or "none",
            text_score=text,
        )
        strong = diagnostic.direction_matches and score >= STRONG_MIN_SCORE
        return ScoreResult(
            score=score,
            entity=1.0,
            date=1.0,
            number=1.0,
            text=text,
            tier=TIER_STRONG if strong else TIER_WEAK,
            diagnostic=diagnostic,
            algo_version=self.algo_version,
        )
