from __future__ import annotations

from typing import Optional

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import CryptoDailyDiagnostic
from market_linker.engine.extraction import UNKNOWN, day_diff
from market_linker.engine.pipelines.base import GATE_DATE, MarketSignal, TopicPipeline, entity_gate
from market_linker.engine.scoring import (
    CRYPTO_DATE_DECAY,
    GateRejection,
    ScoreOutcome,
    ScoreResult,
    Weights,
    decay_score,
    number_score,
    text_score,
    tier_for,
)
from market_linker.engine.signals.crypto import (
    KIND_DAILY,
    CryptoSignal,
    are_date_types_compatible,
    extract_crypto_signals,
)
from market_linker.models import MarketRecord

# Neither side quoting a threshold says little about whether they agree.
NO_NUMBERS_SCORE = 0.5


class CryptoDailyPipeline(TopicPipeline):
    topic = "crypto_daily"
    algo_version = "v3@3.0.6:CRYPTO_DAILY"
    allow_adjacent = True
    groups_brackets = True
    weights = Weights(entity=0.45, date=0.35, number=0.15, text=0.05)

    def extract_signal(self, record: MarketRecord) -> CryptoSignal:
        return extract_crypto_signals(record.title, record.close_time, record.metadata)

    def is_eligible(self, item: MarketSignal) -> bool:
        sig = item.signal
        return (
            super().is_eligible(item)
            and sig.market_kind == KIND_DAILY
            and sig.date_type != UNKNOWN
        )

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        sig = item.signal
        if not sig.entity or not sig.settle_key:
            return None
        return sig.entity, sig.settle_key

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: CryptoSignal = left.signal
        rsig: CryptoSignal = right.signal

        rejected = entity_gate(lsig.entity, rsig.entity)
        if rejected:
            return rejected
        if not are_date_types_compatible(lsig.date_type, rsig.date_type):
            return GateRejection(GATE_DATE, f"dateType {lsig.date_type} vs {rsig.date_type}")

        days: Optional[int] = None
        if lsig.is_day_type:
            days = day_diff(lsig.settle_date, rsig.settle_date)
            if days is None or days > 1:
                return GateRejection(GATE_DATE, f"day diff {days}")
            date = decay_score(days, CRYPTO_DATE_DECAY)
        else:
            if lsig.settle_period != rsig.settle_period:
                return GateRejection(GATE_DATE, f"period {lsig.settle_period} vs {rsig.settle_period}")
            date = 1.0

        number = number_score(lsig.numbers, rsig.numbers, when_both_empty=NO_NUMBERS_SCORE)
        text = text_score(left.tokens, right.tokens)
        score = self.weights.combine(1.0, date, number, text)

        date_type = lsig.date_type if lsig.date_type == rsig.date_type else f"{lsig.date_type}/{rsig.date_type}"
        context = lsig.number_context if lsig.number_context == rsig.number_context else "mixed"
        diagnostic = CryptoDailyDiagnostic(
            entity=lsig.entity or "",
            date_type=date_type,
            date_score=date,
            days=days,
            number_score=number,
            number_context=context,
            text_score=text,
        )
        return ScoreResult(
            score=score,
            entity=1.0,
            date=date,
            number=number,
            text=text,
            tier=tier_for(days is None or days == 0, number),
            diagnostic=diagnostic,
            algo_version=self.algo_version,
        )
