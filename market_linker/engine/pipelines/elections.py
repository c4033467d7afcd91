from __future__ import annotations

from typing import List, Optional, Tuple

from market_linker.engine.blocking import BlockKey
from market_linker.engine.diagnostics import TIER_STRONG, TIER_WEAK, EventDiagnostic
from market_linker.engine.extraction import UNKNOWN
from market_linker.engine.normalize import jaccard
from market_linker.engine.pipelines.base import GATE_DATE, GATE_ENTITY, GATE_REGION, MarketSignal, TopicPipeline
from market_linker.engine.scoring import GateRejection, ScoreOutcome, ScoreResult, Weights, text_score
from market_linker.engine.signals.elections import ElectionSignal, extract_election_signals
from market_linker.models import MarketRecord

STATE_MATCH_BONUS = 0.05


def candidate_score(left: List[str], right: List[str]) -> Tuple[float, int]:
    """(score, overlap): Jaccard of the named candidates with partial credit when absent."""
    if not left and not right:
        return 0.5, 0
    if not left or not right:
        return 0.3, 0
    overlap = len(set(left) & set(right))
    return jaccard(left, right), overlap


class ElectionsPipeline(TopicPipeline):
    topic = "elections"
    algo_version = "elections@3.0.0"
    # country+office, year, candidates, text.
    weights = Weights(entity=0.40, date=0.15, number=0.25, text=0.20)

    def extract_signal(self, record: MarketRecord) -> ElectionSignal:
        return extract_election_signals(record.title, record.close_time, record.metadata)

    def is_eligible(self, item: MarketSignal) -> bool:
        sig: ElectionSignal = item.signal
        return super().is_eligible(item) and sig.office != UNKNOWN and sig.year is not None

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        sig: ElectionSignal = item.signal
        if sig.country == UNKNOWN or sig.office == UNKNOWN or not sig.year:
            return None
        return f"{sig.country}|{sig.office}", str(sig.year)

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        lsig: ElectionSignal = left.signal
        rsig: ElectionSignal = right.signal

        if lsig.country != rsig.country or lsig.office != rsig.office:
            return GateRejection(GATE_ENTITY, f"{lsig.country}/{lsig.office} vs {rsig.country}/{rsig.office}")
        if lsig.year != rsig.year:
            return GateRejection(GATE_DATE, f"year {lsig.year} vs {rsig.year}")
        if lsig.state and rsig.state and lsig.state != rsig.state:
            return GateRejection(GATE_REGION, f"{lsig.state} vs {rsig.state}")

        candidates, overlap = candidate_score(lsig.candidates, rsig.candidates)
        text = text_score(left.tokens, right.tokens)
        score = self.weights.combine(1.0, 1.0, candidates, text)
        if lsig.state and lsig.state == rsig.state:
            score = min(1.0, score + STATE_MATCH_BONUS)

        tier = TIER_STRONG if overlap > 0 else TIER_WEAK
        diagnostic = EventDiagnostic(
            family="ELECTIONS",
            tier=tier,
            entity_score=1.0,
            date_score=1.0,
            date_kind="YEAR",
            number_score=candidates,
            text_score=text,
            details={"race": lsig.race_key, "cand": str(overlap)},
        )
        return ScoreResult(
            score=score,
            entity=1.0,
            date=1.0,
            number=candidates,
            text=text,
            tier=tier,
            diagnostic=diagnostic,
            algo_version=self.algo_version,
        )
