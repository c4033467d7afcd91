from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from market_linker.engine.blocking import BlockKey
from market_linker.engine.normalize import tokenize
from market_linker.engine.scoring import GateRejection, ScoreOutcome, Weights
from market_linker.engine.signals.base import BaseSignal
from market_linker.models import MarketRecord

logger = logging.getLogger(__name__)

# Gate names; also the prefixes of a rejection's reason.
GATE_ENTITY = "entity mismatch"
GATE_DATE = "date gate"
GATE_TEXT = "text gate"
GATE_MARKET_TYPE = "market type mismatch"
GATE_DIRECTION = "direction conflict"
GATE_REGION = "region mismatch"
GATE_COMPARATOR = "comparator conflict"
GATE_EVENT = "event type conflict"


@dataclass
class MarketSignal:
    """A market record paired with the signal its topic extracted from it."""

    record: MarketRecord
    signal: BaseSignal

    @property
    def market_id(self) -> str:
        return self.record.id

    @property
    def venue(self) -> str:
        return self.record.venue

    @property
    def title(self) -> str:
        return self.record.title

    @property
    def tokens(self) -> List[str]:
        explicit = getattr(self.signal, "title_tokens", None)
        return list(explicit) if explicit else tokenize(self.record.title)


class TopicPipeline:
    topic = ""
    algo_version = ""
    allow_adjacent = False
    # Threshold ladders ("above 90k", "above 95k") collapse to a few lines per left market.
    groups_brackets = False
    weights: Weights

    def extract_signal(self, record: MarketRecord) -> BaseSignal:
        raise NotImplementedError

    def block_key(self, item: MarketSignal) -> Optional[BlockKey]:
        raise NotImplementedError

    def block_keys(self, item: MarketSignal) -> List[BlockKey]:
        """Every key the market is indexed and looked up under."""
        key = self.block_key(item)
        return [key] if key is not None else []

    def score(self, left: MarketSignal, right: MarketSignal) -> ScoreOutcome:
        raise NotImplementedError

    def extract(self, record: MarketRecord) -> MarketSignal:
        return MarketSignal(record=record, signal=self.extract_signal(record))

    def is_eligible(self, item: MarketSignal) -> bool:
        sig = item.signal
        return not sig.excluded and bool(sig.entity) and self.block_key(item) is not None

    def prepare(self, records: Iterable[MarketRecord]) -> List[MarketSignal]:
        """Extract signals and keep the markets this topic can match."""
        kept: List[MarketSignal] = []
        excluded = 0
        total = 0
        for record in records:
            total += 1
            item = self.extract(record)
            if item.signal.excluded:
                excluded += 1
                continue
            if self.is_eligible(item):
                kept.append(item)
        logger.debug(
            "Prepared markets",
            extra={"topic": self.topic, "total": total, "eligible": len(kept), "excluded": excluded},
        )
        return kept


def entity_gate(left: Optional[str], right: Optional[str]) -> Optional[GateRejection]:
    if not left or not right or left != right:
        return GateRejection(GATE_ENTITY, f"{left or 'NONE'} vs {right or 'NONE'}")
    return None
