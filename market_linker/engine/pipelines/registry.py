from __future__ import annotations

from typing import Dict, List, Optional

from market_linker.config import ConfigError
from market_linker.engine.pipelines.base import TopicPipeline
from market_linker.engine.pipelines.climate import ClimatePipeline
from market_linker.engine.pipelines.commodities import CommoditiesPipeline
from market_linker.engine.pipelines.crypto_daily import CryptoDailyPipeline
from market_linker.engine.pipelines.crypto_intraday import CryptoIntradayPipeline
from market_linker.engine.pipelines.elections import ElectionsPipeline
from market_linker.engine.pipelines.finance import FinancePipeline
from market_linker.engine.pipelines.geopolitics import GeopoliticsPipeline
from market_linker.engine.pipelines.macro import MacroPipeline
from market_linker.engine.pipelines.rates import RatesPipeline
from market_linker.engine.pipelines.sports import SportsPipeline

PIPELINES: Dict[str, TopicPipeline] = {
    p.topic: p
    for p in (
        CryptoDailyPipeline(),
        CryptoIntradayPipeline(),
        MacroPipeline(),
        SportsPipeline(),
        ClimatePipeline(),
        ElectionsPipeline(),
        RatesPipeline(),
        FinancePipeline(),
        CommoditiesPipeline(),
        GeopoliticsPipeline(),
    )
}

TOPICS = tuple(PIPELINES)


def get_pipeline(topic: str) -> TopicPipeline:
    try:
        return PIPELINES[topic]
    except KeyError:
        raise ConfigError(f"unknown topic {topic!r}; expected one of {', '.join(TOPICS)}") from None


def resolve_topics(names: List[str]) -> List[str]:
    unknown = [n for n in names if n not in PIPELINES]
    if unknown:
        raise ConfigError(f"unknown topics: {', '.join(unknown)}")
    return list(names)


def topic_for_algo_version(algo_version: Optional[str]) -> Optional[str]:
    for topic, pipeline in PIPELINES.items():
        if algo_version and algo_version == pipeline.algo_version:
            return topic
    return None
