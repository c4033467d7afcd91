from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from pymongo.errors import PyMongoError

from market_linker.clients.http_client import HttpClient
from market_linker.config import ConfigError, Settings, get_settings
from market_linker.connectors.base import MarketConnector
from market_linker.connectors.kalshi import KalshiConnector
from market_linker.connectors.polymarket import PolymarketConnector
from market_linker.engine.pipelines.registry import TOPICS
from market_linker.orchestrator import DEFAULT_STEPS, STEP_ORDER, OpsRunner, RunOptions
from market_linker.storage.mongo import MongoStore
from market_linker.utils.logging import configure_logging

logger = logging.getLogger(__name__)


def _csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def build_connectors(settings: Settings) -> List[MarketConnector]:
    http = HttpClient(
        timeout=settings.http_timeout_seconds,
        max_attempts=settings.http_max_attempts,
        base_delay=settings.http_base_delay_seconds,
        max_delay=settings.http_max_delay_seconds,
    )
    connectors: List[MarketConnector] = []
    if settings.polymarket_enabled:
        connectors.append(
            PolymarketConnector(settings.polymarket_gamma_base_url, limit=settings.polymarket_limit, http=http)
        )
    if settings.kalshi_enabled:
        connectors.append(KalshiConnector(settings.kalshi_base_url, limit=settings.kalshi_limit, http=http))
    return connectors


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cross-venue prediction market linker")
    parser.add_argument(
        "--topics",
        help=f"Comma-separated topics (default from MATCH_TOPICS; known: {','.join(TOPICS)})",
    )
    parser.add_argument(
        "--steps",
        default=",".join(DEFAULT_STEPS),
        help=f"Comma-separated steps, run in fixed order (known: {','.join(STEP_ORDER)})",
    )
    parser.add_argument("--apply", action="store_true", help="Write results; the default is a dry run")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)
    topics = _csv(args.topics) if args.topics else settings.topic_list()

    try:
        store = MongoStore(settings.mongodb_uri, settings.mongodb_db, chunk_size=settings.write_chunk_size)
    except PyMongoError as exc:
        logger.exception("Storage unavailable", extra={"error": str(exc)})
        return 1

    runner = OpsRunner(store, settings, connectors=build_connectors(settings))
    try:
        result = runner.run(RunOptions(topics=topics, steps=_csv(args.steps), apply=args.apply))
    except ConfigError as exc:
        parser.error(str(exc))

    print(result.format_summary())
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
