from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from market_linker.clients.http_client import HttpClient
from market_linker.connectors.base import MarketConnector, parse_dt_or_none, to_clean_str
from market_linker.models import VENUE_KALSHI, MarketRecord

logger = logging.getLogger(__name__)

# Kalshi market status -> stored status.
STATUS_MAP = {
    "open": "active",
    "active": "active",
    "initialized": "active",
    "unopened": "active",
    "closed": "closed",
    "settled": "resolved",
    "determined": "resolved",
    "finalized": "resolved",
}

PAGE_SIZE = 200


class KalshiConnector(MarketConnector):
    venue = VENUE_KALSHI

    def __init__(self, base_url: str, limit: int = 2000, http: Optional[HttpClient] = None):
        self.base_url = base_url.rstrip("/")
        self.limit = max(1, int(limit))
        self.http = http or HttpClient()

    def fetch_markets(self) -> List[MarketRecord]:
        records: List[MarketRecord] = []
        seen: set[str] = set()
        cursor: Optional[str] = None

        while len(records) < self.limit:
            params: Dict[str, Any] = {
                "status": "open",
                "with_nested_markets": "true",
                "limit": PAGE_SIZE,
            }
            if cursor:
                params["cursor"] = cursor

            payload = self.http.get_json(f"{self.base_url}/events", params=params)
            events = _extract_events(payload)
            if not events:
                break

            added = 0
            for event in events:
                for market in _extract_event_markets(event):
                    record = _to_record(event, market)
                    if record is None or record.id in seen:
                        continue
                    seen.add(record.id)
                    records.append(record)
                    added += 1
                    if len(records) >= self.limit:
                        break
                if len(records) >= self.limit:
                    break

            cursor = to_clean_str(payload.get("cursor")) if isinstance(payload, dict) else ""
            if not cursor or added == 0:
                break

        logger.info("Fetched Kalshi markets", extra={"count": len(records)})
        return records


def _extract_events(payload: Any) -> List[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    rows = payload.get("events")
    if isinstance(rows, list):
        return [x for x in rows if isinstance(x, dict)]
    return []


def _extract_event_markets(event: Dict[str, Any]) -> List[Dict[str, Any]]:
    rows = event.get("markets")
    if isinstance(rows, list):
        return [x for x in rows if isinstance(x, dict)]
    if isinstance(rows, dict):
        return [rows]
    return []


def build_market_title(event: Dict[str, Any], market: Dict[str, Any]) -> str:
    market_title = to_clean_str(market.get("title"))
    if market_title:
        return market_title

    event_title = to_clean_str(event.get("title"))
    event_subtitle = to_clean_str(event.get("sub_title") or event.get("subtitle"))
    yes_subtitle = to_clean_str(market.get("yes_sub_title") or market.get("yes_subtitle"))

    if event_title and yes_subtitle:
        return f"{event_title} - {yes_subtitle}"
    if event_title and event_subtitle:
        return f"{event_title} ({event_subtitle})"
    return event_title or yes_subtitle


def _to_record(event: Dict[str, Any], market: Dict[str, Any]) -> Optional[MarketRecord]:
    ticker = to_clean_str(market.get("ticker"))
    title = build_market_title(event, market)
    if not ticker or not title:
        return None

    event_ticker = to_clean_str(market.get("event_ticker") or event.get("event_ticker"))
    metadata: Dict[str, Any] = {
        "ticker": ticker,
        "event_ticker": event_ticker,
        "series_ticker": to_clean_str(event.get("series_ticker")),
        "event_title": to_clean_str(event.get("title")),
        "event_subtitle": to_clean_str(event.get("sub_title")),
        "category": to_clean_str(event.get("category")),
        "yes_sub_title": to_clean_str(market.get("yes_sub_title")),
        "strike_date": event.get("strike_date"),
        "openTime": market.get("open_time"),
    }
    if "is_multivariate" in market or "mve_collection_ticker" in market:
        metadata["is_multivariate"] = bool(market.get("is_multivariate") or market.get("mve_collection_ticker"))

    return MarketRecord(
        id=ticker,
        venue=VENUE_KALSHI,
        external_id=ticker,
        title=title,
        status=STATUS_MAP.get(to_clean_str(market.get("status")).lower(), "active"),
        close_time=parse_dt_or_none(market.get("close_time") or market.get("expiration_time")),
        metadata={k: v for k, v in metadata.items() if v not in (None, "")},
    )
