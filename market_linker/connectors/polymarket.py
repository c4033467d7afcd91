from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from market_linker.clients.http_client import HttpClient
from market_linker.connectors.base import MarketConnector, parse_dt_or_none, to_bool, to_clean_str
from market_linker.models import VENUE_POLYMARKET, MarketRecord

logger = logging.getLogger(__name__)


class PolymarketConnector(MarketConnector):
    venue = VENUE_POLYMARKET

    def __init__(self, gamma_base_url: str, limit: int = 2000, http: Optional[HttpClient] = None):
        self.gamma_base_url = gamma_base_url.rstrip("/")
        self.limit = max(1, int(limit))
        self.http = http or HttpClient()

    def fetch_markets(self) -> List[MarketRecord]:
        # Pull event pages, flatten event markets, and keep active/open/non-archived rows only.
        page_size = min(500, self.limit)
        offset = 0
        records: List[MarketRecord] = []
        seen: set[str] = set()

        while len(records) < self.limit:
            params: Dict[str, Any] = {
                "active": "true",
                "archived": "false",
                "closed": "false",
                "order": "volume",
                "ascending": "false",
                "limit": page_size,
                "offset": offset,
            }
            payload = self.http.get_json(f"{self.gamma_base_url}/events", params=params)
            events = _extract_event_rows(payload)
            if not events:
                break

            added = 0
            for event in events:
                if not is_open_active_row(event):
                    continue
                for market in _extract_markets_from_event(event):
                    if not is_open_active_row(market):
                        continue
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

            if len(events) < page_size or added == 0:
                # Short or duplicate pages mean there is nothing further to read.
                break
            offset += len(events)

        logger.info("Fetched Polymarket markets", extra={"count": len(records)})
        return records


def is_open_active_row(row: Dict[str, Any]) -> bool:
    if to_bool(row.get("active")) is False:
        return False
    if to_bool(row.get("closed")) is True:
        return False
    if to_bool(row.get("archived")) is True:
        return False
    return True


def _extract_event_rows(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        return [x for x in payload if isinstance(x, dict)]
    if not isinstance(payload, dict):
        return []
    for key in ("events", "data", "items", "results"):
        value = payload.get(key)
        if isinstance(value, list):
            return [x for x in value if isinstance(x, dict)]
    return []


def _extract_markets_from_event(event: Dict[str, Any]) -> List[Dict[str, Any]]:
    markets = event.get("markets")
    if isinstance(markets, list):
        return [x for x in markets if isinstance(x, dict)]
    if isinstance(markets, dict):
        return [markets]
    return []


def _to_record(event: Dict[str, Any], market: Dict[str, Any]) -> Optional[MarketRecord]:
    market_id = to_clean_str(market.get("id") or market.get("conditionId") or market.get("slug"))
    title = to_clean_str(market.get("question") or event.get("title"))
    if not market_id or not title:
        return None

    metadata: Dict[str, Any] = {
        "slug": to_clean_str(market.get("slug")),
        "conditionId": to_clean_str(market.get("conditionId")),
        "eventSlug": to_clean_str(event.get("slug")),
        "eventTicker": to_clean_str(event.get("ticker")),
        "eventTitle": to_clean_str(event.get("title")),
        "category": to_clean_str(market.get("category") or event.get("category")),
        "eventStartTime": market.get("gameStartTime") or event.get("startTime"),
        "groupItemTitle": to_clean_str(market.get("groupItemTitle")),
    }
    return MarketRecord(
        id=market_id,
        venue=VENUE_POLYMARKET,
        external_id=to_clean_str(market.get("conditionId")) or None,
        title=title,
        status="active",
        close_time=parse_dt_or_none(market.get("endDate") or event.get("endDate")),
        metadata={k: v for k, v in metadata.items() if v not in (None, "")},
    )
