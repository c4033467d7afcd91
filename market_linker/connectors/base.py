from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from market_linker.models import MarketRecord


class MarketConnector:
    venue: str = "unknown"

    def fetch_markets(self) -> List[MarketRecord]:
        raise NotImplementedError


def to_clean_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_dt_or_none(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, str) and raw:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        cleaned = value.strip().lower()
        if cleaned in {"true", "1", "yes", "y"}:
            return True
        if cleaned in {"false", "0", "no", "n", ""}:
            return False
    return None
