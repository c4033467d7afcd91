from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

VENUE_KALSHI = "kalshi"
VENUE_POLYMARKET = "polymarket"

LINK_SUGGESTED = "suggested"
LINK_CONFIRMED = "confirmed"
LINK_REJECTED = "rejected"
LINK_STATUSES = (LINK_SUGGESTED, LINK_CONFIRMED, LINK_REJECTED)


class MarketRecord(BaseModel):
    id: str
    venue: str
    external_id: Optional[str] = None
    title: str
    status: str = "active"
    close_time: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None

    @property
    def market_key(self) -> str:
        return f"{self.venue}:{self.id}"


class MarketLink(BaseModel):
    id: Optional[str] = None
    left_venue: str
    left_market_id: str
    right_venue: str
    right_market_id: str
    score: float = Field(ge=0.0, le=1.0)
    status: str = LINK_SUGGESTED
    reason: str = ""
    topic: Optional[str] = None
    algo_version: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    left_title: str = ""
    right_title: str = ""

    def pair_key(self) -> tuple[str, str, str, str]:
        return (self.left_venue, self.left_market_id, self.right_venue, self.right_market_id)
