from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from pymongo import ASCENDING, DESCENDING, MongoClient, UpdateOne
from pymongo.collection import Collection
from pymongo.errors import AutoReconnect, NetworkTimeout
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from market_linker.engine.fingerprint import build_fingerprint
from market_linker.engine.watchlist import WatchlistCandidate
from market_linker.models import LINK_CONFIRMED, LINK_SUGGESTED, MarketLink, MarketRecord
from market_linker.utils.batching import chunked

logger = logging.getLogger(__name__)

_PAIR_FIELDS = ("left_venue", "left_market_id", "right_venue", "right_market_id")


def link_id_for(link: MarketLink) -> str:
    # Stable id so re-suggesting a pair lands on the same row across runs.
    key = "|".join(link.pair_key())
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:24]


class MongoStore:
    def __init__(self, uri: str, db_name: str, chunk_size: int = 500):
        # Ensure datetimes read from Mongo are timezone-aware (UTC).
        self.client = MongoClient(uri, tz_aware=True)
        self.db = self.client[db_name]
        self.markets_col: Collection = self.db["markets"]
        self.links_col: Collection = self.db["market_links"]
        self.watchlist_col: Collection = self.db["watchlist"]
        self.chunk_size = chunk_size
        self._ensure_indexes()

    def _ensure_indexes(self) -> None:
        self.markets_col.create_index([("venue", ASCENDING), ("id", ASCENDING)], unique=True)
        self.markets_col.create_index([("venue", ASCENDING), ("status", ASCENDING), ("close_time", ASCENDING)])
        self.markets_col.create_index([("venue", ASCENDING), ("updated_at", DESCENDING)])
        self.markets_col.create_index([("fingerprint", ASCENDING)])

        self.links_col.create_index(
            [(name, ASCENDING) for name in _PAIR_FIELDS],
            unique=True,
            name="market_links_pair_unique",
        )
        self.links_col.create_index([("status", ASCENDING), ("topic", ASCENDING), ("score", DESCENDING)])

        self.watchlist_col.create_index(
            [("venue", ASCENDING), ("market_id", ASCENDING)],
            unique=True,
            name="watchlist_market_unique",
        )

    @retry(
        retry=retry_if_exception_type((AutoReconnect, NetworkTimeout)),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    def _bulk_write(self, col: Collection, operations: List[UpdateOne]) -> Dict[str, int]:
        result = col.bulk_write(operations, ordered=False)
        return {"upserted": result.upserted_count, "modified": result.modified_count}

    def _write_chunks(self, col: Collection, operations: Sequence[UpdateOne]) -> Dict[str, int]:
        totals = {"upserted": 0, "modified": 0}
        for chunk in chunked(operations, self.chunk_size):
            counts = self._bulk_write(col, chunk)
            totals["upserted"] += counts["upserted"]
            totals["modified"] += counts["modified"]
        return totals

    # Markets

    def upsert_markets(self, records: Iterable[MarketRecord]) -> Dict[str, int]:
        now = datetime.now(timezone.utc)
        operations = []
        for record in records:
            doc = record.model_dump()
            fingerprint = build_fingerprint(record.title, record.close_time, record.metadata)
            doc.update({"fingerprint": fingerprint.key, "intent": fingerprint.intent, "updated_at": now})
            operations.append(UpdateOne({"venue": record.venue, "id": record.id}, {"$set": doc}, upsert=True))
        if not operations:
            return {"upserted": 0, "modified": 0}
        return self._write_chunks(self.markets_col, operations)

    def list_markets(
        self,
        venue: str,
        statuses: Sequence[str] = ("active", "closed"),
        lookback_hours: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[MarketRecord]:
        query: Dict = {"venue": venue, "status": {"$in": list(statuses)}}
        if lookback_hours is not None:
            cutoff = datetime.now(timezone.utc) - timedelta(hours=lookback_hours)
            query["$or"] = [{"close_time": {"$gte": cutoff}}, {"close_time": None}]

        cursor = self.markets_col.find(query, {"_id": 0, "fingerprint": 0, "intent": 0}).sort("close_time", ASCENDING)
        if limit:
            cursor = cursor.limit(limit)
        return [MarketRecord(**doc) for doc in cursor]

    def count_fresh_markets(self, venue: str, since: datetime) -> int:
        return self.markets_col.count_documents({"venue": venue, "updated_at": {"$gte": since}})

    # Links

    def _confirmed_pairs(self, links: Sequence[MarketLink]) -> set:
        ids = [link_id_for(link) for link in links]
        cursor = self.links_col.find({"id": {"$in": ids}, "status": LINK_CONFIRMED}, {"_id": 0, "id": 1})
        return {doc["id"] for doc in cursor}

    def upsert_link_suggestions(self, links: Sequence[MarketLink]) -> Dict[str, int]:
        """Write suggestions; confirmed pairs are left untouched and rejected pairs revert to suggested."""
        now = datetime.now(timezone.utc)
        totals = {"upserted": 0, "modified": 0, "skipped_confirmed": 0}
        for chunk in chunked(links, self.chunk_size):
            confirmed = self._confirmed_pairs(chunk)
            operations = []
            for link in chunk:
                link_id = link_id_for(link)
                if link_id in confirmed:
                    totals["skipped_confirmed"] += 1
                    continue
                fields = link.model_dump(exclude={"id", "created_at", "updated_at"})
                fields.update({"status": LINK_SUGGESTED, "updated_at": now})
                operations.append(
                    UpdateOne(
                        {"id": link_id},
                        {"$set": fields, "$setOnInsert": {"id": link_id, "created_at": now}},
                        upsert=True,
                    )
                )
            if operations:
                counts = self._bulk_write(self.links_col, operations)
                totals["upserted"] += counts["upserted"]
                totals["modified"] += counts["modified"]
        return totals

    def list_links(
        self,
        status: str,
        topic: Optional[str] = None,
        min_score: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[MarketLink]:
        query: Dict = {"status": status}
        if topic:
            query["topic"] = topic
        if min_score is not None:
            query["score"] = {"$gte": min_score}
        cursor = self.links_col.find(query, {"_id": 0}).sort("score", DESCENDING)
        if limit:
            cursor = cursor.limit(limit)
        return [MarketLink(**doc) for doc in cursor]

    def update_link_status(self, link_id: str, status: str, reason: Optional[str] = None) -> bool:
        fields: Dict = {"status": status, "updated_at": datetime.now(timezone.utc)}
        if reason is not None:
            fields["reason"] = reason
        result = self.links_col.update_one({"id": link_id}, {"$set": fields})
        return result.matched_count > 0

    # Watchlist

    def upsert_watchlist(self, items: Sequence[WatchlistCandidate]) -> Dict[str, int]:
        """Upsert entries; an existing row with a higher priority is kept."""
        now = datetime.now(timezone.utc)
        totals = {"upserted": 0, "modified": 0, "skipped_lower_priority": 0}
        for chunk in chunked(items, self.chunk_size):
            existing = {
                (doc["venue"], doc["market_id"]): doc.get("priority", 0)
                for doc in self.watchlist_col.find(
                    {"$or": [{"venue": i.venue, "market_id": i.market_id} for i in chunk]},
                    {"_id": 0, "venue": 1, "market_id": 1, "priority": 1},
                )
            }
            operations = []
            for item in chunk:
                current = existing.get((item.venue, item.market_id))
                if current is not None and current > item.priority:
                    totals["skipped_lower_priority"] += 1
                    continue
                operations.append(
                    UpdateOne(
                        {"venue": item.venue, "market_id": item.market_id},
                        {
                            "$set": {
                                "priority": item.priority,
                                "reason": item.reason,
                                "link_id": item.link_id,
                                "score": item.score,
                                "updated_at": now,
                            },
                            "$setOnInsert": {"created_at": now},
                        },
                        upsert=True,
                    )
                )
            if operations:
                counts = self._bulk_write(self.watchlist_col, operations)
                totals["upserted"] += counts["upserted"]
                totals["modified"] += counts["modified"]
        return totals
