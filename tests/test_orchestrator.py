from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from market_linker.config import ConfigError, Settings
from market_linker.connectors.base import MarketConnector
from market_linker.models import LINK_CONFIRMED, LINK_REJECTED, LINK_SUGGESTED, MarketLink, MarketRecord
from market_linker.orchestrator import (
    STEP_AUTO_CONFIRM,
    STEP_AUTO_REJECT,
    STEP_FRESHNESS_CHECK,
    STEP_INGEST,
    STEP_SUGGEST,
    OpsRunner,
    RunOptions,
    resolve_steps,
)

NOW = datetime(2026, 1, 20, 12, 0, tzinfo=timezone.utc)
CLOSE = datetime(2026, 1, 15, 17, 0, tzinfo=timezone.utc)
LEFT_TITLE = "Will Bitcoin be above $100,000 on January 15, 2026?"
RIGHT_TITLE = "Bitcoin above $100,000 on Jan 15, 2026?"


class FakeStore:
    def __init__(self, links=(), fail_fresh: bool = False):
        self.markets = {
            "polymarket": [MarketRecord(id="pm1", venue="polymarket", title=LEFT_TITLE, close_time=CLOSE)],
            "kalshi": [MarketRecord(id="k1", venue="kalshi", title=RIGHT_TITLE, close_time=CLOSE)],
        }
        self.links = {link.id: link for link in links}
        self.fail_fresh = fail_fresh
        self.writes = []

    def upsert_markets(self, records):
        self.writes.append(("markets", [r.id for r in records]))
        return {"upserted": len(records), "modified": 0}

    def list_markets(self, venue, lookback_hours=None, limit=None):
        return list(self.markets.get(venue, []))

    def count_fresh_markets(self, venue, since):
        if self.fail_fresh:
            raise RuntimeError("mongo unavailable")
        return len(self.markets.get(venue, []))

    def upsert_link_suggestions(self, links):
        self.writes.append(("links", [(l.left_market_id, l.right_market_id) for l in links]))
        return {"upserted": len(links), "modified": 0, "skipped_confirmed": 0}

    def list_links(self, status, topic=None, min_score=None, limit=None):
        found = [
            link
            for link in self.links.values()
            if link.status == status
            and (topic is None or link.topic == topic)
            and (min_score is None or link.score >= min_score)
        ]
        return sorted(found, key=lambda l: -l.score)[:limit]

    def update_link_status(self, link_id, status, reason=None):
        self.writes.append(("status", link_id, status, reason))
        self.links[link_id] = self.links[link_id].model_copy(update={"status": status, "reason": reason})
        return True

    def upsert_watchlist(self, items):
        self.writes.append(("watchlist", sorted((i.venue, i.market_id, i.priority) for i in items)))
        return {"upserted": len(items), "modified": 0, "skipped_lower_priority": 0}


class FakeConnector(MarketConnector):
    def __init__(self, venue, records=None, error=None):
        self.venue = venue
        self.records = records or []
        self.error = error

    def fetch_markets(self):
        if self.error:
            raise self.error
        return self.records


def _link(link_id: str, score: float, reason: str, age_hours: float = 48.0) -> MarketLink:
    return MarketLink(
        id=link_id,
        left_venue="polymarket",
        left_market_id=f"pm-{link_id}",
        right_venue="kalshi",
        right_market_id=f"k-{link_id}",
        score=score,
        reason=reason,
        topic="crypto_daily",
        created_at=NOW - timedelta(hours=age_hours),
        left_title=LEFT_TITLE,
        right_title=RIGHT_TITLE,
    )


def _stored_links():
    return [
        _link("safe", 0.95, "entity=BITCOIN dateType=DAY_EXACT date=1.00(0d) num=1.00[price] text=0.60"),
        _link("bad", 0.30, "entity mismatch: BITCOIN vs ETHEREUM"),
    ]


def _settings() -> Settings:
    return Settings(_env_file=None, MATCH_LEFT_VENUE="polymarket", MATCH_RIGHT_VENUE="kalshi")


class ResolveStepsTests(unittest.TestCase):
    def test_fixed_order(self) -> None:
        self.assertEqual(resolve_steps([STEP_AUTO_REJECT, STEP_SUGGEST]), [STEP_SUGGEST, STEP_AUTO_REJECT])

    def test_unknown_step(self) -> None:
        with self.assertRaises(ConfigError):
            resolve_steps(["suggest", "backfill"])

    def test_unknown_topic_fails_before_any_step(self) -> None:
        store = FakeStore()
        with self.assertRaises(ConfigError):
            OpsRunner(store, _settings()).run(RunOptions(topics=["weather"], now=NOW))
        self.assertEqual(store.writes, [])


class OpsRunnerTests(unittest.TestCase):
    def test_dry_run_writes_nothing(self) -> None:
        store = FakeStore(_stored_links())
        result = OpsRunner(store, _settings()).run(RunOptions(topics=["crypto_daily"], now=NOW))

        self.assertTrue(result.success)
        self.assertTrue(result.dry_run)
        self.assertEqual(store.writes, [])
        summaries = {step.name: step.summary for step in result.steps}
        self.assertEqual(summaries[STEP_SUGGEST], {"crypto_daily": 1})
        self.assertEqual(summaries[STEP_AUTO_CONFIRM]["confirmed"], 1)
        self.assertEqual(summaries[STEP_AUTO_REJECT]["rejected"], 1)
        self.assertNotIn(STEP_INGEST, summaries)

    def test_apply_writes_suggestions_and_status_changes(self) -> None:
        store = FakeStore(_stored_links())
        result = OpsRunner(store, _settings()).run(RunOptions(topics=["crypto_daily"], apply=True, now=NOW))

        self.assertTrue(result.success)
        self.assertIn(("links", [("pm1", "k1")]), store.writes)
        self.assertEqual(store.links["safe"].status, LINK_CONFIRMED)
        self.assertTrue(store.links["safe"].reason.endswith(" | auto_confirm@3.1.0:crypto_daily:SAFE_RULES"))
        self.assertEqual(store.links["bad"].status, LINK_REJECTED)
        self.assertTrue(store.links["bad"].reason.endswith(" | auto_reject:SCORE_BELOW_FLOOR,ENTITY_MISMATCH"))

        watchlist = [w for w in store.writes if w[0] == "watchlist"][0][1]
        self.assertIn(("kalshi", "k-safe", 100), watchlist)

    def test_fresh_links_are_not_rejected(self) -> None:
        store = FakeStore([_link("bad", 0.30, "entity mismatch: BITCOIN vs ETHEREUM", age_hours=1)])
        result = OpsRunner(store, _settings()).run(
            RunOptions(topics=["crypto_daily"], steps=[STEP_AUTO_REJECT], apply=True, now=NOW)
        )
        self.assertEqual(result.steps[0].summary, {"evaluated": 1, "rejected": 0, "too_fresh": 1})
        self.assertEqual(store.links["bad"].status, LINK_SUGGESTED)

    def test_failing_step_is_isolated(self) -> None:
        store = FakeStore(_stored_links(), fail_fresh=True)
        with self.assertLogs("market_linker.orchestrator", level="ERROR"):
            result = OpsRunner(store, _settings()).run(RunOptions(topics=["crypto_daily"], now=NOW))

        self.assertFalse(result.success)
        self.assertEqual(result.failed_steps, [STEP_FRESHNESS_CHECK])
        self.assertEqual(result.steps[-1].error, "mongo unavailable")
        self.assertTrue(result.format_summary().startswith("run partial success (4/5 steps ok, dry-run)"))

    def test_ingest_keeps_going_when_one_connector_fails(self) -> None:
        store = FakeStore()
        connectors = [
            FakeConnector("kalshi", error=RuntimeError("HTTP 503")),
            FakeConnector("polymarket", records=list(FakeStore().markets["polymarket"])),
        ]
        with self.assertLogs("market_linker.orchestrator", level="ERROR"):
            result = OpsRunner(store, _settings(), connectors).run(
                RunOptions(topics=["crypto_daily"], steps=[STEP_INGEST], apply=True, now=NOW)
            )
        step = result.steps[0]
        self.assertFalse(step.success)
        self.assertEqual(step.error, "connectors failed: kalshi")
        self.assertIn(("markets", ["pm1"]), store.writes)


if __name__ == "__main__":
    unittest.main()
