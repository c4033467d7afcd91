from __future__ import annotations

import unittest
from datetime import datetime, timezone

from market_linker.engine.matcher import MatchOptions, suggest_links
from market_linker.engine.pipelines.crypto_daily import CryptoDailyPipeline
from market_linker.models import LINK_SUGGESTED, MarketRecord

CLOSE = datetime(2026, 1, 15, 17, 0, tzinfo=timezone.utc)


def _market(market_id: str, venue: str, title: str) -> MarketRecord:
    return MarketRecord(id=market_id, venue=venue, title=title, close_time=CLOSE)


LEFTS = [
    _market("pm-btc", "polymarket", "Will Bitcoin be above $100,000 on January 15, 2026?"),
    _market("pm-eth", "polymarket", "Will Ethereum be above $4,000 on January 15, 2026?"),
    _market("pm-nfl", "polymarket", "Who will win the Super Bowl?"),
]
RIGHTS = [
    _market("k-btc-100", "kalshi", "Bitcoin above $100,000 on Jan 15, 2026?"),
    _market("k-btc-95", "kalshi", "Bitcoin above $95,000 on Jan 15, 2026?"),
    _market("k-btc-105", "kalshi", "Bitcoin above $105,000 on Jan 15, 2026?"),
    _market("k-btc-16", "kalshi", "Bitcoin above $100,000 on Jan 16, 2026?"),
    _market("k-eth", "kalshi", "Ethereum above $4,000 on Jan 15, 2026?"),
]


class SuggestLinksTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pipeline = CryptoDailyPipeline()

    def test_links_and_bracket_collapse(self) -> None:
        result = suggest_links(self.pipeline, LEFTS, RIGHTS)
        pairs = [(link.left_market_id, link.right_market_id) for link in result.links]
        self.assertEqual(pairs[0], ("pm-btc", "k-btc-100"))
        self.assertIn(("pm-eth", "k-eth"), pairs)
        self.assertIn(("pm-btc", "k-btc-16"), pairs)
        self.assertNotIn(("pm-btc", "k-btc-95"), pairs)
        self.assertNotIn(("pm-btc", "k-btc-105"), pairs)

        stats = result.stats
        self.assertEqual(stats.left_markets, 3)
        self.assertEqual(stats.left_eligible, 2)
        self.assertEqual(stats.right_eligible, 5)
        self.assertEqual(stats.suggested, 3)
        self.assertEqual(stats.brackets.total_candidates, 5)
        self.assertEqual(stats.brackets.dropped_within_groups, 2)
        self.assertEqual(
            stats.brackets.saved_candidates
            + stats.brackets.dropped_within_groups
            + stats.brackets.dropped_by_group_limit,
            stats.brackets.total_candidates,
        )

    def test_link_fields(self) -> None:
        link = suggest_links(self.pipeline, LEFTS, RIGHTS).links[0]
        self.assertEqual(link.status, LINK_SUGGESTED)
        self.assertEqual(link.topic, "crypto_daily")
        self.assertEqual(link.algo_version, "v3@3.0.6:CRYPTO_DAILY")
        self.assertEqual(link.left_venue, "polymarket")
        self.assertEqual(link.right_title, "Bitcoin above $100,000 on Jan 15, 2026?")
        self.assertTrue(link.reason.startswith("entity=BITCOIN dateType=DAY_EXACT date=1.00(0d)"))

    def test_min_score_filters_adjacent_day(self) -> None:
        result = suggest_links(self.pipeline, LEFTS[:1], RIGHTS, MatchOptions(min_score=0.9))
        self.assertEqual([link.right_market_id for link in result.links], ["k-btc-100"])
        self.assertGreaterEqual(result.stats.below_min_score, 1)

    def test_bracket_groups_logged_at_debug(self) -> None:
        with self.assertLogs("market_linker.engine.matcher", level="DEBUG") as logs:
            suggest_links(self.pipeline, LEFTS[:1], RIGHTS)
        groups = [r for r in logs.records if r.getMessage() == "Bracket groups"]
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].left, "pm-btc")

    def test_per_right_cap(self) -> None:
        twin = _market("pm-btc-2", "polymarket", "Will Bitcoin be above $100,000 on January 15, 2026?")
        result = suggest_links(self.pipeline, [LEFTS[0], twin], RIGHTS[:1], MatchOptions(max_per_right=1))
        self.assertEqual([(l.left_market_id, l.right_market_id) for l in result.links], [("pm-btc", "k-btc-100")])
        self.assertEqual(result.stats.capped_per_right, 1)

    def test_per_left_cap(self) -> None:
        options = MatchOptions(max_per_left=1, max_lines_per_group=3)
        result = suggest_links(self.pipeline, LEFTS[:1], RIGHTS, options)
        self.assertEqual(len(result.links), 1)
        self.assertEqual(result.stats.capped_per_left, 3)


if __name__ == "__main__":
    unittest.main()
