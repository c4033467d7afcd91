from __future__ import annotations

import unittest
from datetime import datetime, timezone

from market_linker.engine.extraction import GE, LE
from market_linker.engine.matcher import suggest_links
from market_linker.engine.pipelines.commodities import (
    CommoditiesPipeline,
    comparator_score,
    month_distance,
    threshold_score,
)
from market_linker.engine.pipelines.registry import TOPICS, get_pipeline, topic_for_algo_version
from market_linker.engine.scoring import GateRejection, ScoreResult
from market_linker.engine.signals.commodities import (
    CONTRACT,
    DAY_EXACT,
    MONTH_END,
    extract_commodity_signals,
    extract_thresholds,
    extract_underlying,
    format_commodity_signal,
    is_commodities_market,
)
from market_linker.models import MarketRecord

CLOSE = datetime(2025, 6, 30, 20, 0, tzinfo=timezone.utc)


def _record(market_id: str, venue: str, title: str) -> MarketRecord:
    return MarketRecord(id=market_id, venue=venue, title=title, close_time=CLOSE)


class CommoditySignalTests(unittest.TestCase):
    def test_month_end_market(self) -> None:
        sig = extract_commodity_signals("Will crude oil settle above $75 at the end of June 2025?")
        self.assertEqual(sig.underlying, "OIL_WTI")
        self.assertEqual(sig.contract_code, "CL")
        self.assertEqual(sig.date_type, MONTH_END)
        self.assertEqual(sig.target_date, "2025-06")
        self.assertEqual(sig.comparator, GE)
        self.assertEqual(sig.numbers, [75.0])
        self.assertEqual(sig.confidence, 1.0)
        self.assertEqual(
            format_commodity_signal(sig),
            "underlying=OIL_WTI code=CL dateType=MONTH_END date=2025-06 cmp=GE thresh=[75]",
        )

    def test_exact_day_and_contract_month(self) -> None:
        day = extract_commodity_signals("Gold above $2,500 on June 30, 2025?")
        self.assertEqual((day.underlying, day.date_type, day.target_date), ("GOLD", DAY_EXACT, "2025-06-30"))
        self.assertEqual(day.month, "2025-06")
        self.assertEqual(day.numbers, [2500.0])

        contract = extract_commodity_signals("Natural gas (NG) above $4 in March 2026?")
        self.assertEqual(contract.underlying, "NATGAS")
        self.assertEqual(contract.date_type, CONTRACT)
        self.assertEqual(contract.contract_month, "2026-03")
        self.assertEqual(contract.month, "2026-03")

    def test_settle_date_falls_back_to_close_time(self) -> None:
        sig = extract_commodity_signals("Copper above $5?", CLOSE)
        self.assertEqual(sig.date_source, "closeTime")
        self.assertEqual(sig.target_date, "2025-06-30")
        self.assertTrue(sig.quality.missing_date)
        self.assertLess(sig.confidence, 1.0)

    def test_underlying_detection(self) -> None:
        self.assertEqual(extract_underlying("Brent above $80?"), ("OIL_BRENT", None))
        self.assertEqual(extract_underlying("WTI over 70 by Friday"), ("OIL_WTI", "CL"))
        self.assertEqual(extract_underlying("Golden State Warriors win?"), (None, None))
        self.assertFalse(is_commodities_market(extract_commodity_signals("Will it rain in NYC?")))

    def test_thresholds(self) -> None:
        self.assertEqual(extract_thresholds("Silver between $30 and $32 by end of May"), [30.0, 32.0])
        self.assertEqual(extract_thresholds("WTI over 80 in July 2025"), [80.0])
        self.assertEqual(extract_thresholds("Corn in 2025"), [])


class CommoditiesScoringTests(unittest.TestCase):
    def test_component_scores(self) -> None:
        self.assertEqual(month_distance("2025-12", "2026-01"), 1)
        self.assertIsNone(month_distance(None, "2026-01"))
        self.assertEqual(comparator_score(GE, LE), 0.0)
        self.assertEqual(comparator_score(GE, "UNKNOWN"), 0.5)
        self.assertEqual(threshold_score([75.0], [75.0]), 1.0)
        self.assertEqual(threshold_score([100.0], [100.5]), 0.9)
        self.assertEqual(threshold_score([75.0], [90.0]), 0.3)
        self.assertEqual(threshold_score([], [90.0]), 0.5)


class CommoditiesPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pipeline = CommoditiesPipeline()

    def test_month_end_and_last_day_score_strong(self) -> None:
        left = self.pipeline.extract(_record("pm1", "polymarket", "Will crude oil settle above $75 at the end of June 2025?"))
        right = self.pipeline.extract(_record("k1", "kalshi", "WTI crude oil above $75 on June 30, 2025?"))
        self.assertEqual(self.pipeline.block_key(left), ("OIL_WTI", "2025-06"))

        result = self.pipeline.score(left, right)
        self.assertIsInstance(result, ScoreResult)
        self.assertEqual(result.date, 0.8)
        self.assertEqual(result.tier, "STRONG")
        self.assertTrue(result.reason.startswith("COMMODITIES: tier=STRONG entity=1.00 date=0.80[MONTH_END/DAY_EXACT]"))
        self.assertIn("underlying=OIL_WTI cmp=1.00[GE/GE]", result.reason)

    def test_opposite_comparators_score_zero_direction(self) -> None:
        above = self.pipeline.extract(_record("pm1", "polymarket", "Gold above $2,500 on June 30, 2025?"))
        below = self.pipeline.extract(_record("k1", "kalshi", "Gold below $2,500 on June 30, 2025?"))
        result = self.pipeline.score(above, below)
        self.assertIsInstance(result, ScoreResult)
        self.assertIn("cmp=0.00[GE/LE]", result.reason)

    def test_gates(self) -> None:
        june = self.pipeline.extract(_record("pm1", "polymarket", "Gold above $2,500 on June 30, 2025?"))
        august = self.pipeline.extract(_record("k1", "kalshi", "Gold above $2,500 on August 29, 2025?"))
        silver = self.pipeline.extract(_record("k2", "kalshi", "Silver above $30 on June 30, 2025?"))

        rejected = self.pipeline.score(june, august)
        self.assertIsInstance(rejected, GateRejection)
        self.assertEqual(rejected.reason, "date gate: month 2025-06 vs 2025-08")
        self.assertEqual(self.pipeline.score(june, silver).reason, "entity mismatch: GOLD vs SILVER")

    def test_neighbouring_months_are_candidates(self) -> None:
        left = _record("pm1", "polymarket", "Will crude oil settle above $75 at the end of June 2025?")
        right = _record("k1", "kalshi", "Crude oil above $75 at the end of July 2025?")
        result = suggest_links(self.pipeline, [left], [right])
        self.assertEqual(result.stats.pairs_scored, 1)
        self.assertEqual([link.right_market_id for link in result.links], ["k1"])
        self.assertIn("date=0.40[MONTH_END]", result.links[0].reason)

    def test_registered_topics(self) -> None:
        self.assertIn("commodities", TOPICS)
        self.assertIn("geopolitics", TOPICS)
        self.assertIsInstance(get_pipeline("commodities"), CommoditiesPipeline)
        self.assertEqual(topic_for_algo_version("v3@3.0.6:COMMODITIES"), "commodities")
        self.assertEqual(topic_for_algo_version("geopolitics@3.1.0"), "geopolitics")


if __name__ == "__main__":
    unittest.main()
