from __future__ import annotations

import unittest
from datetime import datetime, timezone

from market_linker.engine.extraction import BETWEEN, GE, LE
from market_linker.engine.pipelines.climate import ClimatePipeline
from market_linker.engine.scoring import GateRejection, ScoreResult
from market_linker.engine.signals.climate import (
    DATE_MONTH,
    DAY_EXACT,
    OTHER,
    climate_date_score,
    extract_climate_comparator,
    extract_climate_kind,
    extract_climate_signals,
    extract_region,
    extract_thresholds,
    threshold_score,
)
from market_linker.models import MarketRecord

CLOSE = datetime(2025, 7, 4, 23, 0, tzinfo=timezone.utc)


def _record(market_id: str, venue: str, title: str) -> MarketRecord:
    return MarketRecord(id=market_id, venue=venue, title=title, close_time=CLOSE)


class ClimateSignalTests(unittest.TestCase):
    def test_kind_and_region(self) -> None:
        self.assertEqual(extract_climate_kind("Will a hurricane make landfall in Florida?"), "HURRICANE")
        self.assertEqual(extract_climate_kind("Highest temperature in Miami above 95°F"), "TEMPERATURE")
        self.assertEqual(extract_climate_kind("Will the Fed cut rates?"), OTHER)
        self.assertEqual(extract_region("Highest temperature in Miami above 95°F"), ("US-FL", "miami"))
        self.assertEqual(extract_region("Snow in NY this winter?")[0], "US-NY")

    def test_lowercase_words_are_not_postal_codes(self) -> None:
        self.assertEqual(extract_region("Will it snow in or around town?"), (None, None))

    def test_comparators(self) -> None:
        self.assertEqual(extract_climate_comparator("Temperature above 95°F"), GE)
        self.assertEqual(extract_climate_comparator("Temperature will not exceed 95°F"), LE)
        self.assertEqual(extract_climate_comparator("Rainfall between 2 and 3 inches"), BETWEEN)

    def test_thresholds_carry_units(self) -> None:
        units = {t.unit for t in extract_thresholds("Gusts over 75 mph and 3 inches of rain")}
        self.assertEqual(units, {"mph", "in"})
        temps = extract_thresholds("Miami above 95°F")
        self.assertEqual([(t.value, t.unit) for t in temps], [(95.0, "°F")])

    def test_date_info(self) -> None:
        sig = extract_climate_signals("Highest temperature in Miami on July 4, 2025 above 95°F")
        self.assertEqual((sig.date_type, sig.settle_key), (DAY_EXACT, "2025-07-04"))
        sig = extract_climate_signals("Hurricanes in August 2025?")
        self.assertEqual((sig.date_type, sig.settle_key), (DATE_MONTH, "2025-08"))

    def test_date_and_threshold_scores(self) -> None:
        self.assertEqual(climate_date_score(DAY_EXACT, "2025-07-04", DAY_EXACT, "2025-07-05"), 0.9)
        self.assertEqual(climate_date_score(DAY_EXACT, "2025-07-04", DATE_MONTH, "2025-07"), 0.8)
        self.assertEqual(climate_date_score(DATE_MONTH, "2025-07", DATE_MONTH, "2025-08"), 0.6)
        temps = extract_thresholds("above 95°F")
        self.assertEqual(threshold_score(temps, extract_thresholds("above 95°F")), 1.0)
        self.assertEqual(threshold_score(temps, extract_thresholds("above 35°C")), 0.4)
        self.assertEqual(threshold_score(temps, []), 0.5)


class ClimatePipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pipeline = ClimatePipeline()

    def test_same_city_day_and_threshold(self) -> None:
        left = self.pipeline.extract(_record("pm1", "polymarket", "Highest temperature in Miami on July 4, 2025 above 95°F?"))
        right = self.pipeline.extract(_record("k1", "kalshi", "Miami high temperature on July 4, 2025 above 95°F"))
        self.assertEqual(self.pipeline.block_key(left), ("TEMPERATURE", "US-FL"))
        result = self.pipeline.score(left, right)
        self.assertIsInstance(result, ScoreResult)
        self.assertEqual(result.tier, "STRONG")
        self.assertTrue(result.reason.startswith("CLIMATE: tier=STRONG"))
        self.assertIn("kind=TEMPERATURE", result.reason)

    def test_region_and_comparator_gates(self) -> None:
        miami = self.pipeline.extract(_record("pm1", "polymarket", "Temperature in Miami above 95°F on July 4, 2025"))
        dallas = self.pipeline.extract(_record("k1", "kalshi", "Temperature in Dallas above 95°F on July 4, 2025"))
        below = self.pipeline.extract(_record("k2", "kalshi", "Temperature in Miami below 95°F on July 4, 2025"))
        self.assertEqual(self.pipeline.score(miami, dallas).gate, "region mismatch")
        rejected = self.pipeline.score(miami, below)
        self.assertIsInstance(rejected, GateRejection)
        self.assertEqual(rejected.gate, "comparator conflict")


if __name__ == "__main__":
    unittest.main()
