from __future__ import annotations

import unittest
from datetime import datetime, timezone

from market_linker.engine.extraction import BETWEEN
from market_linker.engine.pipelines.finance import FinancePipeline, direction_score, target_score
from market_linker.engine.scoring import GateRejection, ScoreResult
from market_linker.engine.signals.finance import (
    ABOVE,
    BOND,
    CLOSE_TIME,
    DAY_EXACT,
    FOREX,
    INDEX,
    extract_finance_signals,
    extract_range,
    extract_target_value,
    extract_timeframe,
    match_instrument,
)
from market_linker.models import MarketRecord

CLOSE = datetime(2025, 3, 31, 20, 0, tzinfo=timezone.utc)


def _record(market_id: str, venue: str, title: str) -> MarketRecord:
    return MarketRecord(id=market_id, venue=venue, title=title, close_time=CLOSE)


class FinanceSignalTests(unittest.TestCase):
    def test_instruments(self) -> None:
        self.assertEqual(match_instrument("Will the S&P 500 close above 6,000?"), (INDEX, "SP500"))
        self.assertEqual(match_instrument("EUR/USD above 1.10 on Friday"), (FOREX, "EURUSD"))
        self.assertEqual(match_instrument("10-year Treasury yield above 4.5%"), (BOND, "10Y"))

    def test_index_names_are_not_targets(self) -> None:
        self.assertEqual(extract_target_value("Will the S&P 500 close above 6,000 on March 31, 2025?"), 6000.0)
        self.assertEqual(extract_target_value("10-year Treasury yield above 4.5%"), 4.5)
        self.assertEqual(extract_target_value("EUR/USD above 1.10 on Friday"), 1.1)

    def test_range_sets_between_direction(self) -> None:
        self.assertEqual(extract_range("Nasdaq between 19,000 and 20,000 on March 31, 2025"), (19000.0, 20000.0))
        sig = extract_finance_signals("Nasdaq between 19,000 and 20,000 on March 31, 2025")
        self.assertEqual(sig.direction, BETWEEN)
        self.assertEqual(sig.numbers, [19000.0, 20000.0])
        self.assertEqual(sig.date_type, DAY_EXACT)

    def test_close_time_date_and_timeframe(self) -> None:
        sig = extract_finance_signals("S&P 500 daily close above 6000?", CLOSE)
        self.assertEqual(sig.date_type, CLOSE_TIME)
        self.assertEqual(sig.direction, ABOVE)
        self.assertEqual(extract_timeframe("S&P 500 daily close above 6000?"), "daily")

    def test_target_scores(self) -> None:
        wide = extract_finance_signals("Nasdaq between 19,000 and 20,000")
        shifted = extract_finance_signals("Nasdaq between 19,500 and 20,500")
        inside = extract_finance_signals("Nasdaq above 19,800")
        self.assertAlmostEqual(target_score(wide, shifted), 500 / 1500)
        self.assertEqual(target_score(wide, inside), 0.8)
        self.assertEqual(target_score(inside, inside), 1.0)
        self.assertEqual(direction_score("ABOVE", "BELOW"), 0.2)


class FinancePipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pipeline = FinancePipeline()

    def test_same_index_level_and_day_scores_strong(self) -> None:
        left = self.pipeline.extract(_record("pm1", "polymarket", "Will the S&P 500 close above 6,000 on March 31, 2025?"))
        right = self.pipeline.extract(_record("k1", "kalshi", "S&P 500 above 6000 on March 31, 2025"))
        self.assertEqual(self.pipeline.block_key(left), ("SP500", "2025-03-31"))

        result = self.pipeline.score(left, right)
        self.assertIsInstance(result, ScoreResult)
        self.assertEqual(result.tier, "STRONG")
        self.assertEqual(result.score, 1.0)
        self.assertIn("inst=SP500 dir=1.00[ABOVE/ABOVE]", result.reason)

    def test_adjacent_day_is_weak(self) -> None:
        left = self.pipeline.extract(_record("pm1", "polymarket", "S&P 500 above 6000 on March 31, 2025"))
        right = self.pipeline.extract(_record("k1", "kalshi", "S&P 500 above 6000 on April 1, 2025"))
        result = self.pipeline.score(left, right)
        self.assertIsInstance(result, ScoreResult)
        self.assertEqual(result.date, 0.8)
        self.assertEqual(result.tier, "WEAK")

    def test_instrument_and_date_gates(self) -> None:
        spx = self.pipeline.extract(_record("pm1", "polymarket", "S&P 500 above 6000 on March 31, 2025"))
        ndx = self.pipeline.extract(_record("k1", "kalshi", "Nasdaq above 20000 on March 31, 2025"))
        later = self.pipeline.extract(_record("k2", "kalshi", "S&P 500 above 6000 on April 2, 2025"))
        self.assertEqual(self.pipeline.score(spx, ndx).reason, "entity mismatch: SP500 vs NASDAQ")
        rejected = self.pipeline.score(spx, later)
        self.assertIsInstance(rejected, GateRejection)
        self.assertEqual(rejected.reason, "date gate: day diff 2")


if __name__ == "__main__":
    unittest.main()
