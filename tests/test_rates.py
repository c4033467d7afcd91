from __future__ import annotations

import unittest
from datetime import datetime, timezone

from market_linker.engine.extraction import UNKNOWN
from market_linker.engine.pipelines.rates import RatesPipeline, action_score
from market_linker.engine.scoring import GateRejection, ScoreResult
from market_linker.engine.signals.rates import (
    CUT,
    HIKE,
    HOLD,
    PAUSE,
    TargetRange,
    extract_action_count,
    extract_basis_points,
    extract_central_bank,
    extract_rate_signals,
    extract_target_range,
)
from market_linker.models import MarketRecord


def _record(market_id: str, venue: str, title: str) -> MarketRecord:
    return MarketRecord(
        id=market_id,
        venue=venue,
        title=title,
        close_time=datetime(2025, 3, 19, 18, 0, tzinfo=timezone.utc),
    )


class RateSignalTests(unittest.TestCase):
    def test_bank_action_and_amount(self) -> None:
        sig = extract_rate_signals("Will the Fed cut rates by 25 bps in March 2025?")
        self.assertEqual(sig.central_bank, "FED")
        self.assertEqual(sig.action, CUT)
        self.assertEqual(sig.basis_points, 25)
        self.assertEqual(sig.meeting_month, "2025-03")
        self.assertIsNone(sig.meeting_date)
        self.assertEqual(sig.date_type, "MEETING_MONTH")

    def test_meeting_day_from_title(self) -> None:
        sig = extract_rate_signals("FOMC decision on March 19, 2025: hike?")
        self.assertEqual(sig.meeting_date, "2025-03-19")
        self.assertEqual(sig.meeting_source, "title")
        self.assertEqual(sig.action, HIKE)

    def test_meeting_falls_back_to_close_time(self) -> None:
        sig = extract_rate_signals("Bank of England holds?", datetime(2025, 5, 8, 11, 0, tzinfo=timezone.utc))
        self.assertEqual(sig.central_bank, "BOE")
        self.assertEqual(sig.meeting_source, "closeTime")
        self.assertEqual(sig.meeting_date, "2025-05-08")

    def test_basis_point_phrasings(self) -> None:
        self.assertEqual(extract_basis_points("50 basis points"), 50)
        self.assertEqual(extract_basis_points("a 0.25% cut"), 25)
        self.assertEqual(extract_basis_points("quarter-point cut"), 25)
        self.assertIsNone(extract_basis_points("rates above 4%"))

    def test_target_range_and_counts(self) -> None:
        self.assertEqual(extract_target_range("Fed funds between 4.25% and 4.50%"), TargetRange(4.25, 4.5))
        self.assertEqual(extract_target_range("Upper bound 4.25-4.50%"), TargetRange(4.25, 4.5))
        self.assertEqual(extract_action_count("Will the Fed make 3 cuts in 2025?"), 3)
        self.assertEqual(extract_action_count("Two rate cuts this year?"), 2)
        self.assertEqual(extract_central_bank("Will Lagarde cut in June?"), "ECB")

    def test_action_scores(self) -> None:
        self.assertEqual(action_score(CUT, CUT), 1.0)
        self.assertEqual(action_score(HOLD, PAUSE), 0.8)
        self.assertEqual(action_score(CUT, HIKE), 0.0)
        self.assertEqual(action_score(CUT, UNKNOWN), 0.5)


class RatesPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pipeline = RatesPipeline()

    def test_same_meeting_and_move_scores_strong(self) -> None:
        left = self.pipeline.extract(_record("pm1", "polymarket", "Will the Fed cut rates by 25 bps in March 2025?"))
        right = self.pipeline.extract(_record("k1", "kalshi", "Fed cuts 25 bps at March 2025 meeting"))
        self.assertEqual(self.pipeline.block_key(left), ("FED", "2025-03"))

        result = self.pipeline.score(left, right)
        self.assertIsInstance(result, ScoreResult)
        self.assertEqual(result.tier, "STRONG")
        self.assertIn("bank=FED act=1.00[CUT/CUT]", result.reason)

    def test_hold_and_pause_are_near_synonyms(self) -> None:
        left = self.pipeline.extract(_record("pm1", "polymarket", "Will the Fed hold rates in March 2025?"))
        right = self.pipeline.extract(_record("k1", "kalshi", "Will the Fed pause in March 2025?"))
        result = self.pipeline.score(left, right)
        self.assertIsInstance(result, ScoreResult)
        self.assertIn("act=0.80[HOLD/PAUSE]", result.reason)

    def test_meeting_days_more_than_one_apart_are_gated(self) -> None:
        left = self.pipeline.extract(_record("pm1", "polymarket", "Fed cut on March 19, 2025?"))
        next_day = self.pipeline.extract(_record("k1", "kalshi", "Fed cut on March 20, 2025?"))
        later = self.pipeline.extract(_record("k2", "kalshi", "Fed cut on March 25, 2025?"))
        self.assertEqual(self.pipeline.score(left, next_day).date, 0.9)
        rejected = self.pipeline.score(left, later)
        self.assertIsInstance(rejected, GateRejection)
        self.assertEqual(rejected.reason, "date gate: meeting 2025-03-19 vs 2025-03-25")

    def test_different_month_is_gated(self) -> None:
        march = self.pipeline.extract(_record("pm1", "polymarket", "Fed cut in March 2025?"))
        may = self.pipeline.extract(_record("k1", "kalshi", "Fed cut in May 2025?"))
        rejected = self.pipeline.score(march, may)
        self.assertEqual(rejected.reason, "date gate: meeting 2025-03 vs 2025-05")


if __name__ == "__main__":
    unittest.main()
