from __future__ import annotations

import unittest
from datetime import datetime, timezone

from market_linker.engine.extraction import UNKNOWN
from market_linker.engine.matcher import suggest_links
from market_linker.engine.pipelines.geopolitics import GeopoliticsPipeline, overlap_score
from market_linker.engine.scoring import GateRejection, ScoreResult
from market_linker.engine.signals.geopolitics import (
    MILITARY,
    PEACE,
    SANCTIONS,
    WAR,
    are_event_types_compatible,
    are_event_types_conflicting,
    extract_actors,
    extract_countries,
    extract_event_type,
    extract_geopolitics_signals,
    extract_region,
)
from market_linker.models import MarketRecord

CLOSE = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _record(market_id: str, venue: str, title: str) -> MarketRecord:
    return MarketRecord(id=market_id, venue=venue, title=title, close_time=CLOSE)


class GeopoliticsSignalTests(unittest.TestCase):
    def test_regions(self) -> None:
        self.assertEqual(extract_region("Ukraine ceasefire by March"), "UKRAINE")
        self.assertEqual(extract_region("Zelensky peace deal"), "UKRAINE")
        self.assertEqual(extract_region("Taiwan invasion by China"), "CHINA")
        self.assertEqual(extract_region("Iran nuclear deal"), "MIDDLE_EAST")
        self.assertEqual(extract_region("Will it rain?"), UNKNOWN)

    def test_event_types_prefer_specific_events(self) -> None:
        self.assertEqual(extract_event_type("Ukraine invasion continues"), WAR)
        self.assertEqual(extract_event_type("Military conflict in Gaza"), WAR)
        self.assertEqual(extract_event_type("Russia sanctions lifted"), SANCTIONS)
        self.assertEqual(extract_event_type("Peace treaty signed"), PEACE)
        self.assertEqual(extract_event_type("Troops deployed to the border region"), "TERRITORY")

    def test_countries_and_actors(self) -> None:
        self.assertEqual(extract_countries("Israel-Hamas war in Gaza"), ["ISRAEL", "GAZA"])
        self.assertEqual(extract_actors("Will Putin and Zelensky meet?"), ["PUTIN", "ZELENSKY"])
        self.assertEqual(extract_actors("Taxi fares in Xian"), [])

    def test_full_signal(self) -> None:
        sig = extract_geopolitics_signals("Russia x Ukraine ceasefire by March 2025?")
        self.assertEqual(sig.region, "UKRAINE")
        self.assertEqual(sig.regions, ["UKRAINE", "RUSSIA"])
        self.assertEqual(sig.countries, ["UKRAINE", "RUSSIA"])
        self.assertEqual(sig.event_type, PEACE)
        self.assertEqual(sig.year, 2025)
        self.assertEqual(sig.deadline, "by march")
        self.assertEqual(sig.entity, "UKRAINE")
        self.assertAlmostEqual(sig.confidence, 0.85)
        self.assertFalse(sig.excluded)

    def test_year_falls_back_to_close_time(self) -> None:
        self.assertEqual(extract_geopolitics_signals("Will NATO deploy troops?", CLOSE).year, 2025)
        self.assertIsNone(extract_geopolitics_signals("Will NATO deploy troops?").year)

    def test_exclusions(self) -> None:
        self.assertEqual(extract_geopolitics_signals("NBA Finals: Celtics win?").exclusion_reason, "sports market")
        self.assertEqual(extract_geopolitics_signals("Will it rain in NYC?").exclusion_reason, "no geopolitics keyword")

    def test_event_type_relations(self) -> None:
        self.assertTrue(are_event_types_compatible(WAR, MILITARY))
        self.assertTrue(are_event_types_compatible(PEACE, UNKNOWN))
        self.assertFalse(are_event_types_compatible(WAR, SANCTIONS))
        self.assertTrue(are_event_types_conflicting(PEACE, WAR))
        self.assertFalse(are_event_types_conflicting(WAR, MILITARY))

    def test_overlap_score(self) -> None:
        self.assertEqual(overlap_score([], []), (0.5, 0))
        self.assertEqual(overlap_score(["PUTIN"], []), (0.3, 0))
        self.assertEqual(overlap_score(["PUTIN", "XI"], ["PUTIN"]), (0.5, 1))


class GeopoliticsPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pipeline = GeopoliticsPipeline()
        self.ceasefire = self.pipeline.extract(_record("pm1", "polymarket", "Russia x Ukraine ceasefire by March 2025?"))

    def test_same_conflict_scores_strong(self) -> None:
        right = self.pipeline.extract(_record("k1", "kalshi", "Will Russia and Ukraine agree to a ceasefire in 2025?"))
        self.assertEqual(
            self.pipeline.block_keys(self.ceasefire),
            [("region:UKRAINE", "2025"), ("country:UKRAINE", "2025"), ("country:RUSSIA", "2025")],
        )

        result = self.pipeline.score(self.ceasefire, right)
        self.assertIsInstance(result, ScoreResult)
        self.assertEqual(result.tier, "STRONG")
        self.assertGreaterEqual(result.score, 0.875)
        self.assertTrue(result.reason.startswith("GEOPOLITICS: tier=STRONG entity=1.00 date=1.00[YEAR] num=1.00"))
        self.assertIn("reg=UKRAINE/UKRAINE cty=1.00(2) event=1.00[PEACE/PEACE] act=0.50(0)", result.reason)

    def test_war_and_peace_are_gated(self) -> None:
        invasion = self.pipeline.extract(_record("k1", "kalshi", "Will Russia invade Ukraine again in 2025?"))
        rejected = self.pipeline.score(self.ceasefire, invasion)
        self.assertIsInstance(rejected, GateRejection)
        self.assertEqual(rejected.reason, "event type conflict: PEACE vs WAR")

    def test_no_shared_place_is_gated(self) -> None:
        gaza = self.pipeline.extract(_record("k1", "kalshi", "Will Israel and Hamas agree to a ceasefire in 2025?"))
        rejected = self.pipeline.score(self.ceasefire, gaza)
        self.assertEqual(rejected.gate, "region mismatch")
        self.assertEqual(
            rejected.detail, "regions UKRAINE,RUSSIA vs MIDDLE_EAST, countries UKRAINE,RUSSIA vs ISRAEL"
        )

    def test_different_years_are_gated(self) -> None:
        later = self.pipeline.extract(_record("k1", "kalshi", "Ukraine ceasefire in 2026?"))
        self.assertEqual(self.pipeline.score(self.ceasefire, later).reason, "date gate: year 2025 vs 2026")

    def test_shared_actor_makes_a_candidate(self) -> None:
        left = _record("pm1", "polymarket", "Will Putin meet Zelensky in 2025?")
        right = _record("k1", "kalshi", "Putin-Trump summit in 2025?")
        self.assertEqual(self.pipeline.block_key(self.pipeline.extract(right)), ("region:RUSSIA", "2025"))

        result = self.pipeline.score(self.pipeline.extract(left), self.pipeline.extract(right))
        self.assertIsInstance(result, ScoreResult)
        self.assertIn("act=0.33(1)", result.reason)
        self.assertEqual(suggest_links(self.pipeline, [left], [right]).stats.pairs_scored, 1)


if __name__ == "__main__":
    unittest.main()
