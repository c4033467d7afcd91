from __future__ import annotations

import unittest
from datetime import datetime, timezone

from market_linker.engine.pipelines.elections import ElectionsPipeline, candidate_score
from market_linker.engine.scoring import GateRejection, ScoreResult
from market_linker.engine.signals.elections import (
    PARTY_CONTROL,
    WINNER,
    extract_election_signals,
    extract_office,
    extract_state,
)
from market_linker.models import MarketRecord


def _record(market_id: str, venue: str, title: str) -> MarketRecord:
    return MarketRecord(
        id=market_id,
        venue=venue,
        title=title,
        close_time=datetime(2028, 11, 8, tzinfo=timezone.utc),
    )


class ElectionSignalTests(unittest.TestCase):
    def test_presidential_race_key(self) -> None:
        sig = extract_election_signals("Will Trump win the 2028 United States presidential election?")
        self.assertEqual(sig.race_key, "US|PRESIDENT|2028")
        self.assertEqual(sig.candidates, ["TRUMP"])
        self.assertEqual(sig.intent, WINNER)

    def test_vice_president_is_checked_before_president(self) -> None:
        self.assertEqual(extract_office("Who will be the next vice president?"), "VICE_PRESIDENT")
        self.assertEqual(extract_office("Will JD Vance be VP?"), "VICE_PRESIDENT")

    def test_party_control_and_state(self) -> None:
        sig = extract_election_signals("Will Republicans control the Pennsylvania Senate seat in 2026?")
        self.assertEqual(sig.office, "SENATE")
        self.assertEqual(sig.intent, PARTY_CONTROL)
        self.assertEqual(sig.party, "REPUBLICAN")
        self.assertEqual(sig.state, "PA")
        self.assertEqual(sig.race_key, "US|SENATE|2026|PA")

    def test_upper_case_words_are_not_states(self) -> None:
        self.assertIsNone(extract_state("Trump OR Harris in 2028?"))
        self.assertEqual(extract_state("Senate race in TX"), "TX")

    def test_year_falls_back_to_close_time(self) -> None:
        sig = extract_election_signals("Who wins the presidency?", datetime(2028, 11, 8, tzinfo=timezone.utc))
        self.assertEqual(sig.year, 2028)

    def test_candidate_score(self) -> None:
        self.assertEqual(candidate_score([], []), (0.5, 0))
        self.assertEqual(candidate_score(["TRUMP"], []), (0.3, 0))
        self.assertEqual(candidate_score(["TRUMP"], ["TRUMP", "VANCE"]), (0.5, 1))


class ElectionsPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.pipeline = ElectionsPipeline()

    def test_shared_candidate_scores_strong(self) -> None:
        left = self.pipeline.extract(_record("pm1", "polymarket", "Will Trump win the 2028 United States presidential election?"))
        right = self.pipeline.extract(_record("k1", "kalshi", "Trump wins 2028 presidential election in the United States"))
        self.assertEqual(self.pipeline.block_key(left), ("US|PRESIDENT", "2028"))

        result = self.pipeline.score(left, right)
        self.assertIsInstance(result, ScoreResult)
        self.assertEqual(result.tier, "STRONG")
        self.assertEqual(result.number, 1.0)
        self.assertTrue(result.reason.startswith("ELECTIONS: tier=STRONG entity=1.00 date=1.00[YEAR] num=1.00"))
        self.assertIn("race=US|PRESIDENT|2028 cand=1", result.reason)

    def test_no_named_candidates_is_weak(self) -> None:
        left = self.pipeline.extract(_record("pm1", "polymarket", "Who will win the 2028 United States presidential election?"))
        right = self.pipeline.extract(_record("k1", "kalshi", "2028 United States presidential election winner"))
        result = self.pipeline.score(left, right)
        self.assertIsInstance(result, ScoreResult)
        self.assertEqual(result.tier, "WEAK")

    def test_office_and_state_gates(self) -> None:
        president = self.pipeline.extract(_record("pm1", "polymarket", "Will Trump win the 2028 United States presidential election?"))
        senate = self.pipeline.extract(_record("k1", "kalshi", "Will Republicans control the Senate in 2028?"))
        self.assertEqual(self.pipeline.score(president, senate).gate, "entity mismatch")

        texas = self.pipeline.extract(_record("k2", "kalshi", "Texas Senate race 2026 winner"))
        ohio = self.pipeline.extract(_record("k3", "kalshi", "Ohio Senate race 2026 winner"))
        rejected = self.pipeline.score(texas, ohio)
        self.assertIsInstance(rejected, GateRejection)
        self.assertEqual(rejected.reason, "region mismatch: TX vs OH")


if __name__ == "__main__":
    unittest.main()
