from __future__ import annotations

import unittest
from datetime import datetime, timezone

from market_linker.engine.brackets import (
    CENTRAL_THRESHOLD,
    BracketCandidate,
    BracketGroup,
    analyze_brackets,
    apply_bracket_grouping,
    build_bracket_key,
    select_representative,
)
from market_linker.engine.diagnostics import FreeTextDiagnostic
from market_linker.engine.extraction import DAY, ExtractedDate
from market_linker.engine.pipelines.base import MarketSignal
from market_linker.engine.scoring import ScoreResult
from market_linker.engine.signals.base import BaseSignal
from market_linker.models import MarketRecord

CLOSE = datetime(2026, 1, 15, 17, 0, tzinfo=timezone.utc)
LEFT = MarketSignal(
    record=MarketRecord(id="pm1", venue="polymarket", title="Bitcoin above 100k on Jan 15", close_time=CLOSE),
    signal=BaseSignal(entity="BITCOIN"),
)


def _candidate(market_id: str, score: float, numbers, entity: str = "BITCOIN", comparator: str = "GE") -> BracketCandidate:
    signal = BaseSignal(
        entity=entity,
        date=ExtractedDate(precision=DAY, year=2026, month=1, day=15),
        numbers=list(numbers),
        comparator=comparator,
    )
    right = MarketSignal(
        record=MarketRecord(id=market_id, venue="kalshi", title=market_id, close_time=CLOSE),
        signal=signal,
    )
    result = ScoreResult(
        score=score,
        entity=1.0,
        date=1.0,
        number=1.0,
        text=0.5,
        tier="STRONG",
        diagnostic=FreeTextDiagnostic(raw=""),
    )
    return BracketCandidate(left=LEFT, right=right, result=result)


class BracketKeyTests(unittest.TestCase):
    def test_comparator_aliases_collapse(self) -> None:
        self.assertEqual(build_bracket_key("BITCOIN", "2026-01-15", "above"), "BITCOIN|2026-01-15|GE")
        self.assertEqual(build_bracket_key(None, None, None), "UNKNOWN|UNKNOWN|UNKNOWN")

    def test_candidate_key_comes_from_the_right_market(self) -> None:
        self.assertEqual(_candidate("k1", 0.9, [100000]).key, "BITCOIN|2026-01-15|GE")

    def test_between_threshold_is_the_midpoint(self) -> None:
        self.assertEqual(_candidate("k1", 0.9, [90000, 95000], comparator="BETWEEN").threshold, 92500.0)


class GroupingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.candidates = [
            _candidate("k-90", 0.90, [90000]),
            _candidate("k-95", 0.80, [95000]),
            _candidate("k-100", 0.70, [100000]),
            _candidate("k-105", 0.85, [105000]),
            _candidate("k-110", 0.60, [110000]),
            _candidate("e-4000", 0.95, [4000], entity="ETHEREUM"),
            _candidate("k-le", 0.50, [90000], comparator="LE"),
            _candidate("s-200", 0.40, [200], entity="SOLANA"),
        ]

    def test_keeps_one_line_for_each_of_the_best_groups(self) -> None:
        kept, stats = apply_bracket_grouping(self.candidates, max_groups_per_left=3)
        self.assertEqual([c.right.market_id for c in kept], ["e-4000", "k-90", "k-le"])
        self.assertEqual(stats.total_candidates, 8)
        self.assertEqual(stats.unique_groups, 4)
        self.assertEqual(stats.dropped_by_group_limit, 1)
        self.assertEqual(stats.dropped_within_groups, 4)
        self.assertEqual(
            stats.saved_candidates + stats.dropped_by_group_limit + stats.dropped_within_groups,
            stats.total_candidates,
        )

    def test_several_lines_per_group(self) -> None:
        kept, stats = apply_bracket_grouping(self.candidates[:5], max_lines_per_group=2)
        self.assertEqual([c.right.market_id for c in kept], ["k-90", "k-105"])
        self.assertEqual(stats.dropped_within_groups, 3)

    def test_central_threshold_picks_the_median_line(self) -> None:
        kept, _ = apply_bracket_grouping(self.candidates[:5], strategy=CENTRAL_THRESHOLD)
        self.assertEqual([c.right.market_id for c in kept], ["k-100"])

    def test_central_threshold_ties_prefer_higher_score(self) -> None:
        group = BracketGroup(
            key="BITCOIN|2026-01-15|GE",
            candidates=[
                _candidate("k-b", 0.9, [100000]),
                _candidate("k-a", 0.7, [100000]),
                _candidate("k-c", 0.8, [90000]),
                _candidate("k-d", 0.8, [110000]),
            ],
        )
        self.assertEqual(select_representative(group, CENTRAL_THRESHOLD).right.market_id, "k-b")

    def test_central_threshold_equal_scores_go_to_lowest_id(self) -> None:
        group = BracketGroup(
            key="BITCOIN|2026-01-15|GE",
            candidates=[_candidate("k-b", 0.8, [100000]), _candidate("k-a", 0.8, [100000])],
        )
        self.assertEqual(select_representative(group, CENTRAL_THRESHOLD).right.market_id, "k-a")

    def test_groups_without_thresholds_fall_back_to_best_score(self) -> None:
        group = BracketGroup(key="x", candidates=[_candidate("k-1", 0.6, []), _candidate("k-2", 0.8, [])])
        self.assertEqual(select_representative(group, CENTRAL_THRESHOLD).right.market_id, "k-2")

    def test_empty_input(self) -> None:
        kept, stats = apply_bracket_grouping([])
        self.assertEqual(kept, [])
        self.assertEqual(stats.total_candidates, 0)


class AnalyzeTests(unittest.TestCase):
    def test_group_size_histogram(self) -> None:
        candidates = [_candidate(f"k-{n}", 0.8, [n]) for n in (90000, 95000, 100000)]
        candidates.append(_candidate("e-1", 0.8, [4000], entity="ETHEREUM"))
        analysis = analyze_brackets(candidates)
        self.assertEqual(analysis.total, 4)
        self.assertEqual(analysis.sizes, {3: 1, 1: 1})
        self.assertEqual(analysis.largest[0], ("BITCOIN|2026-01-15|GE", 3, [90000, 95000, 100000]))


if __name__ == "__main__":
    unittest.main()
