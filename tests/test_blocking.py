from __future__ import annotations

import unittest

from market_linker.engine.blocking import adjacent_buckets, build_index, find_candidates


def _key(item):
    entity, bucket = item[1], item[2]
    if entity is None or bucket is None:
        return None
    return entity, bucket


class BuildIndexTests(unittest.TestCase):
    def test_groups_by_key_and_counts_skipped(self) -> None:
        items = [
            ("a", "BITCOIN", "2026-01-15"),
            ("b", "BITCOIN", "2026-01-15"),
            ("c", "ETHEREUM", "2026-01-15"),
            ("d", None, "2026-01-15"),
            ("e", "BITCOIN", ""),
        ]
        index = build_index(items, _key)
        self.assertEqual(index.skipped, 2)
        self.assertEqual(len(index), 3)
        self.assertEqual([i[0] for i in index.buckets[("BITCOIN", "2026-01-15")]], ["a", "b"])


class AdjacentBucketTests(unittest.TestCase):
    def test_day_keys_step_one_day(self) -> None:
        self.assertEqual(adjacent_buckets("2026-01-01"), ["2025-12-31", "2026-01-02"])

    def test_month_keys_step_one_month(self) -> None:
        self.assertEqual(adjacent_buckets("2026-01"), ["2025-12", "2026-02"])
        self.assertEqual(adjacent_buckets("2025-12"), ["2025-11", "2026-01"])

    def test_half_hour_keys_step_thirty_minutes(self) -> None:
        neighbours = adjacent_buckets("2025-01-23T20:00")
        self.assertIn("2025-01-23T19:30", neighbours)
        self.assertIn("2025-01-23T20:30", neighbours)

    def test_other_keys_have_no_neighbours(self) -> None:
        self.assertEqual(adjacent_buckets("2025-Q1"), [])
        self.assertEqual(adjacent_buckets("2025"), [])


class FindCandidatesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.index = build_index(
            [
                ("k1", "BITCOIN", "2026-01-15"),
                ("k2", "BITCOIN", "2026-01-16"),
                ("k3", "BITCOIN", "2026-01-18"),
                ("k4", "ETHEREUM", "2026-01-15"),
            ],
            _key,
        )

    def test_exact_bucket_only_by_default(self) -> None:
        found = find_candidates(("pm1", "BITCOIN", "2026-01-15"), self.index)
        self.assertEqual([i[0] for i in found], ["k1"])

    def test_adjacent_days_when_allowed(self) -> None:
        found = find_candidates(("pm1", "BITCOIN", "2026-01-15"), self.index, allow_adjacent=True)
        self.assertEqual(sorted(i[0] for i in found), ["k1", "k2"])

    def test_unkeyed_item_finds_nothing(self) -> None:
        self.assertEqual(find_candidates(("pm1", None, None), self.index), [])


class MultiKeyTests(unittest.TestCase):
    @staticmethod
    def _keys(item):
        return [(entity, "2025") for entity in item[1]]

    def test_items_are_indexed_under_every_key(self) -> None:
        index = build_index([("k1", ["INFLATION"]), ("k2", ["CPI", "INFLATION"]), ("k3", [])], self._keys)
        self.assertEqual(index.skipped, 1)
        self.assertEqual([i[0] for i in index.buckets[("INFLATION", "2025")]], ["k1", "k2"])

        found = find_candidates(("pm1", ["CPI", "INFLATION"]), index)
        self.assertEqual([i[0] for i in found], ["k2", "k1"])


if __name__ == "__main__":
    unittest.main()
