from __future__ import annotations

import unittest

from market_linker.engine.normalize import (
    extract_entities,
    jaccard,
    normalize_name,
    normalize_team_name,
    text_similarity,
    tokenize,
)


class TokenizeTests(unittest.TestCase):
    def test_splits_on_non_alphanumerics_and_lowercases(self) -> None:
        self.assertEqual(tokenize("Will BTC hit $100,000?"), ["will", "btc", "hit", "100", "000"])

    def test_empty_input(self) -> None:
        self.assertEqual(tokenize(""), [])
        self.assertEqual(tokenize(None), [])


class NormalizeNameTests(unittest.TestCase):
    def test_alias_and_city_abbreviation_resolve_to_canonical(self) -> None:
        self.assertEqual(normalize_team_name("LA Lakers"), "los angeles lakers")
        self.assertEqual(normalize_team_name("Lakers"), "los angeles lakers")
        self.assertEqual(normalize_team_name("Los Angeles Lakers"), "los angeles lakers")

    def test_unknown_name_comes_back_cleaned(self) -> None:
        self.assertEqual(normalize_name("  Springfield   Isotopes! "), "springfield isotopes")

    def test_idempotent(self) -> None:
        for raw in ("LA Lakers", "Celtics", "Springfield Isotopes", ""):
            once = normalize_name(raw)
            self.assertEqual(normalize_name(once), once)


class SimilarityTests(unittest.TestCase):
    def test_jaccard(self) -> None:
        self.assertEqual(jaccard(["a", "b"], ["b", "c"]), 1 / 3)
        self.assertEqual(jaccard([], ["a"]), 0.0)
        self.assertEqual(jaccard(["a"], ["a"]), 1.0)

    def test_text_similarity_is_symmetric(self) -> None:
        a = "Will Bitcoin be above 100k?"
        b = "Bitcoin above 100k on Friday"
        self.assertEqual(text_similarity(a, b), text_similarity(b, a))

    def test_extract_entities_matches_whole_tokens(self) -> None:
        self.assertEqual(extract_entities("Will BTC close above 90k?"), ["BITCOIN"])
        self.assertIn("CPI", extract_entities("March CPI above 3%"))


if __name__ == "__main__":
    unittest.main()
