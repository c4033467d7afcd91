from __future__ import annotations

import unittest

from market_linker.engine.diagnostics import (
    FLAG_DATE_GATE,
    FLAG_ENTITY_MISMATCH,
    FLAG_TEXT_GATE,
    TAG_SEPARATOR,
    CryptoDailyDiagnostic,
    EventDiagnostic,
    FreeTextDiagnostic,
    IntradayDiagnostic,
    MacroDiagnostic,
    SportsDiagnostic,
    parse_reason,
    topic_from_diagnostic,
)


class ParseReasonTests(unittest.TestCase):
    def test_each_grammar_reads_back_its_own_rendering(self) -> None:
        diagnostics = [
            CryptoDailyDiagnostic("BITCOIN", "DAY_EXACT", 1.0, 0, 1.0, "price", 0.75),
            CryptoDailyDiagnostic("ETHEREUM", "MONTH_END", 1.0, None, 0.8, "threshold", 0.5),
            IntradayDiagnostic("BITCOIN", "2026-01-15T20:00", "UP", "none", 0.5),
            MacroDiagnostic("STRONG", 1.0, 1.0, "exact", "2025-03", "2025-03", 1.0, 0.5),
            SportsDiagnostic("WEAK", "NBA", 1.0, 0.7, 1.0, "TOTAL", 0.25),
            EventDiagnostic(
                "RATES", "STRONG", 1.0, 1.0, "MEETING_MONTH", 1.0, 0.4, {"bank": "FED", "act": "1.00[CUT/CUT]"}
            ),
            EventDiagnostic(
                "ELECTIONS", "STRONG", 1.0, 1.0, "YEAR", 1.0, 0.6, {"race": "US|PRESIDENT|2028", "cand": "1"}
            ),
        ]
        for diagnostic in diagnostics:
            with self.subTest(kind=type(diagnostic).__name__):
                self.assertEqual(parse_reason(diagnostic.to_reason()), diagnostic)

    def test_appended_tags_are_ignored(self) -> None:
        diagnostic = CryptoDailyDiagnostic("BITCOIN", "DAY_EXACT", 1.0, 0, 1.0, "price", 0.75)
        tagged = diagnostic.to_reason() + TAG_SEPARATOR + "bracket=best_score" + TAG_SEPARATOR + "safe=pass"
        self.assertEqual(parse_reason(tagged), diagnostic)

    def test_day_diff_and_text_accessors(self) -> None:
        parsed = parse_reason("entity=BITCOIN dateType=DAY_EXACT date=0.60(1d) num=1.00[price] text=0.40")
        self.assertEqual(parsed.day_diff, 1)
        self.assertEqual(parsed.text, 0.4)
        self.assertEqual(topic_from_diagnostic(parsed), "crypto_daily")


class FreeTextTests(unittest.TestCase):
    def test_gate_rejection_reasons_carry_flags(self) -> None:
        parsed = parse_reason("entity mismatch: BITCOIN vs ETHEREUM")
        self.assertIsInstance(parsed, FreeTextDiagnostic)
        self.assertEqual(parsed.flags, frozenset({FLAG_ENTITY_MISMATCH}))
        self.assertEqual(parsed.mismatched, ("BITCOIN", "ETHEREUM"))
        self.assertEqual(parse_reason("date gate: day diff 3").flags, frozenset({FLAG_DATE_GATE}))

    def test_legacy_markers_and_text_score(self) -> None:
        parsed = parse_reason("TEXT_GATE_FAIL jaccard=0.03")
        self.assertIn(FLAG_TEXT_GATE, parsed.flags)
        self.assertEqual(parsed.text, 0.03)
        self.assertIsNone(topic_from_diagnostic(parsed))

    def test_empty_reason(self) -> None:
        parsed = parse_reason(None)
        self.assertIsInstance(parsed, FreeTextDiagnostic)
        self.assertEqual(parsed.flags, frozenset())
        self.assertIsNone(parsed.text)


if __name__ == "__main__":
    unittest.main()
