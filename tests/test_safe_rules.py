from __future__ import annotations

import unittest

from market_linker.engine.safe_rules import (
    MACRO_RULES,
    evaluate_safe_rules,
    format_evaluation,
    numbers_compatible,
)
from market_linker.models import MarketLink

CRYPTO_REASON = "entity=BITCOIN dateType=DAY_EXACT date=1.00(0d) num=1.00[price] text=0.60"
LEFT_TITLE = "Will Bitcoin be above $100,000 on January 15, 2026?"
RIGHT_TITLE = "Bitcoin above $100,000 on Jan 15, 2026?"


def _link(reason: str, score: float = 0.95, left_title: str = LEFT_TITLE, right_title: str = RIGHT_TITLE) -> MarketLink:
    return MarketLink(
        left_venue="polymarket",
        left_market_id="pm1",
        right_venue="kalshi",
        right_market_id="KXBTCD-26JAN15-T100000",
        score=score,
        reason=reason,
        left_title=left_title,
        right_title=right_title,
    )


class CryptoDailySafeRuleTests(unittest.TestCase):
    def test_exact_day_and_threshold_pass(self) -> None:
        evaluation = evaluate_safe_rules(_link(CRYPTO_REASON), "crypto_daily")
        self.assertTrue(evaluation.passed, format_evaluation(evaluation))
        self.assertIn("CD_NUMBERS", evaluation.passed_rules)
        self.assertTrue(format_evaluation(evaluation).startswith("PASS [crypto_daily] score=0.950"))

    def test_one_day_offset_never_auto_confirms(self) -> None:
        reason = "entity=BITCOIN dateType=DAY_EXACT date=0.60(1d) num=1.00[price] text=0.60"
        evaluation = evaluate_safe_rules(_link(reason), "crypto_daily")
        self.assertFalse(evaluation.passed)
        self.assertEqual(evaluation.failed_rules, ["CD_DATE_EXACT", "CD_DATE_SCORE"])

    def test_opposite_comparators_fail(self) -> None:
        link = _link(CRYPTO_REASON, right_title="Bitcoin below $100,000 on Jan 15, 2026?")
        self.assertEqual(evaluate_safe_rules(link, "crypto_daily").failed_rules, ["CD_COMPARATOR"])

    def test_thresholds_must_agree(self) -> None:
        link = _link(CRYPTO_REASON, right_title="Bitcoin above $105,000 on Jan 15, 2026?")
        self.assertEqual(evaluate_safe_rules(link, "crypto_daily").failed_rules, ["CD_NUMBERS"])
        self.assertTrue(numbers_compatible([], []).passed)
        self.assertFalse(numbers_compatible([100000.0], []).passed)
        self.assertTrue(numbers_compatible([100000.0], [100000.5]).passed)


class GeneralSafeRuleTests(unittest.TestCase):
    def test_unknown_topic(self) -> None:
        evaluation = evaluate_safe_rules(_link(CRYPTO_REASON), "weather")
        self.assertEqual(evaluation.failed_rules, ["UNKNOWN_TOPIC"])
        self.assertFalse(evaluation.passed)

    def test_score_below_topic_minimum_short_circuits(self) -> None:
        evaluation = evaluate_safe_rules(_link(CRYPTO_REASON, score=0.87), "crypto_daily")
        self.assertEqual(evaluation.failed_rules, ["SCORE_MINIMUM"])
        self.assertEqual(len(evaluation.results), 1)

    def test_explicit_minimum_overrides_default(self) -> None:
        self.assertTrue(evaluate_safe_rules(_link(CRYPTO_REASON, score=0.87), "crypto_daily", 0.85).passed)

    def test_reason_of_another_family_fails_every_rule(self) -> None:
        evaluation = evaluate_safe_rules(_link(CRYPTO_REASON), "macro")
        self.assertEqual(evaluation.failed_rules, list(MACRO_RULES))
        self.assertEqual(evaluation.results[0].detail, "reason is CryptoDailyDiagnostic")


class FamilySafeRuleTests(unittest.TestCase):
    def test_macro_requires_exact_period(self) -> None:
        exact = "MACRO: tier=STRONG me=1.00 per=1.00[exact](2025-03/2025-03) num=1.00 txt=0.75"
        quarter = "MACRO: tier=WEAK me=1.00 per=0.60[month_in_quarter](2025-03/2025-Q1) num=1.00 txt=0.75"
        self.assertTrue(evaluate_safe_rules(_link(exact, 0.96), "macro").passed)
        failed = evaluate_safe_rules(_link(quarter, 0.92), "macro").failed_rules
        self.assertEqual(failed, ["MA_PERIOD_KIND", "MA_TIER_STRONG"])

    def test_sports_moneyline_only(self) -> None:
        moneyline = "SPORTS: tier=STRONG league=NBA event=1.00 line=1.00 side=1.00 type=MONEYLINE text=0.50"
        total = "SPORTS: tier=STRONG league=NBA event=1.00 line=1.00 side=1.00 type=TOTAL text=0.50"
        self.assertTrue(evaluate_safe_rules(_link(moneyline), "sports").passed)
        self.assertEqual(evaluate_safe_rules(_link(total), "sports").failed_rules, ["SP_MONEYLINE_ONLY"])

    def test_event_families_share_rules(self) -> None:
        rates = "RATES: tier=STRONG entity=1.00 date=1.00[MEETING_MONTH] num=1.00 text=0.40 bank=FED act=1.00[CUT/CUT]"
        adjacent = "RATES: tier=WEAK entity=1.00 date=0.90[MEETING_DAY] num=1.00 text=0.40 bank=FED act=1.00[CUT/CUT]"
        self.assertTrue(evaluate_safe_rules(_link(rates), "rates").passed)
        self.assertEqual(
            evaluate_safe_rules(_link(adjacent), "rates").failed_rules, ["EV_DATE_EXACT", "EV_TIER_STRONG"]
        )

    def test_commodities_need_exact_settle_and_direction(self) -> None:
        exact = "COMMODITIES: tier=STRONG entity=1.00 date=1.00[DAY_EXACT] num=1.00 text=0.60 underlying=GOLD cmp=1.00[GE/GE]"
        loose = (
            "COMMODITIES: tier=STRONG entity=1.00 date=0.80[MONTH_END/DAY_EXACT] num=1.00 text=0.60 "
            "underlying=GOLD cmp=0.50[GE/UNKNOWN]"
        )
        self.assertTrue(evaluate_safe_rules(_link(exact), "commodities").passed)
        self.assertEqual(evaluate_safe_rules(_link(loose), "commodities").failed_rules, ["CO_DATE_EXACT", "CO_COMPARATOR"])

    def test_geopolitics_needs_same_region_and_an_anchor(self) -> None:
        anchored = (
            "GEOPOLITICS: tier=STRONG entity=1.00 date=1.00[YEAR] num=1.00 text=0.50 "
            "reg=UKRAINE/UKRAINE cty=1.00(2) event=1.00[PEACE/PEACE] act=1.00(1)"
        )
        loose = (
            "GEOPOLITICS: tier=WEAK entity=0.50 date=1.00[YEAR] num=0.50 text=0.50 "
            "reg=UKRAINE/RUSSIA cty=0.50(1) event=1.00[PEACE/PEACE] act=0.50(0)"
        )
        self.assertTrue(evaluate_safe_rules(_link(anchored), "geopolitics").passed)
        self.assertEqual(evaluate_safe_rules(_link(loose), "geopolitics").failed_rules, ["GP_REGION_SAME", "GP_ANCHOR"])


if __name__ == "__main__":
    unittest.main()
