from __future__ import annotations

import unittest
from datetime import date, datetime, timezone

from market_linker.engine.extraction import (
    BETWEEN,
    DAY,
    GE,
    LE,
    MONTH,
    QUARTER,
    UNKNOWN,
    WIN,
    YEAR,
    ExtractedDate,
    extract_comparator,
    extract_dates,
    extract_numbers,
    parse_datetime_any,
    penalized_confidence,
)


class DateExtractionTests(unittest.TestCase):
    def test_day_with_explicit_year(self) -> None:
        dates = extract_dates("Bitcoin above 100k on January 15, 2026?")
        self.assertEqual(dates[0].precision, DAY)
        self.assertEqual(dates[0].key(), "2026-01-15")

    def test_day_takes_reference_year_when_missing(self) -> None:
        dates = extract_dates("ETH above 4k on Mar 3", reference_year=2025)
        self.assertEqual(dates[0].key(), "2025-03-03")

    def test_finest_precision_first(self) -> None:
        dates = extract_dates("Q1 2025 GDP, released by end of 2025, or on March 30, 2025")
        self.assertEqual([d.precision for d in dates], [DAY, QUARTER, YEAR])

    def test_month_already_pinned_to_day_is_dropped(self) -> None:
        dates = extract_dates("Temperature on June 4, 2025 in June 2025")
        self.assertEqual([d.key() for d in dates], ["2025-06-04"])

    def test_bare_year_needs_deadline_preposition(self) -> None:
        self.assertEqual([d.key() for d in extract_dates("Recession by 2026?")], ["2026"])
        self.assertEqual(extract_dates("2026 World Cup winner"), [])

    def test_month_precision_settles_at_month_end(self) -> None:
        found = ExtractedDate(precision=MONTH, year=2024, month=2)
        self.assertEqual(found.as_date(), date(2024, 2, 29))
        self.assertEqual(found.compact(), "202402")

    def test_invalid_calendar_day_is_skipped(self) -> None:
        self.assertEqual(extract_dates("Snow on February 30, 2025"), [])


class NumberExtractionTests(unittest.TestCase):
    def test_currency_and_suffixes(self) -> None:
        self.assertEqual(extract_numbers("Will BTC be above $100,000?"), [100000.0])
        self.assertEqual(extract_numbers("ETH above 4.5k"), [4500.0])
        self.assertEqual(extract_numbers("GDP over $2 trillion"), [2e12])

    def test_date_components_are_not_thresholds(self) -> None:
        self.assertEqual(extract_numbers("CPI above 3% on January 15, 2026"), [3.0])

    def test_grouped_thousands_are_not_years(self) -> None:
        self.assertEqual(extract_numbers("Index above 2,025"), [2025.0])


class ComparatorTests(unittest.TestCase):
    def test_precedence(self) -> None:
        self.assertEqual(extract_comparator("between $90k and $95k"), BETWEEN)
        self.assertEqual(extract_comparator("BTC above 100k"), GE)
        self.assertEqual(extract_comparator("ETH below 3k"), LE)
        self.assertEqual(extract_comparator("Who will win the election?"), WIN)
        self.assertEqual(extract_comparator("Bitcoin price on Friday"), UNKNOWN)

    def test_negated_upper_bound(self) -> None:
        self.assertEqual(extract_comparator("Will CPI not exceed 3%?"), LE)


class HelperTests(unittest.TestCase):
    def test_parse_datetime_any_handles_epoch_millis_and_iso(self) -> None:
        expected = datetime(2025, 1, 1, tzinfo=timezone.utc)
        self.assertEqual(parse_datetime_any(1735689600000), expected)
        self.assertEqual(parse_datetime_any("2025-01-01T00:00:00Z"), expected)
        self.assertIsNone(parse_datetime_any("not a date"))

    def test_penalized_confidence_floors_at_zero(self) -> None:
        penalties = {"a": 0.6, "b": 0.6}
        self.assertEqual(penalized_confidence(penalties, {"a": True, "b": False}), 0.4)
        self.assertEqual(penalized_confidence(penalties, {"a": True, "b": True}), 0.0)


if __name__ == "__main__":
    unittest.main()
