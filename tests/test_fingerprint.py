from __future__ import annotations

import unittest
from datetime import datetime, timezone

from market_linker.engine.fingerprint import (
    ELECTION,
    GENERAL,
    METRIC_DATE,
    PRICE_DATE,
    build_fingerprint,
    key_number,
)


class FingerprintTests(unittest.TestCase):
    def test_price_date_key(self) -> None:
        fp = build_fingerprint("Will Bitcoin be above $100,000 on January 15, 2026?")
        self.assertEqual(fp.key, "BITCOIN|N100000|D20260115|GE")
        self.assertEqual(fp.intent, PRICE_DATE)
        self.assertEqual(fp.primary_date.key(), "2026-01-15")

    def test_both_venues_share_a_key(self) -> None:
        left = build_fingerprint("Will Bitcoin be above $100,000 on January 15, 2026?")
        right = build_fingerprint("BTC above 100,000 on Jan 15, 2026")
        self.assertEqual(left.key, right.key)

    def test_metric_and_election_intents(self) -> None:
        cpi = build_fingerprint("Will CPI be above 3% in March 2025?")
        self.assertEqual(cpi.intent, METRIC_DATE)
        self.assertEqual(cpi.key, "CPI|N3|D202503|GE")
        self.assertEqual(build_fingerprint("Who wins the presidential election?").intent, ELECTION)

    def test_close_time_supplies_missing_date(self) -> None:
        close = datetime(2026, 1, 15, 17, 0, tzinfo=timezone.utc)
        fp = build_fingerprint("Bitcoin above 100k?", close)
        self.assertEqual(fp.dates, [])
        self.assertEqual(fp.intent, GENERAL)
        self.assertEqual(fp.key, "BITCOIN|N100000|D20260115|GE")

    def test_ticker_contributes_entity(self) -> None:
        fp = build_fingerprint("Price above 4,000 on Friday?", metadata={"event_ticker": "KXETHD-26JAN15"})
        self.assertIn("ETHEREUM", fp.entities)

    def test_unknown_when_nothing_extracted(self) -> None:
        self.assertEqual(build_fingerprint("Who knows?").key, "UNKNOWN")

    def test_key_number_prefers_round_thousands(self) -> None:
        self.assertEqual(key_number([95000.5, 100000.0]), 100000.0)
        self.assertEqual(key_number([3.0, 2.5]), 3.0)
        self.assertIsNone(key_number([]))


if __name__ == "__main__":
    unittest.main()
