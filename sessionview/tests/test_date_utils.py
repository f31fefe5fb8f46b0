import unittest

from sessionview.date_utils import format_short_date, iso_to_epoch_ms, parse_timestamp


class ParseTimestampTests(unittest.TestCase):
    def test_odd_fraction_widths_are_accepted(self) -> None:
        base = iso_to_epoch_ms("2026-02-16T10:00:00Z")
        assert base is not None
        self.assertAlmostEqual(iso_to_epoch_ms("2026-02-16T10:00:00.5Z"), base + 500.0, places=2)
        self.assertAlmostEqual(iso_to_epoch_ms("2026-02-16T10:00:00.12Z"), base + 120.0, places=2)
        self.assertAlmostEqual(iso_to_epoch_ms("2026-02-16T10:00:00.1234567Z"), base + 123.456, places=2)

    def test_offsets_are_converted_to_utc(self) -> None:
        parsed = parse_timestamp("2026-02-16T12:00:00.25+02:00")
        assert parsed is not None
        self.assertEqual((parsed.hour, parsed.microsecond), (10, 250000))

    def test_unusable_values(self) -> None:
        self.assertIsNone(parse_timestamp(""))
        self.assertIsNone(parse_timestamp(1700000000))
        self.assertIsNone(iso_to_epoch_ms("yesterday"))
        self.assertEqual(format_short_date(None), "unknown")

    def test_short_date(self) -> None:
        self.assertEqual(format_short_date("2024-03-15T08:30:00.1Z"), "Mar 15, 2024")


if __name__ == "__main__":
    unittest.main()
