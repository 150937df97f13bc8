"""
test_cache.py — Extracted-Day Parquet Cache
============================================
"""

from __future__ import annotations

import datetime
import tempfile
import unittest

import pandas as pd

from chartcross.cache import ChartCache, ChartCacheError
from chartcross.extractor import ChartRow, empty_chart_frame, rows_to_frame

DAY = datetime.date(2019, 4, 1)


class TestChartCache(unittest.TestCase):

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.cache = ChartCache(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_miss_returns_none(self):
        self.assertIsNone(self.cache.get("us", DAY))
        with self.assertRaises(KeyError):
            self.cache.read("us", DAY)

    def test_stored_rows_come_back(self):
        rows = rows_to_frame([
            ChartRow(1, "Old Town Road", "Lil Nas X", 2_000_000, DAY),
            ChartRow(2, "Wow.", "Post Malone", 1_000_000, DAY),
        ])
        self.cache.put("US", DAY, rows)
        self.assertTrue(self.cache.contains("us", DAY))
        pd.testing.assert_frame_equal(self.cache.get("us", DAY), rows)

    def test_empty_day_cached(self):
        self.cache.put("gb", DAY, empty_chart_frame())
        out = self.cache.get("gb", DAY)
        self.assertIsNotNone(out)
        self.assertTrue(out.empty)

    def test_manifest_records_rows(self):
        rows = rows_to_frame([ChartRow(1, "A", "B", 5, DAY)])
        self.cache.put("us", DAY, rows)
        entry = self.cache.manifest()["us/2019-04-01"]
        self.assertEqual(entry["rows"], 1)

    def test_counts_recorded(self):
        rows = rows_to_frame([ChartRow(1, "A", "", 0, DAY)])
        self.cache.put("us", DAY, rows, malformed_rows=2, skipped_rows=1)
        self.assertEqual(ChartCache(self._tmp.name).entry_counts("us", DAY), (2, 1))
        self.assertEqual(self.cache.entry_counts("gb", DAY), (0, 0))

    def test_deferred_manifest_until_flush(self):
        rows = rows_to_frame([ChartRow(1, "A", "B", 5, DAY)])
        self.cache.put("us", DAY, rows, flush=False)
        self.assertTrue(self.cache.contains("us", DAY))
        self.assertIn("us/2019-04-01", self.cache.manifest())
        self.assertEqual(ChartCache(self._tmp.name).manifest(), {})

        self.cache.flush()
        self.assertIn("us/2019-04-01", ChartCache(self._tmp.name).manifest())

    def test_corrupt_entry_is_a_miss(self):
        path = self.cache.put("us", DAY, rows_to_frame([ChartRow(1, "A", "B", 5, DAY)]))
        path.write_bytes(b"not parquet")
        with self.assertRaises(ChartCacheError):
            self.cache.read("us", DAY)
        self.assertIsNone(self.cache.get("us", DAY))


if __name__ == "__main__":
    unittest.main()
