"""
test_crossover.py — Cross-Country Join
=======================================
Core invariant under test:
    **Only tracks that reached the source chart strictly before the target
    chart survive the join.**
"""

from __future__ import annotations

import unittest
import warnings

import pandas as pd

from chartcross.crossover import JoinAmbiguityWarning, join_cross_country, merged_columns


def _summary(rows) -> pd.DataFrame:
    df = pd.DataFrame(
        rows,
        columns=["track", "artist", "highest_ranking", "time_up", "first_date", "last_date"],
    )
    df["first_date"] = pd.to_datetime(df["first_date"])
    df["last_date"] = pd.to_datetime(df["last_date"])
    return df


class TestTemporalFilter(unittest.TestCase):

    def setUp(self) -> None:
        self.us = _summary([
            ("Early", "Ann", 1, 10, "2019-01-01", "2019-01-10"),
            ("SameDay", "Bob", 2, 5, "2019-01-01", "2019-01-05"),
            ("Late", "Cat", 3, 3, "2019-01-08", "2019-01-10"),
            ("UsOnly", "Dan", 4, 1, "2019-01-02", "2019-01-02"),
        ])
        self.gb = _summary([
            ("Early", "Ann", 5, 4, "2019-01-04", "2019-01-07"),
            ("SameDay", "Bob", 1, 9, "2019-01-01", "2019-01-09"),
            ("Late", "Cat", 2, 6, "2019-01-03", "2019-01-08"),
        ])
        self.result = join_cross_country(self.us, self.gb, "us", "gb")
        self.merged = self.result.merged

    def test_only_source_first_tracks(self):
        self.assertEqual(self.merged["track"].tolist(), ["Early"])

    def test_same_day_first_appearance_excluded(self):
        self.assertNotIn("SameDay", self.merged["track"].tolist())

    def test_no_row_violates_ordering(self):
        self.assertTrue((self.merged["us_first_date"] < self.merged["gb_first_date"]).all())

    def test_namespaced_columns(self):
        self.assertEqual(list(self.merged.columns), merged_columns("us", "gb"))
        row = self.merged.iloc[0]
        self.assertEqual(row["us_highest_ranking"], 1)
        self.assertEqual(row["gb_highest_ranking"], 5)
        self.assertEqual(row["gb_time_up"], 4)

    def test_no_ambiguity(self):
        self.assertEqual(self.result.ambiguous_tracks, 0)


class TestTitleOnlyJoin(unittest.TestCase):
    """Join key is the title alone; the source artist is carried."""

    def test_different_artists_still_merge(self):
        us = _summary([("Home", "Ann", 1, 3, "2019-02-01", "2019-02-03")])
        gb = _summary([("Home", "Zed", 2, 2, "2019-02-05", "2019-02-06")])
        merged = join_cross_country(us, gb, "us", "gb").merged
        self.assertEqual(len(merged), 1)
        self.assertEqual(merged.iloc[0]["artist"], "Ann")
        self.assertNotIn("gb_artist", merged.columns)

    def test_multiple_target_matches_warn(self):
        us = _summary([("Home", "Ann", 1, 3, "2019-02-01", "2019-02-03")])
        gb = _summary([
            ("Home", "Zed", 2, 2, "2019-02-05", "2019-02-06"),
            ("Home", "Yan", 7, 1, "2019-02-09", "2019-02-09"),
        ])
        with self.assertWarns(JoinAmbiguityWarning):
            result = join_cross_country(us, gb, "us", "gb")
        self.assertEqual(result.ambiguous_tracks, 1)
        self.assertEqual(len(result.merged), 2)


class TestValidation(unittest.TestCase):

    def test_same_region_rejected(self):
        us = _summary([("A", "B", 1, 1, "2019-01-01", "2019-01-01")])
        with self.assertRaises(ValueError):
            join_cross_country(us, us, "us", "us")

    def test_empty_target(self):
        us = _summary([("A", "B", 1, 1, "2019-01-01", "2019-01-01")])
        gb = _summary([])
        with warnings.catch_warnings():
            warnings.simplefilter("error", JoinAmbiguityWarning)
            result = join_cross_country(us, gb, "us", "gb")
        self.assertTrue(result.merged.empty)


if __name__ == "__main__":
    unittest.main()
