"""
test_config.py — Settings Validation & Environment Loading
==========================================================
"""

from __future__ import annotations

import datetime
import os
import unittest
from unittest import mock

from chartcross.config import Settings, load_settings


class TestSettingsValidation(unittest.TestCase):

    def test_defaults_are_valid(self):
        s = Settings()
        self.assertEqual((s.source_region, s.target_region), ("us", "gb"))
        self.assertLess(s.start_date, s.end_date)

    def test_start_after_end(self):
        with self.assertRaises(ValueError):
            Settings(start_date=datetime.date(2019, 2, 1), end_date=datetime.date(2019, 1, 1))

    def test_same_regions(self):
        with self.assertRaises(ValueError):
            Settings(source_region="us", target_region="us")

    def test_fraction_bounds(self):
        with self.assertRaises(ValueError):
            Settings(test_fraction=1.5)


class TestLoadSettings(unittest.TestCase):

    def test_reads_environment(self):
        env = {
            "SOURCE_REGION": " DE ",
            "TARGET_REGION": "fr",
            "START_DATE": "2019-03-01",
            "END_DATE": "2019-03-31",
            "RANDOM_SEED": "",
            "MAX_WORKERS": "4",
        }
        with mock.patch.dict(os.environ, env):
            s = load_settings()
        self.assertEqual(s.source_region, "de")
        self.assertEqual(s.start_date, datetime.date(2019, 3, 1))
        self.assertIsNone(s.random_seed)
        self.assertEqual(s.max_workers, 4)

    def test_bad_date_rejected(self):
        with mock.patch.dict(os.environ, {"START_DATE": "March 1st"}):
            with self.assertRaises(ValueError):
                load_settings()

    def test_overrides_rescue_bad_environment(self):
        env = {"START_DATE": "2019-06-01", "END_DATE": "2019-05-31"}
        with mock.patch.dict(os.environ, env):
            with self.assertRaises(ValueError):
                load_settings()
            s = load_settings(
                start_date=datetime.date(2019, 1, 1),
                end_date=datetime.date(2019, 1, 2),
            )
        self.assertEqual(s.start_date, datetime.date(2019, 1, 1))
        self.assertEqual(s.end_date, datetime.date(2019, 1, 2))

    def test_overridden_variable_is_not_parsed(self):
        with mock.patch.dict(os.environ, {"START_DATE": "March 1st"}):
            s = load_settings(start_date=datetime.date(2019, 3, 1))
        self.assertEqual(s.start_date, datetime.date(2019, 3, 1))

    def test_none_override_keeps_environment(self):
        with mock.patch.dict(os.environ, {"SOURCE_REGION": "se"}):
            s = load_settings(source_region=None, target_region=" NO ")
        self.assertEqual((s.source_region, s.target_region), ("se", "no"))

    def test_unknown_override_rejected(self):
        with self.assertRaises(TypeError):
            load_settings(region="us")


if __name__ == "__main__":
    unittest.main()
