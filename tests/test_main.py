"""
test_main.py — CLI Entry Point
===============================
The pipeline itself is patched out; these cover settings resolution and the
top-level error handler.
"""

from __future__ import annotations

import datetime
import os
import unittest
from unittest import mock

import main

BAD_WINDOW = {"START_DATE": "2019-06-01", "END_DATE": "2019-05-31"}


class TestMain(unittest.TestCase):

    def test_cli_window_overrides_bad_environment(self):
        with mock.patch.dict(os.environ, BAD_WINDOW), \
                mock.patch.object(main, "run_pipeline") as run:
            main.main(["--start", "2019-01-01", "--end", "2019-01-02", "--no-cache"])

        settings = run.call_args.args[0]
        self.assertEqual(settings.start_date, datetime.date(2019, 1, 1))
        self.assertEqual(settings.end_date, datetime.date(2019, 1, 2))
        self.assertIsNone(run.call_args.kwargs["cache"])

    def test_bad_environment_exits_cleanly(self):
        with mock.patch.dict(os.environ, BAD_WINDOW), \
                mock.patch.object(main, "run_pipeline") as run:
            with self.assertRaises(SystemExit) as ctx:
                main.main(["--no-cache"])
        self.assertEqual(ctx.exception.code, 1)
        run.assert_not_called()

    def test_region_flags_lowercased(self):
        with mock.patch.object(main, "run_pipeline") as run:
            main.main([
                "--source", "SE", "--target", "NO",
                "--start", "2019-01-01", "--end", "2019-01-02",
                "--no-cache", "--title-only",
            ])
        settings = run.call_args.args[0]
        self.assertEqual((settings.source_region, settings.target_region), ("se", "no"))
        self.assertFalse(run.call_args.kwargs["match_artist"])


if __name__ == "__main__":
    unittest.main()
