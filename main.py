#!/usr/bin/env python3
"""
main.py — chartcross: Entry Point
===================================
Scrapes two regions' daily charts over a fixed historical window, builds
per-region summaries, finds source-first crossover tracks and trains a
classifier predicting whether a source-region track charts in the target
region.

Modes
-----
    python main.py                                   # regions & window from .env
    python main.py --source us --target gb           # override region pair
    python main.py --start 2019-01-01 --end 2019-02-28
    python main.py --workers 4                       # bounded parallel day fetches
    python main.py --no-cache --output-dir output/   # fresh fetch, write CSVs
"""

from __future__ import annotations

import argparse
import sys
import traceback

from chartcross.cache import ChartCache
from chartcross.config import load_settings
from chartcross.pipeline import run_pipeline
from chartcross.utils import get_logger, parse_day


logger = get_logger("chartcross.main")


# ═════════════════════════════════════════════════════════════════════════════
#  CLI
# ═════════════════════════════════════════════════════════════════════════════

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="chartcross — cross-country chart crossover analysis",
    )

    # ── Region pair ──────────────────────────────────────────────────
    parser.add_argument(
        "--source", type=str, default=None,
        help="Source region code (overrides SOURCE_REGION in .env).",
    )
    parser.add_argument(
        "--target", type=str, default=None,
        help="Target region code (overrides TARGET_REGION in .env).",
    )

    # ── Window ───────────────────────────────────────────────────────
    parser.add_argument(
        "--start", type=parse_day, default=None,
        help="Inclusive first day, YYYY-MM-DD (overrides START_DATE).",
    )
    parser.add_argument(
        "--end", type=parse_day, default=None,
        help="Inclusive last day, YYYY-MM-DD (overrides END_DATE).",
    )

    # ── Modelling ────────────────────────────────────────────────────
    parser.add_argument(
        "--test-fraction", type=float, default=None,
        help="Held-out fraction per label group (default: 0.2).",
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for the split and the classifier.",
    )
    parser.add_argument(
        "--title-only",
        action="store_true",
        default=False,
        help="Label target membership on track title alone, ignoring artist.",
    )

    # ── Fetching / output ────────────────────────────────────────────
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Concurrent day fetches (default: 1 = sequential).",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        default=False,
        help="Ignore the local Parquet cache and re-fetch every day.",
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Write chart, summary, crossover and labelled CSVs here.",
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    try:
        settings = load_settings(
            source_region=args.source,
            target_region=args.target,
            start_date=args.start,
            end_date=args.end,
            test_fraction=args.test_fraction,
            random_seed=args.seed,
            max_workers=args.workers,
        )

        cache = None if args.no_cache else ChartCache(settings.cache_dir)

        run_pipeline(
            settings,
            cache=cache,
            output_dir=args.output_dir,
            match_artist=not args.title_only,
        )
    except KeyboardInterrupt:
        raise
    except Exception:
        logger.error("Pipeline failed:\n%s", traceback.format_exc())
        sys.exit(1)


if __name__ == "__main__":
    main()
