"""
utils.py — Shared helpers for chartcross
=========================================
"""

from __future__ import annotations

import datetime
import logging
import sys
from datetime import timezone
from typing import Iterator, List


# ── structured logger ───────────────────────────────────────────────────────

def get_logger(name: str = "chartcross", level: int = logging.INFO) -> logging.Logger:
    """
    Return a consistently-formatted logger.

    Format: ``[2019-02-10 08:15:23 UTC] [INFO] module — message``
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            fmt="[%(asctime)s UTC] [%(levelname)s] %(name)s — %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        formatter.converter = lambda *_: datetime.datetime.now(timezone.utc).timetuple()
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger


# ── date helpers ────────────────────────────────────────────────────────────

def parse_day(value: str | datetime.date | datetime.datetime) -> datetime.date:
    """
    Coerce *value* to a plain ``datetime.date``.

    Accepts ``YYYY-MM-DD`` strings, dates, datetimes and pandas Timestamps.
    Raises ``ValueError`` for anything else.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        try:
            return datetime.date.fromisoformat(value.strip())
        except ValueError:
            raise ValueError(f"Expected a YYYY-MM-DD date, got {value!r}")
    raise ValueError(f"Cannot interpret {value!r} as a date")


def iter_days(start: datetime.date, end: datetime.date) -> Iterator[datetime.date]:
    """Yield every calendar day in the closed interval [start, end]."""
    day = start
    one_day = datetime.timedelta(days=1)
    while day <= end:
        yield day
        day += one_day


# ── report formatting ───────────────────────────────────────────────────────

def format_run_report(
    source_region: str,
    target_region: str,
    source_rows: int,
    target_rows: int,
    source_empty_days: int,
    target_empty_days: int,
    crossover_tracks: int,
    labeled_rows: int,
    positive_rate: float,
    accuracy: float | None,
) -> str:
    """Return a multi-line report string suitable for logging / stdout."""
    acc = "n/a" if accuracy is None else f"{accuracy:.4f}"
    src = source_region.upper()
    tgt = target_region.upper()
    lines = [
        "=" * 64,
        f"  CHART CROSSOVER REPORT — {src} → {tgt}",
        "=" * 64,
        f"  {src + ' chart rows':<22}: {source_rows:>15,d}",
        f"  {tgt + ' chart rows':<22}: {target_rows:>15,d}",
        f"  {src + ' empty days':<22}: {source_empty_days:>15,d}",
        f"  {tgt + ' empty days':<22}: {target_empty_days:>15,d}",
        f"  Crossover tracks      : {crossover_tracks:>15,d}",
        f"  Labelled tracks       : {labeled_rows:>15,d}",
        f"  {'Charted in ' + tgt:<22}: {positive_rate:>15.2%}",
        "-" * 64,
        f"  >>> HOLD-OUT ACCURACY: {acc}",
        "=" * 64,
    ]
    return "\n".join(lines)


def format_top_list(title: str, labels: List[str], values: List[int]) -> str:
    """Render a small ranked list, one entry per line."""
    lines = [title]
    for i, (label, value) in enumerate(zip(labels, values), start=1):
        lines.append(f"  {i:>2}. {label:<40} {value:>8,d}")
    return "\n".join(lines)
