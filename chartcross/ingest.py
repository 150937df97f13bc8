"""
ingest.py — Date-Range Chart Ingestion
========================================
Sweeps every calendar day of an inclusive window for one region, fetching
and extracting each day's chart, and concatenates the results into a single
Dataset ordered by (day, rank).

Per-day failure policy
----------------------
=================  =====================================  ===========
Outcome            Cause                                  Rows
=================  =====================================  ===========
``fetch_error``    ``FetchError`` (network / 5xx)         0, counted
``not_found``      HTTP 404 — source has no page          0, counted
``missing_table``  page fetched, no ``chart-table``       0, counted
``ok``             table parsed                           all rows
``cached``         served from ``ChartCache``             all rows
=================  =====================================  ===========

No outcome aborts the sweep.  The ``IngestReport`` makes data gaps visible
downstream; the number of zero-row days is always logged.

Days can optionally be fetched through a bounded thread pool
(``max_workers > 1``).  Results are reassembled in calendar order, so the
output is identical to a sequential run.  Each loaded day goes into the
cache straight away; the cache manifest is written once when the sweep
ends, interrupted or not.
"""

from __future__ import annotations

import datetime
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

import pandas as pd

from chartcross.cache import ChartCache
from chartcross.chart_client import ChartPageClient, FetchError
from chartcross.extractor import MissingTableError, empty_chart_frame, parse_chart_table
from chartcross.utils import get_logger, iter_days, parse_day

logger = get_logger("chartcross.ingest")


@dataclass
class IngestReport:
    """Bookkeeping for one region's sweep."""

    region: str
    start: datetime.date
    end: datetime.date
    days_requested: int = 0
    rows: int = 0
    empty_days: List[datetime.date] = field(default_factory=list)
    fetch_failures: int = 0
    not_found: int = 0
    missing_tables: int = 0
    malformed_rows: int = 0
    skipped_rows: int = 0
    cache_hits: int = 0

    @property
    def days_empty(self) -> int:
        return len(self.empty_days)

    def summary(self) -> str:
        return (
            f"{self.region}: {self.rows} rows over {self.days_requested} day(s) "
            f"{self.start} → {self.end} | empty={self.days_empty} "
            f"(fetch_errors={self.fetch_failures}, not_found={self.not_found}, "
            f"missing_tables={self.missing_tables}) | "
            f"malformed_rows={self.malformed_rows} | cache_hits={self.cache_hits}"
        )


@dataclass
class IngestResult:
    dataset: pd.DataFrame
    report: IngestReport


@dataclass
class _DayOutcome:
    day: datetime.date
    rows: pd.DataFrame
    status: str
    malformed_rows: int = 0
    skipped_rows: int = 0


def _load_day(
    client: ChartPageClient,
    region: str,
    day: datetime.date,
    cache: ChartCache | None,
) -> _DayOutcome:
    """
    Resolve one day's rows; never raises for per-day failures.

    Parsed days and table-less pages are written to *cache* as soon as they
    are loaded, so an interrupted sweep keeps what it already fetched.
    """
    if cache is not None:
        cached = cache.get(region, day)
        if cached is not None:
            malformed, skipped = cache.entry_counts(region, day)
            return _DayOutcome(
                day=day, rows=cached, status="cached",
                malformed_rows=malformed, skipped_rows=skipped,
            )

    try:
        page = client.fetch_page(region, day)
    except FetchError as exc:
        logger.warning("%s %s — fetch failed, 0 rows: %s", region, day, exc)
        return _DayOutcome(day=day, rows=empty_chart_frame(), status="fetch_error")

    if not page.found:
        return _DayOutcome(day=day, rows=empty_chart_frame(), status="not_found")

    try:
        result = parse_chart_table(page.markup, day)
    except MissingTableError as exc:
        logger.info("%s %s — %s, 0 rows", region, day, exc)
        outcome = _DayOutcome(day=day, rows=empty_chart_frame(), status="missing_table")
    else:
        outcome = _DayOutcome(
            day=day,
            rows=result.rows,
            status="ok",
            malformed_rows=result.malformed_rows,
            skipped_rows=result.skipped_rows,
        )

    if cache is not None:
        cache.put(
            region, day, outcome.rows,
            malformed_rows=outcome.malformed_rows,
            skipped_rows=outcome.skipped_rows,
            flush=False,
        )
    return outcome


def _collect(
    client: ChartPageClient,
    region: str,
    days: List[datetime.date],
    cache: ChartCache | None,
    max_workers: int,
) -> List[_DayOutcome]:
    if max_workers <= 1 or len(days) <= 1:
        return [_load_day(client, region, d, cache) for d in days]

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        # map() yields in submission order, i.e. calendar order
        return list(pool.map(lambda d: _load_day(client, region, d, cache), days))


def ingest_region(
    client: ChartPageClient,
    region: str,
    start: datetime.date | str,
    end: datetime.date | str,
    *,
    cache: ChartCache | None = None,
    max_workers: int = 1,
) -> IngestResult:
    """
    Build the full Dataset for *region* over the closed window [start, end].

    Returns
    -------
    IngestResult
        ``dataset`` sorted by (day, rank) with a fresh index, and the
        ``IngestReport`` for the sweep.
    """
    start = parse_day(start)
    end = parse_day(end)
    if start > end:
        raise ValueError(f"start {start} is after end {end}")

    days = list(iter_days(start, end))
    report = IngestReport(region=region, start=start, end=end, days_requested=len(days))

    logger.info(
        "Ingesting %s: %s → %s (%d day(s), workers=%d)",
        region, start, end, len(days), max_workers,
    )

    try:
        outcomes = _collect(client, region, days, cache, max_workers)
    finally:
        if cache is not None:
            cache.flush()

    frames: List[pd.DataFrame] = []
    for outcome in outcomes:
        if outcome.status == "cached":
            report.cache_hits += 1
        elif outcome.status == "fetch_error":
            report.fetch_failures += 1
        elif outcome.status == "not_found":
            report.not_found += 1
        elif outcome.status == "missing_table":
            report.missing_tables += 1

        report.malformed_rows += outcome.malformed_rows
        report.skipped_rows += outcome.skipped_rows

        if outcome.rows.empty:
            report.empty_days.append(outcome.day)
        else:
            frames.append(outcome.rows)

    if frames:
        dataset = pd.concat(frames, ignore_index=True)
        dataset = dataset.sort_values(["day", "rank"], kind="mergesort")
        dataset = dataset.reset_index(drop=True)
    else:
        dataset = empty_chart_frame()

    dupes = int(dataset.duplicated(subset=["day", "rank"]).sum())
    if dupes:
        logger.warning("%s: %d duplicate (day, rank) pair(s) in source pages", region, dupes)

    report.rows = len(dataset)

    logger.info(
        "%s: %d/%d day(s) yielded zero rows", region, report.days_empty, report.days_requested,
    )
    logger.info("Ingest complete — %s", report.summary())
    return IngestResult(dataset=dataset, report=report)


def ingest_regions(
    client: ChartPageClient,
    regions: Iterable[str],
    start: datetime.date | str,
    end: datetime.date | str,
    *,
    cache: ChartCache | None = None,
    max_workers: int = 1,
) -> Dict[str, IngestResult]:
    """Ingest several regions one after another over the same window."""
    return {
        region: ingest_region(
            client, region, start, end, cache=cache, max_workers=max_workers,
        )
        for region in regions
    }
