"""
aggregation.py — Per-Artist and Per-Track Chart Summaries
===========================================================
Derives descriptive aggregates from a region's Dataset.  Summaries are
always recomputed wholesale from the full Dataset.

Track identity here is ``(track, artist)`` so that same-titled songs by
different artists stay separate.

Known limitation
----------------
``time_up`` is ``last_date − first_date + 1`` in whole days.  Days on which a
track dropped off the chart and later returned are *not* subtracted, so a
re-entry inflates apparent tenure.
"""

from __future__ import annotations

import pandas as pd

from chartcross.utils import get_logger

logger = get_logger("chartcross.aggregation")

ARTIST_SUMMARY_COLUMNS = ["artist", "distinct_song_count", "total_listing_count"]
TRACK_SUMMARY_COLUMNS = [
    "track", "artist", "highest_ranking", "time_up", "first_date", "last_date",
]


def artist_summary(dataset: pd.DataFrame) -> pd.DataFrame:
    """
    One row per artist.

    - ``distinct_song_count``: number of unique track titles.
    - ``total_listing_count``: number of chart rows, i.e. one per
      (track, day) appearance.

    Sorted by distinct songs, then listings (both descending), then artist.
    """
    if dataset.empty:
        return pd.DataFrame({
            "artist": pd.Series(dtype="object"),
            "distinct_song_count": pd.Series(dtype="int64"),
            "total_listing_count": pd.Series(dtype="int64"),
        })

    out = (
        dataset.groupby("artist", sort=False)
        .agg(
            distinct_song_count=("track", "nunique"),
            total_listing_count=("track", "size"),
        )
        .reset_index()
    )
    out = out.sort_values(
        ["distinct_song_count", "total_listing_count", "artist"],
        ascending=[False, False, True],
        kind="mergesort",
    ).reset_index(drop=True)

    logger.info(
        "Artist summary — %d artist(s) across %d listing(s)",
        len(out), int(out["total_listing_count"].sum()),
    )
    return out[ARTIST_SUMMARY_COLUMNS]


def track_summary(dataset: pd.DataFrame) -> pd.DataFrame:
    """
    One row per (track, artist).

    - ``highest_ranking``: best (numerically smallest) rank reached.
    - ``first_date`` / ``last_date``: first and last day on the chart.
    - ``time_up``: ``(last_date − first_date).days + 1``; gaps included.

    Sorted by ``highest_ranking`` then ``track``.
    """
    if dataset.empty:
        return pd.DataFrame({
            "track": pd.Series(dtype="object"),
            "artist": pd.Series(dtype="object"),
            "highest_ranking": pd.Series(dtype="int64"),
            "time_up": pd.Series(dtype="int64"),
            "first_date": pd.Series(dtype="datetime64[ns]"),
            "last_date": pd.Series(dtype="datetime64[ns]"),
        })

    out = (
        dataset.groupby(["track", "artist"], sort=False)
        .agg(
            highest_ranking=("rank", "min"),
            first_date=("day", "min"),
            last_date=("day", "max"),
        )
        .reset_index()
    )
    out["time_up"] = (out["last_date"] - out["first_date"]).dt.days.astype("int64") + 1
    out["highest_ranking"] = out["highest_ranking"].astype("int64")
    out = out.sort_values(
        ["highest_ranking", "track"], kind="mergesort",
    ).reset_index(drop=True)

    logger.info(
        "Track summary — %d track(s), median time_up %.1f day(s)",
        len(out), float(out["time_up"].median()),
    )
    return out[TRACK_SUMMARY_COLUMNS]


def top_artists(summary: pd.DataFrame, n: int = 10, by: str = "distinct_song_count") -> pd.DataFrame:
    """The *n* artists with the largest *by* value."""
    if by not in ("distinct_song_count", "total_listing_count"):
        raise ValueError(f"Cannot rank artists by {by!r}")
    return summary.sort_values(
        [by, "artist"], ascending=[False, True], kind="mergesort",
    ).head(n).reset_index(drop=True)


def top_tracks(summary: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    """The *n* longest-charting tracks (ties broken by best rank)."""
    return summary.sort_values(
        ["time_up", "highest_ranking", "track"],
        ascending=[False, True, True],
        kind="mergesort",
    ).head(n).reset_index(drop=True)
