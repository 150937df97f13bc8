"""
crossover.py — Cross-Country Track Join
=========================================
Matches a source region's track summaries against a target region's and
keeps only tracks that reached the source chart strictly before the target
chart.  A same-day first appearance is not credited as crossover.

Known limitation
----------------
The join key is the track title alone.  The source-side artist is kept and
the target-side artist dropped, so two like-named tracks by different
artists in the two regions merge into one record.  Source tracks that match
more than one target row are counted and reported through
``JoinAmbiguityWarning``; they are not rejected.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

import pandas as pd

from chartcross.utils import get_logger

logger = get_logger("chartcross.crossover")

_SUMMARY_FIELDS = ["highest_ranking", "time_up", "first_date", "last_date"]


class JoinAmbiguityWarning(UserWarning):
    """A source track matched more than one target-region row."""


@dataclass
class JoinResult:
    merged: pd.DataFrame
    ambiguous_tracks: int = 0


def merged_columns(source_region: str, target_region: str) -> list[str]:
    """Output column order for a join of *source_region* into *target_region*."""
    cols = ["track", "artist"]
    for region in (source_region, target_region):
        cols.extend(f"{region}_{f}" for f in _SUMMARY_FIELDS)
    return cols


def join_cross_country(
    source: pd.DataFrame,
    target: pd.DataFrame,
    source_region: str,
    target_region: str,
) -> JoinResult:
    """
    Join *source* and *target* TrackSummary frames on ``track``.

    Parameters
    ----------
    source, target : pd.DataFrame
        Output of ``aggregation.track_summary`` for each region.
    source_region, target_region : str
        Region codes used to namespace the summary columns.

    Returns
    -------
    JoinResult
        ``merged`` holds only pairs where the source ``first_date`` is
        strictly earlier than the target ``first_date``.
    """
    if source_region == target_region:
        raise ValueError(
            f"source_region and target_region must differ, got {source_region!r}"
        )

    src = source[["track", "artist"] + _SUMMARY_FIELDS].rename(
        columns={f: f"{source_region}_{f}" for f in _SUMMARY_FIELDS},
    )
    tgt = target[["track"] + _SUMMARY_FIELDS].rename(
        columns={f: f"{target_region}_{f}" for f in _SUMMARY_FIELDS},
    )

    target_hits = tgt.groupby("track").size()
    multi = target_hits[target_hits > 1].index
    ambiguous = int(src["track"].isin(multi).sum())
    if ambiguous:
        msg = (
            f"{ambiguous} {source_region} track(s) match more than one "
            f"{target_region} row on title alone"
        )
        logger.warning("Join ambiguity — %s", msg)
        warnings.warn(msg, JoinAmbiguityWarning, stacklevel=2)

    merged = src.merge(tgt, on="track", how="inner")
    n_matched = len(merged)

    keep = merged[f"{source_region}_first_date"] < merged[f"{target_region}_first_date"]
    merged = merged.loc[keep, merged_columns(source_region, target_region)]
    merged = merged.sort_values(
        [f"{source_region}_first_date", "track"], kind="mergesort",
    ).reset_index(drop=True)

    logger.info(
        "Cross-country join %s → %s — %d matched on title, %d with %s first",
        source_region, target_region, n_matched, len(merged), source_region,
    )
    return JoinResult(merged=merged, ambiguous_tracks=ambiguous)
