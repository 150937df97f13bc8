"""
features.py — Labelled Feature Construction
=============================================
Turns a source region's track summaries into classifier-ready rows:

==============  ==========================================================
Column          Meaning
==============  ==========================================================
``track``       track title
``artist``      artist (source side)
``z_ranking``   ``(highest_ranking − mean) / sd`` over the whole source set
``z_time``      ``(time_up − mean) / sd`` over the whole source set
``label``       True if the track appears anywhere in the target Dataset
==============  ==========================================================

Means and standard deviations are sample statistics (``ddof=1``) taken once
over the entire source summary, not per group.  Zero or undefined variance
cannot be standardised and raises ``DegenerateInputError``.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from scipy import stats as sp_stats

from chartcross.utils import get_logger

logger = get_logger("chartcross.features")

LABELED_COLUMNS = ["track", "artist", "z_ranking", "z_time", "label"]
FEATURE_COLUMNS = ["z_ranking", "z_time"]


class DegenerateInputError(ValueError):
    """Raised when a feature column has zero or undefined variance."""


def _standardise(values: pd.Series, name: str) -> np.ndarray:
    sd = values.std(ddof=1)
    if len(values) < 2 or not np.isfinite(sd) or sd == 0:
        raise DegenerateInputError(
            f"Cannot standardise '{name}': sample standard deviation is "
            f"{sd!r} over {len(values)} row(s)"
        )
    logger.debug("%s — mean=%.3f sd=%.3f", name, values.mean(), sd)
    return sp_stats.zscore(values.to_numpy(dtype=float), ddof=1)


def target_membership(
    source_summary: pd.DataFrame,
    target_dataset: pd.DataFrame,
    *,
    match_artist: bool = True,
) -> pd.Series:
    """
    Boolean Series aligned with *source_summary*: does the track identity
    occur anywhere in *target_dataset*?
    """
    if target_dataset.empty:
        return pd.Series(False, index=source_summary.index)

    if match_artist:
        target_keys = pd.MultiIndex.from_frame(
            target_dataset[["track", "artist"]].drop_duplicates(),
        )
        source_keys = pd.MultiIndex.from_frame(source_summary[["track", "artist"]])
        return pd.Series(source_keys.isin(target_keys), index=source_summary.index)

    return source_summary["track"].isin(set(target_dataset["track"]))


def build_labeled_rows(
    source_summary: pd.DataFrame,
    target_dataset: pd.DataFrame,
    *,
    match_artist: bool = True,
) -> pd.DataFrame:
    """
    Build the labelled, standardised feature set.

    Parameters
    ----------
    source_summary : pd.DataFrame
        ``aggregation.track_summary`` output for the source region.
    target_dataset : pd.DataFrame
        The target region's full Dataset (membership test only).
    match_artist : bool
        If True (default) a track counts as present in the target only when
        both title and artist match; if False, the title alone decides.

    Raises
    ------
    DegenerateInputError
        If ``highest_ranking`` or ``time_up`` has zero / undefined variance.
    """
    z_ranking = _standardise(source_summary["highest_ranking"], "highest_ranking")
    z_time = _standardise(source_summary["time_up"], "time_up")

    labeled = pd.DataFrame({
        "track": source_summary["track"].to_numpy(),
        "artist": source_summary["artist"].to_numpy(),
        "z_ranking": z_ranking,
        "z_time": z_time,
        "label": target_membership(
            source_summary, target_dataset, match_artist=match_artist,
        ).to_numpy(dtype=bool),
    })

    logger.info(
        "Labelled rows — %d track(s), %d positive (%.1f%%)",
        len(labeled), int(labeled["label"].sum()),
        100.0 * labeled["label"].mean(),
    )
    return labeled[LABELED_COLUMNS]
