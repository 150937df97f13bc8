"""
splitter.py — Stratified Train/Test Partition
===============================================
Draws the held-out fraction independently from each label group, then takes
the training set as everything not held out (keyed by track identity), so
the two partitions are disjoint and together cover the input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import pandas as pd

from chartcross.utils import get_logger

logger = get_logger("chartcross.splitter")

KEY_COLUMNS = ["track", "artist"]


@dataclass
class SplitResult:
    train: pd.DataFrame
    test: pd.DataFrame


def stratified_split(
    rows: pd.DataFrame,
    test_fraction: float = 0.2,
    seed: int | None = None,
) -> SplitResult:
    """
    Partition *rows* into train and test, stratified on ``label``.

    Each label group contributes ``round(test_fraction * len(group))`` rows to
    the test set.  A fixed *seed* makes the split reproducible.
    """
    if not 0.0 < test_fraction < 1.0:
        raise ValueError(f"test_fraction must be in (0, 1), got {test_fraction}")

    test_parts: List[pd.DataFrame] = []
    for label, group in rows.groupby("label", sort=True):
        n_test = int(round(test_fraction * len(group)))
        test_parts.append(group.sample(n=n_test, random_state=seed))
        logger.debug("label=%s — %d of %d held out", label, n_test, len(group))

    if test_parts:
        test = pd.concat(test_parts).sort_index()
    else:
        test = rows.iloc[0:0]

    test_keys = pd.MultiIndex.from_frame(test[KEY_COLUMNS])
    row_keys = pd.MultiIndex.from_frame(rows[KEY_COLUMNS])
    train = rows.loc[~row_keys.isin(test_keys)]

    logger.info(
        "Stratified split — train=%d test=%d (fraction=%.2f, seed=%s)",
        len(train), len(test), test_fraction, seed,
    )
    return SplitResult(
        train=train.reset_index(drop=True),
        test=test.reset_index(drop=True),
    )
