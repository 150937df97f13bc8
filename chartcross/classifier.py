"""
classifier.py — Crossover Classifier Boundary
===============================================
A narrow interface around an off-the-shelf classifier:

    train(rows)          → CrossoverModel
    predict(model, rows) → boolean label per row
    evaluate(model, rows) → ClassifierReport

Rows are labelled feature frames from ``features.build_labeled_rows``; only
``z_ranking`` and ``z_time`` are used as inputs and ``label`` as the target.
The default engine is scikit-learn's ``RandomForestClassifier``; any
estimator with ``fit`` / ``predict`` can be passed instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier

from chartcross.features import FEATURE_COLUMNS
from chartcross.utils import get_logger

logger = get_logger("chartcross.classifier")


@dataclass
class CrossoverModel:
    estimator: Any
    features: tuple = tuple(FEATURE_COLUMNS)
    n_train: int = 0


@dataclass
class ClassifierReport:
    accuracy: float
    true_positive: int
    false_positive: int
    true_negative: int
    false_negative: int

    @property
    def n(self) -> int:
        return (
            self.true_positive + self.false_positive
            + self.true_negative + self.false_negative
        )


def _matrix(rows: pd.DataFrame, features: tuple) -> np.ndarray:
    missing = [c for c in features if c not in rows.columns]
    if missing:
        raise KeyError(f"Rows lack feature column(s) {missing}")
    return rows[list(features)].to_numpy(dtype=float)


def train(
    rows: pd.DataFrame,
    *,
    seed: int | None = None,
    n_estimators: int = 100,
    estimator: Any = None,
) -> CrossoverModel:
    """Fit a classifier on labelled rows."""
    if rows.empty:
        raise ValueError("Cannot train on an empty row set")

    est = estimator if estimator is not None else RandomForestClassifier(
        n_estimators=n_estimators, random_state=seed,
    )
    X = _matrix(rows, tuple(FEATURE_COLUMNS))
    y = rows["label"].to_numpy(dtype=bool)
    est.fit(X, y)

    logger.info(
        "Classifier trained — %s on %d row(s), %d positive",
        type(est).__name__, len(rows), int(y.sum()),
    )
    return CrossoverModel(estimator=est, n_train=len(rows))


def predict(model: CrossoverModel, rows: pd.DataFrame) -> np.ndarray:
    """Predicted label for every row, as a boolean array."""
    if rows.empty:
        return np.zeros(0, dtype=bool)
    return np.asarray(model.estimator.predict(_matrix(rows, model.features)), dtype=bool)


def evaluate(model: CrossoverModel, rows: pd.DataFrame) -> ClassifierReport:
    """Accuracy and confusion counts of *model* on labelled *rows*."""
    pred = predict(model, rows)
    truth = rows["label"].to_numpy(dtype=bool)

    tp = int((pred & truth).sum())
    fp = int((pred & ~truth).sum())
    tn = int((~pred & ~truth).sum())
    fn = int((~pred & truth).sum())
    accuracy = (tp + tn) / len(truth) if len(truth) else float("nan")

    logger.info(
        "Classifier evaluation — accuracy=%.4f (tp=%d fp=%d tn=%d fn=%d)",
        accuracy, tp, fp, tn, fn,
    )
    return ClassifierReport(
        accuracy=accuracy,
        true_positive=tp,
        false_positive=fp,
        true_negative=tn,
        false_negative=fn,
    )
