"""Threshold utilities for binary classification.

All functions operate on true labels (y_true) and real-valued scores (raw or
normalized AMP scores, or probabilities). The positive-class rule is always
``score >= threshold``.
"""

from typing import Any

import numpy as np
import pandas as pd
from sklearn.metrics import confusion_matrix, f1_score, precision_score

YOUDEN_CURVE_COLS = ["threshold", "sensitivity", "specificity", "youden_j"]


def _ratio(num: int, den: int) -> float:
    return float(num / den) if den > 0 else np.nan


def binary_metrics_at_threshold(y_true: np.ndarray, scores: np.ndarray, thr: float) -> dict[str, Any]:
    """Compute classification metrics at a specific threshold.

    Args:
        y_true: True binary labels (0/1)
        scores: Scores (predictions >= thr -> positive)
        thr: Classification threshold

    Returns:
        Dictionary containing:
        - threshold: Applied threshold
        - n: Number of observations
        - accuracy: (TP + TN) / n
        - sensitivity: TP / (TP + FN)
        - specificity: TN / (TN + FP)
        - precision: TP / (TP + FP)
        - f1: F1-score
        - tp, fp, tn, fn: Confusion matrix counts

    Notes:
        - Sensitivity = np.nan if no positive labels, specificity = np.nan if
          no negative labels, accuracy = np.nan for empty input
        - Uses zero_division=0 for precision/F1 when no positive predictions
    """
    y_true = np.asarray(y_true).astype(int)
    scores = np.asarray(scores).astype(float)
    if y_true.shape != scores.shape:
        raise ValueError(f"y_true and scores differ in shape: {y_true.shape} vs {scores.shape}")

    y_hat = (scores >= thr).astype(int)
    tn, fp, fn, tp = confusion_matrix(y_true, y_hat, labels=[0, 1]).ravel()
    if len(y_true) > 0:
        prec = precision_score(y_true, y_hat, labels=[0, 1], zero_division=0)
        f1 = f1_score(y_true, y_hat, labels=[0, 1], zero_division=0)
    else:
        prec = f1 = np.nan

    return {
        "threshold": float(thr),
        "n": int(len(y_true)),
        "accuracy": _ratio(tp + tn, len(y_true)),
        "sensitivity": _ratio(tp, tp + fn),
        "specificity": _ratio(tn, tn + fp),
        "precision": float(prec),
        "f1": float(f1),
        "tp": int(tp),
        "fp": int(fp),
        "tn": int(tn),
        "fn": int(fn),
    }


def youden_curve(y_true: np.ndarray, scores: np.ndarray) -> pd.DataFrame:
    """Sensitivity, specificity and Youden's J at every distinct score.

    Each distinct score is a candidate threshold (ascending). Counts are taken
    with binary search on the sorted class scores, so the curve costs
    O(n log n) instead of one pass per candidate.

    Args:
        y_true: True binary labels (0/1), both classes present
        scores: Real-valued scores

    Returns:
        DataFrame with columns [threshold, sensitivity, specificity, youden_j],
        one row per distinct score, ascending by threshold

    Raises:
        ValueError: If shapes differ or either class is missing
    """
    y_true = np.asarray(y_true).astype(int).ravel()
    scores = np.asarray(scores).astype(float).ravel()
    if y_true.shape != scores.shape:
        raise ValueError(f"y_true and scores differ in shape: {y_true.shape} vs {scores.shape}")

    pos = np.sort(scores[y_true == 1])
    neg = np.sort(scores[y_true == 0])
    if len(pos) == 0 or len(neg) == 0:
        raise ValueError("youden_curve requires both classes")

    thresholds = np.unique(scores)
    # scores >= t: count of values not strictly below t
    tp = len(pos) - np.searchsorted(pos, thresholds, side="left")
    tn = np.searchsorted(neg, thresholds, side="left")

    sensitivity = tp / len(pos)
    specificity = tn / len(neg)
    return pd.DataFrame(
        {
            "threshold": thresholds,
            "sensitivity": sensitivity,
            "specificity": specificity,
            "youden_j": sensitivity + specificity - 1.0,
        },
        columns=YOUDEN_CURVE_COLS,
    )


def threshold_youden(y_true: np.ndarray, scores: np.ndarray, atol: float = 1e-12) -> float:
    """Find the lowest threshold that maximizes Youden's J statistic.

    Args:
        y_true: True binary labels (0/1)
        scores: Real-valued scores
        atol: J values within atol of the maximum count as ties

    Returns:
        Threshold (one of the observed scores)

    Notes:
        - Youden's J = sensitivity + specificity - 1
        - Ties go to the first (lowest) threshold, so the result is deterministic
    """
    curve = youden_curve(y_true, scores)
    j = curve["youden_j"].to_numpy()
    i = int(np.flatnonzero(j >= j.max() - atol)[0])
    return float(curve["threshold"].iloc[i])
