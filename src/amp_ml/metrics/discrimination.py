"""Threshold-free discrimination metrics."""

import numpy as np
from sklearn.metrics import roc_auc_score


def auroc(y_true: np.ndarray, scores: np.ndarray) -> float:
    """Area under the ROC curve (np.nan when only one class is present)."""
    y_true = np.asarray(y_true).astype(int)
    scores = np.asarray(scores).astype(float)
    if len(np.unique(y_true)) < 2:
        return np.nan
    return float(roc_auc_score(y_true, scores))
