"""
Held-out evaluation of normalized AMP scores.

Predicted label = 1 when normalized score >= threshold (0.5 by default, the
cutpoint on the normalized scale). Evaluation is pure: it reads scores and
labels and returns a new EvaluationResult.
"""

import logging
from dataclasses import asdict, dataclass

import numpy as np
import pandas as pd
from scipy.stats import binomtest

from amp_ml.data.schema import LABEL_COL, NORMALIZED_SCORE_COL, SAMPLE_COL
from amp_ml.metrics.discrimination import auroc
from amp_ml.metrics.thresholds import binary_metrics_at_threshold

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.5


@dataclass(frozen=True)
class EvaluationResult:
    """Classification metrics at a fixed normalized-score threshold.

    ``accuracy_pvalue`` is the two-sided binomial test of the number of
    correct predictions against chance (p=0.5); ``auroc`` is threshold-free.
    """

    threshold: float
    n: int
    accuracy: float
    sensitivity: float
    specificity: float
    tp: int
    fp: int
    tn: int
    fn: int
    precision: float = np.nan
    f1: float = np.nan
    auroc: float = np.nan
    accuracy_pvalue: float = np.nan

    def to_dict(self) -> dict:
        return asdict(self)


def predict_labels(normalized: np.ndarray, threshold: float = DEFAULT_THRESHOLD) -> np.ndarray:
    """Predicted labels: 1 where normalized >= threshold."""
    return (np.asarray(normalized, dtype=float) >= threshold).astype(int)


def evaluate_normalized_scores(
    normalized: np.ndarray, labels: np.ndarray, threshold: float = DEFAULT_THRESHOLD
) -> EvaluationResult:
    """
    Accuracy, sensitivity and specificity of thresholded normalized scores.

    Args:
        normalized: Normalized AMP scores
        labels: Ground-truth labels (0/1)
        threshold: Decision threshold on the normalized scale

    Returns:
        EvaluationResult (sensitivity/specificity are NaN when a class is absent)

    Raises:
        ValueError: If shapes differ
    """
    normalized = np.asarray(normalized, dtype=float).ravel()
    labels = np.asarray(labels).astype(int).ravel()

    m = binary_metrics_at_threshold(labels, normalized, threshold)
    n_correct = m["tp"] + m["tn"]
    pvalue = binomtest(n_correct, m["n"], p=0.5).pvalue if m["n"] > 0 else np.nan

    result = EvaluationResult(
        threshold=float(threshold),
        n=m["n"],
        accuracy=m["accuracy"],
        sensitivity=m["sensitivity"],
        specificity=m["specificity"],
        tp=m["tp"],
        fp=m["fp"],
        tn=m["tn"],
        fn=m["fn"],
        precision=m["precision"],
        f1=m["f1"],
        auroc=auroc(labels, normalized),
        accuracy_pvalue=float(pvalue),
    )
    logger.info(
        f"Evaluation @ {threshold}: accuracy={result.accuracy:.3f}, "
        f"sensitivity={result.sensitivity:.3f}, specificity={result.specificity:.3f} "
        f"(n={result.n:,})"
    )
    return result


def summarize_scores_by_sample(
    scored: pd.DataFrame, score_col: str = NORMALIZED_SCORE_COL
) -> pd.DataFrame:
    """
    Per-sample score distribution (boxplot statistics).

    Args:
        scored: Scored table with sample_id, label and the score column
        score_col: Column to summarize

    Returns:
        DataFrame with columns [sample_id, label, n, min, q1, median, q3, max, mean],
        sorted by label then sample_id
    """
    missing = [c for c in (SAMPLE_COL, LABEL_COL, score_col) if c not in scored.columns]
    if missing:
        raise ValueError(f"Scored table is missing columns: {missing}")

    grouped = scored.groupby(SAMPLE_COL, sort=True)
    summary = pd.DataFrame(
        {
            LABEL_COL: grouped[LABEL_COL].agg(lambda s: int(s.mode().iloc[0])),
            "n": grouped[score_col].size(),
            "min": grouped[score_col].min(),
            "q1": grouped[score_col].quantile(0.25),
            "median": grouped[score_col].median(),
            "q3": grouped[score_col].quantile(0.75),
            "max": grouped[score_col].max(),
            "mean": grouped[score_col].mean(),
        }
    ).reset_index()
    return summary.sort_values([LABEL_COL, SAMPLE_COL], kind="mergesort").reset_index(drop=True)
