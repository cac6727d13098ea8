"""Metrics module for score evaluation."""

from amp_ml.metrics.discrimination import auroc
from amp_ml.metrics.thresholds import (
    YOUDEN_CURVE_COLS,
    binary_metrics_at_threshold,
    threshold_youden,
    youden_curve,
)

__all__ = [
    "auroc",
    "YOUDEN_CURVE_COLS",
    "binary_metrics_at_threshold",
    "threshold_youden",
    "youden_curve",
]
