"""
Cutpoint calibration and piecewise-linear score normalization.

The cutpoint is the training raw score maximizing Youden's J
(sensitivity + specificity - 1) under the rule ``score >= cutpoint``.
Together with the training extrema it anchors the normalization:

    raw <  cutpoint: 0.5 * (raw - min_raw) / (cutpoint - min_raw)
    raw >= cutpoint: 0.5 * (raw - cutpoint) / (max_raw - cutpoint) + 0.5

so that min_raw -> 0, cutpoint -> 0.5 and max_raw -> 1 exactly. Scores
outside [min_raw, max_raw] are not clipped; values outside [0, 1] flag
observations beyond the training range.

Degenerate calibrations (cutpoint equal to min_raw or max_raw) collapse one
branch to zero width:
    - cutpoint == min_raw: raw below the cutpoint maps to 0.0
    - cutpoint == max_raw: raw == cutpoint maps to 0.5, raw above maps to 1.0
A DegenerateCalibrationWarning is emitted once per normalization call.
"""

import logging
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd

from amp_ml.exceptions import CalibrationError, DegenerateCalibrationWarning
from amp_ml.metrics.thresholds import youden_curve

logger = logging.getLogger(__name__)

# Youden J values within this tolerance of the maximum are ties
J_TIE_ATOL = 1e-12


@dataclass(frozen=True)
class CalibrationInfo:
    """Training raw-score extrema and the Youden cutpoint."""

    min_raw: float
    max_raw: float
    cutpoint: float

    def __post_init__(self):
        values = (self.min_raw, self.cutpoint, self.max_raw)
        if not all(np.isfinite(v) for v in values):
            raise ValueError(f"CalibrationInfo values must be finite, got {values}")
        if not (self.min_raw <= self.cutpoint <= self.max_raw):
            raise ValueError(
                f"Require min_raw <= cutpoint <= max_raw, got "
                f"{self.min_raw} <= {self.cutpoint} <= {self.max_raw}"
            )

    @property
    def lower_degenerate(self) -> bool:
        return self.cutpoint == self.min_raw

    @property
    def upper_degenerate(self) -> bool:
        return self.cutpoint == self.max_raw

    @property
    def degenerate(self) -> bool:
        return self.lower_degenerate or self.upper_degenerate

    def to_dict(self) -> dict[str, float]:
        return {"min_raw": self.min_raw, "max_raw": self.max_raw, "cutpoint": self.cutpoint}

    @classmethod
    def from_dict(cls, d: dict) -> "CalibrationInfo":
        return cls(
            min_raw=float(d["min_raw"]), max_raw=float(d["max_raw"]), cutpoint=float(d["cutpoint"])
        )


@dataclass(frozen=True)
class CutpointSearch:
    """Cutpoint search outcome with the full Youden curve for diagnostics."""

    info: CalibrationInfo
    youden_j: float
    sensitivity: float
    specificity: float
    curve: pd.DataFrame

    def summary(self) -> dict[str, float]:
        return {
            **self.info.to_dict(),
            "youden_j": self.youden_j,
            "sensitivity": self.sensitivity,
            "specificity": self.specificity,
            "n_candidates": int(len(self.curve)),
        }


def find_cutpoint(raw_scores: np.ndarray, labels: np.ndarray) -> CutpointSearch:
    """
    Find the Youden-optimal cutpoint on training raw scores.

    Candidates are the sorted distinct training scores; the lowest threshold
    reaching the maximum J wins.

    Args:
        raw_scores: Training raw scores
        labels: Training labels (0/1)

    Returns:
        CutpointSearch with CalibrationInfo(min_raw, max_raw, cutpoint)

    Raises:
        CalibrationError: Empty input, non-finite scores or a single class
    """
    raw = np.asarray(raw_scores, dtype=float).ravel()
    y = np.asarray(labels).astype(int).ravel()
    if raw.shape != y.shape:
        raise ValueError(f"raw_scores and labels differ in shape: {raw.shape} vs {y.shape}")

    if len(raw) == 0:
        raise CalibrationError("No training scores to calibrate on")
    n_bad = int((~np.isfinite(raw)).sum())
    if n_bad:
        raise CalibrationError(
            f"{n_bad} non-finite training raw scores",
            diagnostics={"n_nonfinite": n_bad, "n": len(raw)},
        )
    classes = np.unique(y)
    if len(classes) != 2:
        raise CalibrationError(
            f"Cutpoint search needs both classes, found {classes.tolist()}",
            diagnostics={"classes": classes.tolist(), "n": len(raw)},
        )

    curve = youden_curve(y, raw)
    j = curve["youden_j"].to_numpy()
    best = int(np.flatnonzero(j >= j.max() - J_TIE_ATOL)[0])
    row = curve.iloc[best]

    info = CalibrationInfo(
        min_raw=float(raw.min()), max_raw=float(raw.max()), cutpoint=float(row["threshold"])
    )
    search = CutpointSearch(
        info=info,
        youden_j=float(row["youden_j"]),
        sensitivity=float(row["sensitivity"]),
        specificity=float(row["specificity"]),
        curve=curve,
    )

    logger.info(
        f"Cutpoint {info.cutpoint:.4g} in [{info.min_raw:.4g}, {info.max_raw:.4g}] "
        f"(J={search.youden_j:.3f}, sens={search.sensitivity:.3f}, spec={search.specificity:.3f})"
    )
    if info.degenerate:
        logger.warning(
            f"Degenerate calibration: cutpoint coincides with "
            f"{'min_raw' if info.lower_degenerate else 'max_raw'}"
        )
    return search


def _warn_degenerate(info: CalibrationInfo) -> None:
    bound = "min_raw" if info.lower_degenerate else "max_raw"
    msg = (
        f"Cutpoint {info.cutpoint:.6g} equals {bound}; normalization clamps the "
        f"zero-width branch"
    )
    warnings.warn(msg, DegenerateCalibrationWarning, stacklevel=3)
    logger.warning(msg)


def _normalize(raw: np.ndarray, info: CalibrationInfo) -> np.ndarray:
    lo, cut, hi = info.min_raw, info.cutpoint, info.max_raw
    out = np.empty_like(raw, dtype=float)
    below = raw < cut

    if info.lower_degenerate:
        out[below] = 0.0
    else:
        out[below] = 0.5 * (raw[below] - lo) / (cut - lo)

    above = ~below
    if info.upper_degenerate:
        out[above] = np.where(raw[above] > cut, 1.0, 0.5)
    else:
        out[above] = 0.5 * (raw[above] - cut) / (hi - cut) + 0.5

    # Exact anchors regardless of floating-point rounding
    out[raw == cut] = 0.5
    if not info.lower_degenerate:
        out[raw == lo] = 0.0
    if not info.upper_degenerate:
        out[raw == hi] = 1.0
    return out


def normalize_scores(raw_scores: np.ndarray, info: CalibrationInfo) -> np.ndarray:
    """
    Map raw scores to the cutpoint-anchored scale (vectorized).

    Args:
        raw_scores: Raw scores (any shape)
        info: Training CalibrationInfo

    Returns:
        Normalized scores, same shape; not clipped to [0, 1]
    """
    raw = np.asarray(raw_scores, dtype=float)
    if info.degenerate:
        _warn_degenerate(info)
    return _normalize(raw.ravel(), info).reshape(raw.shape)


def normalize_score(raw: float, info: CalibrationInfo) -> float:
    """Normalize a single raw score (see normalize_scores)."""
    if info.degenerate:
        _warn_degenerate(info)
    return float(_normalize(np.array([raw], dtype=float), info)[0])
