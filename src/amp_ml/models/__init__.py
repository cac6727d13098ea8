"""Weight fitting, scoring, calibration and the persisted AMP model."""

from amp_ml.models.bundle import AMPModel, load_amp_model, save_amp_model
from amp_ml.models.calibration import (
    CalibrationInfo,
    CutpointSearch,
    find_cutpoint,
    normalize_score,
    normalize_scores,
)
from amp_ml.models.scoring import compute_raw_scores, score_observation
from amp_ml.models.weights import WeightVector, find_separating_features, fit_weight_vector

__all__ = [
    "AMPModel",
    "load_amp_model",
    "save_amp_model",
    "CalibrationInfo",
    "CutpointSearch",
    "find_cutpoint",
    "normalize_score",
    "normalize_scores",
    "compute_raw_scores",
    "score_observation",
    "WeightVector",
    "find_separating_features",
    "fit_weight_vector",
]
