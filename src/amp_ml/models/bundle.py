"""
Persisted AMP model: consensus weights plus training calibration.

The bundle holds everything needed to score new observations without
refitting. It is stored as JSON together with the library versions used to
fit it; a version mismatch on load only warns.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from amp_ml import __version__
from amp_ml.models.calibration import CalibrationInfo, normalize_scores
from amp_ml.models.scoring import compute_raw_scores
from amp_ml.models.weights import WeightVector
from amp_ml.utils.serialization import (
    check_library_versions,
    library_versions,
    load_json,
    save_json,
)

logger = logging.getLogger(__name__)

BUNDLE_FORMAT_VERSION = 1


@dataclass(frozen=True)
class AMPModel:
    """Consensus WeightVector and train-only CalibrationInfo."""

    weights: WeightVector
    calibration: CalibrationInfo
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def consensus_features(self) -> tuple[str, ...]:
        return self.weights.features

    def raw_scores(self, data: pd.DataFrame | np.ndarray) -> np.ndarray:
        return compute_raw_scores(data, self.weights)

    def score(self, data: pd.DataFrame | np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """Return (raw, normalized) scores for every row of ``data``."""
        raw = self.raw_scores(data)
        return raw, normalize_scores(raw, self.calibration)

    def to_dict(self) -> dict[str, Any]:
        w = self.weights
        return {
            "format_version": BUNDLE_FORMAT_VERSION,
            "consensus_features": list(w.features),
            "weights": {
                "coefficients": list(w.coefficients),
                "intercept": w.intercept,
                "separated": w.separated,
                "separating_features": list(w.separating_features),
                "n_iter": w.n_iter,
                "converged": w.converged,
            },
            "calibration": self.calibration.to_dict(),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "AMPModel":
        fmt = d.get("format_version", BUNDLE_FORMAT_VERSION)
        if fmt != BUNDLE_FORMAT_VERSION:
            raise ValueError(f"Unsupported AMP model format version: {fmt}")
        try:
            w = d["weights"]
            weights = WeightVector(
                features=tuple(d["consensus_features"]),
                coefficients=tuple(float(c) for c in w["coefficients"]),
                intercept=float(w.get("intercept", 0.0)),
                separated=bool(w.get("separated", False)),
                separating_features=tuple(w.get("separating_features", ())),
                n_iter=int(w.get("n_iter", 0)),
                converged=bool(w.get("converged", True)),
            )
            calibration = CalibrationInfo.from_dict(d["calibration"])
        except KeyError as e:
            raise ValueError(f"AMP model is missing required field: {e}") from e
        return cls(weights=weights, calibration=calibration, metadata=dict(d.get("metadata", {})))


def save_amp_model(model: AMPModel, path: str | Path) -> Path:
    """
    Save an AMPModel as JSON.

    Args:
        model: AMPModel
        path: Output .json path

    Returns:
        Path written
    """
    path = Path(path)
    payload = model.to_dict()
    payload["versions"] = {"amp_ml": __version__, **library_versions()}
    payload["saved_at"] = datetime.now().isoformat()
    save_json(payload, path)
    logger.info(f"Saved AMP model ({len(model.consensus_features)} features): {path}")
    return path


def load_amp_model(path: str | Path) -> AMPModel:
    """
    Load an AMPModel saved by save_amp_model.

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is not a valid AMP model
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")
    payload = load_json(path)
    if not isinstance(payload, dict):
        raise ValueError(f"Not an AMP model file: {path}")

    versions = dict(payload.get("versions", {}))
    versions.pop("amp_ml", None)
    if versions:
        check_library_versions(versions, source=path.name)

    model = AMPModel.from_dict(payload)
    logger.info(f"Loaded AMP model ({len(model.consensus_features)} features): {path}")
    return model
