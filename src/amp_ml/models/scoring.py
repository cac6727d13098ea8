"""
Raw AMP scores: the weighted sum of an observation's consensus feature values.

Scoring is a pure function of (feature values, WeightVector); the intercept
is not part of the score. The vectorized path gives the same value
element-wise as scoring each observation on its own.
"""

from collections.abc import Mapping, Sequence

import numpy as np
import pandas as pd

from amp_ml.models.weights import WeightVector


def score_observation(
    values: Mapping[str, float] | Sequence[float] | np.ndarray, weights: WeightVector
) -> float:
    """
    Raw score of one observation.

    Args:
        values: Feature id -> value mapping (extra keys ignored), or values
            aligned with ``weights.features``
        weights: WeightVector

    Returns:
        sum(value * weight) over consensus features

    Raises:
        ValueError: Missing consensus feature or wrong vector length
    """
    if isinstance(values, Mapping):
        missing = [f for f in weights.features if f not in values]
        if missing:
            raise ValueError(f"Observation is missing consensus features: {missing[:10]}")
        vec = np.array([values[f] for f in weights.features], dtype=float)
    else:
        vec = np.asarray(values, dtype=float).ravel()
        if len(vec) != len(weights):
            raise ValueError(f"Expected {len(weights)} feature values, got {len(vec)}")
    return float(np.dot(vec, weights.as_array()))


def compute_raw_scores(data: pd.DataFrame | np.ndarray, weights: WeightVector) -> np.ndarray:
    """
    Raw scores for every row.

    Args:
        data: Observation table (consensus columns looked up by name) or a
            matrix whose columns are aligned with ``weights.features``
        weights: WeightVector

    Returns:
        1-D array of raw scores, one per row

    Raises:
        ValueError: Missing consensus columns or wrong matrix width
    """
    if isinstance(data, pd.DataFrame):
        missing = [f for f in weights.features if f not in data.columns]
        if missing:
            raise ValueError(f"Table is missing consensus feature columns: {missing[:10]}")
        X = data[list(weights.features)].to_numpy(dtype=float)
    else:
        X = np.asarray(data, dtype=float)
        if X.ndim == 1:
            X = X.reshape(1, -1)
        if X.shape[1] != len(weights):
            raise ValueError(f"Matrix has {X.shape[1]} columns, expected {len(weights)}")
    return X @ weights.as_array()
