"""
Data schema definitions and constants.

Defines column names and the Observation value object shared by the pipeline.
One row of the input table is one spatial observation (pixel) belonging to a
single sample.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

# ============================================================================
# Column Names
# ============================================================================

# Sample identifier; the unit of train/test partitioning
SAMPLE_COL = "sample_id"

# Spatial coordinates of the observation within its sample
X_COL = "x"
Y_COL = "y"

# Binary ground-truth label (0/1)
LABEL_COL = "label"

KEY_COLS = [SAMPLE_COL, X_COL, Y_COL, LABEL_COL]

# Feature columns are prefixed "feature_" (feature_1 .. feature_N)
DEFAULT_FEATURE_PREFIX = "feature_"

VALID_LABELS = (0, 1)

# ============================================================================
# Output Columns
# ============================================================================

RAW_SCORE_COL = "raw_score"
NORMALIZED_SCORE_COL = "normalized_score"
PREDICTED_COL = "predicted"

SCORED_COLS = KEY_COLS + [RAW_SCORE_COL, NORMALIZED_SCORE_COL]


def get_feature_columns(df: pd.DataFrame, prefix: str = DEFAULT_FEATURE_PREFIX) -> list[str]:
    """
    Return feature column names in table order.

    Args:
        df: Observation table
        prefix: Feature column prefix; empty string selects every numeric non-key column

    Returns:
        List of feature column names
    """
    if prefix:
        return [c for c in df.columns if isinstance(c, str) and c.startswith(prefix)]
    return [
        c for c in df.columns if c not in KEY_COLS and pd.api.types.is_numeric_dtype(df[c])
    ]


@dataclass(frozen=True)
class Observation:
    """One spatial observation: (sample_id, x, y), its label and feature vector."""

    sample_id: str
    x: int
    y: int
    label: int
    features: tuple[float, ...]

    def as_array(self) -> np.ndarray:
        return np.asarray(self.features, dtype=float)


def observations_from_frame(
    df: pd.DataFrame, feature_cols: list[str] | None = None
) -> list[Observation]:
    """Convert an observation table into Observation value objects."""
    if feature_cols is None:
        feature_cols = get_feature_columns(df)

    values = df[feature_cols].to_numpy(dtype=float)
    return [
        Observation(
            sample_id=str(sid),
            x=int(x),
            y=int(y),
            label=int(lab),
            features=tuple(float(v) for v in row),
        )
        for sid, x, y, lab, row in zip(
            df[SAMPLE_COL], df[X_COL], df[Y_COL], df[LABEL_COL], values, strict=True
        )
    ]


def observations_to_frame(
    observations: list[Observation], feature_cols: list[str]
) -> pd.DataFrame:
    """Inverse of observations_from_frame."""
    rows = []
    for obs in observations:
        if len(obs.features) != len(feature_cols):
            raise ValueError(
                f"Observation ({obs.sample_id}, {obs.x}, {obs.y}) has "
                f"{len(obs.features)} features, expected {len(feature_cols)}"
            )
        row = {SAMPLE_COL: obs.sample_id, X_COL: obs.x, Y_COL: obs.y, LABEL_COL: obs.label}
        row.update(dict(zip(feature_cols, obs.features, strict=True)))
        rows.append(row)
    return pd.DataFrame(rows, columns=KEY_COLS + list(feature_cols))
