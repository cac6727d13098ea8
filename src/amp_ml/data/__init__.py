"""Data handling and schema definitions."""

from amp_ml.data.io import read_observation_file, validate_observation_table
from amp_ml.data.schema import (
    DEFAULT_FEATURE_PREFIX,
    KEY_COLS,
    LABEL_COL,
    NORMALIZED_SCORE_COL,
    RAW_SCORE_COL,
    SAMPLE_COL,
    X_COL,
    Y_COL,
    Observation,
    get_feature_columns,
    observations_from_frame,
    observations_to_frame,
)
from amp_ml.data.splits import (
    SampleSplit,
    apply_sample_split,
    check_split_disjoint,
    sample_majority_labels,
    split_samples,
)

__all__ = [
    # Schema
    "SAMPLE_COL",
    "X_COL",
    "Y_COL",
    "LABEL_COL",
    "KEY_COLS",
    "RAW_SCORE_COL",
    "NORMALIZED_SCORE_COL",
    "DEFAULT_FEATURE_PREFIX",
    "Observation",
    "get_feature_columns",
    "observations_from_frame",
    "observations_to_frame",
    # I/O
    "read_observation_file",
    "validate_observation_table",
    # Splits
    "SampleSplit",
    "split_samples",
    "apply_sample_split",
    "sample_majority_labels",
    "check_split_disjoint",
]
