"""
Data I/O utilities for observation tables.

Reads the externally produced table of {sample_id, x, y, label, features}
from CSV or Parquet and validates it against the schema.
"""

import logging
from pathlib import Path

import pandas as pd

from amp_ml.data.schema import (
    DEFAULT_FEATURE_PREFIX,
    KEY_COLS,
    LABEL_COL,
    SAMPLE_COL,
    VALID_LABELS,
    X_COL,
    Y_COL,
    get_feature_columns,
)

logger = logging.getLogger(__name__)


def read_observation_file(
    filepath: str | Path,
    *,
    validate: bool = True,
    feature_prefix: str = DEFAULT_FEATURE_PREFIX,
) -> pd.DataFrame:
    """
    Read an observation table (CSV or Parquet).

    If a CSV file is given but a Parquet file with the same stem exists next to
    it, the Parquet file is used instead.

    Args:
        filepath: Path to CSV or Parquet file
        validate: Whether to validate the table after loading
        feature_prefix: Feature column prefix (used by validation)

    Returns:
        Observation DataFrame

    Raises:
        FileNotFoundError: If filepath does not exist
        ValueError: If the format is unsupported or validation fails
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    suffix = filepath.suffix.lower()

    if suffix == ".csv":
        parquet_path = filepath.with_suffix(".parquet")
        if parquet_path.exists():
            logger.info(f"Found Parquet alongside CSV, using {parquet_path}")
            filepath, suffix = parquet_path, ".parquet"

    logger.info(f"Reading observations: {filepath}")
    if suffix == ".csv":
        df = pd.read_csv(filepath, dtype={SAMPLE_COL: str}, low_memory=False)
    elif suffix in (".parquet", ".pq"):
        df = pd.read_parquet(filepath)
    else:
        raise ValueError(f"Unsupported file format: {suffix}. Expected .csv or .parquet")

    logger.info(f"Loaded {len(df):,} rows × {len(df.columns):,} columns")

    if validate:
        df = validate_observation_table(df, feature_prefix=feature_prefix)

    return df


def validate_observation_table(
    df: pd.DataFrame, feature_prefix: str = DEFAULT_FEATURE_PREFIX
) -> pd.DataFrame:
    """
    Validate and coerce an observation table.

    Checks:
        - key columns present (sample_id, x, y, label)
        - labels binary {0, 1}
        - coordinates integer-valued
        - at least one numeric feature column, no missing feature values
        - (sample_id, x, y) unique

    Returns:
        Copy of df with sample_id as str, coordinates and label as int

    Raises:
        ValueError: On any schema violation
    """
    missing = [c for c in KEY_COLS if c not in df.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")

    feature_cols = get_feature_columns(df, feature_prefix)
    if not feature_cols:
        raise ValueError(f"No feature columns found (prefix='{feature_prefix}')")

    non_numeric = [c for c in feature_cols if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise ValueError(f"Non-numeric feature columns: {non_numeric[:10]}")

    n_missing = int(df[feature_cols].isna().sum().sum())
    if n_missing:
        raise ValueError(f"Feature matrix has {n_missing} missing values")

    if df[LABEL_COL].isna().any():
        raise ValueError("Label column contains missing values")
    labels = set(pd.unique(df[LABEL_COL]))
    if not labels <= set(VALID_LABELS):
        raise ValueError(f"Labels must be binary {VALID_LABELS}, found {sorted(labels)}")

    out = df.copy()
    out[SAMPLE_COL] = out[SAMPLE_COL].astype(str)
    for col in (X_COL, Y_COL):
        coords = pd.to_numeric(out[col], errors="raise")
        if (coords != coords.round()).any():
            raise ValueError(f"Coordinate column '{col}' must be integer-valued")
        out[col] = coords.astype(int)
    out[LABEL_COL] = out[LABEL_COL].astype(int)

    n_dup = int(out.duplicated(subset=[SAMPLE_COL, X_COL, Y_COL]).sum())
    if n_dup:
        raise ValueError(f"{n_dup} duplicate (sample_id, x, y) observations")

    return out
