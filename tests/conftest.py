"""
Shared pytest fixtures for AMP-ML tests.

make_cohort stands in for the external data source: it produces an
observation table of samples laid out on a pixel grid, with a subset of
features shifted between classes.
"""

import logging

import numpy as np
import pandas as pd
import pytest

from amp_ml.config.schema import PipelineConfig


def make_cohort(
    n_per_class: int = 10,
    n_obs: int = 100,
    n_features: int = 500,
    n_informative: int = 20,
    control_mean: float = 2.0,
    case_mean: float = 4.0,
    null_mean: float = 3.0,
    seed: int = 0,
) -> pd.DataFrame:
    """
    Synthetic observation table.

    Informative features are N(control_mean, 1) for label 0 and
    N(case_mean, 1) for label 1; the remaining features are N(null_mean, 1)
    for both classes. Pass case_mean == control_mean for a no-signal cohort.

    Args:
        n_per_class: Samples per class
        n_obs: Observations (pixels) per sample, laid out on a square-ish grid
        n_features: Total feature columns (feature_1 .. feature_N)
        n_informative: Number of leading features carrying the class shift
        seed: RNG seed

    Returns:
        DataFrame with sample_id, x, y, label and feature columns
    """
    rng = np.random.default_rng(seed)
    width = int(np.ceil(np.sqrt(n_obs)))
    xs = np.arange(n_obs) % width
    ys = np.arange(n_obs) // width

    frames = []
    for label, prefix in ((0, "C"), (1, "T")):
        for i in range(n_per_class):
            X = rng.normal(null_mean, 1.0, size=(n_obs, n_features))
            mean = case_mean if label == 1 else control_mean
            X[:, :n_informative] = rng.normal(mean, 1.0, size=(n_obs, n_informative))
            block = pd.DataFrame(X, columns=[f"feature_{j + 1}" for j in range(n_features)])
            block.insert(0, "label", label)
            block.insert(0, "y", ys)
            block.insert(0, "x", xs)
            block.insert(0, "sample_id", f"{prefix}{i + 1:02d}")
            frames.append(block)

    return pd.concat(frames, ignore_index=True)


def make_fast_config(**overrides) -> PipelineConfig:
    """
    PipelineConfig with reduced CV/grid/tree sizes for quick tests.

    Keyword overrides are merged one level deep, e.g.
    make_fast_config(consensus={"min_votes": 3}).
    """
    config = {
        "split": {"seed": 0},
        "selection": {
            "n_jobs": 1,
            "sparse_linear": {"cv_folds": 3, "C_points": 6},
            "ensemble_tree": {"n_estimators": 50, "top_k": 10},
            "margin_classifier": {"cv_folds": 3, "top_k": 10},
        },
        "strictness": {"level": "off"},
    }
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(config.get(key), dict):
            config[key] = {**config[key], **value}
        else:
            config[key] = value
    return PipelineConfig(**config)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo CLI logger setup so later tests see records through caplog."""
    yield
    logger = logging.getLogger("amp_ml")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def small_cohort():
    """4 samples per class, 36 pixels each, 30 features (5 informative)."""
    return make_cohort(n_per_class=4, n_obs=36, n_features=30, n_informative=5, seed=1)


@pytest.fixture
def small_training_data(small_cohort):
    """(X, y, feature_names) from small_cohort."""
    feature_names = [c for c in small_cohort.columns if c.startswith("feature_")]
    X = small_cohort[feature_names].to_numpy()
    y = small_cohort["label"].to_numpy()
    return X, y, feature_names


@pytest.fixture
def fast_config():
    return make_fast_config()


@pytest.fixture
def cohort_csv(tmp_path, small_cohort):
    """small_cohort written to CSV."""
    path = tmp_path / "cohort.csv"
    small_cohort.to_csv(path, index=False)
    return path
