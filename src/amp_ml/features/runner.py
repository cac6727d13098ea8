"""Build and execute the feature-selector ensemble.

Selectors are independent of each other, so they run as one joblib task set
(threads; the heavy lifting happens in numpy/sklearn releasing the GIL).
Results are collected after the join and keyed by selector name in
configured order, so completion order never influences downstream output.

A selector whose numerical fit fails is isolated: its result carries the
error message and an empty selection, and the remaining selectors proceed.
"""

import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from amp_ml.config.schema import SelectionConfig
from amp_ml.exceptions import SelectorFitError
from amp_ml.features.base import FeatureSelector, SelectorResult
from amp_ml.features.ensemble_tree import EnsembleTreeSelector
from amp_ml.features.margin import MarginClassifierSelector
from amp_ml.features.sparse_linear import SparseLinearSelector
from amp_ml.utils.random import derive_seed

logger = logging.getLogger(__name__)


def build_selectors(config: SelectionConfig) -> list[FeatureSelector]:
    """
    Instantiate the enabled selectors from configuration.

    Each selector gets its own seed derived from ``config.random_state`` and
    its position in the canonical order, so enabling or disabling one
    selector does not change another's seed.

    Args:
        config: SelectionConfig

    Returns:
        Selectors in canonical order (sparse_linear, ensemble_tree, margin_classifier)
    """
    selectors: list[FeatureSelector] = []

    if config.sparse_linear.enabled:
        cfg = config.sparse_linear
        selectors.append(
            SparseLinearSelector(
                cv_folds=cfg.cv_folds,
                C_min=cfg.C_min,
                C_max=cfg.C_max,
                C_points=cfg.C_points,
                max_iter=cfg.max_iter,
                standardize=cfg.standardize,
                random_state=derive_seed(config.random_state, 0),
                n_jobs=config.cv_n_jobs,
            )
        )

    if config.ensemble_tree.enabled:
        cfg = config.ensemble_tree
        selectors.append(
            EnsembleTreeSelector(
                n_estimators=cfg.n_estimators,
                top_k=cfg.top_k,
                importance=cfg.importance,
                perm_repeats=cfg.perm_repeats,
                max_features=cfg.max_features,
                min_samples_leaf=cfg.min_samples_leaf,
                random_state=derive_seed(config.random_state, 1),
                n_jobs=config.cv_n_jobs,
            )
        )

    if config.margin_classifier.enabled:
        cfg = config.margin_classifier
        selectors.append(
            MarginClassifierSelector(
                C=cfg.C,
                top_k=cfg.top_k,
                cv_folds=cfg.cv_folds,
                max_iter=cfg.max_iter,
                standardize=cfg.standardize,
                random_state=derive_seed(config.random_state, 2),
                n_jobs=config.cv_n_jobs,
            )
        )

    return selectors


def _run_one(
    selector: FeatureSelector,
    X: np.ndarray,
    y: np.ndarray,
    feature_names: list[str],
    groups: np.ndarray | None,
) -> SelectorResult:
    logger.debug(f"Starting selector: {selector.name}")
    try:
        return selector.fit(X, y, feature_names, groups=groups)
    except SelectorFitError as e:
        logger.error(f"Selector '{selector.name}' failed: {e}")
        return SelectorResult.failed(selector.name, str(e), diagnostics=e.diagnostics)


def _read_only_copy(arr: np.ndarray | None) -> np.ndarray | None:
    if arr is None:
        return None
    out = np.array(arr, copy=True)
    out.setflags(write=False)
    return out


def run_selectors(
    selectors: Sequence[FeatureSelector],
    X: np.ndarray,
    y: np.ndarray,
    feature_names: list[str],
    n_jobs: int = 1,
    groups: np.ndarray | None = None,
) -> dict[str, SelectorResult]:
    """
    Run every selector on the same training data, concurrently.

    Args:
        selectors: Selectors to run (names must be unique)
        X: Training feature matrix (n_observations, n_features)
        y: Binary training labels
        feature_names: Column names of X
        n_jobs: Number of selectors executed concurrently
        groups: Optional sample ids for group-aware CV folds

    Returns:
        Dict selector name -> SelectorResult, in the order of ``selectors``
    """
    names = [s.name for s in selectors]
    if len(set(names)) != len(names):
        raise ValueError(f"Selector names must be unique, got {names}")
    if not selectors:
        return {}

    X = np.asarray(X, dtype=float)
    y = np.asarray(y)
    feature_names = list(feature_names)

    logger.info(
        f"Running {len(selectors)} selectors on {X.shape[0]:,} observations x "
        f"{X.shape[1]:,} features (n_jobs={n_jobs})"
    )

    results = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(_run_one)(
            selector,
            _read_only_copy(X),
            _read_only_copy(y),
            feature_names,
            _read_only_copy(groups),
        )
        for selector in selectors
    )

    by_name = {result.name: result for result in results}
    ordered = {name: by_name[name] for name in names}

    for name, result in ordered.items():
        status = "ok" if result.succeeded else "FAILED"
        logger.info(f"  {name}: {status}, {len(result.selection)} features selected")

    return ordered


def selector_diagnostics_table(results: dict[str, SelectorResult]) -> pd.DataFrame:
    """
    One row per selector with status, set sizes and its diagnostic metrics.

    Metric columns are the union of every selector's diagnostics keys; a
    selector that does not report a metric gets NaN.
    """
    rows = []
    for name, result in results.items():
        row = {
            "selector": name,
            "status": "ok" if result.succeeded else "failed",
            "n_ranked": len(result.ranking) if result.ranking is not None else 0,
            "n_selected": len(result.selection),
            "error": result.error or "",
        }
        for key, value in result.diagnostics.items():
            if np.isscalar(value) or value is None:
                row[key] = value
        rows.append(row)

    base_cols = ["selector", "status", "n_ranked", "n_selected", "error"]
    df = pd.DataFrame(rows)
    if df.empty:
        return pd.DataFrame(columns=base_cols)
    metric_cols = [c for c in df.columns if c not in base_cols]
    return df[base_cols + metric_cols]
