"""
Default configuration values.

Single source of truth for parameter defaults consumed by the loader; the
Pydantic schema mirrors these values.
"""

from typing import Any

# Selector identifiers, in the order they are built, run and reported
VALID_SELECTORS = [
    "sparse_linear",
    "ensemble_tree",
    "margin_classifier",
]

DEFAULT_SPLIT_CONFIG: dict[str, Any] = {
    "train_frac": 2.0 / 3.0,
    "seed": 0,
    "stratify": True,
}

DEFAULT_SPARSE_LINEAR_CONFIG: dict[str, Any] = {
    "enabled": True,
    "cv_folds": 10,
    "C_min": 1e-3,
    "C_max": 1e2,
    "C_points": 20,
    "max_iter": 1000,
    "standardize": True,
}

DEFAULT_ENSEMBLE_TREE_CONFIG: dict[str, Any] = {
    "enabled": True,
    "n_estimators": 1000,
    "top_k": 100,
    "importance": "impurity",
    "perm_repeats": 5,
    "max_features": "sqrt",
    "min_samples_leaf": 1,
}

DEFAULT_MARGIN_CLASSIFIER_CONFIG: dict[str, Any] = {
    "enabled": True,
    "C": 1.0,
    "top_k": 100,
    "cv_folds": 10,
    "max_iter": -1,
    "standardize": True,
}

DEFAULT_SELECTION_CONFIG: dict[str, Any] = {
    "random_state": 0,
    "n_jobs": 3,
    "cv_n_jobs": 1,
    "group_folds_by_sample": False,
    "sparse_linear": DEFAULT_SPARSE_LINEAR_CONFIG,
    "ensemble_tree": DEFAULT_ENSEMBLE_TREE_CONFIG,
    "margin_classifier": DEFAULT_MARGIN_CLASSIFIER_CONFIG,
}

DEFAULT_CONSENSUS_CONFIG: dict[str, Any] = {
    "min_votes": 2,
    "allow_reduced": True,
}

DEFAULT_WEIGHT_CONFIG: dict[str, Any] = {
    "max_iter": 1000,
    "on_separation": "warn",
}

DEFAULT_EVALUATION_CONFIG: dict[str, Any] = {
    "threshold": 0.5,
}

DEFAULT_OUTPUT_CONFIG: dict[str, Any] = {
    "outdir": "results",
    "run_id": None,
    "save_model": True,
    "save_train_scores": True,
}

DEFAULT_STRICTNESS_CONFIG: dict[str, Any] = {
    "level": "warn",
}

DEFAULT_DATA_CONFIG: dict[str, Any] = {
    "infile": None,
    "feature_prefix": "feature_",
}
