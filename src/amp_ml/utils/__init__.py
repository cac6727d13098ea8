"""Utility functions for AMP-ML."""

from amp_ml.utils.logging import auto_log_path, log_section, setup_logger
from amp_ml.utils.paths import ensure_dir, get_run_dir, make_run_id
from amp_ml.utils.random import apply_seed_global, derive_seed, set_random_seed
from amp_ml.utils.serialization import load_joblib, load_json, save_joblib, save_json

__all__ = [
    "setup_logger",
    "log_section",
    "auto_log_path",
    "ensure_dir",
    "get_run_dir",
    "make_run_id",
    "set_random_seed",
    "apply_seed_global",
    "derive_seed",
    "save_joblib",
    "load_joblib",
    "save_json",
    "load_json",
]
