"""
Path utilities for standardized output directories.

Layout of a pipeline run:
    results/
    └── run_{RUN_ID}/
        ├── core/         metrics.json, run_metadata.json, config.yaml
        ├── preds/        scored_test.csv, scored_train.csv, sample_summary.csv
        ├── reports/      consensus_features.txt, consensus_membership.csv, weights.csv
        ├── diagnostics/  selector_diagnostics.csv, youden_curve.csv,
        │                 selector_results.joblib
        └── model/        amp_model.json
"""

from datetime import datetime
from pathlib import Path


def ensure_dir(path: str | Path) -> Path:
    """Create directory if it doesn't exist, return Path object."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def make_run_id(now: datetime | None = None) -> str:
    """Timestamp run identifier, e.g. 20260127_115115."""
    now = now or datetime.now()
    return now.strftime("%Y%m%d_%H%M%S")


def get_run_dir(base_dir: str | Path, run_id: str) -> Path:
    """
    Standardized run directory: {base_dir}/run_{run_id}.

    Example:
        >>> get_run_dir("results", "20260127_115115")
        PosixPath('results/run_20260127_115115')
    """
    return Path(base_dir) / f"run_{run_id}"
