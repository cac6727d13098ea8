"""
Persistence helpers: JSON for human-readable artifacts, joblib for pickled
Python objects (selector results).

Artifacts that depend on the numerical stack carry a ``versions`` dict
(library_versions) so a later load can warn when the environment changed.
"""

import json
import logging
import warnings
from pathlib import Path
from typing import Any

import joblib

logger = logging.getLogger(__name__)


def library_versions() -> dict[str, str]:
    """Versions of the libraries whose numerics determine AMP scores."""
    import numpy as np
    import pandas as pd
    import sklearn

    return {"sklearn": sklearn.__version__, "pandas": pd.__version__, "numpy": np.__version__}


def check_library_versions(saved_versions: dict[str, str], source: str = "artifact") -> list[str]:
    """
    Compare saved library versions against the running environment.

    Libraries unknown to library_versions() are ignored.

    Returns:
        "lib: saved=..., current=..." strings; a UserWarning is issued when non-empty
    """
    current = library_versions()
    mismatches = [
        f"{lib}: saved={saved}, current={current[lib]}"
        for lib, saved in saved_versions.items()
        if lib in current and saved != current[lib]
    ]
    if mismatches:
        details = "\n".join(f"  - {m}" for m in mismatches)
        warnings.warn(
            f"Version mismatch in {source}:\n{details}\nScores may be inconsistent.",
            UserWarning,
            stacklevel=3,
        )
    return mismatches


def save_joblib(obj: Any, path: str | Path, compress: int = 3):
    """Pickle obj with joblib, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(obj, path, compress=compress)
    logger.debug(f"Saved joblib artifact: {path}")


def load_joblib(path: str | Path, check_versions: bool = True) -> Any:
    """
    Load a joblib artifact.

    When the object is a dict with a ``versions`` entry and check_versions is
    set, library mismatches are reported through check_library_versions.
    """
    obj = joblib.load(path)
    if check_versions and isinstance(obj, dict) and "versions" in obj:
        check_library_versions(obj["versions"], source=Path(path).name)
    return obj


def save_json(obj: Any, path: str | Path, indent: int = 2):
    """Write obj as JSON; values JSON cannot encode (Paths, numpy scalars) become strings."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(obj, f, indent=indent, default=str)


def load_json(path: str | Path) -> Any:
    with open(path) as f:
        return json.load(f)
