"""
AMP-ML: Aggregate Marker Panel scoring for spatial feature maps

Ensemble feature selection, consensus panel building, logistic weighting and
cutpoint-anchored score normalization for per-pixel feature vectors (e.g. mass
spectrometry imaging intensities).
"""

# Enable pandas Copy-on-Write for pandas 3.0 compatibility and better memory efficiency
# See: https://pandas.pydata.org/docs/user_guide/copy_on_write.html
import pandas as pd

pd.options.mode.copy_on_write = True

__version__ = "0.1.0"
__license__ = "MIT"

from amp_ml import (  # noqa: E402
    config,
    data,
    evaluation,
    exceptions,
    features,
    metrics,
    models,
    utils,
)

__all__ = [
    "__version__",
    "config",
    "data",
    "evaluation",
    "exceptions",
    "features",
    "metrics",
    "models",
    "utils",
]
