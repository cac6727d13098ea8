"""
Signed contribution weights for the consensus features.

Fits an unpenalized maximum-likelihood binomial logistic regression on the
training observations restricted to the consensus features. Only the feature
coefficients are used downstream; the intercept is kept for diagnostics.

Perfect separation (a single consensus feature whose class ranges do not
overlap, or fitted probabilities that reproduce the labels) makes the
maximum-likelihood coefficients unbounded. Depending on policy the fit either
raises SeparationError or returns the coefficients reached at the iteration
limit with ``separated=True``.
"""

import logging
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression

from amp_ml.exceptions import SeparationError

logger = logging.getLogger(__name__)

# Fitted probabilities this close to the labels count as complete separation
SEPARATION_PROB_TOL = 1e-8

SEPARATION_POLICIES = ("warn", "error")


@dataclass(frozen=True)
class WeightVector:
    """One signed weight per consensus feature.

    Attributes:
        features: Consensus feature ids, in scoring order
        coefficients: Weights aligned with features
        intercept: Fitted intercept (diagnostic only, never used in scoring)
        separated: True when separation was detected
        separating_features: Features whose class ranges do not overlap
        n_iter: Solver iterations
        converged: False when the solver hit max_iter
    """

    features: tuple[str, ...]
    coefficients: tuple[float, ...]
    intercept: float = 0.0
    separated: bool = False
    separating_features: tuple[str, ...] = ()
    n_iter: int = 0
    converged: bool = True

    def __post_init__(self):
        if len(self.features) != len(self.coefficients):
            raise ValueError(
                f"{len(self.features)} features but {len(self.coefficients)} coefficients"
            )
        if len(set(self.features)) != len(self.features):
            raise ValueError("WeightVector features must be unique")

    def __len__(self) -> int:
        return len(self.features)

    def as_array(self) -> np.ndarray:
        """Read-only coefficient array aligned with ``features``."""
        arr = np.asarray(self.coefficients, dtype=float)
        arr.setflags(write=False)
        return arr

    def as_dict(self) -> dict[str, float]:
        return dict(zip(self.features, self.coefficients, strict=True))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "feature": list(self.features),
                "weight": list(self.coefficients),
                "abs_weight": [abs(c) for c in self.coefficients],
                "separating": [f in self.separating_features for f in self.features],
            }
        )


def find_separating_features(X: np.ndarray, y: np.ndarray, features: list[str]) -> list[str]:
    """Features whose values alone separate the two classes (non-overlapping ranges)."""
    X = np.asarray(X, dtype=float)
    y = np.asarray(y).astype(int)
    pos, neg = X[y == 1], X[y == 0]
    if len(pos) == 0 or len(neg) == 0:
        return []
    separating = (pos.min(axis=0) > neg.max(axis=0)) | (pos.max(axis=0) < neg.min(axis=0))
    return [f for f, s in zip(features, separating, strict=True) if s]


def fit_weight_vector(
    X: np.ndarray,
    y: np.ndarray,
    features: list[str],
    max_iter: int = 1000,
    on_separation: str = "warn",
) -> WeightVector:
    """
    Fit logistic regression weights on the consensus features.

    Args:
        X: Training matrix restricted to the consensus features
        y: Binary training labels
        features: Consensus feature ids (column names of X)
        max_iter: Solver iteration limit
        on_separation: "warn" (log and return boundary coefficients) or "error"

    Returns:
        WeightVector

    Raises:
        ValueError: Bad shapes, unknown policy or a single class
        SeparationError: Separation under policy "error", or non-finite coefficients
    """
    if on_separation not in SEPARATION_POLICIES:
        raise ValueError(f"on_separation must be one of {SEPARATION_POLICIES}, got '{on_separation}'")

    X = np.asarray(X, dtype=float)
    y = np.asarray(y).astype(int).ravel()
    features = list(features)
    if X.ndim != 2 or X.shape[1] != len(features) or X.shape[0] != len(y):
        raise ValueError(
            f"Shape mismatch: X={X.shape}, {len(y)} labels, {len(features)} features"
        )
    if X.shape[1] == 0:
        raise ValueError("Cannot fit weights on zero features")
    if len(np.unique(y)) != 2:
        raise ValueError(f"Weight fit requires both classes, found {np.unique(y).tolist()}")

    separating = find_separating_features(X, y, features)

    # C=inf: no penalty (maximum likelihood)
    model = LogisticRegression(C=np.inf, solver="lbfgs", max_iter=max_iter)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", category=ConvergenceWarning)
        model.fit(X, y)
    converged = not any(issubclass(w.category, ConvergenceWarning) for w in caught)

    coef = np.asarray(model.coef_, dtype=float).ravel()
    intercept = float(np.ravel(model.intercept_)[0])
    n_iter = int(np.max(model.n_iter_))

    if not np.all(np.isfinite(coef)):
        raise SeparationError(
            "Logistic weight fit produced non-finite coefficients",
            diagnostics={"separating_features": separating, "n_iter": n_iter},
        )

    proba = model.predict_proba(X)[:, 1]
    complete = bool(np.all(np.abs(proba - y) < SEPARATION_PROB_TOL))
    separated = bool(separating) or complete

    if separated:
        diagnostics = {
            "separating_features": separating,
            "complete_separation": complete,
            "converged": converged,
            "n_iter": n_iter,
            "max_abs_coef": float(np.max(np.abs(coef))),
        }
        if on_separation == "error":
            raise SeparationError(
                f"Classes are perfectly separable ({len(separating)} separating feature(s), "
                f"complete={complete}); coefficients are unbounded",
                diagnostics=diagnostics,
            )
        logger.warning(
            f"Separation detected ({len(separating)} separating feature(s): "
            f"{separating[:5]}); returning coefficients at iteration limit "
            f"(max |coef|={diagnostics['max_abs_coef']:.3g})"
        )
    elif not converged:
        logger.warning(f"Logistic weight fit did not converge in {max_iter} iterations")

    logger.info(f"Fitted {len(features)} weights (intercept={intercept:.4g}, n_iter={n_iter})")

    return WeightVector(
        features=tuple(features),
        coefficients=tuple(float(c) for c in coef),
        intercept=intercept,
        separated=separated,
        separating_features=tuple(separating),
        n_iter=n_iter,
        converged=converged,
    )
