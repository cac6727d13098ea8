"""L1-regularized logistic regression selector.

The regularization strength is chosen by stratified k-fold CV maximizing
accuracy (i.e. minimizing classification error). The selection is every
feature with a non-zero coefficient in the refit model, ranked by |coef|.

The intercept is never penalized (saga solver), so at strong regularization
the all-zero model still predicts the majority class. That model is a valid
outcome: the selection is empty and ``diagnostics["degenerate"]`` is True.
"""

import logging
import re
import warnings

import numpy as np
import sklearn
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegressionCV
from sklearn.preprocessing import StandardScaler

from amp_ml.exceptions import SelectorFitError
from amp_ml.features.base import (
    SelectorResult,
    check_training_inputs,
    make_cv_splits,
    rank_features,
    top_k_selection,
    zero_variance_mask,
)

logger = logging.getLogger(__name__)


def _sklearn_version_tuple(ver: str) -> tuple[int, int, int]:
    """Parse sklearn version string (robust to rc/dev suffixes)."""
    nums = re.findall(r"\d+", ver)
    nums = (nums + ["0", "0", "0"])[:3]
    return (int(nums[0]), int(nums[1]), int(nums[2]))


SKLEARN_VER = _sklearn_version_tuple(getattr(sklearn, "__version__", "0.0.0"))


def build_l1_logistic_cv(Cs, cv, max_iter: int, random_state: int, n_jobs: int = 1):
    """
    LogisticRegressionCV with a pure L1 penalty and an unpenalized intercept.

    sklearn >=1.8 deprecates ``penalty=`` in favour of ``l1_ratios`` and
    changes the attribute layout; the new layout is requested explicitly so
    ``scores_`` has shape (n_folds, 1, n_Cs). Older releases return
    ``scores_`` as a {class: (n_folds, n_Cs)} dict.
    """
    common = {
        "Cs": Cs,
        "cv": cv,
        "solver": "saga",
        "scoring": "accuracy",
        "max_iter": int(max_iter),
        "random_state": int(random_state),
        "n_jobs": n_jobs,
        "refit": True,
    }
    if SKLEARN_VER >= (1, 8, 0):
        return LogisticRegressionCV(l1_ratios=(1.0,), use_legacy_attributes=False, **common)
    return LogisticRegressionCV(penalty="l1", **common)


def mean_cv_scores(model: LogisticRegressionCV, n_folds: int) -> np.ndarray:
    """Mean CV accuracy per grid C, in grid order."""
    scores = model.scores_
    if isinstance(scores, dict):
        scores = next(iter(scores.values()))
    return np.asarray(scores, dtype=float).reshape(n_folds, -1).mean(axis=0)


class SparseLinearSelector:
    """Lasso-style selector backed by an L1 LogisticRegressionCV."""
    name = "sparse_linear"

    def __init__(
        self,
        cv_folds: int = 10,
        C_min: float = 1e-3,
        C_max: float = 1e2,
        C_points: int = 20,
        max_iter: int = 1000,
        standardize: bool = True,
        random_state: int = 0,
        n_jobs: int = 1,
    ):
        self.cv_folds = cv_folds
        self.C_min = C_min
        self.C_max = C_max
        self.C_points = C_points
        self.max_iter = max_iter
        self.standardize = standardize
        self.random_state = random_state
        self.n_jobs = n_jobs

    def c_grid(self) -> np.ndarray:
        """Ascending log-spaced C grid (strongest regularization first)."""
        return np.logspace(np.log10(self.C_min), np.log10(self.C_max), self.C_points)

    def fit(self, X, y, feature_names, groups=None) -> SelectorResult:
        X, y = check_training_inputs(X, y, feature_names, self.name)
        constant = zero_variance_mask(X)
        Xs = StandardScaler().fit_transform(X) if self.standardize else X

        splits = make_cv_splits(y, self.cv_folds, self.random_state, groups, selector=self.name)
        Cs = self.c_grid()

        # Ties in mean CV score resolve to the first grid entry, i.e. the smallest C.
        model = build_l1_logistic_cv(
            Cs, splits, self.max_iter, self.random_state, n_jobs=self.n_jobs
        )
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", category=ConvergenceWarning)
                model.fit(Xs, y)
        except (ValueError, np.linalg.LinAlgError) as e:
            raise SelectorFitError(
                f"{self.name}: L1 logistic fit failed: {e}",
                diagnostics={"n_features": len(feature_names)},
            ) from e

        coef = np.asarray(model.coef_, dtype=float).ravel().copy()
        coef[constant] = 0.0

        mean_scores = mean_cv_scores(model, len(splits))
        best_C = float(np.ravel(model.C_)[0])

        ranking = rank_features(self.name, feature_names, coef)
        selection = top_k_selection(ranking, k=None)

        diagnostics = {
            "best_C": best_C,
            "cv_folds": len(splits),
            "cv_error": float(1.0 - mean_scores.max()),
            "n_nonzero": len(selection),
            "degenerate": len(selection) == 0,
        }
        if diagnostics["degenerate"]:
            logger.warning(
                f"{self.name}: CV selected an all-zero model (C={best_C:.4g}); selection is empty"
            )
        else:
            logger.info(
                f"{self.name}: C={best_C:.4g}, CV error={diagnostics['cv_error']:.3f}, "
                f"{len(selection)} non-zero coefficients"
            )

        return SelectorResult(
            name=self.name, ranking=ranking, selection=selection, diagnostics=diagnostics
        )
