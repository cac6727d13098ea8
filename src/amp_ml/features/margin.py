"""Linear-kernel maximum-margin classifier selector.

Importance is the absolute hyperplane coefficient on standardized features.
Cross-validated accuracy is reported on all features and again on the
truncated selection; both are diagnostics and do not feed back into the
pipeline.
"""

import logging

import numpy as np
from sklearn.model_selection import cross_val_score
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC

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


class MarginClassifierSelector:
    """Top-K features by |coef| of a linear SVM."""

    name = "margin_classifier"

    def __init__(
        self,
        C: float = 1.0,
        top_k: int = 100,
        cv_folds: int = 10,
        max_iter: int = -1,
        standardize: bool = True,
        random_state: int = 0,
        n_jobs: int = 1,
    ):
        self.C = C
        self.top_k = top_k
        self.cv_folds = cv_folds
        self.max_iter = max_iter
        self.standardize = standardize
        self.random_state = random_state
        self.n_jobs = n_jobs

    def _make_estimator(self):
        svc = SVC(kernel="linear", C=self.C, max_iter=self.max_iter)
        if self.standardize:
            return make_pipeline(StandardScaler(), svc)
        return make_pipeline(svc)

    def _cv_accuracy(self, X, y, splits) -> float:
        scores = cross_val_score(
            self._make_estimator(), X, y, cv=splits, scoring="accuracy", n_jobs=self.n_jobs
        )
        return float(np.mean(scores))

    def fit(self, X, y, feature_names, groups=None) -> SelectorResult:
        X, y = check_training_inputs(X, y, feature_names, self.name)
        constant = zero_variance_mask(X)
        splits = make_cv_splits(y, self.cv_folds, self.random_state, groups, selector=self.name)

        # Constant columns are dropped before fitting and keep importance 0
        keep = np.flatnonzero(~constant)
        if len(keep) == 0:
            raise SelectorFitError(
                f"{self.name}: every feature has zero variance",
                diagnostics={"n_features": len(feature_names)},
            )

        estimator = self._make_estimator()
        try:
            estimator.fit(X[:, keep], y)
            coef_kept = np.asarray(estimator[-1].coef_, dtype=float).ravel()
            cv_all = self._cv_accuracy(X[:, keep], y, splits)
        except (ValueError, np.linalg.LinAlgError) as e:
            raise SelectorFitError(
                f"{self.name}: linear SVM fit failed: {e}",
                diagnostics={"n_features": len(feature_names)},
            ) from e

        coef = np.zeros(len(feature_names), dtype=float)
        coef[keep] = coef_kept

        ranking = rank_features(self.name, feature_names, coef)
        selection = top_k_selection(ranking, k=self.top_k)

        cv_selected = float("nan")
        if len(selection) > 0:
            index = {name: i for i, name in enumerate(feature_names)}
            cols = [index[f] for f in selection.features]
            try:
                cv_selected = self._cv_accuracy(X[:, cols], y, splits)
            except (ValueError, np.linalg.LinAlgError) as e:
                raise SelectorFitError(
                    f"{self.name}: CV on selected features failed: {e}",
                    diagnostics={"n_selected": len(selection)},
                ) from e

        logger.info(
            f"{self.name}: CV accuracy {cv_all:.3f} (all {len(keep)}) -> "
            f"{cv_selected:.3f} (top {len(selection)})"
        )

        return SelectorResult(
            name=self.name,
            ranking=ranking,
            selection=selection,
            diagnostics={
                "cv_folds": len(splits),
                "cv_accuracy_all": cv_all,
                "cv_accuracy_selected": cv_selected,
                "n_constant_dropped": int(constant.sum()),
                "top_k": self.top_k,
            },
        )
