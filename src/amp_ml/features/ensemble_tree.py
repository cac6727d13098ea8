"""Bagged decision-tree ensemble selector (random forest).

Importance is mean decrease in impurity, or permutation importance on the
training data when configured. The ensemble's out-of-bag error is reported as
a diagnostic only.
"""

import logging

import numpy as np
from sklearn.ensemble import RandomForestClassifier
from sklearn.inspection import permutation_importance

from amp_ml.exceptions import SelectorFitError
from amp_ml.features.base import (
    SelectorResult,
    check_training_inputs,
    rank_features,
    top_k_selection,
    zero_variance_mask,
)

logger = logging.getLogger(__name__)


class EnsembleTreeSelector:
    """Top-K features by random forest importance."""

    name = "ensemble_tree"

    def __init__(
        self,
        n_estimators: int = 1000,
        top_k: int = 100,
        importance: str = "impurity",
        perm_repeats: int = 5,
        max_features: str | float | None = "sqrt",
        min_samples_leaf: int = 1,
        random_state: int = 0,
        n_jobs: int = 1,
    ):
        if importance not in ("impurity", "permutation"):
            raise ValueError(f"importance must be 'impurity' or 'permutation', got '{importance}'")
        self.n_estimators = n_estimators
        self.top_k = top_k
        self.importance = importance
        self.perm_repeats = perm_repeats
        self.max_features = max_features
        self.min_samples_leaf = min_samples_leaf
        self.random_state = random_state
        self.n_jobs = n_jobs

    def fit(self, X, y, feature_names, groups=None) -> SelectorResult:
        X, y = check_training_inputs(X, y, feature_names, self.name)
        constant = zero_variance_mask(X)

        forest = RandomForestClassifier(
            n_estimators=self.n_estimators,
            max_features=self.max_features,
            min_samples_leaf=self.min_samples_leaf,
            bootstrap=True,
            oob_score=True,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )
        try:
            forest.fit(X, y)
            if self.importance == "permutation":
                perm = permutation_importance(
                    forest,
                    X,
                    y,
                    n_repeats=self.perm_repeats,
                    random_state=self.random_state,
                    n_jobs=self.n_jobs,
                )
                # Negative permutation importance carries no signal
                importances = np.clip(perm.importances_mean, 0.0, None)
            else:
                importances = np.asarray(forest.feature_importances_, dtype=float)
        except (ValueError, np.linalg.LinAlgError) as e:
            raise SelectorFitError(
                f"{self.name}: random forest fit failed: {e}",
                diagnostics={"n_estimators": self.n_estimators},
            ) from e

        importances = importances.copy()
        importances[constant] = 0.0

        ranking = rank_features(self.name, feature_names, importances)
        selection = top_k_selection(ranking, k=self.top_k)

        oob_error = float(1.0 - forest.oob_score_)
        logger.info(
            f"{self.name}: {self.n_estimators} trees, OOB error={oob_error:.3f}, "
            f"selected {len(selection)}/{len(feature_names)}"
        )

        return SelectorResult(
            name=self.name,
            ranking=ranking,
            selection=selection,
            diagnostics={
                "oob_error": oob_error,
                "n_estimators": self.n_estimators,
                "importance": self.importance,
                "top_k": self.top_k,
            },
        )
