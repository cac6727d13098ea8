"""Shared types and helpers for the feature selectors.

A selector is anything satisfying the FeatureSelector protocol: it ranks all
candidate features by an importance score and truncates the ranking to a
SelectionSet. Consensus building depends only on this capability, never on a
concrete selector.

Tie-break policy:
- Rankings sort by |importance| descending; equal magnitudes keep the input
  column order (stable sort), so repeated runs give identical rankings.
- Features with zero variance in the training matrix get importance 0.
- Features with importance 0 are never selected, even when K is larger than
  the number of informative features.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedGroupKFold, StratifiedKFold

from amp_ml.exceptions import SelectorFitError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureRanking:
    """Features ordered by |importance| descending."""

    selector: str
    features: tuple[str, ...]
    importances: tuple[float, ...]

    def __len__(self) -> int:
        return len(self.features)

    def to_frame(self) -> pd.DataFrame:
        """Ranking as a DataFrame with columns [feature, importance, rank]."""
        return pd.DataFrame(
            {
                "feature": list(self.features),
                "importance": list(self.importances),
                "rank": range(1, len(self.features) + 1),
            }
        )


@dataclass(frozen=True)
class SelectionSet:
    """Top-K feature ids taken from one FeatureRanking."""

    selector: str
    features: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.features)

    def __contains__(self, feature: object) -> bool:
        return feature in self.features

    def as_set(self) -> frozenset[str]:
        return frozenset(self.features)


@dataclass(frozen=True)
class SelectorResult:
    """Outcome of one selector run.

    Attributes:
        name: Selector name
        ranking: Full ranking (None when the fit failed)
        selection: Truncated selection (empty when the fit failed)
        diagnostics: Reporting-only metrics (CV error, OOB error, ...)
        error: Failure message, None on success
    """

    name: str
    ranking: FeatureRanking | None
    selection: SelectionSet
    diagnostics: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def usable(self) -> bool:
        """Succeeded and produced a non-empty selection."""
        return self.succeeded and len(self.selection) > 0

    @classmethod
    def failed(
        cls, name: str, error: str, diagnostics: dict[str, Any] | None = None
    ) -> "SelectorResult":
        return cls(
            name=name,
            ranking=None,
            selection=SelectionSet(selector=name),
            diagnostics=dict(diagnostics or {}),
            error=error,
        )


@runtime_checkable
class FeatureSelector(Protocol):
    """Capability shared by all feature selectors."""

    name: str

    def fit(
        self,
        X: np.ndarray,
        y: np.ndarray,
        feature_names: list[str],
        groups: np.ndarray | None = None,
    ) -> SelectorResult: ...


def rank_features(
    selector: str, feature_names: list[str], importances: np.ndarray
) -> FeatureRanking:
    """Build a FeatureRanking sorted by |importance| desc, column order on ties."""
    importances = np.asarray(importances, dtype=float).ravel()
    if len(importances) != len(feature_names):
        raise ValueError(
            f"{len(importances)} importances for {len(feature_names)} features"
        )
    # lexsort: last key is primary
    order = np.lexsort((np.arange(len(importances)), -np.abs(importances)))
    return FeatureRanking(
        selector=selector,
        features=tuple(feature_names[i] for i in order),
        importances=tuple(float(importances[i]) for i in order),
    )


def top_k_selection(ranking: FeatureRanking, k: int | None = None) -> SelectionSet:
    """
    Truncate a ranking to at most k features with non-zero importance.

    Args:
        ranking: FeatureRanking
        k: Maximum number of features (None = every non-zero feature)

    Returns:
        SelectionSet in ranking order
    """
    nonzero = [f for f, imp in zip(ranking.features, ranking.importances, strict=True) if imp != 0.0]
    if k is not None:
        nonzero = nonzero[:k]
    return SelectionSet(selector=ranking.selector, features=tuple(nonzero))


def zero_variance_mask(X: np.ndarray) -> np.ndarray:
    """Boolean mask of constant columns."""
    if X.shape[0] == 0:
        return np.zeros(X.shape[1], dtype=bool)
    return np.ptp(X, axis=0) == 0


def check_training_inputs(
    X: np.ndarray, y: np.ndarray, feature_names: list[str], selector: str
) -> tuple[np.ndarray, np.ndarray]:
    """
    Validate a training matrix before fitting.

    Raises:
        SelectorFitError: Empty matrix, shape mismatch, non-finite values or a single class
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y).astype(int).ravel()
    diagnostics = {"n_observations": int(X.shape[0]) if X.ndim else 0}

    if X.ndim != 2 or X.shape[0] == 0 or X.shape[1] == 0:
        raise SelectorFitError(
            f"{selector}: empty training matrix (shape={X.shape})",
            diagnostics={**diagnostics, "shape": list(X.shape)},
        )
    if X.shape[0] != len(y):
        raise SelectorFitError(
            f"{selector}: {X.shape[0]} rows but {len(y)} labels", diagnostics=diagnostics
        )
    if X.shape[1] != len(feature_names):
        raise SelectorFitError(
            f"{selector}: {X.shape[1]} columns but {len(feature_names)} feature names",
            diagnostics=diagnostics,
        )
    if not np.isfinite(X).all():
        raise SelectorFitError(f"{selector}: non-finite values in training matrix", diagnostics=diagnostics)

    classes = np.unique(y)
    if len(classes) != 2:
        raise SelectorFitError(
            f"{selector}: need both classes in training labels, found {classes.tolist()}",
            diagnostics={**diagnostics, "classes": classes.tolist()},
        )
    return X, y


def make_cv_splits(
    y: np.ndarray,
    n_folds: int,
    random_state: int,
    groups: np.ndarray | None = None,
    selector: str = "",
) -> list[tuple[np.ndarray, np.ndarray]]:
    """
    Materialize stratified CV folds.

    Folds are clipped to the smallest class size (or the number of groups when
    grouping by sample) and returned as a list, so every consumer sees the same
    fold assignment regardless of how fold work is scheduled.
    """
    _, class_counts = np.unique(y, return_counts=True)
    max_folds = int(class_counts.min())
    if groups is not None:
        max_folds = min(max_folds, len(np.unique(groups)))

    folds = min(n_folds, max_folds)
    if folds < 2:
        raise SelectorFitError(
            f"{selector}: cannot build {n_folds}-fold CV (at most {max_folds} folds possible)",
            diagnostics={"requested_folds": n_folds, "max_folds": max_folds},
        )
    if folds < n_folds:
        logger.warning(f"{selector}: reducing CV folds from {n_folds} to {folds}")

    placeholder = np.zeros((len(y), 1))
    if groups is not None:
        cv = StratifiedGroupKFold(n_splits=folds, shuffle=True, random_state=random_state)
        return list(cv.split(placeholder, y, groups))

    cv = StratifiedKFold(n_splits=folds, shuffle=True, random_state=random_state)
    return list(cv.split(placeholder, y))
