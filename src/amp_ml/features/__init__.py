"""Feature selection: three independent selectors and their consensus."""

from amp_ml.features.base import (
    FeatureRanking,
    FeatureSelector,
    SelectionSet,
    SelectorResult,
    rank_features,
    top_k_selection,
    zero_variance_mask,
)
from amp_ml.features.consensus import (
    ConsensusResult,
    aggregate_consensus,
    consensus_membership_table,
)
from amp_ml.features.ensemble_tree import EnsembleTreeSelector
from amp_ml.features.margin import MarginClassifierSelector
from amp_ml.features.runner import build_selectors, run_selectors, selector_diagnostics_table
from amp_ml.features.sparse_linear import SparseLinearSelector

__all__ = [
    "FeatureRanking",
    "FeatureSelector",
    "SelectionSet",
    "SelectorResult",
    "rank_features",
    "top_k_selection",
    "zero_variance_mask",
    "ConsensusResult",
    "aggregate_consensus",
    "consensus_membership_table",
    "SparseLinearSelector",
    "EnsembleTreeSelector",
    "MarginClassifierSelector",
    "build_selectors",
    "run_selectors",
    "selector_diagnostics_table",
]
