"""
End-to-end AMP pipeline.

Stages, in order:
    split -> selection (3 selectors, concurrent) -> consensus -> weights
    -> raw train scores -> calibration -> raw test scores -> normalization
    -> evaluation

Each stage consumes the immutable outputs of the previous ones. Selector
failures are isolated by the selector runner; every later failure is fatal and
surfaces as an AMPPipelineError subclass naming its stage.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import numpy as np
import pandas as pd

from amp_ml import __version__
from amp_ml.config.schema import PipelineConfig
from amp_ml.config.validation import validate_config_against_data, validate_pipeline_config
from amp_ml.data.io import validate_observation_table
from amp_ml.data.schema import LABEL_COL, SAMPLE_COL, get_feature_columns
from amp_ml.data.splits import (
    SampleSplit,
    apply_sample_split,
    check_split_disjoint,
    sample_majority_labels,
    split_samples,
)
from amp_ml.evaluation.evaluate import EvaluationResult, evaluate_normalized_scores
from amp_ml.evaluation.reports import build_scored_table
from amp_ml.exceptions import NoConsensusFeaturesError
from amp_ml.features.base import SelectorResult
from amp_ml.features.consensus import ConsensusResult, aggregate_consensus
from amp_ml.features.runner import build_selectors, run_selectors
from amp_ml.models.bundle import AMPModel
from amp_ml.models.calibration import CalibrationInfo, CutpointSearch, find_cutpoint, normalize_scores
from amp_ml.models.scoring import compute_raw_scores
from amp_ml.models.weights import WeightVector, fit_weight_vector
from amp_ml.utils.serialization import library_versions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Every stage output of one AMP run."""

    split: SampleSplit
    feature_names: tuple[str, ...]
    selector_results: dict[str, SelectorResult]
    consensus: ConsensusResult
    weights: WeightVector
    cutpoint: CutpointSearch
    model: AMPModel
    scored_train: pd.DataFrame
    scored_test: pd.DataFrame
    evaluation: EvaluationResult
    train_evaluation: EvaluationResult
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def calibration(self) -> CalibrationInfo:
        return self.cutpoint.info

    @property
    def reduced_confidence(self) -> bool:
        return self.consensus.reduced_confidence

    def metrics_dict(self) -> dict[str, Any]:
        """Summary metrics for metrics.json."""
        return {
            "test": self.evaluation.to_dict(),
            "train": self.train_evaluation.to_dict(),
            "calibration": self.cutpoint.summary(),
            "n_consensus_features": len(self.consensus),
            "reduced_confidence": self.reduced_confidence,
            "separated": self.weights.separated,
        }


def _selector_summary(results: dict[str, SelectorResult]) -> dict[str, Any]:
    return {
        name: {
            "status": "ok" if r.succeeded else "failed",
            "n_selected": len(r.selection),
            "error": r.error,
        }
        for name, r in results.items()
    }


def run_amp_pipeline(df: pd.DataFrame, config: PipelineConfig | None = None) -> PipelineResult:
    """
    Run the full AMP pipeline on an observation table.

    Args:
        df: Observation table (sample_id, x, y, label, feature columns)
        config: PipelineConfig (defaults when None)

    Returns:
        PipelineResult

    Raises:
        ValueError: Invalid table
        InsufficientSamplesError: Fewer than 2 samples
        NoConsensusFeaturesError: Empty consensus (diagnostics include selector outcomes)
        SeparationError: Separation under on_separation="error"
        CalibrationError: Training scores unusable for cutpoint search
    """
    config = config or PipelineConfig()
    t0 = time.perf_counter()

    validate_pipeline_config(config)
    df = validate_observation_table(df, feature_prefix=config.data.feature_prefix)
    feature_names = get_feature_columns(df, config.data.feature_prefix)

    n_samples = df[SAMPLE_COL].nunique()
    logger.info(
        f"Input: {len(df):,} observations, {n_samples} samples, {len(feature_names)} features"
    )

    # Split
    labels_by_sample = sample_majority_labels(df) if config.split.stratify else None
    split = split_samples(
        df[SAMPLE_COL].unique(),
        train_frac=config.split.train_frac,
        seed=config.split.seed,
        sample_labels=labels_by_sample,
    )
    check_split_disjoint(split)
    train_df, test_df = apply_sample_split(df, split)
    logger.info(
        f"Split: {len(split.train_samples)} train samples ({len(train_df):,} obs), "
        f"{len(split.test_samples)} test samples ({len(test_df):,} obs)"
    )

    X_train = train_df[feature_names].to_numpy(dtype=float)
    y_train = train_df[LABEL_COL].to_numpy(dtype=int)
    y_test = test_df[LABEL_COL].to_numpy(dtype=int)

    class_counts = np.bincount(y_train, minlength=2)
    validate_config_against_data(
        config,
        n_features=len(feature_names),
        n_samples=n_samples,
        min_class_count=int(class_counts.min()),
    )

    # Feature selection
    groups = train_df[SAMPLE_COL].to_numpy() if config.selection.group_folds_by_sample else None
    selectors = build_selectors(config.selection)
    selector_results = run_selectors(
        selectors,
        X_train,
        y_train,
        feature_names,
        n_jobs=config.selection.n_jobs,
        groups=groups,
    )

    # Consensus
    try:
        consensus = aggregate_consensus(
            selector_results,
            min_votes=config.consensus.min_votes,
            allow_reduced=config.consensus.allow_reduced,
            feature_order=feature_names,
        )
    except NoConsensusFeaturesError as e:
        e.diagnostics["selectors"] = _selector_summary(selector_results)
        logger.error(f"Consensus failed: {e}")
        raise

    # Weights
    consensus_features = list(consensus.features)
    weights = fit_weight_vector(
        train_df[consensus_features].to_numpy(dtype=float),
        y_train,
        consensus_features,
        max_iter=config.weights.max_iter,
        on_separation=config.weights.on_separation,
    )

    # Calibration on training scores only
    raw_train = compute_raw_scores(train_df, weights)
    cutpoint = find_cutpoint(raw_train, y_train)
    calibration = cutpoint.info

    raw_test = compute_raw_scores(test_df, weights)
    norm_train = normalize_scores(raw_train, calibration)
    norm_test = normalize_scores(raw_test, calibration)

    n_out = int(((norm_test < 0) | (norm_test > 1)).sum())
    if n_out:
        logger.info(f"{n_out:,} test observations score outside the training range")

    threshold = config.evaluation.threshold
    evaluation = evaluate_normalized_scores(norm_test, y_test, threshold)
    train_evaluation = evaluate_normalized_scores(norm_train, y_train, threshold)

    elapsed = time.perf_counter() - t0
    metadata = {
        "amp_ml_version": __version__,
        "created_at": datetime.now().isoformat(),
        "elapsed_sec": round(elapsed, 3),
        "n_observations": {"train": len(train_df), "test": len(test_df)},
        "n_features": len(feature_names),
        "split": split.to_dict(),
        "selectors": _selector_summary(selector_results),
        "consensus": consensus.to_dict(),
        "weights": {
            "intercept": weights.intercept,
            "separated": weights.separated,
            "separating_features": list(weights.separating_features),
            "converged": weights.converged,
            "n_iter": weights.n_iter,
        },
        "calibration": cutpoint.summary(),
        "library_versions": library_versions(),
    }

    model = AMPModel(
        weights=weights,
        calibration=calibration,
        metadata={
            "feature_prefix": config.data.feature_prefix,
            "threshold": threshold,
            "split_seed": config.split.seed,
            "reduced_confidence": consensus.reduced_confidence,
            "created_at": metadata["created_at"],
        },
    )

    logger.info(f"Pipeline completed in {elapsed:.1f}s")

    return PipelineResult(
        split=split,
        feature_names=tuple(feature_names),
        selector_results=selector_results,
        consensus=consensus,
        weights=weights,
        cutpoint=cutpoint,
        model=model,
        scored_train=build_scored_table(train_df, raw_train, norm_train, threshold),
        scored_test=build_scored_table(test_df, raw_test, norm_test, threshold),
        evaluation=evaluation,
        train_evaluation=train_evaluation,
        metadata=metadata,
    )
