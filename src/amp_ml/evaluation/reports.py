"""
Structured output directory and results serialization for AMP runs.

Provides:
- build_scored_table / build_weights_table: tables for external consumers
- OutputDirectories: directory structure creation and path management
- ResultsWriter: saving scored tables, diagnostics, metrics and the model
- save_pipeline_outputs: write every artifact of a PipelineResult

Layout under the run directory:
    core/         metrics.json, run_metadata.json, config.yaml
    preds/        scored_test.csv, scored_train.csv, sample_summary.csv
    reports/      consensus_features.txt, consensus_membership.csv, weights.csv
    diagnostics/  selector_diagnostics.csv, youden_curve.csv, selector_results.joblib
    model/        amp_model.json
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from amp_ml.config.loader import save_config
from amp_ml.data.schema import (
    KEY_COLS,
    NORMALIZED_SCORE_COL,
    PREDICTED_COL,
    RAW_SCORE_COL,
)
from amp_ml.evaluation.evaluate import DEFAULT_THRESHOLD, predict_labels, summarize_scores_by_sample
from amp_ml.features.consensus import ConsensusResult, consensus_membership_table
from amp_ml.features.runner import selector_diagnostics_table
from amp_ml.models.bundle import AMPModel, save_amp_model
from amp_ml.models.weights import WeightVector
from amp_ml.utils.serialization import library_versions, load_joblib, save_joblib, save_json

if TYPE_CHECKING:
    from amp_ml.config.schema import PipelineConfig
    from amp_ml.pipeline import PipelineResult

logger = logging.getLogger(__name__)


def build_scored_table(
    df: pd.DataFrame,
    raw: np.ndarray,
    normalized: np.ndarray,
    threshold: float = DEFAULT_THRESHOLD,
) -> pd.DataFrame:
    """
    Scored observation table for heatmap and boxplot consumers.

    Returns:
        DataFrame with columns [sample_id, x, y, label, raw_score,
        normalized_score, predicted], in the row order of df
    """
    raw = np.asarray(raw, dtype=float).ravel()
    normalized = np.asarray(normalized, dtype=float).ravel()
    if not (len(df) == len(raw) == len(normalized)):
        raise ValueError(
            f"Row count mismatch: table={len(df)}, raw={len(raw)}, normalized={len(normalized)}"
        )
    missing = [c for c in KEY_COLS if c not in df.columns]
    if missing:
        raise ValueError(f"Table is missing key columns: {missing}")

    out = df[KEY_COLS].reset_index(drop=True)
    out[RAW_SCORE_COL] = raw
    out[NORMALIZED_SCORE_COL] = normalized
    out[PREDICTED_COL] = predict_labels(normalized, threshold)
    return out


def build_weights_table(weights: WeightVector, consensus: ConsensusResult | None = None) -> pd.DataFrame:
    """Weights table in consensus order, with vote counts when available."""
    df = weights.to_frame()
    if consensus is not None:
        votes = dict(zip(consensus.features, consensus.votes, strict=True))
        df["votes"] = [votes.get(f, 0) for f in df["feature"]]
    return df


@dataclass
class OutputDirectories:
    """
    Structured output directory paths.

    Attributes:
        root: Base output directory (the run directory)
        core: Metrics, run metadata, resolved config
        preds: Scored observation tables and per-sample summaries
        reports: Consensus features, membership and weights
        diagnostics: Selector diagnostics and the Youden curve
        model: Persisted AMP model
    """

    root: str
    core: str
    preds: str
    reports: str
    diagnostics: str
    model: str

    @classmethod
    def create(cls, root: str | Path, exist_ok: bool = True) -> "OutputDirectories":
        """
        Create output directory structure.

        Args:
            root: Base output directory path
            exist_ok: If True, do not raise if directories exist

        Returns:
            OutputDirectories instance with all paths created
        """
        root_path = Path(root)
        structure = {
            "core": "core",
            "preds": "preds",
            "reports": "reports",
            "diagnostics": "diagnostics",
            "model": "model",
        }

        paths = {"root": str(root_path)}
        for key, rel_path in structure.items():
            abs_path = root_path / rel_path
            abs_path.mkdir(parents=True, exist_ok=exist_ok)
            paths[key] = str(abs_path)

        logger.debug(f"Created output structure at: {root}")
        return cls(**paths)

    def get_path(self, category: str, filename: str) -> str:
        """
        Construct full path for a file in a specific category.

        Raises:
            ValueError: If category is invalid
        """
        if category not in ("root", "core", "preds", "reports", "diagnostics", "model"):
            raise ValueError(f"Unknown output category: {category}")
        return os.path.join(getattr(self, category), filename)


class ResultsWriter:
    """
    High-level API for writing AMP run results.

    Usage:
        writer = ResultsWriter(OutputDirectories.create(run_dir))
        writer.save_scored_table(scored_test, split="test")
        writer.save_metrics({"test": evaluation.to_dict()})
    """

    def __init__(self, output_dirs: OutputDirectories):
        self.dirs = output_dirs

    def save_metrics(self, metrics: dict[str, Any]) -> str:
        path = self.dirs.get_path("core", "metrics.json")
        save_json(metrics, path)
        logger.info(f"Saved metrics: {path}")
        return path

    def save_run_metadata(self, metadata: dict[str, Any]) -> str:
        path = self.dirs.get_path("core", "run_metadata.json")
        save_json(metadata, path)
        logger.info(f"Saved run metadata: {path}")
        return path

    def save_config(self, config: "PipelineConfig") -> str:
        path = self.dirs.get_path("core", "config.yaml")
        save_config(config, path)
        return path

    def save_scored_table(self, scored: pd.DataFrame, split: str) -> str:
        path = self.dirs.get_path("preds", f"scored_{split}.csv")
        scored.to_csv(path, index=False)
        logger.info(f"Saved {split} scores ({len(scored):,} rows): {path}")
        return path

    def save_sample_summary(self, summary: pd.DataFrame) -> str:
        path = self.dirs.get_path("preds", "sample_summary.csv")
        summary.to_csv(path, index=False)
        return path

    def save_consensus_features(self, consensus: ConsensusResult) -> str:
        path = self.dirs.get_path("reports", "consensus_features.txt")
        with open(path, "w") as f:
            f.write("\n".join(consensus.features) + "\n")
        logger.info(f"Saved consensus features ({len(consensus)}): {path}")
        return path

    def save_consensus_membership(self, membership: pd.DataFrame) -> str:
        path = self.dirs.get_path("reports", "consensus_membership.csv")
        membership.to_csv(path, index=False)
        return path

    def save_weights(self, weights_df: pd.DataFrame) -> str:
        path = self.dirs.get_path("reports", "weights.csv")
        weights_df.to_csv(path, index=False)
        return path

    def save_selector_diagnostics(self, diagnostics_df: pd.DataFrame) -> str:
        path = self.dirs.get_path("diagnostics", "selector_diagnostics.csv")
        diagnostics_df.to_csv(path, index=False)
        logger.info(f"Saved selector diagnostics: {path}")
        return path

    def save_youden_curve(self, curve: pd.DataFrame) -> str:
        path = self.dirs.get_path("diagnostics", "youden_curve.csv")
        curve.to_csv(path, index=False)
        return path

    def save_selector_results(self, selector_results: dict) -> str:
        """Pickle full selector rankings for later inspection."""
        path = self.dirs.get_path("diagnostics", "selector_results.joblib")
        save_joblib({"results": selector_results, "versions": library_versions()}, path)
        return path

    def save_model(self, model: AMPModel) -> str:
        path = self.dirs.get_path("model", "amp_model.json")
        save_amp_model(model, path)
        return path

    def summarize_outputs(self) -> list[str]:
        """List every file written under the run directory."""
        root = Path(self.dirs.root)
        return sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())


def save_pipeline_outputs(
    result: "PipelineResult",
    outdir: str | Path,
    config: "PipelineConfig | None" = None,
    save_model: bool = True,
    save_train_scores: bool = True,
) -> dict[str, str]:
    """
    Write every artifact of a pipeline run.

    Args:
        result: PipelineResult from run_amp_pipeline
        outdir: Run directory
        config: Resolved configuration to store next to the results
        save_model: Write model/amp_model.json
        save_train_scores: Write preds/scored_train.csv

    Returns:
        Dict artifact name -> path
    """
    writer = ResultsWriter(OutputDirectories.create(outdir))
    paths: dict[str, str] = {}

    paths["scored_test"] = writer.save_scored_table(result.scored_test, split="test")
    if save_train_scores:
        paths["scored_train"] = writer.save_scored_table(result.scored_train, split="train")
    paths["sample_summary"] = writer.save_sample_summary(
        summarize_scores_by_sample(result.scored_test)
    )

    paths["consensus_features"] = writer.save_consensus_features(result.consensus)
    paths["consensus_membership"] = writer.save_consensus_membership(
        consensus_membership_table(result.selector_results, result.consensus)
    )
    paths["weights"] = writer.save_weights(build_weights_table(result.weights, result.consensus))

    paths["selector_diagnostics"] = writer.save_selector_diagnostics(
        selector_diagnostics_table(result.selector_results)
    )
    paths["youden_curve"] = writer.save_youden_curve(result.cutpoint.curve)
    paths["selector_results"] = writer.save_selector_results(result.selector_results)

    paths["metrics"] = writer.save_metrics(result.metrics_dict())
    paths["run_metadata"] = writer.save_run_metadata(result.metadata)
    if config is not None:
        paths["config"] = writer.save_config(config)
    if save_model:
        paths["amp_model"] = writer.save_model(result.model)

    logger.info(f"Wrote {len(paths)} artifacts to {outdir}")
    return paths


def load_selector_results(path: str | Path) -> dict:
    """Load selector results written by ResultsWriter.save_selector_results."""
    bundle = load_joblib(path)
    return bundle["results"]
