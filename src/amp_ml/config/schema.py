"""
Configuration schema for the AMP-ML pipeline.

Defines Pydantic models for every tunable of the pipeline. Defaults match
config/defaults.py.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from amp_ml.config.defaults import VALID_SELECTORS
from amp_ml.utils.random import MAX_SEED

# ============================================================================
# Data and Split Configuration
# ============================================================================


class DataConfig(BaseModel):
    """Input table location and feature column selection."""

    infile: Path | None = None
    feature_prefix: str = "feature_"


class SplitConfig(BaseModel):
    """Configuration for sample-level train/test partitioning."""

    train_frac: float = Field(default=2.0 / 3.0, gt=0.0, lt=1.0)
    seed: int = Field(default=0, ge=0, le=MAX_SEED)
    stratify: bool = True


# ============================================================================
# Feature Selector Configuration
# ============================================================================


class SparseLinearConfig(BaseModel):
    """L1 logistic regression selector.

    C_min/C_max/C_points define the log-spaced C grid searched by k-fold CV.
    """

    enabled: bool = True
    cv_folds: int = Field(default=10, ge=2)
    C_min: float = Field(default=1e-3, gt=0.0)
    C_max: float = Field(default=1e2, gt=0.0)
    C_points: int = Field(default=20, ge=1)
    max_iter: int = Field(default=1000, ge=1)
    standardize: bool = True

    @model_validator(mode="after")
    def validate_c_range(self):
        if self.C_min > self.C_max:
            raise ValueError(f"C_min ({self.C_min}) > C_max ({self.C_max})")
        return self


class EnsembleTreeConfig(BaseModel):
    """Bagged decision-tree ensemble (random forest) selector."""

    enabled: bool = True
    n_estimators: int = Field(default=1000, ge=1)
    top_k: int = Field(default=100, ge=1)
    importance: Literal["impurity", "permutation"] = "impurity"
    perm_repeats: int = Field(default=5, ge=1)
    max_features: Literal["sqrt", "log2"] | float | None = "sqrt"
    min_samples_leaf: int = Field(default=1, ge=1)


class MarginClassifierConfig(BaseModel):
    """Linear-kernel maximum-margin classifier selector."""

    enabled: bool = True
    C: float = Field(default=1.0, gt=0.0)
    top_k: int = Field(default=100, ge=1)
    cv_folds: int = Field(default=10, ge=2)
    max_iter: int = -1
    standardize: bool = True


class SelectionConfig(BaseModel):
    """Configuration shared by the ensemble of feature selectors.

    n_jobs: number of selectors run concurrently.
    cv_n_jobs: parallel jobs inside each selector (CV folds, trees).
    """

    random_state: int = Field(default=0, ge=0, le=MAX_SEED)
    n_jobs: int = Field(default=3, ge=-1)
    cv_n_jobs: int = Field(default=1, ge=-1)
    group_folds_by_sample: bool = False
    sparse_linear: SparseLinearConfig = Field(default_factory=SparseLinearConfig)
    ensemble_tree: EnsembleTreeConfig = Field(default_factory=EnsembleTreeConfig)
    margin_classifier: MarginClassifierConfig = Field(default_factory=MarginClassifierConfig)

    def enabled_selectors(self) -> list[str]:
        """Names of enabled selectors in canonical order."""
        return [name for name in VALID_SELECTORS if getattr(self, name).enabled]


# ============================================================================
# Consensus, Weighting and Evaluation
# ============================================================================


class ConsensusConfig(BaseModel):
    """Consensus rule: a feature needs min_votes selector votes."""

    min_votes: int = Field(default=2, ge=1)
    allow_reduced: bool = True


class WeightConfig(BaseModel):
    """Logistic weight fit on the consensus features."""

    max_iter: int = Field(default=1000, ge=1)
    on_separation: Literal["warn", "error"] = "warn"


class EvaluationConfig(BaseModel):
    """Decision rule on normalized scores."""

    threshold: float = Field(default=0.5, ge=0.0, le=1.0)


# ============================================================================
# Output and Strictness
# ============================================================================


class OutputConfig(BaseModel):
    """Output artifacts."""

    outdir: Path = Field(default=Path("results"))
    run_id: str | None = None
    save_model: bool = True
    save_train_scores: bool = True


class StrictnessConfig(BaseModel):
    """How configuration issues are reported (off, warn, error)."""

    level: Literal["off", "warn", "error"] = "warn"


# ============================================================================
# Root Configuration
# ============================================================================


class PipelineConfig(BaseModel):
    """Complete AMP pipeline configuration."""

    data: DataConfig = Field(default_factory=DataConfig)
    split: SplitConfig = Field(default_factory=SplitConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    consensus: ConsensusConfig = Field(default_factory=ConsensusConfig)
    weights: WeightConfig = Field(default_factory=WeightConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    strictness: StrictnessConfig = Field(default_factory=StrictnessConfig)

    @model_validator(mode="after")
    def validate_selectors(self):
        """At least one selector must be enabled."""
        if not self.selection.enabled_selectors():
            raise ValueError("At least one feature selector must be enabled.")
        return self
