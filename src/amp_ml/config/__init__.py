"""Configuration management for AMP-ML."""

from amp_ml.config.defaults import (
    DEFAULT_CONSENSUS_CONFIG,
    DEFAULT_SELECTION_CONFIG,
    DEFAULT_SPLIT_CONFIG,
    VALID_SELECTORS,
)
from amp_ml.config.loader import (
    apply_overrides,
    load_pipeline_config,
    load_yaml,
    save_config,
)
from amp_ml.config.schema import (
    ConsensusConfig,
    DataConfig,
    EnsembleTreeConfig,
    EvaluationConfig,
    MarginClassifierConfig,
    OutputConfig,
    PipelineConfig,
    SelectionConfig,
    SparseLinearConfig,
    SplitConfig,
    WeightConfig,
)
from amp_ml.config.validation import (
    ConfigValidationError,
    ConfigValidationWarning,
    validate_config_against_data,
    validate_pipeline_config,
)

__all__ = [
    "VALID_SELECTORS",
    "DEFAULT_SPLIT_CONFIG",
    "DEFAULT_SELECTION_CONFIG",
    "DEFAULT_CONSENSUS_CONFIG",
    "load_pipeline_config",
    "load_yaml",
    "apply_overrides",
    "save_config",
    "PipelineConfig",
    "DataConfig",
    "SplitConfig",
    "SelectionConfig",
    "SparseLinearConfig",
    "EnsembleTreeConfig",
    "MarginClassifierConfig",
    "ConsensusConfig",
    "WeightConfig",
    "EvaluationConfig",
    "OutputConfig",
    "ConfigValidationError",
    "ConfigValidationWarning",
    "validate_pipeline_config",
    "validate_config_against_data",
]
