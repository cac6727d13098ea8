"""
Configuration validation and safety checks.

Issues are collected and reported according to the strictness level:
"off" (ignore), "warn" (ConfigValidationWarning) or "error" (ConfigValidationError).
"""

import warnings

from amp_ml.config.schema import PipelineConfig


class ConfigValidationError(Exception):
    """Raised when configuration validation fails in strict mode."""

    pass


class ConfigValidationWarning(UserWarning):
    """Warning for potential configuration issues."""

    pass


def validate_pipeline_config(config: PipelineConfig) -> list[str]:
    """
    Validate internal consistency of a pipeline configuration.

    Args:
        config: PipelineConfig instance

    Returns:
        List of issues found (already reported per strictness level)
    """
    issues = []
    enabled = config.selection.enabled_selectors()

    if config.consensus.min_votes > len(enabled):
        issues.append(
            f"consensus.min_votes={config.consensus.min_votes} but only "
            f"{len(enabled)} selector(s) enabled ({', '.join(enabled)}). "
            "Consensus can only be reached through the reduced-confidence rule."
        )

    if len(enabled) < 3:
        issues.append(
            f"Only {len(enabled)} of 3 selectors enabled; "
            "consensus loses its cross-method redundancy."
        )

    if config.evaluation.threshold != 0.5:
        issues.append(
            f"evaluation.threshold={config.evaluation.threshold}; normalized scores are "
            "anchored so that 0.5 is the training cutpoint."
        )

    _handle_issues(issues, config.strictness.level, "Pipeline configuration")
    return issues


def validate_config_against_data(
    config: PipelineConfig,
    n_features: int,
    n_samples: int,
    min_class_count: int | None = None,
) -> list[str]:
    """
    Validate configuration against the shape of the loaded data.

    Args:
        config: PipelineConfig instance
        n_features: Number of candidate feature columns
        n_samples: Number of distinct samples
        min_class_count: Smallest per-class observation count in training data

    Returns:
        List of issues found (already reported per strictness level)
    """
    issues = []
    sel = config.selection

    if n_samples < 2:
        issues.append(f"Only {n_samples} sample(s); train/test split needs at least 2.")

    for name, cfg in (("ensemble_tree", sel.ensemble_tree), ("margin_classifier", sel.margin_classifier)):
        if cfg.enabled and cfg.top_k > n_features:
            issues.append(
                f"selection.{name}.top_k={cfg.top_k} > {n_features} features; "
                "every ranked feature will be selected."
            )

    if min_class_count is not None:
        for name, cfg in (
            ("sparse_linear", sel.sparse_linear),
            ("margin_classifier", sel.margin_classifier),
        ):
            if cfg.enabled and cfg.cv_folds > min_class_count:
                issues.append(
                    f"selection.{name}.cv_folds={cfg.cv_folds} > smallest class size "
                    f"({min_class_count}) in training data."
                )

    _handle_issues(issues, config.strictness.level, "Data-dependent configuration")
    return issues


def _handle_issues(issues: list[str], strictness: str, context: str):
    """Handle validation issues based on strictness level."""
    if not issues:
        return

    message = f"{context} issues:\n" + "\n".join(f"  - {issue}" for issue in issues)

    if strictness == "error":
        raise ConfigValidationError(message)
    elif strictness == "warn":
        warnings.warn(message, ConfigValidationWarning, stacklevel=3)
    # strictness == "off": do nothing
