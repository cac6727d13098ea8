"""
CLI implementation for the run command.

Loads and validates configuration, reads the observation table, runs the AMP
pipeline and writes all artifacts under <outdir>/run_<run_id>/.
"""

import logging
from pathlib import Path
from typing import Any

from amp_ml.config.loader import load_pipeline_config
from amp_ml.data.io import read_observation_file
from amp_ml.evaluation.reports import save_pipeline_outputs
from amp_ml.exceptions import AMPPipelineError
from amp_ml.pipeline import run_amp_pipeline
from amp_ml.utils.logging import auto_log_path, log_diagnostics, log_section, setup_logger
from amp_ml.utils.paths import get_run_dir, make_run_id
from amp_ml.utils.serialization import save_json

# CLI option name -> config key
CLI_TO_CONFIG_KEY = {
    "infile": "data.infile",
    "outdir": "output.outdir",
    "run_id": "output.run_id",
    "seed": "split.seed",
    "train_frac": "split.train_frac",
    "n_jobs": "selection.n_jobs",
}


def build_overrides(cli_args: dict[str, Any] | None, overrides: list[str] | None) -> list[str]:
    """Turn explicit CLI options into dot-notation overrides (explicit --override wins)."""
    all_overrides = []
    for key, value in (cli_args or {}).items():
        if value is None:
            continue
        if key not in CLI_TO_CONFIG_KEY:
            raise ValueError(f"Unknown CLI argument: {key}")
        all_overrides.append(f"{CLI_TO_CONFIG_KEY[key]}={value}")
    all_overrides.extend(overrides or [])
    return all_overrides


def run_pipeline_command(
    config_file: str | None = None,
    cli_args: dict[str, Any] | None = None,
    overrides: list[str] | None = None,
    verbose: int = 0,
) -> dict[str, str]:
    """
    Run the AMP pipeline from CLI inputs.

    Args:
        config_file: Path to YAML config file (optional)
        cli_args: Dictionary of CLI arguments (optional)
        overrides: List of config overrides (optional)
        verbose: Verbosity level (0=INFO, 1=DEBUG)

    Returns:
        Dict artifact name -> path

    Raises:
        ValueError: Invalid configuration or input table
        AMPPipelineError: A pipeline stage failed (logged with diagnostics)
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    config = load_pipeline_config(
        config_file=config_file, overrides=build_overrides(cli_args, overrides)
    )
    if config.data.infile is None:
        raise ValueError("No input table: pass --infile or set data.infile in the config")

    run_id = config.output.run_id or make_run_id()
    run_dir = get_run_dir(config.output.outdir, run_id)
    log_file = auto_log_path("run", config.output.outdir, run_id)
    logger = setup_logger("amp_ml", level=log_level, log_file=log_file)

    log_section(logger, "AMP-ML Pipeline")
    logger.info(f"Run ID: {run_id}")
    logger.info(f"Run directory: {run_dir}")
    logger.info(f"Log file: {log_file}")
    if config_file:
        logger.info(f"Config: {config_file}")

    df = read_observation_file(config.data.infile, feature_prefix=config.data.feature_prefix)

    try:
        result = run_amp_pipeline(df, config)
    except AMPPipelineError as e:
        logger.error(f"Pipeline failed at stage '{e.stage}': {e}")
        log_diagnostics(logger, e.diagnostics)
        save_json(e.to_dict(), Path(run_dir) / "error.json")
        raise

    log_section(logger, "Writing outputs")
    paths = save_pipeline_outputs(
        result,
        run_dir,
        config=config,
        save_model=config.output.save_model,
        save_train_scores=config.output.save_train_scores,
    )

    log_section(logger, "Summary")
    ev = result.evaluation
    logger.info(f"Consensus features: {len(result.consensus)}")
    logger.info(
        f"Cutpoint: {result.calibration.cutpoint:.4g} "
        f"(J={result.cutpoint.youden_j:.3f} on training scores)"
    )
    logger.info(
        f"Test accuracy={ev.accuracy:.3f}, sensitivity={ev.sensitivity:.3f}, "
        f"specificity={ev.specificity:.3f} (n={ev.n:,})"
    )
    if result.reduced_confidence:
        logger.warning("Reduced-confidence run: fewer than two selectors produced usable output")
    logger.info(f"Results saved to: {run_dir}")

    return paths
