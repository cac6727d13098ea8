"""
CLI implementation for the score command.

Applies a saved AMP model (consensus weights + training calibration) to a new
observation table. Labels are optional; when present, the scores are also
evaluated at the model's threshold.
"""

import logging
from pathlib import Path

from amp_ml.data.io import read_observation_file
from amp_ml.data.schema import (
    LABEL_COL,
    NORMALIZED_SCORE_COL,
    PREDICTED_COL,
    RAW_SCORE_COL,
    SAMPLE_COL,
    VALID_LABELS,
    X_COL,
    Y_COL,
)
from amp_ml.evaluation.evaluate import (
    DEFAULT_THRESHOLD,
    evaluate_normalized_scores,
    predict_labels,
)
from amp_ml.evaluation.reports import build_scored_table
from amp_ml.models.bundle import load_amp_model
from amp_ml.utils.logging import auto_log_path, log_section, setup_logger
from amp_ml.utils.paths import ensure_dir, make_run_id
from amp_ml.utils.serialization import save_json


def run_score_command(
    model_path: str | Path,
    infile: str | Path,
    outdir: str | Path = "scores",
    verbose: int = 0,
) -> dict[str, str]:
    """
    Score an observation table with a saved model.

    Args:
        model_path: Path to amp_model.json
        infile: Observation table (CSV or Parquet)
        outdir: Output directory for scored.csv (and metrics.json with labels)
        verbose: Verbosity level (0=INFO, 1=DEBUG)

    Returns:
        Dict artifact name -> path
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    outdir = ensure_dir(outdir)
    logger = setup_logger(
        "amp_ml", level=log_level, log_file=auto_log_path("score", outdir, make_run_id())
    )

    log_section(logger, "AMP-ML Scoring")
    model = load_amp_model(model_path)
    threshold = float(model.metadata.get("threshold", DEFAULT_THRESHOLD))

    df = read_observation_file(infile, validate=False)
    missing = [f for f in model.consensus_features if f not in df.columns]
    if missing:
        raise ValueError(f"Input table is missing consensus features: {missing[:10]}")

    raw, normalized = model.score(df)
    paths = {}

    has_labels = LABEL_COL in df.columns and df[LABEL_COL].isin(VALID_LABELS).all()
    if has_labels:
        scored = build_scored_table(df, raw, normalized, threshold)
        result = evaluate_normalized_scores(normalized, df[LABEL_COL].to_numpy(), threshold)
        paths["metrics"] = str(outdir / "metrics.json")
        save_json(result.to_dict(), paths["metrics"])
    else:
        id_cols = [c for c in (SAMPLE_COL, X_COL, Y_COL) if c in df.columns]
        scored = df[id_cols].reset_index(drop=True)
        scored[RAW_SCORE_COL] = raw
        scored[NORMALIZED_SCORE_COL] = normalized
        scored[PREDICTED_COL] = predict_labels(normalized, threshold)

    paths["scored"] = str(outdir / "scored.csv")
    scored.to_csv(paths["scored"], index=False)
    logger.info(f"Scored {len(scored):,} observations: {paths['scored']}")
    return paths
