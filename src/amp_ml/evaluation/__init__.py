"""Evaluation of normalized scores and result reporting."""

from amp_ml.evaluation.evaluate import (
    DEFAULT_THRESHOLD,
    EvaluationResult,
    evaluate_normalized_scores,
    predict_labels,
    summarize_scores_by_sample,
)
from amp_ml.evaluation.reports import (
    OutputDirectories,
    ResultsWriter,
    build_scored_table,
    build_weights_table,
    load_selector_results,
    save_pipeline_outputs,
)

__all__ = [
    "DEFAULT_THRESHOLD",
    "EvaluationResult",
    "evaluate_normalized_scores",
    "predict_labels",
    "summarize_scores_by_sample",
    "OutputDirectories",
    "ResultsWriter",
    "build_scored_table",
    "build_weights_table",
    "load_selector_results",
    "save_pipeline_outputs",
]
