"""
Error taxonomy for the AMP pipeline.

Every stage failure carries the name of the failing stage and a diagnostics
dict (selector output sizes, Youden curve summary, separating features, ...)
so callers can report *why* a run stopped, not only *where*.
"""

from typing import Any


class AMPPipelineError(Exception):
    """Base class for structured pipeline failures."""

    stage = "pipeline"

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        diagnostics: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        if stage is not None:
            self.stage = stage
        self.diagnostics = dict(diagnostics or {})

    def to_dict(self) -> dict[str, Any]:
        """Serializable summary used by the CLI error report."""
        return {
            "error": type(self).__name__,
            "stage": self.stage,
            "message": str(self),
            "diagnostics": self.diagnostics,
        }


class InsufficientSamplesError(AMPPipelineError):
    """Fewer than two distinct samples; train and test cannot both be formed."""

    stage = "split"


class SelectorFitError(AMPPipelineError):
    """A feature selector's underlying numerical fit failed."""

    stage = "selection"


class NoConsensusFeaturesError(AMPPipelineError):
    """No feature reached the consensus vote threshold."""

    stage = "consensus"


class SeparationError(AMPPipelineError):
    """Logistic weight fit hit perfectly separable classes."""

    stage = "weights"


class CalibrationError(AMPPipelineError):
    """Cutpoint search is undefined for the training score distribution."""

    stage = "calibration"


class DegenerateCalibrationWarning(UserWarning):
    """Cutpoint coincides with min_raw or max_raw; normalization clamps that branch."""

    pass
