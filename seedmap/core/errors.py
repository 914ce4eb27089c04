"""
Generation Errors
=================

Error taxonomy shared by the orchestrator, render sessions and the API layer.
Each error carries a stable code and a retry hint for callers.
"""

from typing import Optional


class MapGeneratorError(Exception):
    """Base error for map generation."""

    error_code = "GENERATION_FAILED"
    retryable = False

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        retryable: Optional[bool] = None,
        job_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        if retryable is not None:
            self.retryable = retryable
        self.job_id = job_id


class InvalidInput(MapGeneratorError):
    """Bad seed, dimension or size. No job is created."""

    error_code = "INVALID_INPUT"


class InvalidSize(InvalidInput):
    """World size outside the supported range."""

    error_code = "INVALID_SIZE"


class AdmissionRejected(MapGeneratorError):
    """Concurrency ceiling reached; the caller should back off and retry."""

    error_code = "TOO_MANY_JOBS"
    retryable = True


class RenderFailure(MapGeneratorError):
    """A mandatory browser stage (launch, navigate, capture) failed."""

    error_code = "RENDER_FAILED"
    retryable = True


class ProcessingFailure(MapGeneratorError):
    """Crop, encode or store failed after a successful render."""

    error_code = "PROCESSING_FAILED"
    retryable = True


class JobNotFound(MapGeneratorError):
    """Status query for an unknown job id."""

    error_code = "JOB_NOT_FOUND"


class DuplicateJobError(MapGeneratorError):
    """Generated job id is already tracked; resubmitting gets a fresh id."""

    error_code = "DUPLICATE_JOB"
    retryable = True
