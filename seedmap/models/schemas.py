"""
Pydantic Models and Schemas
===========================

Core data models for generation jobs, crop geometry, render results and
API requests/responses.
"""

from typing import Optional, List, Dict, Any, Literal, Tuple
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# Enums
class Dimension(str, Enum):
    """World dimensions supported by the seed map site."""
    OVERWORLD = "overworld"
    NETHER = "nether"
    END = "end"


class JobStatus(str, Enum):
    """Job processing status."""
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


# Geometry
class CropSpec(BaseModel):
    """Pixel rectangle to extract from a capture and the final image size."""
    left: int = Field(..., ge=0, description="Left offset in pixels")
    top: int = Field(..., ge=0, description="Top offset in pixels")
    width: int = Field(..., gt=0, description="Crop width in pixels")
    height: int = Field(..., gt=0, description="Crop height in pixels")
    output_size: int = Field(..., gt=0, description="Side length of the output image")

    model_config = ConfigDict(frozen=True)

    def as_box(self) -> Tuple[int, int, int, int]:
        """Return the rectangle as a Pillow (left, upper, right, lower) box."""
        return (self.left, self.top, self.left + self.width, self.top + self.height)


# Render Models
class StageOutcome(BaseModel):
    """Result of a best-effort UI stage: either success or skipped with a reason."""
    stage: str = Field(..., description="Stage name")
    status: Literal["success", "skipped"] = Field(..., description="Stage result")
    reason: Optional[str] = Field(None, description="Why the stage was skipped")

    @classmethod
    def success(cls, stage: str) -> "StageOutcome":
        return cls(stage=stage, status="success")

    @classmethod
    def skipped(cls, stage: str, reason: str) -> "StageOutcome":
        return cls(stage=stage, status="skipped", reason=reason)

    @property
    def ok(self) -> bool:
        return self.status == "success"


class RenderCapture(BaseModel):
    """Raw full-page capture produced by a render session."""
    png_data: bytes = Field(..., description="Screenshot PNG bytes", exclude=True)
    url: str = Field(..., description="Page that was rendered")
    stages: List[StageOutcome] = Field(default_factory=list, description="Best-effort stages")
    duration: float = Field(0.0, ge=0, description="Session duration in seconds")

    @property
    def skipped_stages(self) -> List[str]:
        return [stage.stage for stage in self.stages if not stage.ok]


# Job Models
class Job(BaseModel):
    """A single map generation request and its lifecycle state."""
    job_id: str = Field(..., description="Job identifier")
    seed: str = Field(..., description="World seed")
    dimension: Dimension = Field(..., description="World dimension")
    world_size: int = Field(..., description="Requested world size in thousands of blocks")
    status: JobStatus = Field(JobStatus.PROCESSING, description="Current status")
    created_at: datetime = Field(default_factory=utc_now, description="Submission time")
    completed_at: Optional[datetime] = Field(None, description="Terminal transition time")

    # Set when ready
    artifact_location: Optional[str] = Field(None, description="Public image URL")
    filename: Optional[str] = Field(None, description="Stored image filename")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Result metadata")

    # Set when failed
    error_code: Optional[str] = Field(None, description="Stable failure code")
    failure_reason: Optional[str] = Field(None, description="Human readable failure cause")
    retryable: Optional[bool] = Field(None, description="Whether resubmitting may succeed")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class JobOutcome(BaseModel):
    """Terminal result applied to a job by the tracker."""
    status: Literal[JobStatus.READY, JobStatus.FAILED]
    artifact_location: Optional[str] = None
    filename: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    error_code: Optional[str] = None
    reason: Optional[str] = None
    retryable: Optional[bool] = None

    @classmethod
    def ready(
        cls, artifact_location: str, filename: str, metadata: Optional[Dict[str, Any]] = None
    ) -> "JobOutcome":
        return cls(
            status=JobStatus.READY,
            artifact_location=artifact_location,
            filename=filename,
            metadata=metadata or {},
        )

    @classmethod
    def failed(cls, error_code: str, reason: str, retryable: bool = True) -> "JobOutcome":
        return cls(status=JobStatus.FAILED, error_code=error_code, reason=reason, retryable=retryable)


class JobCounts(BaseModel):
    """Admission and status counters."""
    in_flight: int = Field(..., ge=0, description="Jobs currently processing")
    ceiling: int = Field(..., gt=0, description="Maximum concurrent jobs")
    total_ever_seen: int = Field(..., ge=0, description="Jobs created since start")
    processing_count: int = Field(0, ge=0)
    ready_count: int = Field(0, ge=0)
    failed_count: int = Field(0, ge=0)


# API Request/Response Models
class GenerateRequest(BaseModel):
    """Request body for map generation. Values are validated by the orchestrator."""
    seed: Any = Field(None, description="World seed (string or number)")
    dimension: Optional[Any] = Field("overworld", description="overworld, nether or end")
    size: Optional[Any] = Field(None, description="World size in thousands of blocks (2-16)")


class GenerateResponse(BaseModel):
    """Response for an accepted generation request."""
    success: bool = True
    job_id: str = Field(..., description="Job identifier")
    status: JobStatus = Field(JobStatus.PROCESSING, description="Initial status")
    estimated_time: str = Field("30-60 seconds", description="Expected generation time")


class JobStatusResponse(BaseModel):
    """Response model for job status queries."""
    success: bool = True
    job_id: str = Field(..., description="Job identifier")
    status: JobStatus = Field(..., description="Current status")
    image_url: Optional[str] = Field(None, description="Image URL when ready")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Result metadata when ready")
    progress: Optional[str] = Field(None, description="Progress message while processing")
    error: Optional[str] = Field(None, description="Failure code")
    message: Optional[str] = Field(None, description="Failure reason")
    retryable: Optional[bool] = Field(None, description="Retry hint when failed")


class HealthStatus(BaseModel):
    """Health check status."""
    success: bool = True
    status: Literal["healthy", "degraded"] = Field(..., description="Overall status")
    timestamp: datetime = Field(default_factory=utc_now, description="Check timestamp")
    version: str = Field(..., description="Application version")
    active_jobs: int = Field(0, ge=0, description="Jobs currently processing")
    max_concurrent_jobs: int = Field(..., gt=0, description="Admission ceiling")
    memory_mb: Optional[float] = Field(None, description="Resident memory in MB")


class StatsResponse(BaseModel):
    """Service statistics."""
    success: bool = True
    total_jobs: int
    completed_jobs: int
    failed_jobs: int
    processing_jobs: int
    active_jobs: int
    max_concurrent_jobs: int
    storage: Dict[str, Any] = Field(default_factory=dict)


class CleanupResponse(BaseModel):
    """Result of removing expired jobs."""
    success: bool = True
    message: str = "Cleanup completed"
    cleaned_count: int
    remaining_jobs: int


class ErrorResponse(BaseModel):
    """Standard error response model."""
    success: bool = False
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    job_id: Optional[str] = Field(None, description="Related job")
    retryable: bool = Field(False, description="Whether the caller may retry later")
    timestamp: datetime = Field(default_factory=utc_now, description="Error timestamp")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
