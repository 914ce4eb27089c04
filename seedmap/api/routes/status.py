"""
Status Routes
=============

FastAPI routes for job status, service statistics and job cleanup.
"""

from fastapi import APIRouter, Depends

from seedmap.api.routes.dependencies import get_orchestrator
from seedmap.core.queue.orchestrator import GenerationOrchestrator
from seedmap.models.schemas import CleanupResponse, JobStatusResponse, StatsResponse

router = APIRouter(prefix="/api", tags=["Status"])


@router.get(
    "/status/{job_id}", response_model=JobStatusResponse, response_model_exclude_none=True
)
async def job_status(
    job_id: str, orchestrator: GenerationOrchestrator = Depends(get_orchestrator)
) -> JobStatusResponse:
    """Get the status of a generation job."""
    return await orchestrator.get_status_with_artifact(job_id)


@router.get("/stats", response_model=StatsResponse)
async def service_stats(
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> StatsResponse:
    """Get job counts and storage usage."""
    counts = orchestrator.get_counts()
    storage = await orchestrator.storage.get_storage_info()
    return StatsResponse(
        total_jobs=counts.processing_count + counts.ready_count + counts.failed_count,
        completed_jobs=counts.ready_count,
        failed_jobs=counts.failed_count,
        processing_jobs=counts.processing_count,
        active_jobs=counts.in_flight,
        max_concurrent_jobs=counts.ceiling,
        storage=storage,
    )


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_jobs(
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> CleanupResponse:
    """Remove finished jobs older than the configured maximum age."""
    cleaned = orchestrator.cleanup_expired_jobs()
    return CleanupResponse(cleaned_count=cleaned, remaining_jobs=len(orchestrator.tracker))
