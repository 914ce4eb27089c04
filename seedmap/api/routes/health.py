"""
Health Routes
=============

FastAPI route for the health check endpoint.
"""

from fastapi import APIRouter, Depends
import psutil  # type: ignore

from seedmap.api.routes.dependencies import get_app_settings, get_orchestrator
from seedmap.config.settings import Settings
from seedmap.core.queue.orchestrator import GenerationOrchestrator
from seedmap.models.schemas import HealthStatus

router = APIRouter(prefix="/api", tags=["Health"])


def get_memory_usage_mb() -> float:
    """Resident memory of this process in MB."""
    return round(psutil.Process().memory_info().rss / 1024 / 1024, 2)


@router.get("/health", response_model=HealthStatus)
async def health_check(
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_app_settings),
) -> HealthStatus:
    """Report service health and admission state."""
    counts = orchestrator.get_counts()
    return HealthStatus(
        # A full queue still serves status requests but rejects new jobs.
        status="healthy" if counts.in_flight < counts.ceiling else "degraded",
        version=settings.app_version,
        active_jobs=counts.in_flight,
        max_concurrent_jobs=counts.ceiling,
        memory_mb=get_memory_usage_mb(),
    )
