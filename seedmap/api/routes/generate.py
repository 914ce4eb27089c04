"""
Generate Routes
===============

FastAPI route for submitting map generation jobs.
"""

from fastapi import APIRouter, Depends

from seedmap.api.routes.dependencies import get_orchestrator
from seedmap.core.queue.orchestrator import GenerationOrchestrator
from seedmap.models.schemas import GenerateRequest, GenerateResponse

router = APIRouter(prefix="/api", tags=["Generation"])


@router.post("/generate", response_model=GenerateResponse)
async def generate_map(
    request: GenerateRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
) -> GenerateResponse:
    """
    Start generating a map. Returns immediately with a job id to poll.

    Invalid input is rejected with 400 and a full queue with 429.
    """
    job_id = await orchestrator.submit(request.seed, request.dimension, request.size)
    return GenerateResponse(job_id=job_id)
