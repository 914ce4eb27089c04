"""
FastAPI Application
==================

Main FastAPI application with REST endpoints for seed map generation.
Generation runs in the background; clients poll the status endpoint.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Any, Dict, Optional, Type

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import uvicorn

from seedmap.config.settings import get_settings, Settings
from seedmap.config.logging import get_logger
from seedmap.core.errors import (
    AdmissionRejected,
    DuplicateJobError,
    InvalidInput,
    JobNotFound,
    MapGeneratorError,
)
from seedmap.core.queue.job_tracker import JobTracker
from seedmap.core.queue.orchestrator import GenerationOrchestrator
from seedmap.core.storage.manager import FileStorageManager, PUBLIC_PREFIX
from seedmap.models.schemas import ErrorResponse
from seedmap.api.routes.generate import router as generate_router
from seedmap.api.routes.status import router as status_router
from seedmap.api.routes.health import router as health_router

logger = get_logger(__name__)

ERROR_STATUS_CODES: Dict[Type[MapGeneratorError], int] = {
    InvalidInput: 400,
    AdmissionRejected: 429,
    JobNotFound: 404,
    DuplicateJobError: 409,
}


def status_code_for(exc: MapGeneratorError) -> int:
    """HTTP status for a generation error."""
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    orchestrator: GenerationOrchestrator = app.state.orchestrator
    settings: Settings = app.state.settings

    logger.info(
        "Seed map generator starting",
        port=settings.port,
        max_concurrent_jobs=orchestrator.tracker.ceiling,
        environment=settings.environment,
    )
    await orchestrator.storage.initialize()

    try:
        yield
    finally:
        logger.info("Shutting down seed map generator")
        try:
            await orchestrator.shutdown()
        except Exception as e:
            logger.error("Error cancelling running jobs", error=str(e))


def build_orchestrator(settings: Settings) -> GenerationOrchestrator:
    """Wire the tracker, storage and orchestrator from settings."""
    tracker = JobTracker(settings.max_concurrent_jobs)
    storage = FileStorageManager(settings.storage_path, settings.public_base_url)
    return GenerationOrchestrator(tracker, storage, settings=settings)


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    job_id: Optional[str] = None,
    retryable: bool = False,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        message=message,
        job_id=job_id,
        retryable=retryable,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[GenerationOrchestrator] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use, defaults to the global settings
        orchestrator: Pre-built orchestrator, defaults to one wired from settings

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()
    orchestrator = orchestrator or build_orchestrator(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Render Minecraft seed maps to square PNG images",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.enable_docs else None,
        redoc_url="/redoc" if settings.enable_docs else None,
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next: Any) -> Any:
        """Add request ID to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(MapGeneratorError)
    async def generation_error_handler(request: Request, exc: MapGeneratorError) -> JSONResponse:
        status_code = status_code_for(exc)
        logger.warning(
            "Request rejected",
            path=request.url.path,
            status_code=status_code,
            error_code=exc.error_code,
            error_message=exc.message,
        )
        return error_response(
            request, status_code, exc.error_code, exc.message, exc.job_id, exc.retryable
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(request, 400, "INVALID_REQUEST", "Request body must be a JSON object")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", path=request.url.path, exception=str(exc), exc_info=True)
        return error_response(request, 500, "SERVER_ERROR", "Internal server error")

    app.include_router(generate_router)
    app.include_router(status_router)
    app.include_router(health_router)

    app.mount(
        f"/{PUBLIC_PREFIX}",
        StaticFiles(directory=str(orchestrator.storage.base_path), check_dir=False),
        name=PUBLIC_PREFIX,
    )

    @app.get("/", tags=["General"])
    async def root() -> Dict[str, Any]:
        """Basic API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "health_check": "/api/health",
            "endpoints": {
                "generate": "POST /api/generate",
                "job_status": "GET /api/status/{job_id}",
                "stats": "GET /api/stats",
                "cleanup": "POST /api/cleanup",
                "images": f"GET /{PUBLIC_PREFIX}/{{filename}}",
            },
        }

    return app


app = create_app()


def run_development_server() -> None:
    """Run development server with auto-reload."""
    settings = get_settings()
    uvicorn.run(
        "seedmap.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_development_server()
