"""
Generation Orchestrator
=======================

Public entry point for map generation. Validates requests, admits them
through the job tracker, runs render sessions as asyncio tasks and records
the terminal state of every job.
"""

from typing import Optional, Dict, Any, Callable, Set, Tuple, Protocol
from datetime import timedelta
import asyncio
import math
import re
import secrets
import time

from seedmap.config.logging import get_logger
from seedmap.config.settings import get_settings, Settings
from seedmap.core.errors import (
    AdmissionRejected,
    DuplicateJobError,
    InvalidInput,
    InvalidSize,
    JobNotFound,
    ProcessingFailure,
    RenderFailure,
)
from seedmap.core.geometry import MAX_WORLD_SIZE, MIN_WORLD_SIZE, compute_crop
from seedmap.core.queue.job_tracker import JobTracker
from seedmap.core.rendering.browser_session import MapRenderSession
from seedmap.core.rendering.image_processor import MapImageProcessor
from seedmap.core.storage.manager import FileStorageManager, format_file_size
from seedmap.models.schemas import (
    Dimension,
    JobCounts,
    JobOutcome,
    JobStatus,
    JobStatusResponse,
    RenderCapture,
    utc_now,
)

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_DIGITS = re.compile(r"^\s*\d+\s*$")


class RenderSessionLike(Protocol):
    async def run(self) -> RenderCapture: ...


SessionFactory = Callable[[str, Dimension, str], RenderSessionLike]


def normalize_seed(seed: Any) -> str:
    """Validate a seed and return its canonical text form."""
    if isinstance(seed, bool):
        raise InvalidInput("Seed must be a string or number", error_code="INVALID_SEED")
    if isinstance(seed, str):
        if not seed.strip():
            raise InvalidInput("Seed is required and must not be empty", error_code="INVALID_SEED")
        return seed.strip()
    if isinstance(seed, int):
        return str(seed)
    if isinstance(seed, float):
        if not math.isfinite(seed):
            raise InvalidInput("Seed must be a finite number", error_code="INVALID_SEED")
        return str(int(seed)) if seed.is_integer() else repr(seed)
    raise InvalidInput(
        "Seed is required and must be a valid string or number", error_code="INVALID_SEED"
    )


def normalize_dimension(dimension: Any) -> Dimension:
    """Validate a dimension name; missing means overworld."""
    if dimension is None:
        return Dimension.OVERWORLD
    if isinstance(dimension, str):
        try:
            return Dimension(dimension.strip().lower())
        except ValueError:
            pass
    raise InvalidInput(
        "Dimension must be one of: overworld, nether, end", error_code="INVALID_DIMENSION"
    )


def normalize_world_size(world_size: Any) -> int:
    """Validate a world size given as an int, integral float or digit string."""
    value: Optional[int] = None
    if isinstance(world_size, bool):
        value = None
    elif isinstance(world_size, int):
        value = world_size
    elif isinstance(world_size, float) and world_size.is_integer():
        value = int(world_size)
    elif isinstance(world_size, str) and _DIGITS.match(world_size):
        value = int(world_size)

    if value is None or not MIN_WORLD_SIZE <= value <= MAX_WORLD_SIZE:
        raise InvalidSize(
            f"Size must be an integer between {MIN_WORLD_SIZE} and {MAX_WORLD_SIZE}"
        )
    return value


def safe_name(value: str) -> str:
    """Make a value usable inside filenames and URL paths."""
    return _UNSAFE_CHARS.sub("_", value)


def generate_job_id(seed: str, dimension: Dimension) -> str:
    """Unique job id derived from seed, dimension and submission time."""
    timestamp = int(time.time() * 1000)
    return f"seed-{safe_name(seed)}-{dimension.value}-{timestamp}-{secrets.token_hex(3)}"


class GenerationOrchestrator:
    """Submits generation jobs and drives them to a terminal state."""

    def __init__(
        self,
        tracker: JobTracker,
        storage: FileStorageManager,
        image_processor: Optional[MapImageProcessor] = None,
        session_factory: Optional[SessionFactory] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.tracker = tracker
        self.storage = storage
        self.image_processor = image_processor or MapImageProcessor()
        self.session_factory: SessionFactory = session_factory or self._default_session
        self.logger: Any = logger.bind(component="orchestrator")
        self._tasks: Set[asyncio.Task] = set()

    def _default_session(self, seed: str, dimension: Dimension, job_id: str) -> MapRenderSession:
        return MapRenderSession(seed, dimension, job_id, settings=self.settings)

    def validate_request(
        self, seed: Any, dimension: Any, world_size: Any
    ) -> Tuple[str, Dimension, int]:
        """
        Validate and normalize a generation request.

        Raises:
            InvalidInput: For a bad seed, dimension or size
        """
        if world_size is None:
            world_size = self.settings.default_world_size
        return normalize_seed(seed), normalize_dimension(dimension), normalize_world_size(world_size)

    async def submit(
        self, seed: Any, dimension: Any = Dimension.OVERWORLD.value, world_size: Any = None
    ) -> str:
        """
        Submit a map generation job.

        Args:
            seed: World seed (non-empty string or finite number)
            dimension: overworld, nether or end
            world_size: World size in thousands of blocks, defaults to settings

        Returns:
            Job id; the job runs in the background

        Raises:
            InvalidInput: If the request is invalid (no job is created)
            AdmissionRejected: If the concurrency ceiling is reached
        """
        seed_text, dim, size = self.validate_request(seed, dimension, world_size)

        if not self.tracker.admit():
            raise AdmissionRejected(
                f"Maximum {self.tracker.ceiling} concurrent jobs allowed"
            )

        job_id = generate_job_id(seed_text, dim)
        try:
            self.tracker.create_record(job_id, seed_text, dim, size)
        except DuplicateJobError:
            self.tracker.rollback_admission()
            raise

        task = asyncio.create_task(self._run_job(job_id, seed_text, dim, size), name=job_id)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._release_task(job_id, t))

        self.logger.info(
            "Map generation job started",
            job_id=job_id,
            seed=seed_text,
            dimension=dim.value,
            world_size=size,
            active_jobs=self.tracker.in_flight,
        )
        return job_id

    async def _run_job(self, job_id: str, seed: str, dimension: Dimension, world_size: int) -> None:
        outcome: Optional[JobOutcome] = None
        try:
            capture = await self.session_factory(seed, dimension, job_id).run()
            outcome = await self._finish_job(job_id, seed, dimension, world_size, capture)
        except RenderFailure as e:
            outcome = JobOutcome.failed(e.error_code, f"Failed to generate map: {e.message}")
        except ProcessingFailure as e:
            outcome = JobOutcome.failed(e.error_code, f"Failed to process map: {e.message}")
        except asyncio.CancelledError:
            outcome = JobOutcome.failed("CANCELLED", "Job cancelled during shutdown")
            raise
        except Exception as e:
            self.logger.error("Unexpected error in generation job", job_id=job_id, exc_info=True)
            outcome = JobOutcome.failed(
                RenderFailure.error_code, f"Failed to generate map: {e}"
            )
        finally:
            if outcome is None:
                outcome = JobOutcome.failed("GENERATION_FAILED", "Job ended without a result")
            self.tracker.complete(job_id, outcome)

    def _release_task(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        # A task cancelled before its first step never reaches _run_job.
        try:
            job = self.tracker.get(job_id)
        except JobNotFound:
            return
        if not job.is_terminal:
            self.tracker.complete(
                job_id, JobOutcome.failed("CANCELLED", "Job cancelled before it started")
            )

    async def _finish_job(
        self,
        job_id: str,
        seed: str,
        dimension: Dimension,
        world_size: int,
        capture: RenderCapture,
    ) -> JobOutcome:
        """Crop, encode and store a capture; any failure is a ProcessingFailure."""
        try:
            crop = compute_crop(dimension, world_size)
            image = await asyncio.to_thread(self.image_processor.process, capture.png_data, crop)

            filename = (
                f"seed-{safe_name(seed)}-{dimension.value}-{world_size}k-"
                f"{int(time.time() * 1000)}.png"
            )
            location = await self.storage.put(image, filename)
        except Exception as e:
            self.logger.error("Map processing failed", job_id=job_id, error=str(e))
            raise ProcessingFailure(str(e), job_id=job_id)

        metadata = {
            "seed": seed,
            "dimension": dimension.value,
            "world_size": world_size,
            "generated_at": utc_now().isoformat(),
            "file_size": format_file_size(len(image)),
            "dimensions": f"{crop.output_size}x{crop.output_size}",
            "output_size": crop.output_size,
            "crop": crop.model_dump(),
            "skipped_stages": capture.skipped_stages,
            "render_seconds": round(capture.duration, 2),
        }
        self.logger.info(
            "Map generation completed successfully",
            job_id=job_id,
            filename=filename,
            image_url=location,
            file_size=len(image),
        )
        return JobOutcome.ready(location, filename, metadata)

    def get_status(self, job_id: str) -> JobStatusResponse:
        """
        Status of a job as exposed to callers.

        Raises:
            JobNotFound: If the id is unknown
        """
        job = self.tracker.get(job_id)
        response = JobStatusResponse(job_id=job.job_id, status=job.status)

        if job.status is JobStatus.READY:
            response.image_url = job.artifact_location
            response.metadata = job.metadata
        elif job.status is JobStatus.PROCESSING:
            response.progress = "Generating map..."
        else:
            response.error = job.error_code
            response.message = job.failure_reason
            response.retryable = job.retryable
        return response

    async def get_status_with_artifact(self, job_id: str) -> JobStatusResponse:
        """Status of a job, with stored file size and creation time for ready jobs."""
        response = self.get_status(job_id)
        job = self.tracker.get(job_id)

        if job.status is JobStatus.READY and job.filename:
            if await self.storage.exists(job.filename):
                stats = await self.storage.get_stats(job.filename)
                if stats:
                    metadata: Dict[str, Any] = dict(response.metadata or {})
                    metadata["file_size"] = stats["size_formatted"]
                    metadata["created"] = stats["created"].isoformat()
                    response.metadata = metadata
        return response

    def get_counts(self) -> JobCounts:
        return self.tracker.counts()

    def cleanup_expired_jobs(self, max_age: Optional[timedelta] = None) -> int:
        """Remove finished jobs older than ``max_age`` (default from settings)."""
        if max_age is None:
            max_age = timedelta(hours=self.settings.job_max_age_hours)
        return self.tracker.cleanup_expired(max_age)

    async def wait_for_idle(self) -> None:
        """Wait until all running jobs have finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel running jobs and wait for them to record their terminal state."""
        if not self._tasks:
            return
        self.logger.info("Cancelling running jobs", count=len(self._tasks))
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
