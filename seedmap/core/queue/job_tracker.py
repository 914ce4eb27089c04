"""
Job Tracker
===========

In-memory job records and the admission counter that enforces the
concurrency ceiling.

Every successful ``admit()`` is matched by exactly one release: either the
terminal ``complete()`` of the job it admitted or ``rollback_admission()``
when no record could be created.
"""

from typing import Dict, Optional
from datetime import datetime, timedelta
import threading

from seedmap.config.logging import get_logger
from seedmap.core.errors import DuplicateJobError, JobNotFound
from seedmap.models.schemas import Dimension, Job, JobCounts, JobOutcome, JobStatus, utc_now

logger = get_logger(__name__)


class JobTracker:
    """
    Job lifecycle tracker with a bounded number of in-flight jobs.
    All operations are synchronous and guarded by one lock.
    """

    def __init__(self, max_concurrent_jobs: int):
        if max_concurrent_jobs <= 0:
            raise ValueError("max_concurrent_jobs must be positive")

        self.logger = logger.bind(component="job_tracker")
        self._ceiling = max_concurrent_jobs
        self._in_flight = 0
        self._total_ever_seen = 0
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    @property
    def ceiling(self) -> int:
        return self._ceiling

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def admit(self) -> bool:
        """Reserve a slot if the ceiling has not been reached."""
        with self._lock:
            if self._in_flight >= self._ceiling:
                self.logger.warning(
                    "Admission rejected", in_flight=self._in_flight, ceiling=self._ceiling
                )
                return False
            self._in_flight += 1
            return True

    def rollback_admission(self) -> None:
        """Release a slot reserved by ``admit()`` for a job that was never created."""
        with self._lock:
            if self._in_flight == 0:
                self.logger.error("Admission rollback without an admitted job")
                return
            self._in_flight -= 1

    def create_record(
        self, job_id: str, seed: str, dimension: Dimension, world_size: int
    ) -> Job:
        """
        Insert a new job in the processing state.

        Args:
            job_id: Unique job identifier
            seed: World seed
            dimension: World dimension
            world_size: World size in thousands of blocks

        Returns:
            Copy of the new job record

        Raises:
            DuplicateJobError: If the id is already tracked
        """
        with self._lock:
            if job_id in self._jobs:
                raise DuplicateJobError(f"Job {job_id} already exists", job_id=job_id)

            job = Job(job_id=job_id, seed=seed, dimension=dimension, world_size=world_size)
            self._jobs[job_id] = job
            self._total_ever_seen += 1
            in_flight = self._in_flight

        self.logger.info(
            "Job created",
            job_id=job_id,
            seed=seed,
            dimension=job.dimension.value,
            world_size=world_size,
            active_jobs=in_flight,
        )
        return job.model_copy(deep=True)

    def complete(self, job_id: str, outcome: JobOutcome) -> bool:
        """
        Apply the terminal state of a job and release its slot.

        Returns:
            True if the transition was applied, False for unknown or already
            finished jobs (nothing is changed in that case)
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                self.logger.error("Completion for unknown job", job_id=job_id)
                return False
            if job.is_terminal:
                self.logger.warning(
                    "Duplicate completion ignored",
                    job_id=job_id,
                    current_status=job.status.value,
                    attempted_status=outcome.status.value,
                )
                return False

            job.status = outcome.status
            job.completed_at = utc_now()
            if outcome.status is JobStatus.READY:
                job.artifact_location = outcome.artifact_location
                job.filename = outcome.filename
                job.metadata = dict(outcome.metadata)
            else:
                job.error_code = outcome.error_code
                job.failure_reason = outcome.reason
                job.retryable = outcome.retryable if outcome.retryable is not None else True

            self._in_flight = max(self._in_flight - 1, 0)
            in_flight = self._in_flight

        log = self.logger.info if outcome.status is JobStatus.READY else self.logger.error
        log(
            "Job finished",
            job_id=job_id,
            status=outcome.status.value,
            error_code=outcome.error_code,
            active_jobs=in_flight,
        )
        return True

    def get(self, job_id: str) -> Job:
        """
        Get a copy of a job record.

        Raises:
            JobNotFound: If the id is unknown
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFound(f"Job {job_id} not found", job_id=job_id)
            return job.model_copy(deep=True)

    def list_summary(self) -> Dict[str, int]:
        """Job counts by status."""
        with self._lock:
            return self._summary()

    def _summary(self) -> Dict[str, int]:
        summary = {status.value: 0 for status in JobStatus}
        for job in self._jobs.values():
            summary[job.status.value] += 1
        return summary

    def counts(self) -> JobCounts:
        """Admission state together with job counts by status."""
        with self._lock:
            summary = self._summary()
            return JobCounts(
                in_flight=self._in_flight,
                ceiling=self._ceiling,
                total_ever_seen=self._total_ever_seen,
                processing_count=summary[JobStatus.PROCESSING.value],
                ready_count=summary[JobStatus.READY.value],
                failed_count=summary[JobStatus.FAILED.value],
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def cleanup_expired(self, max_age: timedelta, now: Optional[datetime] = None) -> int:
        """
        Remove finished jobs created more than ``max_age`` ago.
        Processing jobs are never removed.

        Returns:
            Number of removed jobs
        """
        now = now or utc_now()
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if job.is_terminal and now - job.created_at > max_age
            ]
            for job_id in expired:
                del self._jobs[job_id]
            remaining = len(self._jobs)

        self.logger.info("Job cleanup completed", cleaned_count=len(expired), remaining_jobs=remaining)
        return len(expired)
