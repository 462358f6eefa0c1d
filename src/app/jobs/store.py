"""In-memory job registry.

Each job record has a single writer (the engine task that runs it) and any
number of readers (status requests). Readers always get a copy, never the
live record.

Transitions are guarded:

- pending -> running -> completed | failed
- pending -> completed | failed (empty snapshots finish without running)
- ``progress`` only grows and stays below ``total`` until the job completes;
  completion sets ``progress = total`` together with the status so no reader
  observes a running job at 100%
- a failed job reports the events committed before the failure
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from app.config import settings
from app.core.exceptions import JobNotFoundError
from app.schemas.job import Job, JobResult, JobStatus

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStore:
    """Registry of reclassification jobs, evicting finished ones after a TTL."""

    def __init__(
        self,
        ttl_seconds: int = settings.job_ttl_seconds,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._jobs: dict[str, Job] = {}
        self._finished_at: dict[str, float] = {}

    def __len__(self) -> int:
        self._evict_expired()
        return len(self._jobs)

    def create(self, job_type: str, total: int, message: str | None = None) -> Job:
        """Register a new pending job for a snapshot of ``total`` events."""
        self._evict_expired()
        now = _utcnow()
        job = Job(
            id=uuid.uuid4().hex,
            type=job_type,
            status=JobStatus.PENDING,
            progress=0,
            total=total,
            message=message,
            created_at=now,
            updated_at=now,
        )
        self._jobs[job.id] = job
        return job.model_copy(deep=True)

    def get(self, job_id: str) -> Job:
        """Return a copy of the job record.

        Raises:
            JobNotFoundError: Unknown id, or finished job past its TTL
        """
        self._evict_expired()
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job.model_copy(deep=True)

    def mark_running(self, job_id: str, message: str | None = None) -> None:
        job = self._live(job_id)
        if job.status != JobStatus.PENDING:
            raise ValueError(f"Job {job_id} cannot start from status {job.status.value}")
        self._update(job_id, status=JobStatus.RUNNING, message=message)

    def update_progress(self, job_id: str, progress: int, message: str | None = None) -> None:
        """Advance the progress counter of a running job."""
        job = self._live(job_id)
        if job.status != JobStatus.RUNNING:
            raise ValueError(f"Job {job_id} is not running")
        if progress < job.progress:
            raise ValueError("Job progress cannot move backwards")
        if progress >= job.total:
            raise ValueError("Job progress reaches total only on completion")
        self._update(job_id, progress=progress, message=message or job.message)

    def complete(self, job_id: str, result: JobResult) -> None:
        job = self._live(job_id)
        self._update(
            job_id,
            status=JobStatus.COMPLETED,
            progress=job.total,
            result=result,
            message=result.message,
        )
        self._finished_at[job_id] = self._clock()

    def fail(self, job_id: str, error: str, progress: int | None = None) -> None:
        """Mark a job failed, recording ``progress`` events as already committed."""
        job = self._live(job_id)
        changes = {"status": JobStatus.FAILED, "error": error}
        if progress is not None:
            if progress < job.progress or progress > job.total:
                raise ValueError(f"Invalid progress {progress} for job {job_id}")
            changes["progress"] = progress
        self._update(job_id, **changes)
        self._finished_at[job_id] = self._clock()

    def _live(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.is_terminal:
            raise ValueError(f"Job {job_id} already finished with status {job.status.value}")
        return job

    def _update(self, job_id: str, **changes) -> None:
        # Swap in a new record; readers holding copies are unaffected.
        changes["updated_at"] = _utcnow()
        self._jobs[job_id] = self._jobs[job_id].model_copy(update=changes)

    def _evict_expired(self) -> None:
        if not self._finished_at:
            return
        cutoff = self._clock() - self.ttl_seconds
        expired = [job_id for job_id, at in self._finished_at.items() if at <= cutoff]
        for job_id in expired:
            self._jobs.pop(job_id, None)
            del self._finished_at[job_id]
        if expired:
            logger.debug("Evicted expired jobs", extra={"count": len(expired)})
