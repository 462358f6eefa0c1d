"""Client-side job progress tracking.

``JobProgressTracker`` polls one job at a time: a single status request in
flight, the next one scheduled ``poll_interval_ms`` after the previous
response, and no more requests once a terminal status is seen. The
completion or error callback fires once per job id.

Every ``track`` call bumps a generation counter. A response is applied only
while its generation and job id are still current, so a late response for
a job the consumer moved away from is dropped.

Transport failures keep polling (``transport_error``). Any other failed
status read stops it and is kept on ``error``.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable

from app.config import settings
from app.core.exceptions import JobNotFoundError, JobStatusUnavailableError
from app.schemas.job import Job, JobStatus

logger = logging.getLogger(__name__)

FetchStatus = Callable[[str], Awaitable[Job]]
JobCallback = Callable[[Job], Any]


class JobProgressTracker:
    """Polls a job's status until it completes or fails."""

    def __init__(
        self,
        fetch_status: FetchStatus,
        on_complete: JobCallback | None = None,
        on_error: JobCallback | None = None,
        poll_interval_ms: int = settings.poll_interval_ms,
    ):
        self.fetch_status = fetch_status
        self.on_complete = on_complete
        self.on_error = on_error
        self.poll_interval_ms = poll_interval_ms

        self.job_id: str | None = None
        self.job: Job | None = None
        self.transport_error: JobStatusUnavailableError | None = None
        self.not_found: JobNotFoundError | None = None
        self.error: Exception | None = None

        self._generation = 0
        self._notified = False
        self._task: asyncio.Task | None = None

    @property
    def progress_percent(self) -> int:
        if self.job is None or self.job.total == 0:
            return 0
        return round(100 * self.job.progress / self.job.total)

    @property
    def is_polling(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_complete(self) -> bool:
        return self.job is not None and self.job.status == JobStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.job is not None and self.job.status == JobStatus.FAILED

    def track(self, job_id: str) -> None:
        """Start (or restart) polling ``job_id``."""
        self._cancel_task()
        self._generation += 1
        if job_id != self.job_id:
            self._notified = False
            self.job = None
        self.job_id = job_id
        self.transport_error = None
        self.not_found = None
        self.error = None
        self._task = asyncio.create_task(self._poll_loop(self._generation, job_id))

    def stop(self) -> None:
        """Stop observing. The job keeps running server side."""
        self._generation += 1
        self._cancel_task()

    def reset(self) -> None:
        """Stop and forget the tracked job."""
        self.stop()
        self.job_id = None
        self.job = None
        self.transport_error = None
        self.not_found = None
        self.error = None
        self._notified = False

    async def wait(self) -> Job | None:
        """Wait until the current polling loop ends; returns the last job seen."""
        if self._task is not None:
            await asyncio.wait({self._task})
        return self.job

    async def refresh(self) -> Job | None:
        """Fetch the tracked job once, outside the schedule.

        While the polling loop runs it owns the single in-flight request, so
        this returns the last job seen without fetching.
        """
        if self.job_id is None or self.is_polling:
            return self.job
        await self._poll_once(self._generation, self.job_id)
        return self.job

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _is_current(self, generation: int, job_id: str) -> bool:
        return generation == self._generation and job_id == self.job_id

    async def _poll_loop(self, generation: int, job_id: str) -> None:
        interval = self.poll_interval_ms / 1000
        while self._is_current(generation, job_id):
            done = await self._poll_once(generation, job_id)
            if done or not self._is_current(generation, job_id):
                return
            await asyncio.sleep(interval)

    async def _poll_once(self, generation: int, job_id: str) -> bool:
        """One status read. Returns True when polling should end for this job."""
        try:
            job = await self.fetch_status(job_id)
        except JobStatusUnavailableError as exc:
            if self._is_current(generation, job_id):
                self.transport_error = exc
                logger.warning("Job status unavailable, will retry", extra={"job_id": job_id})
            return False
        except JobNotFoundError as exc:
            if self._is_current(generation, job_id):
                self.not_found = exc
                logger.warning("Tracked job not found or expired", extra={"job_id": job_id})
            return True
        except Exception as exc:
            # Rejected request or unreadable body: retrying will not help.
            if self._is_current(generation, job_id):
                self.error = exc
                logger.error(
                    "Job status read failed, polling stopped",
                    extra={"job_id": job_id, "error_type": type(exc).__name__},
                )
            return True

        if not self._is_current(generation, job_id):
            logger.debug("Dropped stale job status", extra={"job_id": job_id})
            return True

        self.job = job
        self.transport_error = None
        if not job.is_terminal:
            return False

        if not self._notified:
            self._notified = True
            callback = self.on_complete if job.status == JobStatus.COMPLETED else self.on_error
            if callback is not None:
                outcome = callback(job.model_copy(deep=True))
                if inspect.isawaitable(outcome):
                    await outcome
        return True


async def track_job(
    fetch_status: FetchStatus,
    job_id: str,
    on_progress: JobCallback | None = None,
    poll_interval_ms: int = settings.poll_interval_ms,
) -> Job | None:
    """Poll ``job_id`` to a terminal status, reporting each new progress value.

    Returns the terminal job, or None when the job vanished (unknown or expired).
    An unexpected status read error is re-raised.
    """
    last_progress: int | None = None

    async def fetch_and_report(current_id: str) -> Job:
        nonlocal last_progress
        job = await fetch_status(current_id)
        if on_progress is not None and job.progress != last_progress:
            last_progress = job.progress
            outcome = on_progress(job)
            if inspect.isawaitable(outcome):
                await outcome
        return job

    tracker = JobProgressTracker(fetch_and_report, poll_interval_ms=poll_interval_ms)
    tracker.track(job_id)
    job = await tracker.wait()
    if tracker.error is not None:
        raise tracker.error
    if tracker.not_found is not None:
        return None
    return job
