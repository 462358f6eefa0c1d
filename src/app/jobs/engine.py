"""Background bulk reclassification.

``submit`` snapshots the ids of the eligible events, registers a job and
returns right away; the work itself runs as an asyncio task that processes
the snapshot in batches, one session and one commit per batch.

Two job types exist:

- ``reclassify``: events matching a missing-field filter. Stored values are
  kept; gaps are filled with what the text parser suggests.
- ``reclassify-all``: every live event, recomputed purely from its text.

Both are idempotent: running the same job twice changes nothing the second
time.
"""

import asyncio
import logging
from uuid import UUID

from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.classification.classifier import Classifier, default_classifier
from app.classification.metadata import parse_calendar_metadata
from app.config import settings
from app.jobs.store import JobStore
from app.models.calendar_event import CalendarEvent
from app.repositories.calendar_event import CalendarEventRepository
from app.schemas.internal import (
    FINALIZED_FIELDS,
    EventSnapshot,
    FinalizedRecord,
    OverrideEntry,
)
from app.schemas.job import Job, JobResult, JobSubmission, ReclassifyFilter

logger = logging.getLogger(__name__)

RECLASSIFY = "reclassify"
RECLASSIFY_ALL = "reclassify-all"
JOB_TYPES = (RECLASSIFY, RECLASSIFY_ALL)

CANCELLED_MESSAGE = "Job cancelled during shutdown"


def build_bulk_inputs(event: CalendarEvent, overwrite: bool) -> tuple[OverrideEntry, EventSnapshot]:
    """Derive the (override, baseline) pair the bulk path classifies.

    Args:
        event: Stored event row
        overwrite: Recompute from text only, ignoring stored values

    Returns:
        Override entry and baseline snapshot for the classifier
    """
    suggestion = OverrideEntry.from_record(
        parse_calendar_metadata(event.summary, event.description)
    )
    if overwrite:
        baseline = EventSnapshot(
            calendar_id=event.calendar_id,
            event_id=event.event_id,
            summary=event.summary,
            description=event.description,
        )
        return suggestion, baseline

    stored = EventSnapshot.model_validate(event)
    return OverrideEntry.from_record(stored).fill_missing(suggestion), stored


def _progress_message(processed: int, total: int) -> str:
    return f"Analizando {processed}/{total} eventos..."


class ReclassifyJobEngine:
    """Runs reclassification jobs in the background and answers status reads."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: JobStore | None = None,
        classifier: Classifier = default_classifier,
        batch_size: int = settings.reclassify_batch_size,
        progress_every: int = settings.job_progress_every,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.session_factory = session_factory
        self.store = store if store is not None else JobStore()
        self.classifier = classifier
        self.batch_size = batch_size
        self.progress_every = max(1, progress_every)
        self._tasks: dict[str, asyncio.Task] = {}

    async def submit(
        self, job_filter: ReclassifyFilter | None = None, *, job_type: str = RECLASSIFY
    ) -> JobSubmission:
        """Snapshot eligible events and start a job over them.

        Args:
            job_filter: Missing-field filter (ignored for ``reclassify-all``)
            job_type: ``reclassify`` or ``reclassify-all``

        Returns:
            Job id and the number of events the job will process
        """
        if job_type not in JOB_TYPES:
            raise ValueError(f"Unknown job type: {job_type}")
        overwrite = job_type == RECLASSIFY_ALL
        if not overwrite and job_filter is None:
            job_filter = ReclassifyFilter()

        async with self.session_factory() as db:
            ids = await CalendarEventRepository(db).list_eligible_ids(
                None if overwrite else job_filter
            )

        job = self.store.create(job_type, total=len(ids), message=_progress_message(0, len(ids)))
        task = asyncio.create_task(self._run(job.id, ids, overwrite), name=f"{job_type}-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job.id, None))

        logger.info(
            "Reclassification job submitted",
            extra={"job_id": job.id, "job_type": job_type, "total": len(ids)},
        )
        return JobSubmission(job_id=job.id, total_events=len(ids))

    def status(self, job_id: str) -> Job:
        """Current job record (raises JobNotFoundError when unknown or expired)."""
        return self.store.get(job_id)

    async def wait(self, job_id: str) -> Job:
        """Wait for a job's task to finish and return its final record."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self.store.get(job_id)

    async def shutdown(self) -> None:
        """Cancel running jobs; they end as failed."""
        pending = dict(self._tasks)
        for task in pending.values():
            task.cancel()
        if pending:
            await asyncio.gather(*pending.values(), return_exceptions=True)
        # A task cancelled before its first step never reaches its handler.
        for job_id in pending:
            if not self.store.get(job_id).is_terminal:
                self.store.fail(job_id, CANCELLED_MESSAGE)

    def reclassify_event(self, event: CalendarEvent, overwrite: bool) -> FinalizedRecord:
        override, baseline = build_bulk_inputs(event, overwrite)
        return self.classifier.classify(override, baseline)

    async def _run(self, job_id: str, ids: list[UUID], overwrite: bool) -> None:
        total = len(ids)
        processed = 0
        reported = 0
        reclassified = 0
        field_counts = {to_camel(name): 0 for name in FINALIZED_FIELDS}

        try:
            if total:
                self.store.mark_running(job_id, message=_progress_message(0, total))

            for start in range(0, total, self.batch_size):
                batch_ids = ids[start : start + self.batch_size]
                async with self.session_factory() as db:
                    repo = CalendarEventRepository(db)
                    for event in await repo.get_many(batch_ids):
                        changed = repo.apply_record(event, self.reclassify_event(event, overwrite))
                        if changed:
                            reclassified += 1
                            for name in changed:
                                field_counts[to_camel(name)] += 1
                    await db.commit()

                processed += len(batch_ids)
                if processed < total and processed - reported >= self.progress_every:
                    self.store.update_progress(
                        job_id, processed, message=_progress_message(processed, total)
                    )
                    reported = processed
        except asyncio.CancelledError:
            logger.warning(
                "Reclassification job cancelled",
                extra={"job_id": job_id, "progress": processed, "total": total},
            )
            self.store.fail(job_id, CANCELLED_MESSAGE, progress=processed)
            raise
        except Exception as exc:
            logger.error(
                "Reclassification job failed",
                extra={
                    "job_id": job_id,
                    "error_type": type(exc).__name__,
                    "progress": processed,
                    "total": total,
                },
            )
            self.store.fail(job_id, str(exc) or type(exc).__name__, progress=processed)
            return

        result = JobResult(
            reclassified=reclassified,
            total_checked=total,
            field_counts=field_counts,
            message=f"{reclassified} de {total} eventos reclasificados",
        )
        self.store.complete(job_id, result)
        logger.info(
            "Reclassification job completed",
            extra={"job_id": job_id, "reclassified": reclassified, "total": total},
        )
