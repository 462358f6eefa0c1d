"""HTTP client for the calendar classification API.

Status reads retry transport failures and 5xx responses with exponential
backoff before giving up with ``JobStatusUnavailableError``. A failed read
says nothing about the job itself, which keeps running server side.
"""

import asyncio
import logging

import httpx

from app.config import settings
from app.core.exceptions import JobNotFoundError, JobStatusUnavailableError
from app.schemas.calendar import ClassifyEventRequest, ClassifyEventResponse
from app.schemas.job import Job, JobStatusResponse, JobSubmission, ReclassifyFilter

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/calendar"


class CalendarJobsClient:
    """Async client for job submission, status reads and single-event classification."""

    def __init__(
        self,
        base_url: str = settings.api_base_url,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        max_retries: int = settings.status_max_retries,
        retry_delay: float = settings.status_retry_delay_seconds,
    ):
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "CalendarJobsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def submit_reclassify(self, job_filter: ReclassifyFilter | None = None) -> JobSubmission:
        """Start a missing-field reclassification job."""
        payload = (job_filter or ReclassifyFilter()).model_dump(by_alias=True)
        response = await self._client.post(f"{API_PREFIX}/events/reclassify", json=payload)
        response.raise_for_status()
        return JobSubmission.model_validate(response.json())

    async def submit_reclassify_all(self) -> JobSubmission:
        """Start a job recomputing every event from its text."""
        response = await self._client.post(f"{API_PREFIX}/events/reclassify-all")
        response.raise_for_status()
        return JobSubmission.model_validate(response.json())

    async def classify_event(self, request: ClassifyEventRequest) -> ClassifyEventResponse:
        response = await self._client.post(
            f"{API_PREFIX}/events/classify",
            json=request.model_dump(by_alias=True, exclude_none=True),
        )
        response.raise_for_status()
        return ClassifyEventResponse.model_validate(response.json())

    async def get_job_status(self, job_id: str) -> Job:
        """Read a job record, retrying transport failures with exponential backoff.

        Raises:
            JobNotFoundError: Unknown job or finished job past its TTL (404)
            JobStatusUnavailableError: Every attempt failed at the transport layer
            httpx.HTTPStatusError: Any other 4xx response
        """
        reason = "no attempt made"
        for attempt in range(self.max_retries):
            try:
                response = await self._client.get(f"{API_PREFIX}/events/jobs/{job_id}")
            except httpx.TransportError as exc:
                reason = f"{type(exc).__name__}: {exc}"
            else:
                if response.status_code == 404:
                    raise JobNotFoundError(job_id)
                if response.status_code < 500:
                    response.raise_for_status()
                    return JobStatusResponse.model_validate(response.json()).job
                reason = f"HTTP {response.status_code}"

            logger.warning(
                f"Job status retry {attempt + 1}/{self.max_retries}",
                extra={"job_id": job_id, "reason": reason},
            )
            # Exponential backoff
            if attempt < self.max_retries - 1:
                await asyncio.sleep(self.retry_delay * (2**attempt))

        logger.error("Job status unavailable after retries", extra={"job_id": job_id})
        raise JobStatusUnavailableError(job_id, reason)
