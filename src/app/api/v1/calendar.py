"""Calendar event classification and reclassification job endpoints."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_classification_service, get_job_engine
from app.jobs.engine import RECLASSIFY, RECLASSIFY_ALL, ReclassifyJobEngine
from app.schemas.calendar import (
    ClassificationOptionsResponse,
    ClassifyEventRequest,
    ClassifyEventResponse,
    UnclassifiedEventListResult,
)
from app.schemas.job import JobStatusResponse, JobSubmission, ReclassifyFilter
from app.services.classification import ClassificationService

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get(
    "/classification-options",
    response_model=ClassificationOptionsResponse,
    summary="Category and treatment stage choices",
)
async def classification_options(
    service: ClassificationService = Depends(get_classification_service),
) -> ClassificationOptionsResponse:
    return service.options()


@router.post(
    "/events/classify",
    response_model=ClassifyEventResponse,
    summary="Classify one event",
    description="""
    Merge an override entry with the stored event and persist the result.

    Amount fields accept free text; digits are kept and anything else is
    dropped. An unknown category or treatment stage is rejected with 400.
    """,
)
async def classify_event(
    request: ClassifyEventRequest,
    service: ClassificationService = Depends(get_classification_service),
) -> ClassifyEventResponse:
    return await service.classify_event(request)


@router.get(
    "/events/unclassified",
    response_model=UnclassifiedEventListResult,
    summary="List events missing classification fields",
)
async def list_unclassified_events(
    limit: Annotated[int, Query(ge=1, le=500, description="Items per page (1-500)")] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    missing_category: Annotated[bool, Query(alias="missingCategory")] = False,
    missing_amount_expected: Annotated[bool, Query(alias="missingAmountExpected")] = False,
    missing_amount_paid: Annotated[bool, Query(alias="missingAmountPaid")] = False,
    missing_amount: Annotated[bool, Query(alias="missingAmount")] = False,
    missing_attended: Annotated[bool, Query(alias="missingAttended")] = False,
    missing_dosage: Annotated[bool, Query(alias="missingDosage")] = False,
    missing_treatment_stage: Annotated[bool, Query(alias="missingTreatmentStage")] = False,
    filter_mode: Annotated[Literal["AND", "OR"], Query(alias="filterMode")] = "OR",
    service: ClassificationService = Depends(get_classification_service),
) -> UnclassifiedEventListResult:
    job_filter = ReclassifyFilter(
        missing_category=missing_category,
        missing_amount_expected=missing_amount_expected,
        missing_amount_paid=missing_amount_paid,
        missing_amount=missing_amount,
        missing_attended=missing_attended,
        missing_dosage=missing_dosage,
        missing_treatment_stage=missing_treatment_stage,
        filter_mode=filter_mode,
    )
    return await service.list_unclassified(job_filter, limit=limit, offset=offset)


@router.post(
    "/events/reclassify",
    response_model=JobSubmission,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a bulk reclassification of events with missing fields",
    description="""
    Snapshot the events matching the missing-field filter and reclassify
    them in the background. Poll `/events/jobs/{job_id}` for progress.

    With no flag set, an event is eligible when any field is missing.
    """,
)
async def reclassify_events(
    job_filter: ReclassifyFilter | None = None,
    engine: ReclassifyJobEngine = Depends(get_job_engine),
) -> JobSubmission:
    return await engine.submit(job_filter, job_type=RECLASSIFY)


@router.post(
    "/events/reclassify-all",
    response_model=JobSubmission,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Recompute every event from its text",
)
async def reclassify_all_events(
    engine: ReclassifyJobEngine = Depends(get_job_engine),
) -> JobSubmission:
    return await engine.submit(job_type=RECLASSIFY_ALL)


@router.get(
    "/events/jobs/{job_id}",
    response_model=JobStatusResponse,
    summary="Reclassification job status",
)
async def get_job_status(
    job_id: str,
    engine: ReclassifyJobEngine = Depends(get_job_engine),
) -> JobStatusResponse:
    return JobStatusResponse(job=engine.status(job_id))
