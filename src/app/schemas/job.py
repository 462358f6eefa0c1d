"""Reclassification job schemas.

Field names go over the wire in camelCase (``jobId``, ``totalEvents``,
``fieldCounts``). The status strings are the contract the polling client
keys off and must not change.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases, accepting both spellings."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobStatus(str, Enum):
    """Lifecycle: pending -> running -> completed | failed."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


class JobResult(CamelModel):
    """Outcome of a completed reclassification."""

    reclassified: int = Field(0, description="Events whose stored record changed")
    total_checked: int = Field(0, description="Eligible events processed")
    field_counts: dict[str, int] = Field(
        default_factory=dict, description="Changed-event count per field"
    )
    message: str | None = None


class Job(CamelModel):
    """Progress-bearing record of one background job."""

    id: str
    type: str
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(0, ge=0, description="Events processed so far")
    total: int = Field(0, ge=0, description="Eligible events, counted at submission")
    message: str | None = None
    result: JobResult | None = None
    error: str | None = Field(None, description="Engine error, present only when failed")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class ReclassifyFilter(CamelModel):
    """Missing-field filter selecting the events a job reprocesses.

    With no flag set, an event is eligible when any classification field is
    missing.
    """

    missing_category: bool = False
    missing_amount_expected: bool = False
    missing_amount_paid: bool = False
    missing_amount: bool = Field(False, description="Expected or paid amount missing")
    missing_attended: bool = False
    missing_dosage: bool = False
    missing_treatment_stage: bool = False
    filter_mode: Literal["AND", "OR"] = "OR"

    @property
    def has_flags(self) -> bool:
        return any(
            (
                self.missing_category,
                self.missing_amount_expected,
                self.missing_amount_paid,
                self.missing_amount,
                self.missing_attended,
                self.missing_dosage,
                self.missing_treatment_stage,
            )
        )


class JobSubmission(CamelModel):
    """Response to a job submission (HTTP 202)."""

    job_id: str
    total_events: int


class JobStatusResponse(CamelModel):
    job: Job
