"""Custom exception classes for calendar classification.

Each exception maps to a specific error code defined in errors.py.
"""

from typing import Any


class ClassificationError(Exception):
    """Base exception for all classification and job errors.

    Attributes:
        error_code: Code from the error catalog (e.g., "CLS_001")
        details: Additional context about the error (for logging)
        http_status: HTTP status code to return (default: 500)
    """

    def __init__(
        self,
        error_code: str,
        details: dict[str, Any] | None = None,
        http_status: int = 500,
    ):
        self.error_code = error_code
        self.details = details or {}
        self.http_status = http_status
        super().__init__(error_code)


class OverrideValidationError(ClassificationError):
    """Raised when an override entry fails shape constraints.

    Classification is not attempted. Maps to CLS_001, CLS_002 or CLS_003.
    """

    def __init__(self, error_code: str = "CLS_001", details: dict[str, Any] | None = None):
        super().__init__(error_code, details=details, http_status=400)


class EventNotFoundError(ClassificationError):
    """Raised when no calendar event matches an event key (EVT_001)."""

    def __init__(self, calendar_id: str, event_id: str):
        super().__init__(
            "EVT_001",
            details={"calendar_id": calendar_id, "event_id": event_id},
            http_status=404,
        )


class JobNotFoundError(ClassificationError):
    """Raised when a job id is unknown or its record has expired (JOB_001)."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__("JOB_001", details={"job_id": job_id}, http_status=404)


class JobStatusUnavailableError(ClassificationError):
    """Raised by the jobs client when status reads keep failing at the transport layer.

    This is a visibility problem only: the job itself keeps running.
    """

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__("JOB_003", details={"job_id": job_id, "reason": reason}, http_status=503)
