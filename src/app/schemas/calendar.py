"""Request/response schemas for the calendar classification endpoints."""

from typing import Any

from pydantic import ConfigDict, Field, field_validator

from app.schemas.internal import OverrideEntry
from app.schemas.job import CamelModel


class ClassificationOptionsResponse(CamelModel):
    """Choices offered by the classification form."""

    categories: list[str]
    treatment_stages: list[str]


class ClassifyEventRequest(CamelModel):
    """Override entry for one event plus the key that addresses it.

    Amounts and dosage accept numbers or free text; free text is sanitized
    by the classifier.
    """

    calendar_id: str = Field(min_length=1, max_length=255)
    event_id: str = Field(min_length=1, max_length=255)
    category: str | None = Field(None, max_length=100)
    amount_expected: str | None = Field(None, max_length=50)
    amount_paid: str | None = Field(None, max_length=50)
    attended: bool | None = None
    dosage_value: str | None = Field(None, max_length=20)
    dosage_unit: str | None = Field(None, max_length=20)
    treatment_stage: str | None = Field(None, max_length=50)

    @field_validator("amount_expected", "amount_paid", "dosage_value", mode="before")
    @classmethod
    def numbers_as_text(cls, v: Any) -> Any:
        """Accept JSON numbers for the free-text fields."""
        if isinstance(v, bool):
            raise ValueError("Expected a number or text")
        if isinstance(v, (int, float)):
            return str(v)
        return v

    def to_override(self) -> OverrideEntry:
        return OverrideEntry(
            category=self.category,
            amount_expected=self.amount_expected,
            amount_paid=self.amount_paid,
            attended=self.attended,
            dosage_value=self.dosage_value,
            dosage_unit=self.dosage_unit,
            treatment_stage=self.treatment_stage,
        )


class CalendarEventResponse(CamelModel):
    """A calendar event with its stored classification."""

    model_config = ConfigDict(from_attributes=True)

    calendar_id: str
    event_id: str
    summary: str | None = None
    description: str | None = None
    category: str | None = None
    amount_expected: int | None = None
    amount_paid: int | None = None
    attended: bool | None = None
    dosage_value: float | None = None
    dosage_unit: str | None = None
    treatment_stage: str | None = None


class ClassifyEventResponse(CamelModel):
    """Result of the single-event classification path."""

    event: CalendarEventResponse
    changed_fields: list[str] = Field(default_factory=list)


class UnclassifiedEventListResult(CamelModel):
    """Page of events with missing classification fields."""

    events: list[CalendarEventResponse]
    total_count: int
    limit: int
    offset: int
