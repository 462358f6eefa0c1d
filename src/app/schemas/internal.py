"""Internal data schemas for calendar event classification.

These models are the inputs and output of the classifier. They carry no
persistence concerns: the ORM row is converted to an ``EventSnapshot`` before
classification and the resulting ``FinalizedRecord`` is written back by the
caller.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def event_key(calendar_id: str, event_id: str) -> str:
    """Build the key that addresses one (event, override) pair."""
    return f"{calendar_id}:::{event_id}"


class EventSnapshot(BaseModel):
    """Last synced state of an appointment (the classification baseline).

    Amounts are integer CLP (no minor unit).
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    calendar_id: str = ""
    event_id: str = ""
    summary: str | None = None
    description: str | None = None
    category: str | None = None
    amount_expected: int | None = None
    amount_paid: int | None = None
    attended: bool | None = None
    dosage_value: float | None = None
    dosage_unit: str | None = None
    treatment_stage: str | None = None

    @property
    def key(self) -> str:
        return event_key(self.calendar_id, self.event_id)

    @property
    def text(self) -> str:
        """Summary and description joined, missing parts treated as empty."""
        return f"{self.summary or ''} {self.description or ''}"


class OverrideEntry(BaseModel):
    """User-editable draft values for one event.

    Amount and dosage fields are free text as typed in the classification
    form; they are sanitized by the classifier, never here.
    """

    category: str | None = None
    amount_expected: str | None = None
    amount_paid: str | None = None
    attended: bool | None = None
    dosage_value: str | None = None
    dosage_unit: str | None = None
    treatment_stage: str | None = None

    @classmethod
    def from_record(cls, record: Any) -> "OverrideEntry":
        """Build a draft pre-filled from typed values (stored event or parsed metadata)."""
        return cls(
            category=record.category,
            amount_expected=_to_text(record.amount_expected),
            amount_paid=_to_text(record.amount_paid),
            attended=record.attended,
            dosage_value=_to_text(record.dosage_value),
            dosage_unit=record.dosage_unit,
            treatment_stage=record.treatment_stage,
        )

    def fill_missing(self, suggestion: "OverrideEntry") -> "OverrideEntry":
        """Copy of this draft with empty fields taken from ``suggestion``."""
        updates = {
            name: getattr(suggestion, name)
            for name in type(self).model_fields
            if _is_blank(getattr(self, name))
        }
        return self.model_copy(update=updates)


class FinalizedRecord(BaseModel):
    """Classifier output: the only classification artifact that is persisted."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    category: str | None = None
    amount_expected: int | None = None
    amount_paid: int | None = None
    attended: bool | None = None
    dosage_value: float | None = None
    dosage_unit: str | None = None
    treatment_stage: str | None = None

    def changed_fields(self, previous: "FinalizedRecord") -> list[str]:
        """Names of the fields whose value differs from ``previous``."""
        return [
            name
            for name in FINALIZED_FIELDS
            if getattr(self, name) != getattr(previous, name)
        ]


FINALIZED_FIELDS: tuple[str, ...] = tuple(FinalizedRecord.model_fields)


class ParsedCalendarMetadata(BaseModel):
    """Metadata suggested by the free-text parser for one event."""

    category: str | None = Field(None, description="Canonical category label")
    amount_expected: int | None = Field(None, description="Expected amount (CLP)")
    amount_paid: int | None = Field(None, description="Paid amount (CLP)")
    attended: bool | None = Field(None, description="True when attendance is confirmed in text")
    dosage_value: float | None = Field(None, description="Dosage value, e.g. 0.5")
    dosage_unit: str | None = Field(None, description="Dosage unit: ml, cc or mg")
    treatment_stage: str | None = Field(None, description="Mantención or Inducción")


def _to_text(value: int | float | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
