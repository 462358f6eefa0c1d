"""Calendar event model: a synced appointment plus its classification."""

from sqlalchemy import BigInteger, Boolean, Float, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel


class CalendarEvent(BaseModel):
    """One appointment imported from the clinic calendar.

    ``summary`` and ``description`` come from the calendar provider; the
    classification columns are written only from a classifier result.
    """

    __tablename__ = "calendar_events"

    calendar_id: Mapped[str] = mapped_column(String(255), nullable=False)
    event_id: Mapped[str] = mapped_column(String(255), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    amount_expected: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    amount_paid: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    attended: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    dosage_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    dosage_unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    treatment_stage: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint("calendar_id", "event_id", name="uq_calendar_events_calendar_event"),
        Index("ix_calendar_events_calendar_id_event_id", "calendar_id", "event_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<CalendarEvent(id={self.id}, calendar_id={self.calendar_id}, "
            f"event_id={self.event_id}, category={self.category})>"
        )
