"""Calendar event repository with missing-field eligibility queries."""
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from app.classification.rules import SUBCUTANEOUS_TREATMENT
from app.models.calendar_event import CalendarEvent
from app.repositories.base import BaseRepository
from app.schemas.internal import FinalizedRecord
from app.schemas.job import ReclassifyFilter


def _missing_category() -> ColumnElement[bool]:
    return or_(CalendarEvent.category.is_(None), CalendarEvent.category == "")


def _missing_treatment_stage() -> ColumnElement[bool]:
    # Only subcutaneous treatment carries a stage.
    return and_(
        CalendarEvent.treatment_stage.is_(None),
        CalendarEvent.category == SUBCUTANEOUS_TREATMENT,
    )


def eligibility_clause(job_filter: ReclassifyFilter) -> ColumnElement[bool]:
    """SQL condition selecting the events a missing-field filter matches."""
    if not job_filter.has_flags:
        return or_(
            _missing_category(),
            CalendarEvent.amount_expected.is_(None),
            CalendarEvent.amount_paid.is_(None),
            CalendarEvent.attended.is_(None),
            CalendarEvent.dosage_value.is_(None),
            _missing_treatment_stage(),
        )

    conditions: list[ColumnElement[bool]] = []
    if job_filter.missing_category:
        conditions.append(_missing_category())
    if job_filter.missing_amount_expected:
        conditions.append(CalendarEvent.amount_expected.is_(None))
    if job_filter.missing_amount_paid:
        conditions.append(CalendarEvent.amount_paid.is_(None))
    if job_filter.missing_amount:
        conditions.append(
            or_(CalendarEvent.amount_expected.is_(None), CalendarEvent.amount_paid.is_(None))
        )
    if job_filter.missing_attended:
        conditions.append(CalendarEvent.attended.is_(None))
    if job_filter.missing_dosage:
        conditions.append(CalendarEvent.dosage_value.is_(None))
    if job_filter.missing_treatment_stage:
        conditions.append(_missing_treatment_stage())

    if job_filter.filter_mode == "AND":
        return and_(*conditions)
    return or_(*conditions)


class CalendarEventRepository(BaseRepository[CalendarEvent]):
    """Repository for CalendarEvent with classification-oriented queries."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, CalendarEvent)

    async def get_by_key(self, calendar_id: str, event_id: str) -> CalendarEvent | None:
        """Get the event addressed by (calendar_id, event_id)."""
        result = await self.db.execute(
            select(CalendarEvent).where(
                CalendarEvent.calendar_id == calendar_id,
                CalendarEvent.event_id == event_id,
                CalendarEvent.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def list_eligible_ids(self, job_filter: ReclassifyFilter | None) -> list[UUID]:
        """Snapshot the ids of eligible events (all live events when no filter)."""
        query = select(CalendarEvent.id).where(CalendarEvent.deleted_at.is_(None))
        if job_filter is not None:
            query = query.where(eligibility_clause(job_filter))
        result = await self.db.execute(query.order_by(CalendarEvent.created_at, CalendarEvent.id))
        return list(result.scalars().all())

    async def get_many(self, ids: list[UUID]) -> list[CalendarEvent]:
        """Load a batch of events, preserving the order of ``ids``."""
        if not ids:
            return []
        result = await self.db.execute(select(CalendarEvent).where(CalendarEvent.id.in_(ids)))
        by_id = {event.id: event for event in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]

    async def list_unclassified(
        self, job_filter: ReclassifyFilter, limit: int = 50, offset: int = 0
    ) -> tuple[list[CalendarEvent], int]:
        """Page through eligible events, returning (events, total_count)."""
        condition = and_(CalendarEvent.deleted_at.is_(None), eligibility_clause(job_filter))

        count_result = await self.db.execute(
            select(func.count()).select_from(CalendarEvent).where(condition)
        )
        total = count_result.scalar() or 0

        result = await self.db.execute(
            select(CalendarEvent)
            .where(condition)
            .order_by(CalendarEvent.created_at.desc(), CalendarEvent.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), int(total)

    @staticmethod
    def apply_record(event: CalendarEvent, record: FinalizedRecord) -> list[str]:
        """Copy a classifier result onto the row; returns the changed field names.

        Does not commit.
        """
        previous = FinalizedRecord.model_validate(event)
        changed = record.changed_fields(previous)
        for name in changed:
            setattr(event, name, getattr(record, name))
        return changed

