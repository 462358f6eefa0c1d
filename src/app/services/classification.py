"""Calendar event classification service.

Single-event path used by the classification form:
1. Look up the event by (calendar_id, event_id)
2. Validate the override against the category and stage vocabularies
3. Classify against the stored event as baseline
4. Persist the changed fields
"""

import logging

from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from app.classification.classifier import Classifier, default_classifier
from app.classification.metadata import is_ignored_event
from app.classification.rules import TREATMENT_STAGE_CHOICES
from app.classification.validation import validate_override
from app.core.exceptions import EventNotFoundError
from app.repositories.calendar_event import CalendarEventRepository
from app.schemas.calendar import (
    CalendarEventResponse,
    ClassificationOptionsResponse,
    ClassifyEventRequest,
    ClassifyEventResponse,
    UnclassifiedEventListResult,
)
from app.schemas.internal import EventSnapshot
from app.schemas.job import ReclassifyFilter

logger = logging.getLogger(__name__)


class ClassificationService:
    """Classify single events and list the ones still missing metadata."""

    def __init__(self, db: AsyncSession, classifier: Classifier = default_classifier):
        self.db = db
        self.classifier = classifier
        self.event_repo = CalendarEventRepository(db)

    async def classify_event(self, request: ClassifyEventRequest) -> ClassifyEventResponse:
        """Apply a user override to one stored event.

        Args:
            request: Override values plus the event key

        Returns:
            The event as stored after classification and the changed fields
            (camelCase names)

        Raises:
            EventNotFoundError: No event matches the key
            OverrideValidationError: Unknown category or treatment stage
        """
        event = await self.event_repo.get_by_key(request.calendar_id, request.event_id)
        if event is None:
            raise EventNotFoundError(request.calendar_id, request.event_id)

        override = validate_override(request.to_override(), self.classifier.categories)
        record = self.classifier.classify(override, EventSnapshot.model_validate(event))

        changed = self.event_repo.apply_record(event, record)
        if changed:
            await self.db.commit()
            await self.db.refresh(event)

        logger.info(
            "Calendar event classified",
            extra={"event_row_id": str(event.id), "changed_count": len(changed)},
        )
        return ClassifyEventResponse(
            event=CalendarEventResponse.model_validate(event),
            changed_fields=[to_camel(name) for name in changed],
        )

    async def list_unclassified(
        self, job_filter: ReclassifyFilter, limit: int = 50, offset: int = 0
    ) -> UnclassifiedEventListResult:
        """Page of events missing classification fields, administrative entries dropped.

        ``total_count`` is the database count for the filter, before ignored
        entries are removed from the page.
        """
        events, total = await self.event_repo.list_unclassified(job_filter, limit, offset)
        return UnclassifiedEventListResult(
            events=[
                CalendarEventResponse.model_validate(event)
                for event in events
                if not is_ignored_event(event.summary)
            ],
            total_count=total,
            limit=limit,
            offset=offset,
        )

    def options(self) -> ClassificationOptionsResponse:
        return ClassificationOptionsResponse(
            categories=list(self.classifier.categories.labels),
            treatment_stages=list(TREATMENT_STAGE_CHOICES),
        )
