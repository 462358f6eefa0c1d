"""Database models."""
from app.models.calendar_event import CalendarEvent

__all__ = ["CalendarEvent"]
