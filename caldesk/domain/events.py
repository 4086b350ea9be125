"""Domain events emitted after a calendar mutation has been committed."""

from __future__ import annotations

from pydantic import BaseModel


class CalendarCreated(BaseModel):
    """Fired when a new calendar is registered."""

    calendar: str
    timezone: str


class CalendarEdited(BaseModel):
    """Fired when a calendar is renamed or moved to another zone."""

    calendar: str
    previous_name: str
    property: str
    value: str


class CalendarDeleted(BaseModel):
    calendar: str


class EventsAdded(BaseModel):
    """Fired when one event, a whole series or an import batch is stored."""

    calendar: str
    event_ids: list[str]
    source: str = "create"


class EventsEdited(BaseModel):
    """Fired when one or more events were edited together."""

    calendar: str
    event_ids: list[str]
    property: str


class EventsCopied(BaseModel):
    """Fired when events were copied into a calendar."""

    source_calendar: str
    target_calendar: str
    event_ids: list[str]
