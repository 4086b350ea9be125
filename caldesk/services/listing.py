"""Human-readable event listings and busy/available status."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from caldesk.domain.models import Event
from caldesk.services.conflicts import is_busy_at

NO_EVENTS = "No events found."
BUSY = "Busy"
AVAILABLE = "Available"


def format_datetime(value: datetime) -> str:
    """``2025-03-13T14:00``, with ``:SS`` only when the seconds are non-zero."""
    text = value.strftime("%Y-%m-%dT%H:%M")
    if value.second:
        text += f":{value.second:02d}"
    return text


def format_event(event: Event) -> str:
    line = f"- {event.name}: {format_datetime(event.start)} to {format_datetime(event.end)}"
    if event.location:
        line += f" at {event.location}"
    return line


def format_listing(events: Iterable[Event]) -> str:
    lines = [format_event(e) for e in sorted(events, key=lambda e: (e.start, e.end))]
    if not lines:
        return NO_EVENTS
    return "\n".join(lines) + "\n"


def status_at(instant: datetime, events: Iterable[Event]) -> str:
    return BUSY if is_busy_at(instant, events) else AVAILABLE
