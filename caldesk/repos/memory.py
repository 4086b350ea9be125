"""In-memory repositories for calendars and their activity timeline."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Iterable

from caldesk.domain.errors import InvalidRequestError, NotFoundError
from caldesk.domain.models import (
    Calendar,
    CalendarEdit,
    CalendarNameEdit,
    Event,
    TimelineEntry,
    TimezoneEdit,
    load_zone,
)

logger = logging.getLogger(__name__)


class CalendarRepository:
    """Dict-backed store of calendars keyed by their case-sensitive name.

    Each calendar owns its events. ``lock`` is re-entrant; mutators hold it
    across a whole validate-then-commit sequence so readers never see a
    partially applied batch.
    """

    def __init__(self) -> None:
        self._store: dict[str, Calendar] = {}
        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # Calendars
    # ------------------------------------------------------------------

    def create(self, name: str, timezone: str) -> Calendar:
        if not name or not name.strip():
            raise InvalidRequestError("Calendar name is required.")
        load_zone(timezone)
        with self.lock:
            if name in self._store:
                raise InvalidRequestError(f"Calendar with name '{name}' already exists.")
            calendar = Calendar(name=name, timezone=timezone)
            self._store[name] = calendar
        logger.info("Created calendar %r (%s)", name, timezone)
        return calendar

    def get(self, name: str) -> Calendar:
        with self.lock:
            calendar = self._store.get(name)
        if calendar is None:
            raise NotFoundError(f"Calendar not found: {name}")
        return calendar

    def exists(self, name: str) -> bool:
        with self.lock:
            return name in self._store

    def names(self) -> list[str]:
        with self.lock:
            return list(self._store)

    def list_all(self) -> list[Calendar]:
        with self.lock:
            return list(self._store.values())

    def rename(self, name: str, new_name: str) -> Calendar:
        if not new_name or not new_name.strip():
            raise InvalidRequestError("Missing value for property update.")
        with self.lock:
            calendar = self.get(name)
            if new_name == name:
                return calendar
            if new_name in self._store:
                raise InvalidRequestError(f"Calendar with name '{new_name}' already exists.")
            del self._store[name]
            calendar.name = new_name
            self._store[new_name] = calendar
        logger.info("Renamed calendar %r to %r", name, new_name)
        return calendar

    def retimezone(self, name: str, timezone: str) -> Calendar:
        """Change the zone a calendar's wall-clock events are read in.

        Stored start/end values are left untouched.
        """
        load_zone(timezone)
        with self.lock:
            calendar = self.get(name)
            calendar.timezone = timezone
        logger.info("Calendar %r now uses timezone %s", name, timezone)
        return calendar

    def edit(self, name: str, edit: CalendarEdit) -> Calendar:
        if isinstance(edit, CalendarNameEdit):
            return self.rename(name, edit.value)
        if isinstance(edit, TimezoneEdit):
            return self.retimezone(name, edit.value)
        raise InvalidRequestError(f"Unsupported property for calendar edit: {edit.property}")

    def delete(self, name: str) -> None:
        with self.lock:
            if self._store.pop(name, None) is None:
                raise NotFoundError(f"Calendar not found: {name}")
        logger.info("Deleted calendar %r", name)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def list_events(self, name: str) -> list[Event]:
        with self.lock:
            return sorted(self.get(name).events, key=lambda e: (e.start, e.end))

    def events_in_range(self, name: str, start: datetime, end: datetime) -> list[Event]:
        """Return events that touch the closed window ``[start, end]``."""
        if end < start:
            raise InvalidRequestError(
                "The end date-time must not be before the start date-time."
            )
        return [e for e in self.list_events(name) if e.start <= end and e.end >= start]

    def add_events(self, name: str, events: Iterable[Event]) -> None:
        with self.lock:
            self.get(name).events.extend(events)

    def replace_events(self, name: str, updated: Iterable[Event]) -> None:
        """Swap stored events for updated copies carrying the same ids."""
        by_id = {event.id: event for event in updated}
        with self.lock:
            calendar = self.get(name)
            calendar.events = [by_id.get(e.id, e) for e in calendar.events]


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for_calendar(self, calendar: str) -> list[TimelineEntry]:
        return sorted(
            [e for e in self._entries if e.calendar == calendar],
            key=lambda e: e.timestamp,
        )

    def rename_calendar(self, old: str, new: str) -> None:
        for entry in self._entries:
            if entry.calendar == old:
                entry.calendar = new

    def drop_calendar(self, calendar: str) -> int:
        kept = [e for e in self._entries if e.calendar != calendar]
        dropped = len(self._entries) - len(kept)
        self._entries = kept
        return dropped
