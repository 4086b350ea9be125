"""Operation surface that command, GUI and HTTP front-ends call into."""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path

from caldesk.config import Settings, get_settings
from caldesk.domain.bus import EventBus
from caldesk.domain.errors import NotFoundError
from caldesk.domain.events import CalendarCreated, CalendarDeleted, CalendarEdited
from caldesk.domain.models import (
    ALL_DAY_END,
    ALL_DAY_START,
    Calendar,
    CalendarEdit,
    Event,
    EventEdit,
    RecurrenceRule,
    TimelineEntry,
)
from caldesk.repos.memory import CalendarRepository, TimelineRepository
from caldesk.services.export import export_csv, parse_csv
from caldesk.services.listing import format_listing, status_at
from caldesk.services.mutator import TransactionalMutator

logger = logging.getLogger(__name__)


class CalendarEngine:
    """Facade over the calendar registry and the transactional mutator.

    The registry is owned by the caller and passed in, so tests and
    front-ends can each work against their own instance.
    """

    def __init__(
        self,
        registry: CalendarRepository,
        *,
        bus: EventBus | None = None,
        timeline_repo: TimelineRepository | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.bus = bus
        self.timeline_repo = timeline_repo
        self.settings = settings or get_settings()
        self.mutator = TransactionalMutator(registry, bus)

    # ------------------------------------------------------------------
    # Calendars
    # ------------------------------------------------------------------

    def create_calendar(self, name: str, timezone: str | None = None) -> Calendar:
        calendar = self.registry.create(name, timezone or self.settings.default_timezone)
        self._publish(CalendarCreated(calendar=calendar.name, timezone=calendar.timezone))
        return calendar

    def edit_calendar(self, name: str, edit: CalendarEdit) -> Calendar:
        calendar = self.registry.edit(name, edit)
        self._publish(
            CalendarEdited(
                calendar=calendar.name,
                previous_name=name,
                property=edit.property,
                value=edit.value,
            )
        )
        return calendar

    def delete_calendar(self, name: str) -> None:
        self.registry.delete(name)
        self._publish(CalendarDeleted(calendar=name))

    def list_calendars(self) -> list[Calendar]:
        return self.registry.list_all()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(
        self,
        calendar: str,
        name: str,
        start: datetime,
        end: datetime | None = None,
        *,
        all_day: bool = False,
        description: str = "",
        location: str = "",
        is_private: bool = False,
        repeat: RecurrenceRule | None = None,
    ) -> list[Event]:
        """Create one event, or a whole series when *repeat* is given.

        All-day events span 00:00:00 to 23:59:59 of their first and last day.
        """
        if all_day:
            end = datetime.combine((end or start).date(), ALL_DAY_END)
            start = datetime.combine(start.date(), ALL_DAY_START)
        event = Event.create(
            name,
            start,
            end,
            description=description,
            location=location,
            is_private=is_private,
        )
        if repeat is not None:
            return self.create_series(calendar, event, repeat)
        return [self.mutator.create_event(calendar, event)]

    def create_series(self, calendar: str, anchor: Event, rule: RecurrenceRule) -> list[Event]:
        return self.mutator.create_series(calendar, anchor, rule)

    def add_events(self, calendar: str, events: list[Event]) -> list[Event]:
        return self.mutator.add_events(calendar, events)

    def edit_event(
        self, calendar: str, name: str, start: datetime, end: datetime, edit: EventEdit
    ) -> Event:
        return self.mutator.edit_event(calendar, name, start, end, edit)

    def edit_events(
        self, calendar: str, name: str, threshold: datetime | None, edit: EventEdit
    ) -> list[Event]:
        return self.mutator.edit_events(calendar, name, threshold, edit)

    def copy_event(
        self, source: str, name: str, start: datetime, target: str, target_start: datetime
    ) -> Event:
        return self.mutator.copy_event(source, name, start, target, target_start)

    def copy_events_on(self, source: str, day: date, target: str, target_date: date) -> list[Event]:
        return self.mutator.copy_events_on(source, day, target, target_date)

    def copy_events_between(
        self, source: str, start_date: date, end_date: date, target: str, target_date: date
    ) -> list[Event]:
        return self.mutator.copy_events_between(source, start_date, end_date, target, target_date)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def events_on_date(self, calendar: str, day: date) -> list[Event]:
        return self.registry.events_in_range(
            calendar,
            datetime.combine(day, ALL_DAY_START),
            datetime.combine(day, ALL_DAY_END),
        )

    def events_in_range(self, calendar: str, start: datetime, end: datetime) -> list[Event]:
        return self.registry.events_in_range(calendar, start, end)

    def print_events_on_date(self, calendar: str, day: date) -> str:
        return format_listing(self.events_on_date(calendar, day))

    def print_events_in_range(self, calendar: str, start: datetime, end: datetime) -> str:
        return format_listing(self.events_in_range(calendar, start, end))

    def show_status(self, calendar: str, instant: datetime) -> str:
        return status_at(instant, self.registry.list_events(calendar))

    def timeline(self, calendar: str) -> list[TimelineEntry]:
        if self.timeline_repo is None:
            return []
        return self.timeline_repo.list_for_calendar(calendar)

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def export_csv(self, calendar: str) -> str:
        return export_csv(self.registry.list_events(calendar))

    def export_calendar(self, calendar: str, filename: str | Path) -> str:
        path = self.settings.resolve_path(filename)
        path.write_text(self.export_csv(calendar), encoding="utf-8")
        logger.info("Exported %r to %s", calendar, path)
        return f"Events exported successfully to {path}"

    def import_csv(self, calendar: str, text: str) -> list[Event]:
        self.registry.get(calendar)
        events = parse_csv(text)
        if not events:
            return []
        return self.mutator.add_events(calendar, events, source="import")

    def import_calendar(self, calendar: str, filename: str | Path) -> str:
        path = self.settings.resolve_path(filename)
        if not path.is_file():
            raise NotFoundError(f"Import file not found: {path}")
        imported = self.import_csv(calendar, path.read_text(encoding="utf-8"))
        if not imported:
            return "No events found to import."
        return f"Successfully imported {len(imported)} events to calendar '{calendar}'"

    def _publish(self, event) -> None:
        if self.bus is not None:
            self.bus.publish(event)
