"""Domain event handlers that record committed changes on the timeline."""

from __future__ import annotations

import logging

from caldesk.domain.bus import EventBus
from caldesk.domain.events import (
    CalendarCreated,
    CalendarDeleted,
    CalendarEdited,
    EventsAdded,
    EventsCopied,
    EventsEdited,
)
from caldesk.domain.models import TimelineEntry, TimelineEntryType
from caldesk.repos.memory import TimelineRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the timeline."""

    def __init__(self, bus: EventBus, timeline_repo: TimelineRepository) -> None:
        self.bus = bus
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(CalendarCreated, self.on_calendar_created)
        self.bus.subscribe(CalendarEdited, self.on_calendar_edited)
        self.bus.subscribe(CalendarDeleted, self.on_calendar_deleted)
        self.bus.subscribe(EventsAdded, self.on_events_added)
        self.bus.subscribe(EventsEdited, self.on_events_edited)
        self.bus.subscribe(EventsCopied, self.on_events_copied)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_calendar_created(self, event: CalendarCreated) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                calendar=event.calendar,
                type=TimelineEntryType.CALENDAR_CREATED,
                payload={"timezone": event.timezone},
            )
        )

    def on_calendar_edited(self, event: CalendarEdited) -> None:
        # Keep the history attached to the calendar under its new name
        if event.previous_name != event.calendar:
            self.timeline_repo.rename_calendar(event.previous_name, event.calendar)
        self.timeline_repo.add(
            TimelineEntry(
                calendar=event.calendar,
                type=TimelineEntryType.CALENDAR_EDITED,
                payload={"property": event.property, "value": event.value},
            )
        )

    def on_calendar_deleted(self, event: CalendarDeleted) -> None:
        # History goes with the calendar; a later calendar of the same name starts clean.
        dropped = self.timeline_repo.drop_calendar(event.calendar)
        logger.info("Calendar %r deleted, %d timeline entries dropped", event.calendar, dropped)

    def on_events_added(self, event: EventsAdded) -> None:
        logger.info(
            "%d event(s) added to %r (%s)", len(event.event_ids), event.calendar, event.source
        )
        self.timeline_repo.add(
            TimelineEntry(
                calendar=event.calendar,
                type=TimelineEntryType.EVENTS_ADDED,
                payload={"event_ids": event.event_ids, "source": event.source},
            )
        )

    def on_events_edited(self, event: EventsEdited) -> None:
        logger.info(
            "%d event(s) in %r edited (%s)", len(event.event_ids), event.calendar, event.property
        )
        self.timeline_repo.add(
            TimelineEntry(
                calendar=event.calendar,
                type=TimelineEntryType.EVENTS_EDITED,
                payload={"event_ids": event.event_ids, "property": event.property},
            )
        )

    def on_events_copied(self, event: EventsCopied) -> None:
        logger.info(
            "%d event(s) copied from %r to %r",
            len(event.event_ids),
            event.source_calendar,
            event.target_calendar,
        )
        self.timeline_repo.add(
            TimelineEntry(
                calendar=event.target_calendar,
                type=TimelineEntryType.EVENTS_COPIED,
                payload={
                    "event_ids": event.event_ids,
                    "source_calendar": event.source_calendar,
                },
            )
        )
