"""All-or-nothing creation, editing and copying of calendar events.

Every operation follows the same shape: compute the full set of new or
edited events, validate each one against the calendar it will land in
(including the other members of the same batch), and only then commit the
whole set. A rejected operation leaves the registry untouched.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Sequence

from caldesk.domain.bus import EventBus
from caldesk.domain.errors import ConflictError, InvalidRequestError, NotFoundError
from caldesk.domain.events import EventsAdded, EventsCopied, EventsEdited
from caldesk.domain.models import (
    ALL_DAY_END,
    ALL_DAY_START,
    TIME_EDITS,
    Calendar,
    DescriptionEdit,
    EndEdit,
    Event,
    EventEdit,
    LocationEdit,
    NameEdit,
    PrivacyEdit,
    RecurrenceRule,
    StartEdit,
)
from caldesk.repos.memory import CalendarRepository
from caldesk.services.conflicts import find_conflicts, intervals_overlap
from caldesk.services.listing import format_datetime
from caldesk.services.projection import project_to_date, project_to_datetime
from caldesk.services.recurrence import expand

logger = logging.getLogger(__name__)


def first_conflict(
    candidates: Sequence[Event], existing: Iterable[Event]
) -> tuple[Event, Event] | None:
    """Return the first ``(candidate, other)`` overlap in a planned batch.

    Each candidate is checked against every existing event and against the
    candidates planned before it.
    """
    existing = list(existing)
    for index, candidate in enumerate(candidates):
        clashes = find_conflicts(candidate.start, candidate.end, existing)
        if clashes:
            return candidate, clashes[0]
        for earlier in candidates[:index]:
            if intervals_overlap(candidate.start, candidate.end, earlier.start, earlier.end):
                return candidate, earlier
    return None


def apply_edit(event: Event, edit: EventEdit, *, keep_dates: bool = False) -> Event:
    """Return an edited copy of *event* (same id); *event* itself is untouched.

    With ``keep_dates`` a start/end edit only contributes its time of day;
    each event keeps its own date. This is how a series is retimed.
    """
    if isinstance(edit, NameEdit):
        if not edit.value.strip():
            raise InvalidRequestError("Missing value for property update.")
        return event.model_copy(update={"name": edit.value})
    if isinstance(edit, DescriptionEdit):
        return event.model_copy(update={"description": edit.value})
    if isinstance(edit, LocationEdit):
        return event.model_copy(update={"location": edit.value})
    if isinstance(edit, PrivacyEdit):
        return event.model_copy(update={"is_private": edit.value})
    if isinstance(edit, StartEdit):
        new_start = _combine(event.start.date(), edit.value.time()) if keep_dates else edit.value
        if new_start >= event.end:
            raise InvalidRequestError("New start must be before current end time.")
        return event.model_copy(update={"start": new_start})
    if isinstance(edit, EndEdit):
        new_end = _combine(event.end.date(), edit.value.time()) if keep_dates else edit.value
        if new_end <= event.start:
            raise InvalidRequestError("New end must be after current start time.")
        return event.model_copy(update={"end": new_end})
    raise InvalidRequestError(f"Unsupported property for edit: {edit.property}")


def _combine(day: date, moment: time) -> datetime:
    return datetime.combine(day, moment)


class TransactionalMutator:
    """Plans, validates and commits multi-event changes against a registry."""

    def __init__(self, registry: CalendarRepository, bus: EventBus | None = None) -> None:
        self.registry = registry
        self.bus = bus

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_event(self, calendar: str, event: Event) -> Event:
        with self.registry.lock:
            existing = self.registry.get(calendar).events
            if find_conflicts(event.start, event.end, existing):
                self._reject(calendar, "Conflict detected, event not created")
            self.registry.add_events(calendar, [event])
        logger.info("Created %r in %r at %s", event.name, calendar, format_datetime(event.start))
        self._publish(EventsAdded(calendar=calendar, event_ids=[event.id]))
        return event

    def create_series(self, calendar: str, anchor: Event, rule: RecurrenceRule) -> list[Event]:
        """Expand *anchor* by *rule* and store every occurrence, or none."""
        occurrences = [
            anchor.moved(start, end) for start, end in expand(anchor.start, anchor.end, rule)
        ]
        if not occurrences:
            raise InvalidRequestError("Recurrence produced no occurrences.")

        with self.registry.lock:
            clash = first_conflict(occurrences, self.registry.get(calendar).events)
            if clash is not None:
                candidate, _ = clash
                self._reject(
                    calendar,
                    f"Conflict detected on {format_datetime(candidate.start)}, event not created",
                )
            self.registry.add_events(calendar, occurrences)
        logger.info(
            "Created series %r in %r with %d occurrence(s)",
            anchor.name,
            calendar,
            len(occurrences),
        )
        self._publish(
            EventsAdded(
                calendar=calendar, event_ids=[e.id for e in occurrences], source="series"
            )
        )
        return occurrences

    def add_events(
        self, calendar: str, events: Sequence[Event], *, source: str = "import"
    ) -> list[Event]:
        """Store a batch of independent events, rejecting all on any overlap."""
        events = list(events)
        with self.registry.lock:
            existing = self.registry.get(calendar).events
            reasons: list[str] = []
            for index, event in enumerate(events):
                clashes = find_conflicts(event.start, event.end, existing)
                if clashes:
                    reasons.append(
                        f"Event {event.name} conflicts with existing event {clashes[0].name}"
                    )
                    continue
                for other in events[:index]:
                    if intervals_overlap(event.start, event.end, other.start, other.end):
                        reasons.append(
                            f"New event {event.name} conflicts with another new event {other.name}"
                        )
                        break
            if reasons:
                self._reject(calendar, "Cannot add all events: " + "; ".join(reasons))
            self.registry.add_events(calendar, events)
        self._publish(
            EventsAdded(calendar=calendar, event_ids=[e.id for e in events], source=source)
        )
        return events

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def edit_event(
        self, calendar: str, name: str, start: datetime, end: datetime, edit: EventEdit
    ) -> Event:
        """Edit the single event identified by ``(name, start, end)``."""
        with self.registry.lock:
            cal = self.registry.get(calendar)
            target = next((e for e in cal.events if e.matches(name, start, end)), None)
            if target is None:
                raise NotFoundError(f"No matching event found for editing: {name}")
            edited = apply_edit(target, edit)
            self._check_edits(cal, [edited], edit)
            self.registry.replace_events(calendar, [edited])
        self._publish(EventsEdited(calendar=calendar, event_ids=[edited.id], property=edit.property))
        return edited

    def edit_events(
        self,
        calendar: str,
        name: str,
        threshold: datetime | None,
        edit: EventEdit,
    ) -> list[Event]:
        """Edit every event named *name* starting at or after *threshold*.

        Without a threshold every event with that name is edited.
        """
        with self.registry.lock:
            cal = self.registry.get(calendar)
            selected = [
                e
                for e in cal.events
                if e.name == name and (threshold is None or e.start >= threshold)
            ]
            if not selected:
                raise NotFoundError(f"No matching event found for editing: {name}")
            edited = [apply_edit(e, edit, keep_dates=True) for e in selected]
            self._check_edits(cal, edited, edit)
            self.registry.replace_events(calendar, edited)
        logger.info("Edited %s of %d %r event(s) in %r", edit.property, len(edited), name, calendar)
        self._publish(
            EventsEdited(
                calendar=calendar, event_ids=[e.id for e in edited], property=edit.property
            )
        )
        return edited

    def _check_edits(self, cal: Calendar, edited: list[Event], edit: EventEdit) -> None:
        if not isinstance(edit, TIME_EDITS):
            return
        # Compare against the calendar as it would look after the commit.
        edited_ids = {e.id for e in edited}
        untouched = [e for e in cal.events if e.id not in edited_ids]
        if first_conflict(edited, untouched) is not None:
            self._reject(cal.name, f"Conflict detected after editing {edit.property}")

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def copy_event(
        self,
        source: str,
        name: str,
        start: datetime,
        target: str,
        target_start: datetime,
    ) -> Event:
        """Copy one event so it starts at the literal *target_start* in *target*."""
        with self.registry.lock:
            source_cal = self._calendar(source, "Source")
            target_cal = self._calendar(target, "Target")
            original = next(
                (e for e in source_cal.events if e.name == name and e.start == start), None
            )
            if original is None:
                raise NotFoundError(
                    f"Event with name '{name}' on {format_datetime(start)} "
                    f"not found in calendar {source}"
                )
            copy = project_to_datetime(original, target_start)
            if find_conflicts(copy.start, copy.end, target_cal.events):
                self._reject(target, f"Conflict detected when copying event: {original.name}")
            self.registry.add_events(target_cal.name, [copy])
        self._publish(
            EventsCopied(source_calendar=source, target_calendar=target, event_ids=[copy.id])
        )
        return copy

    def copy_events_on(
        self, source: str, day: date, target: str, target_date: date
    ) -> list[Event]:
        """Copy every event touching *day* onto *target_date* in *target*."""
        return self._copy_window(
            source,
            datetime.combine(day, ALL_DAY_START),
            datetime.combine(day, ALL_DAY_END),
            target,
            target_date,
        )

    def copy_events_between(
        self,
        source: str,
        start_date: date,
        end_date: date,
        target: str,
        target_date: date,
    ) -> list[Event]:
        """Copy every event touching ``[start_date, end_date]``.

        Each copy lands on *target_date* plus its own day offset from
        *start_date*, at its start time as seen from the target zone.
        """
        if end_date < start_date:
            raise InvalidRequestError("Source end time must not be before source start time.")
        return self._copy_window(
            source,
            datetime.combine(start_date, ALL_DAY_START),
            datetime.combine(end_date, ALL_DAY_END),
            target,
            target_date,
        )

    def _copy_window(
        self,
        source: str,
        window_start: datetime,
        window_end: datetime,
        target: str,
        target_date: date,
    ) -> list[Event]:
        with self.registry.lock:
            source_cal = self._calendar(source, "Source")
            target_cal = self._calendar(target, "Target")
            selected = self.registry.events_in_range(source_cal.name, window_start, window_end)
            if not selected:
                raise NotFoundError("Events to be copied are empty")

            copies = []
            for event in selected:
                # An event running into the window from the day before lands on target_date.
                offset = timedelta(days=max(0, (event.start.date() - window_start.date()).days))
                copies.append(
                    project_to_date(
                        event, source_cal.timezone, target_cal.timezone, target_date + offset
                    )
                )

            clash = first_conflict(copies, target_cal.events)
            if clash is not None:
                candidate, _ = clash
                self._reject(target, f"Conflict detected when copying event: {candidate.name}")
            self.registry.add_events(target_cal.name, copies)
        logger.info("Copied %d event(s) from %r to %r", len(copies), source, target)
        self._publish(
            EventsCopied(
                source_calendar=source,
                target_calendar=target,
                event_ids=[e.id for e in copies],
            )
        )
        return copies

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _calendar(self, name: str, role: str) -> Calendar:
        try:
            return self.registry.get(name)
        except NotFoundError:
            raise NotFoundError(f"{role} calendar not found: {name}") from None

    def _reject(self, calendar: str, message: str) -> None:
        logger.warning("Rejected change to %r: %s", calendar, message)
        raise ConflictError(message)

    def _publish(self, event) -> None:
        if self.bus is not None:
            self.bus.publish(event)
