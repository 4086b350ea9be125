"""Service for detecting scheduling conflicts between events.

Two comparison policies live here and are kept apart on purpose:

* interval vs. interval (:func:`conflicts`, :func:`find_conflicts`) is
  half-open, so back-to-back events never conflict;
* point vs. interval (:func:`is_busy_at`) is closed, so a status query
  exactly on an event's start or end reports busy.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from caldesk.domain.models import Event


def intervals_overlap(
    start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime
) -> bool:
    return start_a < end_b and start_b < end_a


def find_conflicts(
    new_start: datetime,
    new_end: datetime,
    existing_events: Iterable[Event],
) -> list[Event]:
    """Events from *existing_events* that clash with ``[new_start, new_end)``.

    A clash needs new_start < event.end and event.start < new_end, so one
    event ending exactly when the other begins is fine.
    """
    return [
        event
        for event in existing_events
        if intervals_overlap(new_start, new_end, event.start, event.end)
    ]


def conflicts(candidate: Event, existing_events: Iterable[Event]) -> bool:
    """True when *candidate* overlaps any other event in *existing_events*.

    The candidate itself (same id) is skipped so an edited copy can be checked
    against a collection that still holds its original.
    """
    return any(
        intervals_overlap(candidate.start, candidate.end, event.start, event.end)
        for event in existing_events
        if event.id != candidate.id
    )


def busy_events_at(instant: datetime, existing_events: Iterable[Event]) -> list[Event]:
    """Return events whose closed interval ``[start, end]`` contains *instant*."""
    return [event for event in existing_events if event.start <= instant <= event.end]


def is_busy_at(instant: datetime, existing_events: Iterable[Event]) -> bool:
    # Closed on both ends: busy exactly at an event's end as well as its start.
    return bool(busy_events_at(instant, existing_events))
