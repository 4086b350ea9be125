"""Tests for the event bus lifecycle: committed changes land on the timeline."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import pytest

from caldesk.config import Settings
from caldesk.domain.bus import EventBus
from caldesk.domain.errors import ConflictError
from caldesk.domain.events import EventsAdded
from caldesk.domain.handlers import HandlerRegistry
from caldesk.domain.models import (
    CalendarNameEdit,
    LocationEdit,
    RecurrenceRule,
    TimelineEntryType,
    TimezoneEdit,
)
from caldesk.repos.memory import CalendarRepository, TimelineRepository
from caldesk.services.engine import CalendarEngine


@pytest.fixture()
def env(tmp_path: Path):
    """Fresh bus + repos + engine for each test."""
    bus = EventBus()
    timeline_repo = TimelineRepository()
    registry = HandlerRegistry(bus=bus, timeline_repo=timeline_repo)
    engine = CalendarEngine(
        CalendarRepository(),
        bus=bus,
        timeline_repo=timeline_repo,
        settings=Settings(log_level="INFO", default_timezone="UTC", export_dir=tmp_path),
    )

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.timeline_repo = timeline_repo
    e.registry = registry
    e.engine = engine
    return e


def _types(env, calendar: str) -> list[TimelineEntryType]:
    return [entry.type for entry in env.engine.timeline(calendar)]


# ---------------------------------------------------------------------------
# Calendars
# ---------------------------------------------------------------------------


def test_calendar_created_entry(env):
    env.engine.create_calendar("Work", "Asia/Tokyo")

    [entry] = env.engine.timeline("Work")
    assert entry.type == TimelineEntryType.CALENDAR_CREATED
    assert entry.payload == {"timezone": "Asia/Tokyo"}


def test_default_timezone_comes_from_settings(env):
    assert env.engine.create_calendar("Work").timezone == "UTC"


def test_rename_carries_timeline_over(env):
    env.engine.create_calendar("Work")
    env.engine.edit_calendar("Work", CalendarNameEdit(value="Office"))

    assert env.engine.timeline("Work") == []
    assert _types(env, "Office") == [
        TimelineEntryType.CALENDAR_CREATED,
        TimelineEntryType.CALENDAR_EDITED,
    ]


def test_timezone_edit_entry(env):
    env.engine.create_calendar("Work")
    env.engine.edit_calendar("Work", TimezoneEdit(value="Europe/Berlin"))

    entry = env.engine.timeline("Work")[-1]
    assert entry.payload == {"property": "timezone", "value": "Europe/Berlin"}


def test_delete_drops_history(env):
    env.engine.create_calendar("Work")
    env.engine.create_event("Work", "A", datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0))
    env.engine.delete_calendar("Work")

    assert env.engine.timeline("Work") == []


def test_recreated_calendar_starts_with_fresh_history(env):
    """A new calendar reusing a deleted one's name must not inherit its entries."""
    env.engine.create_calendar("Work", "Asia/Tokyo")
    env.engine.create_event("Work", "A", datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0))
    env.engine.delete_calendar("Work")

    env.engine.create_calendar("Work", "Europe/Berlin")

    [entry] = env.engine.timeline("Work")
    assert entry.type == TimelineEntryType.CALENDAR_CREATED
    assert entry.payload == {"timezone": "Europe/Berlin"}


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


def test_series_is_one_timeline_entry(env):
    env.engine.create_calendar("Work")
    created = env.engine.create_event(
        "Work",
        "Standup",
        datetime(2025, 3, 21, 9, 0),
        datetime(2025, 3, 21, 9, 30),
        repeat=RecurrenceRule.parse("MTWRF", count=2),
    )

    entry = env.engine.timeline("Work")[-1]
    assert entry.type == TimelineEntryType.EVENTS_ADDED
    assert entry.payload["source"] == "series"
    assert entry.payload["event_ids"] == [e.id for e in created]


def test_rejected_change_publishes_nothing(env):
    env.engine.create_calendar("Work")
    env.engine.create_event("Work", "A", datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0))
    seen: list[EventsAdded] = []
    env.bus.subscribe(EventsAdded, seen.append)

    with pytest.raises(ConflictError):
        env.engine.create_event("Work", "B", datetime(2025, 1, 1, 9, 30), datetime(2025, 1, 1, 10, 30))

    assert seen == []
    assert _types(env, "Work").count(TimelineEntryType.EVENTS_ADDED) == 1


def test_edit_entry_names_property(env):
    env.engine.create_calendar("Work")
    env.engine.create_event("Work", "A", datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0))

    env.engine.edit_event(
        "Work", "A", datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0), LocationEdit(value="Lab")
    )

    entry = env.engine.timeline("Work")[-1]
    assert entry.type == TimelineEntryType.EVENTS_EDITED
    assert entry.payload["property"] == "location"


def test_copy_is_recorded_on_target(env):
    env.engine.create_calendar("Work")
    env.engine.create_calendar("Home")
    env.engine.create_event("Work", "A", datetime(2025, 1, 1, 9, 0), datetime(2025, 1, 1, 10, 0))

    env.engine.copy_events_on("Work", date(2025, 1, 1), "Home", date(2025, 1, 8))

    entry = env.engine.timeline("Home")[-1]
    assert entry.type == TimelineEntryType.EVENTS_COPIED
    assert entry.payload["source_calendar"] == "Work"
    assert TimelineEntryType.EVENTS_COPIED not in _types(env, "Work")


def test_bus_runs_handlers_in_order():
    bus = EventBus()
    calls: list[str] = []
    bus.subscribe(EventsAdded, lambda e: calls.append("first"))
    bus.subscribe(EventsAdded, lambda e: calls.append("second"))

    bus.publish(EventsAdded(calendar="Work", event_ids=[]))

    assert calls == ["first", "second"]
