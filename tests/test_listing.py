"""Tests for event listings and status text."""

from datetime import datetime

from caldesk.domain.models import Event
from caldesk.services.listing import format_datetime, format_event, format_listing, status_at


def test_format_datetime_omits_zero_seconds():
    assert format_datetime(datetime(2025, 3, 13, 14, 0)) == "2025-03-13T14:00"
    assert format_datetime(datetime(2025, 3, 13, 23, 59, 59)) == "2025-03-13T23:59:59"


def test_format_event_with_and_without_location():
    event = Event(name="Lunch", start=datetime(2025, 3, 13, 12, 0), end=datetime(2025, 3, 13, 13, 0))
    assert format_event(event) == "- Lunch: 2025-03-13T12:00 to 2025-03-13T13:00"

    located = event.model_copy(update={"location": "Cafe"})
    assert format_event(located) == "- Lunch: 2025-03-13T12:00 to 2025-03-13T13:00 at Cafe"


def test_listing_is_sorted_with_trailing_newline():
    second = Event(name="B", start=datetime(2025, 3, 13, 12, 0), end=datetime(2025, 3, 13, 13, 0))
    first = Event(name="A", start=datetime(2025, 3, 13, 9, 0), end=datetime(2025, 3, 13, 10, 0))

    assert format_listing([second, first]) == (
        "- A: 2025-03-13T09:00 to 2025-03-13T10:00\n"
        "- B: 2025-03-13T12:00 to 2025-03-13T13:00\n"
    )


def test_empty_listing():
    assert format_listing([]) == "No events found."


def test_status_text():
    event = Event(name="A", start=datetime(2025, 3, 13, 9, 0), end=datetime(2025, 3, 13, 10, 0))
    assert status_at(datetime(2025, 3, 13, 10, 0), [event]) == "Busy"
    assert status_at(datetime(2025, 3, 13, 10, 1), [event]) == "Available"
