"""CSV export and import in the Google Calendar column layout."""

from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from typing import Iterable

from caldesk.domain.errors import InvalidRequestError
from caldesk.domain.models import ALL_DAY_END, ALL_DAY_START, Event

logger = logging.getLogger(__name__)

HEADER = (
    "Subject",
    "Start Date",
    "Start Time",
    "End Date",
    "End Time",
    "All Day Event",
    "Description",
    "Location",
    "Private",
)

DATE_FORMAT = "%m/%d/%Y"
TIME_FORMAT = "%I:%M %p"


def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _flag(value: bool) -> str:
    return "True" if value else "False"


def export_row(event: Event) -> str:
    return ",".join(
        [
            _quote(event.name),
            event.start.strftime(DATE_FORMAT),
            event.start.strftime(TIME_FORMAT),
            event.end.strftime(DATE_FORMAT),
            event.end.strftime(TIME_FORMAT),
            _flag(event.is_all_day),
            _quote(event.description),
            _quote(event.location),
            _flag(event.is_private),
        ]
    )


def export_csv(events: Iterable[Event]) -> str:
    """Render events as CSV text, one row per event, ``\\n`` line endings."""
    lines = [",".join(HEADER)]
    lines.extend(export_row(e) for e in sorted(events, key=lambda e: (e.start, e.end)))
    return "\n".join(lines) + "\n"


def _parse_moment(day: str, moment: str) -> datetime:
    return datetime.strptime(f"{day.strip()} {moment.strip()}", f"{DATE_FORMAT} {TIME_FORMAT}")


def _parse_day(day: str) -> datetime:
    return datetime.strptime(day.strip(), DATE_FORMAT)


def parse_csv(text: str) -> list[Event]:
    """Parse CSV text produced by :func:`export_csv` (or Google Calendar).

    The header row is skipped, as are rows with fewer than eight columns.
    All-day rows are stored as 00:00:00 to 23:59:59 of their dates.
    """
    events: list[Event] = []
    rows = csv.reader(io.StringIO(text))
    next(rows, None)
    for line_no, row in enumerate(rows, start=2):
        if len(row) < 8:
            continue
        name, start_day, start_time, end_day, end_time = (field.strip() for field in row[:5])
        all_day = row[5].strip().lower() == "true"
        is_private = len(row) > 8 and row[8].strip().lower() == "true"
        try:
            if all_day:
                start = datetime.combine(_parse_day(start_day).date(), ALL_DAY_START)
                end = datetime.combine(_parse_day(end_day).date(), ALL_DAY_END)
            else:
                start = _parse_moment(start_day, start_time)
                end = _parse_moment(end_day, end_time)
            event = Event.create(
                name,
                start,
                end,
                description=row[6],
                location=row[7],
                is_private=is_private,
            )
        except (ValueError, InvalidRequestError) as exc:
            raise InvalidRequestError(f"Invalid event on line {line_no}: {exc}") from exc
        events.append(event)
    logger.debug("Parsed %d event(s) from CSV", len(events))
    return events
