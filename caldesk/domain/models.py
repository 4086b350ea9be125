"""Domain models for calendars, events and recurrence rules."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta, timezone
from enum import StrEnum
from typing import Annotated, Iterable, Literal, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, NaiveDatetime, ValidationError, model_validator

from caldesk.domain.errors import InvalidRequestError

ALL_DAY_START = time(0, 0, 0)
ALL_DAY_END = time(23, 59, 59)

# Wall-clock values; the zone is always the owning calendar's.
LocalDateTime = Annotated[datetime, NaiveDatetime]


class Weekday(StrEnum):
    MONDAY = "M"
    TUESDAY = "T"
    WEDNESDAY = "W"
    THURSDAY = "R"
    FRIDAY = "F"
    SATURDAY = "S"
    SUNDAY = "U"

    @property
    def position(self) -> int:
        """Position in the week, Monday == 0 (matches ``date.weekday()``)."""
        return _WEEKDAY_ORDER.index(self)

    @classmethod
    def of(cls, day: date) -> Weekday:
        return _WEEKDAY_ORDER[day.weekday()]


_WEEKDAY_ORDER = list(Weekday)


class TimelineEntryType(StrEnum):
    CALENDAR_CREATED = "calendar_created"
    CALENDAR_EDITED = "calendar_edited"
    EVENTS_ADDED = "events_added"
    EVENTS_EDITED = "events_edited"
    EVENTS_COPIED = "events_copied"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def load_zone(tz: str) -> ZoneInfo:
    """Resolve an IANA zone id, rejecting anything ``zoneinfo`` cannot load."""
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, TypeError) as exc:
        raise InvalidRequestError(f"Invalid timezone: {tz}") from exc


def _request_error(exc: ValidationError) -> InvalidRequestError:
    """Recover the ``InvalidRequestError`` a model validator raised."""
    for error in exc.errors():
        cause = error.get("ctx", {}).get("error")
        if isinstance(cause, InvalidRequestError):
            return cause
    return InvalidRequestError(str(exc))


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Event(BaseModel):
    """A single bookable occurrence with naive wall-clock bounds.

    The zone is the owning calendar's. Exact-match operations address an
    event by ``(name, start, end)``.
    """

    id: str = Field(default_factory=_new_id)
    name: str
    start: LocalDateTime
    end: LocalDateTime
    description: str = ""
    location: str = ""
    is_private: bool = False

    @model_validator(mode="after")
    def _end_after_start(self) -> Event:
        if self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @classmethod
    def create(
        cls,
        name: str,
        start: datetime,
        end: datetime,
        *,
        description: str | None = None,
        location: str | None = None,
        is_private: bool = False,
    ) -> Event:
        """Validate the raw fields and build an event, raising ``InvalidRequestError``."""
        check_event_fields(name, start, end)
        return cls(
            name=name,
            start=start,
            end=end,
            description=description or "",
            location=location or "",
            is_private=is_private,
        )

    @classmethod
    def all_day(cls, name: str, day: date, last_day: date | None = None, **fields) -> Event:
        return cls.create(
            name,
            datetime.combine(day, ALL_DAY_START),
            datetime.combine(last_day or day, ALL_DAY_END),
            **fields,
        )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_all_day(self) -> bool:
        return self.start.time() == ALL_DAY_START and self.end.time() == ALL_DAY_END

    def matches(self, name: str, start: datetime, end: datetime) -> bool:
        return self.name == name and self.start == start and self.end == end

    def moved(self, start: datetime, end: datetime) -> Event:
        """Return a new event (fresh id) with the same details at new bounds."""
        return Event(
            name=self.name,
            start=start,
            end=end,
            description=self.description,
            location=self.location,
            is_private=self.is_private,
        )


def check_event_fields(name: str | None, start: datetime | None, end: datetime | None) -> None:
    if name is None or not name.strip():
        raise InvalidRequestError("Event name is required.")
    if start is None:
        raise InvalidRequestError("Start date and time are required.")
    if end is None:
        raise InvalidRequestError("End date and time are required.")
    for value in (start, end):
        if value.tzinfo is not None:
            raise InvalidRequestError(
                f"Invalid date and time format: {value.isoformat()}. Expected: yyyy-MM-ddTHH:mm"
            )
    if end <= start:
        raise InvalidRequestError("End date and time must be after start date and time.")


def check_recurrence(
    weekdays: frozenset[Weekday], count: int | None, until: date | None
) -> None:
    """A weekly rule needs at least one weekday and exactly one positive bound."""
    if not weekdays:
        raise InvalidRequestError("Recurrence days must be provided for recurring events.")
    if count is None and until is None:
        raise InvalidRequestError(
            "Either recurrence count or recurrence end date must be defined "
            "for a recurring event."
        )
    if count is not None and until is not None:
        raise InvalidRequestError(
            "Cannot define both recurrence count and recurrence end date "
            "for a recurring event."
        )
    if count is not None and count <= 0:
        raise InvalidRequestError("Recurrence count must be greater than 0.")


class Calendar(BaseModel):
    name: str
    timezone: str
    events: list[Event] = Field(default_factory=list)


class RecurrenceRule(BaseModel):
    """Weekly weekday set bounded by an occurrence count or an inclusive until date.

    Constructing the model directly validates it; a broken rule raises
    ``pydantic.ValidationError``. :meth:`parse` takes raw codes and surfaces
    the same checks as ``InvalidRequestError`` with a stable message.
    """

    weekdays: frozenset[Weekday]
    count: int | None = None
    until: date | None = None

    @model_validator(mode="after")
    def _bounded_weekday_set(self) -> RecurrenceRule:
        check_recurrence(self.weekdays, self.count, self.until)
        return self

    @classmethod
    def parse(
        cls,
        days: str | Iterable[str | Weekday],
        *,
        count: int | None = None,
        until: date | datetime | None = None,
    ) -> RecurrenceRule:
        weekdays: set[Weekday] = set()
        for code in days:
            try:
                weekdays.add(Weekday(code))
            except ValueError:
                raise InvalidRequestError(f"Invalid weekday code: {code}") from None

        if isinstance(until, datetime):
            until = until.date()
        try:
            return cls(weekdays=frozenset(weekdays), count=count, until=until)
        except ValidationError as exc:
            raise _request_error(exc) from None

    @property
    def codes(self) -> str:
        return "".join(day.value for day in _WEEKDAY_ORDER if day in self.weekdays)


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    calendar: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Edits (closed set of properties, each with a typed value)
# ---------------------------------------------------------------------------


class NameEdit(BaseModel):
    property: Literal["name"] = "name"
    value: str


class DescriptionEdit(BaseModel):
    property: Literal["description"] = "description"
    value: str = ""


class LocationEdit(BaseModel):
    property: Literal["location"] = "location"
    value: str = ""


class StartEdit(BaseModel):
    property: Literal["start"] = "start"
    value: LocalDateTime


class EndEdit(BaseModel):
    property: Literal["end"] = "end"
    value: LocalDateTime


class PrivacyEdit(BaseModel):
    property: Literal["isprivate"] = "isprivate"
    value: bool


EventEdit = Annotated[
    Union[NameEdit, DescriptionEdit, LocationEdit, StartEdit, EndEdit, PrivacyEdit],
    Field(discriminator="property"),
]

TIME_EDITS = (StartEdit, EndEdit)


def _parse_datetime(raw: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(raw.strip())
    except ValueError:
        parsed = None
    # Values carrying a UTC offset are rejected like any other malformed input.
    if parsed is None or parsed.tzinfo is not None:
        raise InvalidRequestError(
            f"Invalid date and time format: {raw}. Expected: yyyy-MM-ddTHH:mm"
        )
    return parsed


def _parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered not in ("true", "false"):
        raise InvalidRequestError(f"Invalid boolean value: {raw}")
    return lowered == "true"


def coerce_edit(property: str, value: str | None) -> EventEdit:
    """Resolve a ``(property, raw value)`` pair from a text boundary into a typed edit."""
    prop = property.strip().lower()
    if value is None:
        raise InvalidRequestError("Missing value for property update.")
    if prop == "name":
        return NameEdit(value=value)
    if prop == "description":
        return DescriptionEdit(value=value)
    if prop == "location":
        return LocationEdit(value=value)
    if prop == "start":
        return StartEdit(value=_parse_datetime(value))
    if prop == "end":
        return EndEdit(value=_parse_datetime(value))
    if prop == "isprivate":
        return PrivacyEdit(value=_parse_bool(value))
    raise InvalidRequestError(f"Unsupported property for edit: {property}")


class CalendarNameEdit(BaseModel):
    property: Literal["name"] = "name"
    value: str


class TimezoneEdit(BaseModel):
    property: Literal["timezone"] = "timezone"
    value: str


CalendarEdit = Annotated[
    Union[CalendarNameEdit, TimezoneEdit], Field(discriminator="property")
]


def coerce_calendar_edit(property: str, value: str | None) -> CalendarEdit:
    prop = property.strip().lower()
    if value is None or not value.strip():
        raise InvalidRequestError("Missing value for property update.")
    if prop == "name":
        return CalendarNameEdit(value=value)
    if prop == "timezone":
        return TimezoneEdit(value=value)
    raise InvalidRequestError(f"Unsupported property for calendar edit: {property}")


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CreateCalendarRequest(BaseModel):
    name: str
    timezone: str | None = None


class EditCalendarRequest(BaseModel):
    property: str
    value: str


class RecurrenceRequest(BaseModel):
    days: str
    count: int | None = None
    until: date | None = None


class CreateEventRequest(BaseModel):
    name: str
    start: LocalDateTime
    end: LocalDateTime | None = None
    all_day: bool = False
    description: str = ""
    location: str = ""
    is_private: bool = False
    repeat: RecurrenceRequest | None = None


class EditEventRequest(BaseModel):
    name: str
    start: LocalDateTime
    end: LocalDateTime
    property: str
    value: str


class EditEventsRequest(BaseModel):
    name: str
    start: LocalDateTime | None = None
    property: str
    value: str


class CopyEventRequest(BaseModel):
    name: str
    start: LocalDateTime
    target: str
    target_start: LocalDateTime


class CopyEventsRequest(BaseModel):
    start_date: date
    end_date: date | None = None
    target: str
    target_date: date


class ImportRequest(BaseModel):
    csv: str


class CalendarSummary(BaseModel):
    name: str
    timezone: str
    event_count: int = 0

    @classmethod
    def of(cls, calendar: Calendar) -> CalendarSummary:
        return cls(
            name=calendar.name,
            timezone=calendar.timezone,
            event_count=len(calendar.events),
        )


class StatusResponse(BaseModel):
    calendar: str
    at: LocalDateTime
    status: Literal["Busy", "Available"]


class MessageResponse(BaseModel):
    message: str
