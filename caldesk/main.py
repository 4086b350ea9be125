"""FastAPI application: HTTP entry point for the calendar scheduling engine."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from caldesk.config import get_settings
from caldesk.domain.bus import EventBus
from caldesk.domain.errors import ConflictError, NotFoundError, SchedulingError
from caldesk.domain.handlers import HandlerRegistry
from caldesk.domain.models import (
    CalendarSummary,
    CopyEventRequest,
    CopyEventsRequest,
    CreateCalendarRequest,
    CreateEventRequest,
    EditCalendarRequest,
    EditEventRequest,
    EditEventsRequest,
    Event,
    ImportRequest,
    LocalDateTime,
    MessageResponse,
    RecurrenceRule,
    StatusResponse,
    TimelineEntry,
    coerce_calendar_edit,
    coerce_edit,
)
from caldesk.logging import configure_logging
from caldesk.repos.memory import CalendarRepository, TimelineRepository
from caldesk.services.engine import CalendarEngine

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Calendar Scheduling Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
calendar_repo = CalendarRepository()
timeline_repo = TimelineRepository()

handler_registry = HandlerRegistry(bus=event_bus, timeline_repo=timeline_repo)
engine = CalendarEngine(
    calendar_repo, bus=event_bus, timeline_repo=timeline_repo, settings=settings
)


@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    """Map the engine's error taxonomy onto HTTP status codes."""
    if isinstance(exc, NotFoundError):
        status_code = 404
    elif isinstance(exc, ConflictError):
        status_code = 409
    else:
        status_code = 400
    logger.info("%s %s -> %d: %s", request.method, request.url.path, status_code, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and query values are invalid requests (400), not 422."""
    detail = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    logger.info("%s %s -> 400: %s", request.method, request.url.path, detail)
    return JSONResponse(status_code=400, content={"detail": detail})


# ── Calendars ─────────────────────────────────────────────────────────


@app.post("/calendars", response_model=CalendarSummary, status_code=201)
def create_calendar(body: CreateCalendarRequest) -> CalendarSummary:
    return CalendarSummary.of(engine.create_calendar(body.name, body.timezone))


@app.get("/calendars", response_model=list[CalendarSummary])
def list_calendars() -> list[CalendarSummary]:
    return [CalendarSummary.of(c) for c in engine.list_calendars()]


@app.patch("/calendars/{name}", response_model=CalendarSummary)
def edit_calendar(name: str, body: EditCalendarRequest) -> CalendarSummary:
    edit = coerce_calendar_edit(body.property, body.value)
    return CalendarSummary.of(engine.edit_calendar(name, edit))


@app.delete("/calendars/{name}", response_model=MessageResponse)
def delete_calendar(name: str) -> MessageResponse:
    engine.delete_calendar(name)
    return MessageResponse(message=f"Calendar '{name}' deleted")


# ── Events ────────────────────────────────────────────────────────────


@app.post("/calendars/{name}/events", response_model=list[Event], status_code=201)
def create_event(name: str, body: CreateEventRequest) -> list[Event]:
    """Create a single event, or every occurrence of a recurring one."""
    repeat = None
    if body.repeat is not None:
        repeat = RecurrenceRule.parse(
            body.repeat.days, count=body.repeat.count, until=body.repeat.until
        )
    return engine.create_event(
        name,
        body.name,
        body.start,
        body.end,
        all_day=body.all_day,
        description=body.description,
        location=body.location,
        is_private=body.is_private,
        repeat=repeat,
    )


@app.get("/calendars/{name}/events", response_model=list[Event])
def list_events(
    name: str,
    on: date | None = None,
    start: LocalDateTime | None = None,
    end: LocalDateTime | None = None,
) -> list[Event]:
    """Events on a date (``?on=``) or touching a window (``?start=&end=``)."""
    if on is not None:
        return engine.events_on_date(name, on)
    if start is None or end is None:
        raise HTTPException(
            status_code=400,
            detail="Both start and end date-times must be provided.",
        )
    return engine.events_in_range(name, start, end)


@app.patch("/calendars/{name}/events", response_model=Event)
def edit_event(name: str, body: EditEventRequest) -> Event:
    edit = coerce_edit(body.property, body.value)
    return engine.edit_event(name, body.name, body.start, body.end, edit)


@app.patch("/calendars/{name}/events/series", response_model=list[Event])
def edit_events(name: str, body: EditEventsRequest) -> list[Event]:
    edit = coerce_edit(body.property, body.value)
    return engine.edit_events(name, body.name, body.start, edit)


@app.post("/calendars/{name}/copy", response_model=Event, status_code=201)
def copy_event(name: str, body: CopyEventRequest) -> Event:
    return engine.copy_event(name, body.name, body.start, body.target, body.target_start)


@app.post("/calendars/{name}/copy-range", response_model=list[Event], status_code=201)
def copy_events(name: str, body: CopyEventsRequest) -> list[Event]:
    if body.end_date is None:
        return engine.copy_events_on(name, body.start_date, body.target, body.target_date)
    return engine.copy_events_between(
        name, body.start_date, body.end_date, body.target, body.target_date
    )


# ── Status, export, import, timeline ──────────────────────────────────


@app.get("/calendars/{name}/status", response_model=StatusResponse)
def show_status(name: str, at: LocalDateTime) -> StatusResponse:
    return StatusResponse(calendar=name, at=at, status=engine.show_status(name, at))


@app.get("/calendars/{name}/export", response_class=PlainTextResponse)
def export_calendar(name: str) -> PlainTextResponse:
    return PlainTextResponse(engine.export_csv(name), media_type="text/csv")


@app.post("/calendars/{name}/import", response_model=list[Event], status_code=201)
def import_calendar(name: str, body: ImportRequest) -> list[Event]:
    return engine.import_csv(name, body.csv)


@app.get("/calendars/{name}/timeline", response_model=list[TimelineEntry])
def get_timeline(name: str) -> list[TimelineEntry]:
    return engine.timeline(name)
