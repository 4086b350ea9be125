"""Project events onto another calendar's wall clock when copying."""

from __future__ import annotations

from datetime import date, datetime, time

from caldesk.domain.models import Event, load_zone


def wall_time_in_zone(local: datetime, source_zone: str, target_zone: str) -> time:
    """Time of day that the instant *local* (in *source_zone*) shows in *target_zone*."""
    instant = local.replace(tzinfo=load_zone(source_zone))
    return instant.astimezone(load_zone(target_zone)).time().replace(tzinfo=None)


def project_to_datetime(event: Event, target_start: datetime) -> Event:
    """Copy *event* to start at the literal wall-clock *target_start*.

    The caller supplied the exact local time in the target calendar, so no
    zone arithmetic is applied. The duration is preserved.
    """
    return event.moved(target_start, target_start + event.duration)


def project_to_date(
    event: Event, source_zone: str, target_zone: str, target_date: date
) -> Event:
    """Copy *event* onto *target_date* at the target zone's view of its start.

    The date is always *target_date*, even when the zone conversion crosses
    midnight. The duration is preserved.
    """
    start = datetime.combine(
        target_date, wall_time_in_zone(event.start, source_zone, target_zone)
    )
    return event.moved(start, start + event.duration)
