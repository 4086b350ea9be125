"""Service for expanding a weekly recurrence rule into concrete occurrences."""

from __future__ import annotations

import logging
from datetime import date, datetime, time

from dateutil.rrule import WEEKLY, rrule

from caldesk.domain.errors import InvalidRequestError
from caldesk.domain.models import RecurrenceRule, check_recurrence

logger = logging.getLogger(__name__)


def expand(
    anchor_start: datetime,
    anchor_end: datetime,
    rule: RecurrenceRule,
) -> list[tuple[datetime, datetime]]:
    """Expand an anchor interval into ``(start, end)`` occurrences.

    Dates are walked from the anchor's own date. The anchor date is only
    an occurrence when its weekday is part of the rule. Every occurrence
    keeps the anchor's start time, end time and day offset between the two.
    An ``until`` boundary is inclusive by date.
    """
    # Rules built with model_construct/model_copy skip the model validator.
    check_recurrence(rule.weekdays, rule.count, rule.until)
    if rule.until is not None and rule.until < anchor_start.date():
        raise InvalidRequestError("Recurrence end date must be after the event start date.")

    duration = anchor_end - anchor_start
    walk = rrule(
        WEEKLY,
        dtstart=anchor_start,
        byweekday=sorted(day.position for day in rule.weekdays),
        count=rule.count,
        until=_end_of(rule.until) if rule.until is not None else None,
    )

    occurrences = [(start, start + duration) for start in walk]
    logger.debug(
        "Expanded %s from %s into %d occurrence(s)",
        rule.codes,
        anchor_start.isoformat(),
        len(occurrences),
    )
    return occurrences


def _end_of(day: date) -> datetime:
    return datetime.combine(day, time.max)
