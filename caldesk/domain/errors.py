"""Errors raised by the scheduling engine.

Every message is stable: callers and tests match on substrings.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for every error the engine reports to a caller."""

    @property
    def message(self) -> str:
        return str(self)


class InvalidRequestError(SchedulingError, ValueError):
    """Malformed or inconsistent input, rejected before any mutation."""


class NotFoundError(SchedulingError, LookupError):
    """A referenced calendar or event does not exist."""


class ConflictError(SchedulingError):
    """An event would overlap another event of the same calendar."""
