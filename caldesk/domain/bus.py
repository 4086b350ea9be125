"""Synchronous in-process bus for calendar domain events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventBus:
    """Publish/subscribe bus for domain events.

    Events are only published after a mutation has been committed, and
    handlers run synchronously in registration order on the caller's thread.
    """

    def __init__(self) -> None:
        self._subscribers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._subscribers[event_type].append(handler)

    def handlers_for(self, event_type: type) -> list[Handler]:
        return list(self._subscribers.get(event_type, []))

    def publish(self, event: Any) -> None:
        handlers = self.handlers_for(type(event))
        logger.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            handler(event)
