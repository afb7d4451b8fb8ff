"""In-process async event bus for pipeline notifications.

The only event the core publishes is ``transcript.ready`` (a message reached
COMPLETE).  Handlers run in subscription order; a failing handler is logged
and does not stop the others or fail the publisher.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

log = logging.getLogger(__name__)

TRANSCRIPT_READY = "transcript.ready"


@dataclass(frozen=True)
class Event:
    """A published notification."""

    event_type: str
    source: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventHandler = Callable[[Event], Awaitable[None]]


class EventBus:
    """Pub/sub registry of async handlers keyed by event type."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[tuple[str, EventHandler]]] = {}

    def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Register ``handler`` for ``event_type``; returns a subscription id."""
        subscription_id = uuid.uuid4().hex
        self._subscribers.setdefault(event_type, []).append((subscription_id, handler))
        log.debug("Subscribed %s to %s", subscription_id, event_type)
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        for event_type, subscribers in self._subscribers.items():
            for i, (sub_id, _) in enumerate(subscribers):
                if sub_id == subscription_id:
                    subscribers.pop(i)
                    log.debug("Unsubscribed %s from %s", subscription_id, event_type)
                    return True
        log.warning("Subscription id %s not found", subscription_id)
        return False

    async def publish(self, event: Event) -> int:
        """Deliver ``event`` to every subscriber; returns how many succeeded."""
        subscribers = list(self._subscribers.get(event.event_type, []))
        if not subscribers:
            log.debug("No subscribers for %s", event.event_type)
            return 0

        delivered = 0
        for subscription_id, handler in subscribers:
            try:
                await handler(event)
                delivered += 1
            except Exception:
                log.exception(
                    "Handler %s failed for %s from %s",
                    subscription_id, event.event_type, event.source,
                )
        return delivered
