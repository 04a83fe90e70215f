"""In-process event bus for operator-facing lifecycle events.

Stands in for an external event stream: publishers emit JSON-like envelopes
on named topics, subscribers (alerting hooks, tests) receive them in order.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Sequence

EventHandler = Callable[[str, dict[str, Any]], Awaitable[None]]

_LOGGER = logging.getLogger(__name__)


class EventBus:
    """Dispatches published envelopes to the handlers subscribed to a topic."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        self._subscribers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        handlers = self._subscribers.get(topic)
        if handlers and handler in handlers:
            handlers.remove(handler)
            if not handlers:
                self._subscribers.pop(topic, None)

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        envelope = {
            "eventType": topic,
            "occurredAt": datetime.now(timezone.utc).isoformat(),
            **payload,
        }
        # Iterate over a copy in case handlers mutate subscriptions.
        for handler in list(self._subscribers.get(topic, [])):
            try:
                await handler(topic, envelope)
            except Exception:
                _LOGGER.exception("Event handler failed", extra={"topic": topic})


class EventRecorder:
    """Subscriber that keeps the most recent envelopes seen on its topics."""

    def __init__(self, bus: EventBus, topics: Sequence[str], *, maxlen: int | None = None) -> None:
        self._bus = bus
        self._topics = list(topics)
        self.events: deque[tuple[str, dict[str, Any]]] = deque(maxlen=maxlen)
        self._started = False

    async def _record(self, topic: str, envelope: dict[str, Any]) -> None:
        self.events.append((topic, envelope))

    def start(self) -> None:
        if self._started:
            return
        for topic in self._topics:
            self._bus.subscribe(topic, self._record)
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return
        for topic in self._topics:
            self._bus.unsubscribe(topic, self._record)
        self._started = False

    def of_type(self, topic: str) -> list[dict[str, Any]]:
        return [envelope for seen_topic, envelope in self.events if seen_topic == topic]
