# -*- coding: utf-8 -*-
from __future__ import annotations

import json
import logging
from collections import defaultdict
from typing import Callable

from drivetrack.domain.shared.events import DomainEvent
from drivetrack.infrastructure.messaging.outbox import InMemoryOutbox
from drivetrack.infrastructure.monitoring.metrics import ServiceMetrics

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]
ALL_EVENTS = "*"


def log_event(event: DomainEvent) -> None:
    """Default subscriber: one structured log line per notification."""

    logger.info(
        "event delivered type=%s id=%s payload=%s",
        event.event_type,
        event.event_id,
        json.dumps(event.payload, default=str, ensure_ascii=False, sort_keys=True),
    )


class EventDispatcher:
    """Drains the outbox and hands each event to its subscribers.

    A failing subscriber is logged and counted; the remaining subscribers and
    events are still delivered.
    """

    def __init__(self, outbox: InMemoryOutbox, *, metrics: ServiceMetrics | None = None) -> None:
        self._outbox = outbox
        self._metrics = metrics
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)

    def dispatch(self) -> int:
        events = self._outbox.drain()
        for event in events:
            handlers = self._handlers.get(event.event_type, []) + self._handlers.get(ALL_EVENTS, [])
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception("event handler failed type=%s id=%s", event.event_type, event.event_id)
                    self._record(event, "failed")
                else:
                    self._record(event, "delivered")
        return len(events)

    def _record(self, event: DomainEvent, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.record_event(event.event_type, outcome)


def build_dispatcher(outbox: InMemoryOutbox, *, metrics: ServiceMetrics | None = None) -> EventDispatcher:
    dispatcher = EventDispatcher(outbox, metrics=metrics)
    dispatcher.subscribe(ALL_EVENTS, log_event)
    return dispatcher


__all__ = ["ALL_EVENTS", "EventDispatcher", "EventHandler", "build_dispatcher", "log_event"]
