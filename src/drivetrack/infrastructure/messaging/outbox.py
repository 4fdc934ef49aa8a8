# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import threading

from drivetrack.domain.shared.events import DomainEvent

logger = logging.getLogger(__name__)


class InMemoryOutbox:
    """In-process outbox; ``EventDispatcher`` drains it after each request."""

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []
        self._lock = threading.Lock()

    def enqueue(self, *events: DomainEvent) -> None:
        with self._lock:
            self._events.extend(events)
        for event in events:
            logger.debug("event queued type=%s id=%s", event.event_type, event.event_id)

    def drain(self) -> list[DomainEvent]:
        with self._lock:
            ev = list(self._events)
            self._events.clear()
        return ev

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)


__all__ = ["InMemoryOutbox"]
