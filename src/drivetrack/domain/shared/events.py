# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


@dataclass(slots=True)
class DomainEvent:
    event_id: UUID
    event_type: str
    version: int
    occurred_at: datetime
    correlation_id: str
    payload: dict[str, Any]

    @staticmethod
    def now(
        event_type: str,
        payload: dict[str, Any],
        *,
        occurred_at: datetime | None = None,
        version: int = 1,
        correlation_id: str = "",
    ) -> "DomainEvent":
        return DomainEvent(
            event_id=uuid4(),
            event_type=event_type,
            version=version,
            occurred_at=occurred_at or datetime.now(UTC),
            correlation_id=correlation_id,
            payload=payload,
        )


def _event(event_type: str, occurred_at: datetime | None, payload: dict[str, Any]) -> DomainEvent:
    return DomainEvent.now(event_type, payload, occurred_at=occurred_at)


# Typed factories, one per notification the outbox delivers
def MentorAssigned(*, occurred_at: datetime | None = None, **payload: Any) -> DomainEvent:
    return _event("MentorAssigned", occurred_at, payload)


def MentorUnassigned(*, occurred_at: datetime | None = None, **payload: Any) -> DomainEvent:
    return _event("MentorUnassigned", occurred_at, payload)


def AllotmentFailed(*, occurred_at: datetime | None = None, **payload: Any) -> DomainEvent:
    return _event("AllotmentFailed", occurred_at, payload)


def StageProgressed(*, occurred_at: datetime | None = None, **payload: Any) -> DomainEvent:
    return _event("StageProgressed", occurred_at, payload)


def StageRegressed(*, occurred_at: datetime | None = None, **payload: Any) -> DomainEvent:
    return _event("StageRegressed", occurred_at, payload)


__all__ = [
    "AllotmentFailed",
    "DomainEvent",
    "MentorAssigned",
    "MentorUnassigned",
    "StageProgressed",
    "StageRegressed",
]
