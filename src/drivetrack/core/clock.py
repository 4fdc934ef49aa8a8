"""Clock abstractions for drivetrack.

Runtime code depends on :class:`Clock` instead of calling ``datetime.now``
directly, so allotment timestamps and log records stay reproducible in tests
through :class:`FrozenClock`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Callable, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "UTC"


def _system_now() -> datetime:
    return datetime.now(UTC)


class SupportsNow(Protocol):
    """Protocol implemented by objects exposing a ``now`` method."""

    def now(self) -> datetime:  # pragma: no cover - structural typing
        ...


def _coerce_aware(value: datetime, *, timezone: ZoneInfo) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(timezone)


def validate_timezone(tz_name: str) -> ZoneInfo:
    """Return a :class:`ZoneInfo` for *tz_name* or raise ``ValueError``."""

    candidate = (tz_name or "").strip()
    if not candidate:
        raise ValueError("CONFIG_TZ_INVALID: timezone must not be empty")
    try:
        return ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"CONFIG_TZ_INVALID: unknown timezone {candidate!r}") from exc


class Clock(ABC):
    """Abstract clock interface."""

    timezone: ZoneInfo

    @abstractmethod
    def now(self) -> datetime:
        """Return the current datetime in :attr:`timezone`."""

    def isoformat(self) -> str:
        return self.now().isoformat()

    @classmethod
    def for_timezone(
        cls, tz_name: str, *, now_factory: Callable[[], datetime] | None = None
    ) -> "SystemClock":
        return SystemClock(timezone=validate_timezone(tz_name), now_factory=now_factory or _system_now)


@dataclass(slots=True)
class SystemClock(Clock):
    """Clock backed by the process wall clock."""

    timezone: ZoneInfo
    now_factory: Callable[[], datetime] = field(default=_system_now, repr=False)

    def now(self) -> datetime:
        return _coerce_aware(self.now_factory(), timezone=self.timezone)


@dataclass(slots=True)
class FrozenClock(Clock):
    """Clock returning a pre-defined instant; ``tick`` moves it forward."""

    timezone: ZoneInfo
    _current: datetime | None = field(default=None, repr=False)

    def now(self) -> datetime:
        if self._current is None:
            raise RuntimeError("Frozen clock not initialised; call set() first")
        return _coerce_aware(self._current, timezone=self.timezone)

    def set(self, value: datetime) -> None:
        if value.tzinfo is None:
            raise ValueError("CONFIG_CLOCK_FROZEN: value must be timezone-aware")
        self._current = value

    def tick(self, seconds: float) -> None:
        if self._current is None:
            raise RuntimeError("Frozen clock not initialised; call set() first")
        self._current = self._current + timedelta(seconds=seconds)


def system_clock(tz_name: str = DEFAULT_TIMEZONE) -> SystemClock:
    return Clock.for_timezone(tz_name)


__all__ = [
    "Clock",
    "DEFAULT_TIMEZONE",
    "FrozenClock",
    "SupportsNow",
    "SystemClock",
    "system_clock",
    "validate_timezone",
]
