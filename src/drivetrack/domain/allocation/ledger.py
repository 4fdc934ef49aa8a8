# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Mapping

from drivetrack.domain.drive.entities import Drive


class MentorCapacityLedger:
    """Remaining capacity per mentor, iterated in the drive's mentor order.

    Built fresh for every allotment run and never shared between runs.
    Mentors outside the drive have no capacity.
    """

    def __init__(self, remaining: Mapping[str, int]) -> None:
        self._remaining: dict[str, int] = {m: max(0, int(c)) for m, c in remaining.items()}

    @classmethod
    def for_drive(cls, drive: Drive, assigned_counts: Mapping[str, int]) -> "MentorCapacityLedger":
        ordered: dict[str, int] = {}
        for mentor_id in drive.mentor_ids:
            if mentor_id in ordered:
                continue
            ordered[mentor_id] = drive.max_groups_per_mentor - assigned_counts.get(mentor_id, 0)
        return cls(ordered)

    def remaining(self, mentor_id: str) -> int:
        return self._remaining.get(mentor_id, 0)

    def has_capacity(self, mentor_id: str) -> bool:
        return self.remaining(mentor_id) > 0

    def consume(self, mentor_id: str) -> None:
        if not self.has_capacity(mentor_id):
            raise ValueError(f"mentor {mentor_id} has no remaining capacity")
        self._remaining[mentor_id] -= 1

    def first_available(self) -> str | None:
        for mentor_id, remaining in self._remaining.items():
            if remaining > 0:
                return mentor_id
        return None

    def snapshot(self) -> dict[str, int]:
        return dict(self._remaining)

    def __contains__(self, mentor_id: object) -> bool:
        return mentor_id in self._remaining

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"MentorCapacityLedger({self._remaining!r})"


__all__ = ["MentorCapacityLedger"]
