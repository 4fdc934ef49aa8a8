# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from drivetrack.domain.drive.entities import Drive
from drivetrack.domain.group.entities import Group


@dataclass(frozen=True, slots=True)
class GroupPlan:
    leader_id: str
    member_ids: tuple[str, ...]

    @property
    def size(self) -> int:
        return 1 + len(self.member_ids)


def grouped_student_ids(groups: Iterable[Group]) -> set[str]:
    seen: set[str] = set()
    for group in groups:
        seen.update(group.student_ids())
    return seen


def remaining_students(drive: Drive, groups: Iterable[Group]) -> list[str]:
    """Participating students not yet in any group, in drive order."""

    grouped = grouped_student_ids(groups)
    return [s for s in drive.participating_students if s not in grouped]


def plan_auto_groups(remaining: Sequence[str], group_size: int) -> list[GroupPlan]:
    """Chunk *remaining* into groups of *group_size*; the last one may be smaller."""

    if group_size < 1:
        raise ValueError("group_size must be positive")
    plans: list[GroupPlan] = []
    for start in range(0, len(remaining), group_size):
        chunk = remaining[start : start + group_size]
        plans.append(GroupPlan(leader_id=chunk[0], member_ids=tuple(chunk[1:])))
    return plans


__all__ = ["GroupPlan", "grouped_student_ids", "plan_auto_groups", "remaining_students"]
