# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from drivetrack.domain.allocation.ledger import MentorCapacityLedger
from drivetrack.domain.allocation.reasons import Reason, ReasonCode, build_reason
from drivetrack.domain.drive.entities import Drive
from drivetrack.domain.group.entities import Group
from drivetrack.domain.shared.errors import (
    CapacityExceededError,
    GroupFrozenError,
    NoMentorAssignedError,
    NotFoundError,
)


@dataclass(frozen=True, slots=True)
class Assignment:
    group_id: str
    mentor_id: str
    preference_rank: Optional[int] = None

    @property
    def via_fallback(self) -> bool:
        return self.preference_rank is None


@dataclass(frozen=True, slots=True)
class FailedAllotment:
    group_id: str
    group_name: str
    preferences: tuple[str, ...]
    reason: Reason


@dataclass(slots=True)
class AllotmentResult:
    assignments: list[Assignment] = field(default_factory=list)
    failed_groups: list[FailedAllotment] = field(default_factory=list)

    @property
    def assigned_count(self) -> int:
        return len(self.assignments)

    @property
    def failed_count(self) -> int:
        return len(self.failed_groups)

    def reject(self, assignment: Assignment, group: Group, code: ReasonCode) -> None:
        """Move a computed assignment to the failed list (refused at write time)."""

        self.assignments.remove(assignment)
        self.failed_groups.append(
            FailedAllotment(
                group_id=group.group_id,
                group_name=group.name,
                preferences=group.preferred_mentor_ids(),
                reason=build_reason(code, f"mentor {assignment.mentor_id}"),
            )
        )


class AllotmentEngine:
    """Greedy first-come-first-served allotment honoring ranked preferences."""

    def allot(
        self,
        drive: Drive,
        ledger: MentorCapacityLedger,
        candidate_groups: Iterable[Group],
    ) -> AllotmentResult:
        result = AllotmentResult()
        candidates = [g for g in candidate_groups if not g.has_mentor and g.drive_id == drive.drive_id]
        # sorted() is stable: equal timestamps keep their input order
        for group in sorted(candidates, key=lambda g: g.created_at):
            assignment = self._select(group, ledger)
            if assignment is None:
                result.failed_groups.append(
                    FailedAllotment(
                        group_id=group.group_id,
                        group_name=group.name,
                        preferences=group.preferred_mentor_ids(),
                        reason=build_reason(ReasonCode.NO_MENTOR_CAPACITY),
                    )
                )
                continue
            ledger.consume(assignment.mentor_id)
            result.assignments.append(assignment)
        return result

    @staticmethod
    def _select(group: Group, ledger: MentorCapacityLedger) -> Assignment | None:
        for preference in group.ranked_preferences():
            if ledger.has_capacity(preference.mentor_id):
                return Assignment(group.group_id, preference.mentor_id, preference.rank)
        fallback = ledger.first_available()
        if fallback is None:
            return None
        return Assignment(group.group_id, fallback, None)


def assign_one(group: Group, mentor_id: str, assigned_count: int, drive: Drive) -> Assignment:
    """Validate a manual assignment against a freshly read *assigned_count*."""

    if group.drive_id != drive.drive_id:
        raise NotFoundError("Group", group.group_id)
    if not drive.has_mentor(mentor_id):
        raise NotFoundError("Mentor", mentor_id)
    if group.has_mentor:
        raise GroupFrozenError(group.group_id)
    if assigned_count >= drive.max_groups_per_mentor:
        raise CapacityExceededError(mentor_id)
    rank = next((p.rank for p in group.preferences if p.mentor_id == mentor_id), None)
    return Assignment(group.group_id, mentor_id, rank)


def unassign(group: Group) -> str:
    """Clear the mentor of *group* and return the mentor id that was removed."""

    if not group.has_mentor:
        raise NoMentorAssignedError(group.group_id)
    previous = group.assigned_mentor
    group.clear_mentor()
    return previous  # type: ignore[return-value]


__all__ = [
    "AllotmentEngine",
    "AllotmentResult",
    "Assignment",
    "FailedAllotment",
    "assign_one",
    "unassign",
]
