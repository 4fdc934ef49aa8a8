# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional

from drivetrack.domain.shared.errors import GroupFrozenError
from drivetrack.domain.shared.types import GroupStatus, MemberStatus


@dataclass(slots=True)
class GroupMember:
    student_id: str
    status: MemberStatus = MemberStatus.PENDING


@dataclass(frozen=True, slots=True)
class MentorPreference:
    mentor_id: str
    rank: int


@dataclass(slots=True)
class Group:
    group_id: str
    drive_id: str
    name: str
    created_at: datetime
    leader_id: str
    members: list[GroupMember] = field(default_factory=list)
    preferences: list[MentorPreference] = field(default_factory=list)
    assigned_mentor: Optional[str] = None
    mentor_allotted_at: Optional[datetime] = None
    mentor_allotted_by: Optional[str] = None
    status: GroupStatus = GroupStatus.FORMING

    @property
    def has_mentor(self) -> bool:
        return self.assigned_mentor is not None

    def ranked_preferences(self) -> list[MentorPreference]:
        return sorted(self.preferences, key=lambda p: p.rank)

    def preferred_mentor_ids(self) -> tuple[str, ...]:
        return tuple(p.mentor_id for p in self.ranked_preferences())

    def student_ids(self) -> Iterator[str]:
        """Leader first, then members not rejected."""

        yield self.leader_id
        for member in self.members:
            if member.status != MemberStatus.REJECTED:
                yield member.student_id

    def ensure_mutable(self) -> None:
        if self.has_mentor:
            raise GroupFrozenError(self.group_id)

    def mark_assigned(self, mentor_id: str, assigned_by: str, at: datetime) -> None:
        self.assigned_mentor = mentor_id
        self.mentor_allotted_at = at
        self.mentor_allotted_by = assigned_by
        self.status = GroupStatus.MENTOR_ASSIGNED

    def clear_mentor(self) -> None:
        self.assigned_mentor = None
        self.mentor_allotted_at = None
        self.mentor_allotted_by = None
        self.status = GroupStatus.FORMED


__all__ = ["Group", "GroupMember", "MentorPreference"]
