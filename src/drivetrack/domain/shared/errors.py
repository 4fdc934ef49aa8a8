# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar


@dataclass(slots=True)
class AllocationError(Exception):
    error_code: str
    message: str

    status_code: ClassVar[int] = 400

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class NotFoundError(AllocationError):
    status_code = 404

    def __init__(self, entity: str, identifier: str):
        super().__init__("NOT_FOUND", f"{entity} not found: {identifier}")
        self.entity = entity
        self.identifier = identifier


class CapacityExceededError(AllocationError):
    def __init__(self, mentor_id: str):
        super().__init__("CAPACITY_EXCEEDED", "Mentor has reached maximum group limit")
        self.mentor_id = mentor_id


class NoMentorAssignedError(AllocationError):
    def __init__(self, group_id: str):
        super().__init__("NO_MENTOR_ASSIGNED", "No mentor assigned to this group")
        self.group_id = group_id


class GroupFrozenError(AllocationError):
    def __init__(self, group_id: str):
        super().__init__(
            "GROUP_FROZEN",
            f"Group {group_id} already has a mentor; unassign before changing it",
        )
        self.group_id = group_id


class InvalidPreferencesError(AllocationError):
    def __init__(self, reason: str):
        super().__init__("INVALID_PREFERENCES", reason)


class InvalidDriveConfigError(AllocationError):
    def __init__(self, drive_id: str, reason: str):
        super().__init__("INVALID_DRIVE_CONFIG", f"Drive {drive_id}: {reason}")


__all__ = [
    "AllocationError",
    "CapacityExceededError",
    "GroupFrozenError",
    "InvalidDriveConfigError",
    "InvalidPreferencesError",
    "NoMentorAssignedError",
    "NotFoundError",
]
