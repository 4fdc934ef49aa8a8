# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime
from typing import Mapping, Protocol, Sequence

from drivetrack.domain.drive.entities import Drive, StageConfig
from drivetrack.domain.group.entities import Group
from drivetrack.domain.shared.events import DomainEvent
from drivetrack.domain.shared.types import Stage


class DriveRepository(Protocol):
    def get(self, drive_id: str) -> Drive | None: ...
    def save_stage(self, drive_id: str, current_stage: Stage, stages: StageConfig) -> None: ...


class GroupRepository(Protocol):
    def get(self, group_id: str) -> Group | None: ...
    def list_for_drive(self, drive_id: str) -> list[Group]: ...
    def list_unassigned(self, drive_id: str) -> list[Group]: ...
    def count_assigned_for_mentor(self, drive_id: str, mentor_id: str) -> int: ...

    def assign_mentor(
        self,
        group_id: str,
        mentor_id: str,
        assigned_by: str,
        at: datetime,
        *,
        max_groups: int,
    ) -> bool:
        """Write the assignment only if the group is still unassigned and the
        mentor is below *max_groups* at write time."""
        ...

    def clear_mentor(self, group_id: str) -> None: ...
    def save_preferences(self, group: Group) -> None: ...
    def add(self, group: Group) -> None: ...


class SynopsisRepository(Protocol):
    def count_approved(self, drive_id: str) -> int: ...


class Outbox(Protocol):
    def enqueue(self, *events: DomainEvent) -> None: ...


class MetricsRecorder(Protocol):
    def record_allotment_run(self, assigned: int, failed_reasons: Sequence[str], duration: float) -> None: ...
    def record_manual_assignment(self) -> None: ...
    def record_stage_transition(self, direction: str, outcome: str) -> None: ...
    def observe_capacity(self, drive_id: str, remaining: Mapping[str, int]) -> None: ...


__all__ = ["DriveRepository", "GroupRepository", "MetricsRecorder", "Outbox", "SynopsisRepository"]
