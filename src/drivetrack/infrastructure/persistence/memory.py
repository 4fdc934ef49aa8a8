# -*- coding: utf-8 -*-
from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime

from drivetrack.domain.drive.entities import Drive, StageConfig
from drivetrack.domain.group.entities import Group
from drivetrack.domain.shared.types import Stage, SynopsisStatus


class InMemoryDriveRepository:
    """Dictionary-backed drives; reads return copies like a real store would."""

    def __init__(self, drives: list[Drive] | None = None) -> None:
        self._drives: dict[str, Drive] = {}
        self._lock = threading.Lock()
        for drive in drives or []:
            self.add(drive)

    def add(self, drive: Drive) -> None:
        with self._lock:
            self._drives[drive.drive_id] = copy.deepcopy(drive)

    def get(self, drive_id: str) -> Drive | None:
        with self._lock:
            drive = self._drives.get(drive_id)
            return copy.deepcopy(drive) if drive is not None else None

    def save_stage(self, drive_id: str, current_stage: Stage, stages: StageConfig) -> None:
        with self._lock:
            drive = self._drives[drive_id]
            drive.current_stage = Stage(current_stage)
            drive.stages = stages.copy()


class InMemoryGroupRepository:
    def __init__(self, groups: list[Group] | None = None) -> None:
        self._groups: dict[str, Group] = {}
        self._lock = threading.Lock()
        for group in groups or []:
            self.add(group)

    def add(self, group: Group) -> None:
        with self._lock:
            self._groups[group.group_id] = copy.deepcopy(group)

    def get(self, group_id: str) -> Group | None:
        with self._lock:
            group = self._groups.get(group_id)
            return copy.deepcopy(group) if group is not None else None

    def list_for_drive(self, drive_id: str) -> list[Group]:
        with self._lock:
            return [copy.deepcopy(g) for g in self._groups.values() if g.drive_id == drive_id]

    def list_unassigned(self, drive_id: str) -> list[Group]:
        with self._lock:
            return [
                copy.deepcopy(g)
                for g in self._groups.values()
                if g.drive_id == drive_id and g.assigned_mentor is None
            ]

    def _count(self, drive_id: str, mentor_id: str) -> int:
        return sum(1 for g in self._groups.values() if g.drive_id == drive_id and g.assigned_mentor == mentor_id)

    def count_assigned_for_mentor(self, drive_id: str, mentor_id: str) -> int:
        with self._lock:
            return self._count(drive_id, mentor_id)

    def assign_mentor(
        self,
        group_id: str,
        mentor_id: str,
        assigned_by: str,
        at: datetime,
        *,
        max_groups: int,
    ) -> bool:
        with self._lock:
            group = self._groups.get(group_id)
            if group is None or group.assigned_mentor is not None:
                return False
            if self._count(group.drive_id, mentor_id) >= max_groups:
                return False
            group.mark_assigned(mentor_id, assigned_by, at)
            return True

    def clear_mentor(self, group_id: str) -> None:
        with self._lock:
            group = self._groups.get(group_id)
            if group is not None:
                group.clear_mentor()

    def save_preferences(self, group: Group) -> None:
        with self._lock:
            stored = self._groups[group.group_id]
            stored.preferences = list(group.preferences)


@dataclass(slots=True)
class _SynopsisRow:
    drive_id: str
    group_id: str
    status: SynopsisStatus


@dataclass(slots=True)
class InMemorySynopsisRepository:
    rows: list[_SynopsisRow] = field(default_factory=list)

    def record(self, drive_id: str, group_id: str, status: SynopsisStatus) -> None:
        self.rows.append(_SynopsisRow(drive_id, group_id, SynopsisStatus(status)))

    def count_approved(self, drive_id: str) -> int:
        return sum(1 for r in self.rows if r.drive_id == drive_id and r.status == SynopsisStatus.APPROVED)


__all__ = ["InMemoryDriveRepository", "InMemoryGroupRepository", "InMemorySynopsisRepository"]
