# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from drivetrack.domain.shared.errors import InvalidDriveConfigError
from drivetrack.domain.shared.types import Stage, StageStatus

# Keys of the per-stage entries in ``StageConfig``; checkpoints are a list.
STAGE_KEYS: dict[Stage, str] = {
    Stage.GROUP_FORMATION: "group_formation",
    Stage.MENTOR_ALLOTMENT: "mentor_allotment",
    Stage.SYNOPSIS: "synopsis_submission",
    Stage.RESULT: "result",
}


@dataclass(slots=True)
class StageEntry:
    status: StageStatus = StageStatus.NOT_STARTED
    enabled: bool = True
    deadline: Optional[datetime] = None


@dataclass(slots=True)
class CheckpointStage:
    name: str
    status: StageStatus = StageStatus.NOT_STARTED
    deadline: Optional[datetime] = None
    max_marks: Optional[int] = None


@dataclass(slots=True)
class StageConfig:
    """Status annotations per stage. ``None`` means the stage is not configured."""

    group_formation: Optional[StageEntry] = None
    mentor_allotment: Optional[StageEntry] = None
    synopsis_submission: Optional[StageEntry] = None
    result: Optional[StageEntry] = None
    checkpoints: list[CheckpointStage] = field(default_factory=list)

    def entry_for(self, stage: Stage) -> Optional[StageEntry]:
        key = STAGE_KEYS.get(stage)
        return getattr(self, key) if key else None

    def set_status(self, stage: Stage, status: StageStatus) -> None:
        """Update a named stage entry; absent entries are skipped."""

        if stage is Stage.CHECKPOINTS:
            for checkpoint in self.checkpoints:
                checkpoint.status = status
            return
        entry = self.entry_for(stage)
        if entry is not None:
            entry.status = status

    def copy(self) -> "StageConfig":
        def _clone(entry: Optional[StageEntry]) -> Optional[StageEntry]:
            if entry is None:
                return None
            return StageEntry(status=entry.status, enabled=entry.enabled, deadline=entry.deadline)

        return StageConfig(
            group_formation=_clone(self.group_formation),
            mentor_allotment=_clone(self.mentor_allotment),
            synopsis_submission=_clone(self.synopsis_submission),
            result=_clone(self.result),
            checkpoints=[
                CheckpointStage(name=c.name, status=c.status, deadline=c.deadline, max_marks=c.max_marks)
                for c in self.checkpoints
            ],
        )

    @classmethod
    def default(cls, checkpoint_names: tuple[str, ...] = ()) -> "StageConfig":
        return cls(
            group_formation=StageEntry(status=StageStatus.ACTIVE),
            mentor_allotment=StageEntry(),
            synopsis_submission=StageEntry(),
            result=StageEntry(),
            checkpoints=[CheckpointStage(name=name) for name in checkpoint_names],
        )


@dataclass(slots=True)
class Drive:
    drive_id: str
    name: str
    mentor_ids: list[str]
    max_groups_per_mentor: int
    participating_students: list[str] = field(default_factory=list)
    min_group_size: int = 1
    max_group_size: int = 4
    current_stage: Stage = Stage.GROUP_FORMATION
    stages: StageConfig = field(default_factory=StageConfig.default)

    def __post_init__(self) -> None:
        if self.max_groups_per_mentor <= 0:
            raise InvalidDriveConfigError(self.drive_id, "max_groups_per_mentor must be positive")
        if self.max_group_size < 1 or self.min_group_size > self.max_group_size:
            raise InvalidDriveConfigError(self.drive_id, "group size bounds are inconsistent")
        self.current_stage = Stage(self.current_stage)

    def has_mentor(self, mentor_id: str) -> bool:
        return mentor_id in self.mentor_ids

    @property
    def total_students(self) -> int:
        return len(self.participating_students)


__all__ = ["CheckpointStage", "Drive", "STAGE_KEYS", "StageConfig", "StageEntry"]
