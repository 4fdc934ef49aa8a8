# -*- coding: utf-8 -*-
from __future__ import annotations

from enum import StrEnum


class Stage(StrEnum):
    GROUP_FORMATION = "group-formation"
    MENTOR_ALLOTMENT = "mentor-allotment"
    SYNOPSIS = "synopsis"
    CHECKPOINTS = "checkpoints"
    RESULT = "result"
    COMPLETED = "completed"


STAGE_SEQUENCE: tuple[Stage, ...] = (
    Stage.GROUP_FORMATION,
    Stage.MENTOR_ALLOTMENT,
    Stage.SYNOPSIS,
    Stage.CHECKPOINTS,
    Stage.RESULT,
    Stage.COMPLETED,
)


def stage_index(stage: Stage) -> int:
    return STAGE_SEQUENCE.index(stage)


def next_stage(stage: Stage) -> Stage | None:
    idx = stage_index(stage)
    return STAGE_SEQUENCE[idx + 1] if idx + 1 < len(STAGE_SEQUENCE) else None


def previous_stage(stage: Stage) -> Stage | None:
    idx = stage_index(stage)
    return STAGE_SEQUENCE[idx - 1] if idx > 0 else None


class StageStatus(StrEnum):
    NOT_STARTED = "not-started"
    ACTIVE = "active"
    COMPLETED = "completed"


class GroupStatus(StrEnum):
    FORMING = "forming"
    FORMED = "formed"
    MENTOR_ASSIGNED = "mentor-assigned"
    ACTIVE = "active"
    COMPLETED = "completed"
    DISBANDED = "disbanded"


class MemberStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class SynopsisStatus(StrEnum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION_REQUESTED = "revision-requested"


class TransitionDirection(StrEnum):
    FORWARD = "forward"
    BACKWARD = "backward"
    JUMP = "jump"


MAX_PREFERENCES = 3
