# -*- coding: utf-8 -*-
"""Linear stage pipeline of a drive.

Transitions are computed on a copy of the stage annotations; the caller
persists ``StageTransition.stages`` together with the new current stage.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from drivetrack.domain.allocation.reasons import Reason, ReasonCode, build_reason
from drivetrack.domain.drive.entities import Drive, StageConfig
from drivetrack.domain.shared.types import (
    STAGE_SEQUENCE,
    Stage,
    StageStatus,
    TransitionDirection,
    next_stage,
    previous_stage,
    stage_index,
)
from drivetrack.domain.stages.readiness import ReadinessSnapshot, check_readiness


@dataclass(frozen=True, slots=True)
class StageTransition:
    previous_stage: Stage
    current_stage: Stage
    stages: StageConfig
    direction: TransitionDirection
    forced: bool = False


@dataclass(frozen=True, slots=True)
class Blocked:
    current_stage: Stage
    reason: Reason


TransitionOutcome = Union[StageTransition, Blocked]


@dataclass(frozen=True, slots=True)
class _Reset:
    updates: tuple[tuple[Stage, StageStatus], ...]
    activate_first_checkpoint: bool = False


# Keyed by the stage being left. Not the inverse of progress.
_REGRESS_RESETS: dict[Stage, _Reset] = {
    Stage.MENTOR_ALLOTMENT: _Reset(
        ((Stage.GROUP_FORMATION, StageStatus.ACTIVE), (Stage.MENTOR_ALLOTMENT, StageStatus.NOT_STARTED)),
    ),
    Stage.SYNOPSIS: _Reset(
        (
            (Stage.MENTOR_ALLOTMENT, StageStatus.ACTIVE),
            (Stage.SYNOPSIS, StageStatus.NOT_STARTED),
            (Stage.CHECKPOINTS, StageStatus.NOT_STARTED),
        ),
    ),
    Stage.CHECKPOINTS: _Reset(
        ((Stage.SYNOPSIS, StageStatus.ACTIVE), (Stage.CHECKPOINTS, StageStatus.NOT_STARTED)),
    ),
    Stage.RESULT: _Reset(
        ((Stage.RESULT, StageStatus.NOT_STARTED), (Stage.CHECKPOINTS, StageStatus.NOT_STARTED)),
        activate_first_checkpoint=True,
    ),
    Stage.COMPLETED: _Reset(((Stage.RESULT, StageStatus.ACTIVE),)),
}


def _activate_first_checkpoint(stages: StageConfig) -> None:
    if stages.checkpoints:
        stages.checkpoints[0].status = StageStatus.ACTIVE


class StageMachine:
    """Single-step forward/backward moves through the fixed stage sequence."""

    def progress(self, drive: Drive, snapshot: ReadinessSnapshot, *, force: bool = False) -> TransitionOutcome:
        current = drive.current_stage
        target = next_stage(current)
        if target is None:
            return Blocked(current, build_reason(ReasonCode.ALREADY_COMPLETED))

        if not force:
            readiness = check_readiness(current, snapshot)
            if not readiness.ready:
                return Blocked(current, readiness.reason)  # type: ignore[arg-type]

        stages = drive.stages.copy()
        stages.set_status(current, StageStatus.COMPLETED)
        if target == Stage.CHECKPOINTS:
            _activate_first_checkpoint(stages)
        else:
            stages.set_status(target, StageStatus.ACTIVE)
        return StageTransition(current, target, stages, TransitionDirection.FORWARD, forced=force)

    def regress(self, drive: Drive) -> TransitionOutcome:
        current = drive.current_stage
        target = previous_stage(current)
        if target is None:
            return Blocked(current, build_reason(ReasonCode.AT_FIRST_STAGE))

        stages = drive.stages.copy()
        reset = _REGRESS_RESETS[current]
        for stage, status in reset.updates:
            stages.set_status(stage, status)
        if reset.activate_first_checkpoint:
            _activate_first_checkpoint(stages)
        return StageTransition(current, target, stages, TransitionDirection.BACKWARD)

    def jump_to(self, drive: Drive, target: Stage) -> StageTransition:
        """Administrative override: set the stage directly and realign statuses."""

        target = Stage(target)
        stages = reconcile_stage_statuses(drive.stages, target)
        return StageTransition(drive.current_stage, target, stages, TransitionDirection.JUMP, forced=True)


def reconcile_stage_statuses(stages: StageConfig, current: Stage) -> StageConfig:
    """Return a copy where earlier stages are completed, *current* active, later ones not started."""

    result = stages.copy()
    position = stage_index(current)
    for stage in STAGE_SEQUENCE:
        idx = stage_index(stage)
        if stage == Stage.CHECKPOINTS:
            if idx < position:
                result.set_status(stage, StageStatus.COMPLETED)
            elif idx > position:
                result.set_status(stage, StageStatus.NOT_STARTED)
            else:
                _realign_current_checkpoints(result)
            continue
        if idx < position:
            result.set_status(stage, StageStatus.COMPLETED)
        elif idx == position:
            result.set_status(stage, StageStatus.ACTIVE)
        else:
            result.set_status(stage, StageStatus.NOT_STARTED)
    return result


def _realign_current_checkpoints(stages: StageConfig) -> None:
    # Completed checkpoints stay; the first open one becomes the active one.
    active_seen = False
    for checkpoint in stages.checkpoints:
        if checkpoint.status == StageStatus.COMPLETED:
            continue
        checkpoint.status = StageStatus.NOT_STARTED if active_seen else StageStatus.ACTIVE
        active_seen = True


__all__ = [
    "Blocked",
    "StageMachine",
    "StageTransition",
    "TransitionOutcome",
    "reconcile_stage_statuses",
]
