# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from drivetrack.application.commands.stages import GetDriveProgress, ProgressStage, RegressStage, SetStage
from drivetrack.application.locks import DriveLocks
from drivetrack.application.ports import (
    DriveRepository,
    GroupRepository,
    MetricsRecorder,
    Outbox,
    SynopsisRepository,
)
from drivetrack.core.clock import Clock
from drivetrack.domain.drive.entities import Drive
from drivetrack.domain.shared.errors import NotFoundError
from drivetrack.domain.shared.events import StageProgressed, StageRegressed
from drivetrack.domain.shared.types import TransitionDirection
from drivetrack.domain.stages.machine import Blocked, StageMachine, StageTransition, TransitionOutcome
from drivetrack.domain.stages.readiness import Readiness, ReadinessSnapshot, check_readiness

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DriveProgress:
    drive: Drive
    snapshot: ReadinessSnapshot
    readiness: Readiness


@dataclass(slots=True)
class StageService:
    drives: DriveRepository
    groups: GroupRepository
    synopses: SynopsisRepository
    outbox: Outbox
    clock: Clock
    machine: StageMachine = field(default_factory=StageMachine)
    locks: DriveLocks = field(default_factory=DriveLocks)
    metrics: MetricsRecorder | None = None

    def _drive(self, drive_id: str) -> Drive:
        drive = self.drives.get(drive_id)
        if drive is None:
            raise NotFoundError("Drive", drive_id)
        return drive

    def _snapshot(self, drive: Drive) -> ReadinessSnapshot:
        return ReadinessSnapshot.collect(
            drive,
            self.groups.list_for_drive(drive.drive_id),
            self.synopses.count_approved(drive.drive_id),
        )

    def progress(self, cmd: ProgressStage) -> TransitionOutcome:
        with self.locks.hold(cmd.drive_id):
            drive = self._drive(cmd.drive_id)
            outcome = self.machine.progress(drive, self._snapshot(drive), force=cmd.force)
            self._apply(drive, outcome, cmd.actor_id)
        self._record(TransitionDirection.FORWARD, outcome)
        return outcome

    def regress(self, cmd: RegressStage) -> TransitionOutcome:
        with self.locks.hold(cmd.drive_id):
            drive = self._drive(cmd.drive_id)
            outcome = self.machine.regress(drive)
            self._apply(drive, outcome, cmd.actor_id)
        self._record(TransitionDirection.BACKWARD, outcome)
        return outcome

    def set_stage(self, cmd: SetStage) -> StageTransition:
        with self.locks.hold(cmd.drive_id):
            drive = self._drive(cmd.drive_id)
            transition = self.machine.jump_to(drive, cmd.stage)
            self._apply(drive, transition, cmd.actor_id)
        self._record(TransitionDirection.JUMP, transition)
        return transition

    def drive_progress(self, query: GetDriveProgress) -> DriveProgress:
        drive = self._drive(query.drive_id)
        snapshot = self._snapshot(drive)
        return DriveProgress(drive, snapshot, check_readiness(drive.current_stage, snapshot))

    def _apply(self, drive: Drive, outcome: TransitionOutcome, actor_id: str) -> None:
        if isinstance(outcome, Blocked):
            logger.info(
                "stage change blocked drive=%s stage=%s reason=%s",
                drive.drive_id,
                outcome.current_stage,
                outcome.reason.code,
            )
            return
        self.drives.save_stage(drive.drive_id, outcome.current_stage, outcome.stages)
        drive.current_stage = outcome.current_stage
        drive.stages = outcome.stages
        factory = StageRegressed if outcome.direction == TransitionDirection.BACKWARD else StageProgressed
        self.outbox.enqueue(
            factory(
                occurred_at=self.clock.now(),
                drive_id=drive.drive_id,
                previous_stage=outcome.previous_stage.value,
                current_stage=outcome.current_stage.value,
                forced=outcome.forced,
                actor_id=actor_id,
            )
        )
        logger.info(
            "stage changed drive=%s %s -> %s forced=%s by=%s",
            drive.drive_id,
            outcome.previous_stage,
            outcome.current_stage,
            outcome.forced,
            actor_id,
        )

    def _record(self, direction: TransitionDirection, outcome: TransitionOutcome) -> None:
        if self.metrics is None:
            return
        label = "blocked" if isinstance(outcome, Blocked) else "applied"
        self.metrics.record_stage_transition(direction.value, label)


__all__ = ["DriveProgress", "StageService"]
