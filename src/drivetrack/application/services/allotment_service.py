# -*- coding: utf-8 -*-
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from uuid import uuid4

from drivetrack.application.commands.allotment import (
    AssignMentor,
    AutoGroupRemaining,
    RunAutoAllotment,
    UnassignMentor,
    UpdatePreferences,
)
from drivetrack.application.locks import DriveLocks
from drivetrack.application.ports import DriveRepository, GroupRepository, MetricsRecorder, Outbox
from drivetrack.core.clock import Clock
from drivetrack.domain.allocation.engine import AllotmentEngine, AllotmentResult, assign_one, unassign
from drivetrack.domain.allocation.ledger import MentorCapacityLedger
from drivetrack.domain.allocation.reasons import ReasonCode
from drivetrack.domain.drive.entities import Drive
from drivetrack.domain.group.entities import Group, GroupMember
from drivetrack.domain.group.grouping import plan_auto_groups, remaining_students
from drivetrack.domain.group.preferences import replace_preferences
from drivetrack.domain.shared.errors import CapacityExceededError, GroupFrozenError, NotFoundError
from drivetrack.domain.shared.events import AllotmentFailed, MentorAssigned, MentorUnassigned
from drivetrack.domain.shared.types import GroupStatus, MemberStatus

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AllotmentService:
    drives: DriveRepository
    groups: GroupRepository
    outbox: Outbox
    clock: Clock
    engine: AllotmentEngine = field(default_factory=AllotmentEngine)
    locks: DriveLocks = field(default_factory=DriveLocks)
    metrics: MetricsRecorder | None = None

    def _drive(self, drive_id: str) -> Drive:
        drive = self.drives.get(drive_id)
        if drive is None:
            raise NotFoundError("Drive", drive_id)
        return drive

    def _group(self, group_id: str) -> Group:
        group = self.groups.get(group_id)
        if group is None:
            raise NotFoundError("Group", group_id)
        return group

    def run_auto_allotment(self, cmd: RunAutoAllotment) -> AllotmentResult:
        started = time.perf_counter()
        with self.locks.hold(cmd.drive_id):
            drive = self._drive(cmd.drive_id)
            candidates = self.groups.list_unassigned(drive.drive_id)
            counts = {
                mentor_id: self.groups.count_assigned_for_mentor(drive.drive_id, mentor_id)
                for mentor_id in drive.mentor_ids
            }
            ledger = MentorCapacityLedger.for_drive(drive, counts)
            result = self.engine.allot(drive, ledger, candidates)

            now = self.clock.now()
            by_id = {g.group_id: g for g in candidates}
            for assignment in list(result.assignments):
                written = self.groups.assign_mentor(
                    assignment.group_id,
                    assignment.mentor_id,
                    cmd.actor_id,
                    now,
                    max_groups=drive.max_groups_per_mentor,
                )
                if not written:
                    logger.warning(
                        "allotment write refused drive=%s group=%s mentor=%s",
                        drive.drive_id,
                        assignment.group_id,
                        assignment.mentor_id,
                    )
                    result.reject(assignment, by_id[assignment.group_id], ReasonCode.CAPACITY_EXCEEDED)
                    continue
                self.outbox.enqueue(
                    MentorAssigned(
                        occurred_at=now,
                        drive_id=drive.drive_id,
                        group_id=assignment.group_id,
                        mentor_id=assignment.mentor_id,
                        preference_rank=assignment.preference_rank,
                        assigned_by=cmd.actor_id,
                    )
                )

            for failed in result.failed_groups:
                self.outbox.enqueue(
                    AllotmentFailed(
                        occurred_at=now,
                        drive_id=drive.drive_id,
                        group_id=failed.group_id,
                        group_name=failed.group_name,
                        reason=failed.reason.code.value,
                    )
                )

            if self.metrics is not None:
                # The ledger still counts slots whose write was refused; read back what was stored.
                self.metrics.observe_capacity(drive.drive_id, self._remaining_capacity(drive))

        elapsed = time.perf_counter() - started
        if self.metrics is not None:
            self.metrics.record_allotment_run(
                result.assigned_count,
                [failed.reason.code.value for failed in result.failed_groups],
                elapsed,
            )
        logger.info(
            "auto allotment drive=%s assigned=%d failed=%d duration=%.3fs",
            drive.drive_id,
            result.assigned_count,
            result.failed_count,
            elapsed,
        )
        return result

    def _remaining_capacity(self, drive: Drive) -> dict[str, int]:
        return {
            mentor_id: max(
                0,
                drive.max_groups_per_mentor - self.groups.count_assigned_for_mentor(drive.drive_id, mentor_id),
            )
            for mentor_id in dict.fromkeys(drive.mentor_ids)
        }

    def assign_mentor(self, cmd: AssignMentor) -> Group:
        group = self._group(cmd.group_id)
        with self.locks.hold(group.drive_id):
            group = self._group(cmd.group_id)
            drive = self._drive(group.drive_id)
            count = self.groups.count_assigned_for_mentor(drive.drive_id, cmd.mentor_id)
            assignment = assign_one(group, cmd.mentor_id, count, drive)

            now = self.clock.now()
            written = self.groups.assign_mentor(
                group.group_id,
                assignment.mentor_id,
                cmd.actor_id,
                now,
                max_groups=drive.max_groups_per_mentor,
            )
            if not written:
                # Lost a race with another process: the group got a mentor or the mentor filled up.
                current = self._group(group.group_id)
                if current.has_mentor:
                    raise GroupFrozenError(group.group_id)
                raise CapacityExceededError(cmd.mentor_id)

        group.mark_assigned(assignment.mentor_id, cmd.actor_id, now)
        self.outbox.enqueue(
            MentorAssigned(
                occurred_at=now,
                drive_id=drive.drive_id,
                group_id=group.group_id,
                mentor_id=assignment.mentor_id,
                preference_rank=assignment.preference_rank,
                assigned_by=cmd.actor_id,
            )
        )
        if self.metrics is not None:
            self.metrics.record_manual_assignment()
        logger.info("mentor assigned group=%s mentor=%s by=%s", group.group_id, assignment.mentor_id, cmd.actor_id)
        return group

    def unassign_mentor(self, cmd: UnassignMentor) -> Group:
        group = self._group(cmd.group_id)
        previous = unassign(group)
        self.groups.clear_mentor(group.group_id)
        self.outbox.enqueue(
            MentorUnassigned(
                occurred_at=self.clock.now(),
                drive_id=group.drive_id,
                group_id=group.group_id,
                mentor_id=previous,
                unassigned_by=cmd.actor_id,
            )
        )
        logger.info("mentor unassigned group=%s mentor=%s by=%s", group.group_id, previous, cmd.actor_id)
        return group

    def update_preferences(self, cmd: UpdatePreferences) -> Group:
        group = self._group(cmd.group_id)
        drive = self._drive(group.drive_id)
        replace_preferences(group, cmd.mentor_ids, drive)
        self.groups.save_preferences(group)
        return group

    def remaining_students(self, drive_id: str) -> list[str]:
        drive = self._drive(drive_id)
        return remaining_students(drive, self.groups.list_for_drive(drive_id))

    def auto_group_remaining(self, cmd: AutoGroupRemaining) -> list[Group]:
        with self.locks.hold(cmd.drive_id):
            drive = self._drive(cmd.drive_id)
            existing = self.groups.list_for_drive(drive.drive_id)
            plans = plan_auto_groups(remaining_students(drive, existing), drive.max_group_size)
            now = self.clock.now()
            created: list[Group] = []
            for offset, plan in enumerate(plans, start=1):
                group = Group(
                    group_id=uuid4().hex,
                    drive_id=drive.drive_id,
                    name=f"Auto-Group-{len(existing) + offset}",
                    created_at=now,
                    leader_id=plan.leader_id,
                    members=[GroupMember(s, MemberStatus.ACCEPTED) for s in plan.member_ids],
                    status=GroupStatus.FORMED,
                )
                self.groups.add(group)
                created.append(group)
        logger.info("auto grouping drive=%s groups=%d by=%s", cmd.drive_id, len(created), cmd.actor_id)
        return created


__all__ = ["AllotmentService"]
