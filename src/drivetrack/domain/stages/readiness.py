# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from drivetrack.domain.allocation.reasons import Reason, ReasonCode, build_reason
from drivetrack.domain.drive.entities import Drive
from drivetrack.domain.group.entities import Group
from drivetrack.domain.group.grouping import grouped_student_ids
from drivetrack.domain.shared.types import Stage


@dataclass(frozen=True, slots=True)
class ReadinessSnapshot:
    total_students: int
    grouped_students: int
    total_groups: int
    groups_without_mentor: int
    approved_synopses: int

    @classmethod
    def collect(cls, drive: Drive, groups: Iterable[Group], approved_synopses: int) -> "ReadinessSnapshot":
        group_list = list(groups)
        return cls(
            total_students=drive.total_students,
            grouped_students=len(grouped_student_ids(group_list)),
            total_groups=len(group_list),
            groups_without_mentor=sum(1 for g in group_list if not g.has_mentor),
            approved_synopses=approved_synopses,
        )


@dataclass(frozen=True, slots=True)
class Readiness:
    stage: Stage
    ready: bool
    reason: Optional[Reason] = None


def check_readiness(stage: Stage, snapshot: ReadinessSnapshot) -> Readiness:
    """Exit criteria of *stage*; checkpoints and result advance on admin decision only."""

    if stage == Stage.GROUP_FORMATION:
        if snapshot.grouped_students >= snapshot.total_students:
            return Readiness(stage, True)
        detail = f"{snapshot.grouped_students}/{snapshot.total_students} grouped"
        return Readiness(stage, False, build_reason(ReasonCode.STUDENTS_UNGROUPED, detail))

    if stage == Stage.MENTOR_ALLOTMENT:
        if snapshot.groups_without_mentor == 0:
            return Readiness(stage, True)
        detail = f"{snapshot.groups_without_mentor} without mentor"
        return Readiness(stage, False, build_reason(ReasonCode.GROUPS_WITHOUT_MENTOR, detail))

    if stage == Stage.SYNOPSIS:
        if snapshot.approved_synopses == snapshot.total_groups:
            return Readiness(stage, True)
        detail = f"{snapshot.approved_synopses}/{snapshot.total_groups} approved"
        return Readiness(stage, False, build_reason(ReasonCode.SYNOPSES_PENDING, detail))

    if stage == Stage.COMPLETED:
        return Readiness(stage, False, build_reason(ReasonCode.ALREADY_COMPLETED))

    return Readiness(stage, True)


__all__ = ["Readiness", "ReadinessSnapshot", "check_readiness"]
