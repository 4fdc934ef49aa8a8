# -*- coding: utf-8 -*-
"""SQLAlchemy implementations of the application repository ports."""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import sessionmaker

from drivetrack.domain.drive.entities import STAGE_KEYS, CheckpointStage, Drive, StageConfig, StageEntry
from drivetrack.domain.group.entities import Group, GroupMember, MentorPreference
from drivetrack.domain.shared.types import GroupStatus, MemberStatus, Stage, StageStatus, SynopsisStatus
from drivetrack.infrastructure.persistence.models import (
    CheckpointStageModel,
    DriveMentorModel,
    DriveModel,
    DriveStudentModel,
    GroupMemberModel,
    GroupModel,
    MentorPreferenceModel,
    StageEntryModel,
    SynopsisModel,
)
from drivetrack.infrastructure.persistence.session import session_scope

logger = logging.getLogger(__name__)

_STAGE_ATTRS = tuple(STAGE_KEYS.values())


def _to_drive(model: DriveModel) -> Drive:
    entries = {e.stage_key: e for e in model.stage_entries}
    config = StageConfig(
        checkpoints=[
            CheckpointStage(
                name=c.name,
                status=StageStatus(c.status),
                deadline=c.deadline,
                max_marks=c.max_marks,
            )
            for c in model.checkpoints
        ]
    )
    for key in _STAGE_ATTRS:
        row = entries.get(key)
        if row is not None:
            setattr(config, key, StageEntry(status=StageStatus(row.status), enabled=row.enabled, deadline=row.deadline))
    return Drive(
        drive_id=model.drive_id,
        name=model.name,
        mentor_ids=[m.mentor_id for m in model.mentors],
        max_groups_per_mentor=model.max_groups_per_mentor,
        participating_students=[s.student_id for s in model.students],
        min_group_size=model.min_group_size,
        max_group_size=model.max_group_size,
        current_stage=Stage(model.current_stage),
        stages=config,
    )


def _stage_rows(drive_id: str, stages: StageConfig) -> tuple[list[StageEntryModel], list[CheckpointStageModel]]:
    entries = []
    for key in _STAGE_ATTRS:
        entry: StageEntry | None = getattr(stages, key)
        if entry is None:
            continue
        entries.append(
            StageEntryModel(
                drive_id=drive_id,
                stage_key=key,
                status=str(entry.status),
                enabled=entry.enabled,
                deadline=entry.deadline,
            )
        )
    checkpoints = [
        CheckpointStageModel(
            drive_id=drive_id,
            position=idx,
            name=c.name,
            status=str(c.status),
            deadline=c.deadline,
            max_marks=c.max_marks,
        )
        for idx, c in enumerate(stages.checkpoints)
    ]
    return entries, checkpoints


def _to_group(model: GroupModel) -> Group:
    return Group(
        group_id=model.group_id,
        drive_id=model.drive_id,
        name=model.name,
        created_at=model.created_at,
        leader_id=model.leader_id,
        members=[GroupMember(m.student_id, MemberStatus(m.status)) for m in model.members],
        preferences=[MentorPreference(p.mentor_id, p.rank) for p in model.preferences],
        assigned_mentor=model.assigned_mentor,
        mentor_allotted_at=model.mentor_allotted_at,
        mentor_allotted_by=model.mentor_allotted_by,
        status=GroupStatus(model.status),
    )


def lock_drive_statement(drive_id: str):
    """Row lock on the drive, taken before a capacity-checked write.

    Concurrent assignments to one drive queue on this row, so the count
    subquery of the conditional update sees every committed assignment.
    SQLite ignores ``FOR UPDATE`` and relies on its single writer instead.
    """

    return select(DriveModel.drive_id).where(DriveModel.drive_id == drive_id).with_for_update()


class SqlDriveRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get(self, drive_id: str) -> Drive | None:
        with session_scope(self._session_factory) as session:
            model = session.get(DriveModel, drive_id)
            return _to_drive(model) if model is not None else None

    def add(self, drive: Drive) -> None:
        entries, checkpoints = _stage_rows(drive.drive_id, drive.stages)
        model = DriveModel(
            drive_id=drive.drive_id,
            name=drive.name,
            max_groups_per_mentor=drive.max_groups_per_mentor,
            min_group_size=drive.min_group_size,
            max_group_size=drive.max_group_size,
            current_stage=str(drive.current_stage),
            mentors=[
                DriveMentorModel(drive_id=drive.drive_id, mentor_id=m, position=idx)
                for idx, m in enumerate(dict.fromkeys(drive.mentor_ids))
            ],
            students=[
                DriveStudentModel(drive_id=drive.drive_id, student_id=s, position=idx)
                for idx, s in enumerate(dict.fromkeys(drive.participating_students))
            ],
            stage_entries=entries,
            checkpoints=checkpoints,
        )
        with session_scope(self._session_factory) as session:
            session.add(model)

    def save_stage(self, drive_id: str, current_stage: Stage, stages: StageConfig) -> None:
        entries, checkpoints = _stage_rows(drive_id, stages)
        with session_scope(self._session_factory) as session:
            model = session.get(DriveModel, drive_id)
            if model is None:
                raise LookupError(f"drive {drive_id} vanished while saving stage")
            model.current_stage = str(current_stage)
            rows = {e.stage_key: e for e in model.stage_entries}
            for entry in entries:
                row = rows.pop(entry.stage_key, None)
                if row is None:
                    model.stage_entries.append(entry)
                    continue
                row.status, row.enabled, row.deadline = entry.status, entry.enabled, entry.deadline
            for stale in rows.values():
                model.stage_entries.remove(stale)

            by_position = {c.position: c for c in model.checkpoints}
            for checkpoint in checkpoints:
                row = by_position.pop(checkpoint.position, None)
                if row is None:
                    model.checkpoints.append(checkpoint)
                    continue
                row.name, row.status = checkpoint.name, checkpoint.status
                row.deadline, row.max_marks = checkpoint.deadline, checkpoint.max_marks
            for stale in by_position.values():
                model.checkpoints.remove(stale)
        logger.debug("drive stage saved drive=%s stage=%s", drive_id, current_stage)


class SqlGroupRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get(self, group_id: str) -> Group | None:
        with session_scope(self._session_factory) as session:
            model = session.get(GroupModel, group_id)
            return _to_group(model) if model is not None else None

    def list_for_drive(self, drive_id: str) -> list[Group]:
        stmt = select(GroupModel).where(GroupModel.drive_id == drive_id).order_by(GroupModel.created_at)
        with session_scope(self._session_factory) as session:
            return [_to_group(m) for m in session.scalars(stmt)]

    def list_unassigned(self, drive_id: str) -> list[Group]:
        stmt = (
            select(GroupModel)
            .where(GroupModel.drive_id == drive_id, GroupModel.assigned_mentor.is_(None))
            .order_by(GroupModel.created_at)
        )
        with session_scope(self._session_factory) as session:
            return [_to_group(m) for m in session.scalars(stmt)]

    def count_assigned_for_mentor(self, drive_id: str, mentor_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(GroupModel)
            .where(GroupModel.drive_id == drive_id, GroupModel.assigned_mentor == mentor_id)
        )
        with session_scope(self._session_factory) as session:
            return int(session.scalar(stmt) or 0)

    def assign_mentor(
        self,
        group_id: str,
        mentor_id: str,
        assigned_by: str,
        at: datetime,
        *,
        max_groups: int,
    ) -> bool:
        groups = GroupModel.__table__
        other = groups.alias("assigned")
        with session_scope(self._session_factory) as session:
            drive_id = session.scalar(select(groups.c.drive_id).where(groups.c.id == group_id))
            if drive_id is None:
                return False
            session.execute(lock_drive_statement(drive_id))
            assigned_count = (
                select(func.count())
                .select_from(other)
                .where(other.c.drive_id == drive_id, other.c.assigned_mentor == mentor_id)
                .scalar_subquery()
            )
            stmt = (
                update(groups)
                .where(
                    groups.c.id == group_id,
                    groups.c.assigned_mentor.is_(None),
                    assigned_count < max_groups,
                )
                .values(
                    assigned_mentor=mentor_id,
                    mentor_allotted_at=at,
                    mentor_allotted_by=assigned_by,
                    status=str(GroupStatus.MENTOR_ASSIGNED),
                )
            )
            return session.execute(stmt).rowcount == 1

    def clear_mentor(self, group_id: str) -> None:
        stmt = (
            update(GroupModel.__table__)
            .where(GroupModel.__table__.c.id == group_id)
            .values(
                assigned_mentor=None,
                mentor_allotted_at=None,
                mentor_allotted_by=None,
                status=str(GroupStatus.FORMED),
            )
        )
        with session_scope(self._session_factory) as session:
            session.execute(stmt)

    def save_preferences(self, group: Group) -> None:
        with session_scope(self._session_factory) as session:
            model = session.get(GroupModel, group.group_id)
            if model is None:
                raise LookupError(f"group {group.group_id} vanished while saving preferences")
            model.preferences = []
            session.flush()
            model.preferences = [
                MentorPreferenceModel(group_id=group.group_id, mentor_id=p.mentor_id, rank=p.rank)
                for p in group.preferences
            ]

    def add(self, group: Group) -> None:
        model = GroupModel(
            group_id=group.group_id,
            drive_id=group.drive_id,
            name=group.name,
            created_at=group.created_at,
            leader_id=group.leader_id,
            assigned_mentor=group.assigned_mentor,
            mentor_allotted_at=group.mentor_allotted_at,
            mentor_allotted_by=group.mentor_allotted_by,
            status=str(group.status),
            members=[
                GroupMemberModel(group_id=group.group_id, student_id=m.student_id, position=idx, status=str(m.status))
                for idx, m in enumerate(group.members)
            ],
            preferences=[
                MentorPreferenceModel(group_id=group.group_id, mentor_id=p.mentor_id, rank=p.rank)
                for p in group.preferences
            ],
        )
        with session_scope(self._session_factory) as session:
            session.add(model)


class SqlSynopsisRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def record(self, drive_id: str, group_id: str, status: SynopsisStatus) -> None:
        with session_scope(self._session_factory) as session:
            session.add(SynopsisModel(drive_id=drive_id, group_id=group_id, status=str(status)))

    def count_approved(self, drive_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(SynopsisModel)
            .where(SynopsisModel.drive_id == drive_id, SynopsisModel.status == str(SynopsisStatus.APPROVED))
        )
        with session_scope(self._session_factory) as session:
            return int(session.scalar(stmt) or 0)


__all__ = ["SqlDriveRepository", "SqlGroupRepository", "SqlSynopsisRepository", "lock_drive_statement"]
