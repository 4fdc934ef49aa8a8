# -*- coding: utf-8 -*-
from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class DriveModel(Base):
    __tablename__ = "drives"

    drive_id = Column("id", String(64), primary_key=True)
    name = Column("name", String(255), nullable=False)
    max_groups_per_mentor = Column("max_groups_per_mentor", Integer, nullable=False)
    min_group_size = Column("min_group_size", Integer, nullable=False, default=1)
    max_group_size = Column("max_group_size", Integer, nullable=False, default=4)
    current_stage = Column("current_stage", String(32), nullable=False, default="group-formation")

    mentors = relationship(
        "DriveMentorModel",
        order_by="DriveMentorModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    students = relationship(
        "DriveStudentModel",
        order_by="DriveStudentModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    stage_entries = relationship("StageEntryModel", cascade="all, delete-orphan", lazy="selectin")
    checkpoints = relationship(
        "CheckpointStageModel",
        order_by="CheckpointStageModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (CheckConstraint("max_groups_per_mentor > 0", name="ck_drive_capacity_positive"),)


class DriveMentorModel(Base):
    __tablename__ = "drive_mentors"

    drive_id = Column("drive_id", String(64), ForeignKey("drives.id", ondelete="CASCADE"), primary_key=True)
    mentor_id = Column("mentor_id", String(64), primary_key=True)
    position = Column("position", Integer, nullable=False)


class DriveStudentModel(Base):
    __tablename__ = "drive_students"

    drive_id = Column("drive_id", String(64), ForeignKey("drives.id", ondelete="CASCADE"), primary_key=True)
    student_id = Column("student_id", String(64), primary_key=True)
    position = Column("position", Integer, nullable=False)


class StageEntryModel(Base):
    __tablename__ = "drive_stage_entries"

    drive_id = Column("drive_id", String(64), ForeignKey("drives.id", ondelete="CASCADE"), primary_key=True)
    stage_key = Column("stage_key", String(32), primary_key=True)
    status = Column("status", String(16), nullable=False, default="not-started")
    enabled = Column("enabled", Boolean, nullable=False, default=True)
    deadline = Column("deadline", DateTime(timezone=True), nullable=True)


class CheckpointStageModel(Base):
    __tablename__ = "drive_checkpoints"

    drive_id = Column("drive_id", String(64), ForeignKey("drives.id", ondelete="CASCADE"), primary_key=True)
    position = Column("position", Integer, primary_key=True)
    name = Column("name", String(255), nullable=False)
    status = Column("status", String(16), nullable=False, default="not-started")
    deadline = Column("deadline", DateTime(timezone=True), nullable=True)
    max_marks = Column("max_marks", Integer, nullable=True)


class GroupModel(Base):
    __tablename__ = "groups"

    group_id = Column("id", String(64), primary_key=True)
    drive_id = Column("drive_id", String(64), ForeignKey("drives.id", ondelete="CASCADE"), nullable=False)
    name = Column("name", String(255), nullable=False)
    created_at = Column("created_at", DateTime(timezone=True), nullable=False)
    leader_id = Column("leader_id", String(64), nullable=False)
    assigned_mentor = Column("assigned_mentor", String(64), nullable=True)
    mentor_allotted_at = Column("mentor_allotted_at", DateTime(timezone=True), nullable=True)
    mentor_allotted_by = Column("mentor_allotted_by", String(64), nullable=True)
    status = Column("status", String(32), nullable=False, default="forming")

    members = relationship(
        "GroupMemberModel",
        order_by="GroupMemberModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    preferences = relationship(
        "MentorPreferenceModel",
        order_by="MentorPreferenceModel.rank",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_groups_drive_mentor", "drive_id", "assigned_mentor"),
        Index("ix_groups_drive_created", "drive_id", "created_at"),
    )


class GroupMemberModel(Base):
    __tablename__ = "group_members"

    group_id = Column("group_id", String(64), ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True)
    student_id = Column("student_id", String(64), primary_key=True)
    position = Column("position", Integer, nullable=False)
    status = Column("status", String(16), nullable=False, default="pending")


class MentorPreferenceModel(Base):
    __tablename__ = "mentor_preferences"

    group_id = Column("group_id", String(64), ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True)
    mentor_id = Column("mentor_id", String(64), primary_key=True)
    rank = Column("rank", Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("group_id", "rank", name="uq_preference_rank"),
        CheckConstraint("rank BETWEEN 1 AND 3", name="ck_preference_rank_range"),
    )


class SynopsisModel(Base):
    __tablename__ = "synopses"

    synopsis_id = Column("id", Integer, primary_key=True, autoincrement=True)
    group_id = Column("group_id", String(64), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    drive_id = Column("drive_id", String(64), ForeignKey("drives.id", ondelete="CASCADE"), nullable=False)
    status = Column("status", String(32), nullable=False, default="submitted")

    __table_args__ = (Index("ix_synopses_drive_status", "drive_id", "status"),)


__all__ = [
    "Base",
    "CheckpointStageModel",
    "DriveMentorModel",
    "DriveModel",
    "DriveStudentModel",
    "GroupMemberModel",
    "GroupModel",
    "MentorPreferenceModel",
    "StageEntryModel",
    "SynopsisModel",
]
