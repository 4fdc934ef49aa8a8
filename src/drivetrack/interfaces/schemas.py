# -*- coding: utf-8 -*-
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from drivetrack.domain.allocation.engine import FailedAllotment
from drivetrack.domain.drive.entities import StageConfig, StageEntry
from drivetrack.domain.group.entities import Group
from drivetrack.domain.shared.types import MAX_PREFERENCES, Stage


class AssignMentorRequest(BaseModel):
    mentorId: str = Field(min_length=1)

    @field_validator("mentorId", mode="before")
    @classmethod
    def strip_mentor_id(cls, v: object) -> str:
        return str(v or "").strip()


class ProgressStageRequest(BaseModel):
    force: bool = False


class UpdatePreferencesRequest(BaseModel):
    mentorIds: list[str] = Field(default_factory=list)

    @field_validator("mentorIds")
    @classmethod
    def limit_preferences(cls, v: list[str]) -> list[str]:
        cleaned = [m.strip() for m in v if m and m.strip()]
        if len(dict.fromkeys(cleaned)) > MAX_PREFERENCES:
            raise ValueError(f"Maximum {MAX_PREFERENCES} mentor preferences allowed")
        return cleaned


class SetStageRequest(BaseModel):
    stage: Stage


class MemberOut(BaseModel):
    student: str
    status: str


class PreferenceOut(BaseModel):
    mentor: str
    rank: int


class GroupOut(BaseModel):
    id: str
    drive: str
    name: str
    leader: str
    members: list[MemberOut]
    mentorPreferences: list[PreferenceOut]
    assignedMentor: Optional[str] = None
    mentorAllottedAt: Optional[datetime] = None
    mentorAllottedBy: Optional[str] = None
    status: str
    createdAt: datetime

    @classmethod
    def from_domain(cls, group: Group) -> "GroupOut":
        return cls(
            id=group.group_id,
            drive=group.drive_id,
            name=group.name,
            leader=group.leader_id,
            members=[MemberOut(student=m.student_id, status=str(m.status)) for m in group.members],
            mentorPreferences=[PreferenceOut(mentor=p.mentor_id, rank=p.rank) for p in group.ranked_preferences()],
            assignedMentor=group.assigned_mentor,
            mentorAllottedAt=group.mentor_allotted_at,
            mentorAllottedBy=group.mentor_allotted_by,
            status=str(group.status),
            createdAt=group.created_at,
        )


class FailedGroupOut(BaseModel):
    groupId: str
    groupName: str
    preferences: list[str]
    reason: str

    @classmethod
    def from_domain(cls, failed: FailedAllotment) -> "FailedGroupOut":
        return cls(
            groupId=failed.group_id,
            groupName=failed.group_name,
            preferences=list(failed.preferences),
            reason=failed.reason.code.value,
        )


class StageEntryOut(BaseModel):
    enabled: bool
    deadline: Optional[datetime] = None
    status: str


class CheckpointOut(BaseModel):
    name: str
    deadline: Optional[datetime] = None
    maxMarks: Optional[int] = None
    status: str


class StagesOut(BaseModel):
    groupFormation: Optional[StageEntryOut] = None
    mentorAllotment: Optional[StageEntryOut] = None
    synopsisSubmission: Optional[StageEntryOut] = None
    checkpoints: list[CheckpointOut] = Field(default_factory=list)
    result: Optional[StageEntryOut] = None

    @classmethod
    def from_domain(cls, stages: StageConfig) -> "StagesOut":
        def _entry(entry: StageEntry | None) -> StageEntryOut | None:
            if entry is None:
                return None
            return StageEntryOut(enabled=entry.enabled, deadline=entry.deadline, status=str(entry.status))

        return cls(
            groupFormation=_entry(stages.group_formation),
            mentorAllotment=_entry(stages.mentor_allotment),
            synopsisSubmission=_entry(stages.synopsis_submission),
            checkpoints=[
                CheckpointOut(name=c.name, deadline=c.deadline, maxMarks=c.max_marks, status=str(c.status))
                for c in stages.checkpoints
            ],
            result=_entry(stages.result),
        )


__all__ = [
    "AssignMentorRequest",
    "FailedGroupOut",
    "GroupOut",
    "ProgressStageRequest",
    "SetStageRequest",
    "StagesOut",
    "UpdatePreferencesRequest",
]
