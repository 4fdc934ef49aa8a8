# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class RunAutoAllotment:
    drive_id: str
    actor_id: str


@dataclass(slots=True)
class AssignMentor:
    group_id: str
    mentor_id: str
    actor_id: str


@dataclass(slots=True)
class UnassignMentor:
    group_id: str
    actor_id: str


@dataclass(slots=True)
class UpdatePreferences:
    group_id: str
    mentor_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class AutoGroupRemaining:
    drive_id: str
    actor_id: str
