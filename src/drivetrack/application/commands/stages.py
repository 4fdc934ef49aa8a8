# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass

from drivetrack.domain.shared.types import Stage


@dataclass(slots=True)
class ProgressStage:
    drive_id: str
    actor_id: str
    force: bool = False


@dataclass(slots=True)
class RegressStage:
    drive_id: str
    actor_id: str


@dataclass(slots=True)
class SetStage:
    drive_id: str
    stage: Stage
    actor_id: str


@dataclass(slots=True)
class GetDriveProgress:
    drive_id: str
