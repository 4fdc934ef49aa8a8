# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Dict


class ReasonCode(StrEnum):
    NO_MENTOR_CAPACITY = "NO_MENTOR_CAPACITY"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    STUDENTS_UNGROUPED = "STUDENTS_UNGROUPED"
    GROUPS_WITHOUT_MENTOR = "GROUPS_WITHOUT_MENTOR"
    SYNOPSES_PENDING = "SYNOPSES_PENDING"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    AT_FIRST_STAGE = "AT_FIRST_STAGE"


_MESSAGES: Dict[ReasonCode, str] = {
    ReasonCode.NO_MENTOR_CAPACITY: "No mentor with remaining capacity for this group",
    ReasonCode.CAPACITY_EXCEEDED: "Mentor reached capacity before the assignment was written",
    ReasonCode.STUDENTS_UNGROUPED: "Not all participating students are in groups",
    ReasonCode.GROUPS_WITHOUT_MENTOR: "Some groups have no assigned mentor",
    ReasonCode.SYNOPSES_PENDING: "Not every group has an approved synopsis",
    ReasonCode.ALREADY_COMPLETED: "Drive is already completed",
    ReasonCode.AT_FIRST_STAGE: "Drive is already at the first stage",
}


@dataclass(frozen=True, slots=True)
class Reason:
    code: ReasonCode
    message: str


def build_reason(code: ReasonCode, detail: str | None = None) -> Reason:
    message = _MESSAGES[code]
    if detail:
        message = f"{message} ({detail})"
    return Reason(code=code, message=message)


__all__ = ["Reason", "ReasonCode", "build_reason"]
