# -*- coding: utf-8 -*-
from __future__ import annotations

from typing import Iterable

from drivetrack.domain.drive.entities import Drive
from drivetrack.domain.group.entities import Group, MentorPreference
from drivetrack.domain.shared.errors import InvalidPreferencesError
from drivetrack.domain.shared.types import MAX_PREFERENCES


def build_preferences(mentor_ids: Iterable[str], drive: Drive) -> list[MentorPreference]:
    """Turn an ordered mentor list into ranked preferences for *drive*.

    Duplicates are dropped keeping the first occurrence; ranks start at 1.
    """

    unique: list[str] = []
    for mentor_id in mentor_ids:
        if mentor_id not in unique:
            unique.append(mentor_id)

    if len(unique) > MAX_PREFERENCES:
        raise InvalidPreferencesError(f"Maximum {MAX_PREFERENCES} mentor preferences allowed")

    unknown = [m for m in unique if not drive.has_mentor(m)]
    if unknown:
        raise InvalidPreferencesError(f"Mentors not part of drive {drive.drive_id}: {', '.join(unknown)}")

    return [MentorPreference(mentor_id=m, rank=idx + 1) for idx, m in enumerate(unique)]


def replace_preferences(group: Group, mentor_ids: Iterable[str], drive: Drive) -> Group:
    group.ensure_mutable()
    group.preferences = build_preferences(mentor_ids, drive)
    return group


__all__ = ["build_preferences", "replace_preferences"]
