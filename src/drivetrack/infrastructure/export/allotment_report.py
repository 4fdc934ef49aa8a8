# -*- coding: utf-8 -*-
"""Excel report of a drive's mentor allotment for manual follow-up."""
from __future__ import annotations

from io import BytesIO
from typing import Any, Iterable

from openpyxl import Workbook
from openpyxl.cell import WriteOnlyCell
from openpyxl.styles import Font

from drivetrack.domain.drive.entities import Drive
from drivetrack.domain.group.entities import Group

RISKY_FORMULA_PREFIXES = ("=", "+", "-", "@")
ASSIGNED_COLUMNS = ("group_id", "group_name", "mentor_id", "allotted_at", "allotted_by")
UNASSIGNED_COLUMNS = ("group_id", "group_name", "created_at", "preference_1", "preference_2", "preference_3")
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def safe_cell(value: Any) -> Any:
    """Neutralise text that a spreadsheet would evaluate as a formula."""

    if isinstance(value, str) and value.startswith(RISKY_FORMULA_PREFIXES):
        return "'" + value
    return value


def _header(sheet, columns: Iterable[str]) -> list[WriteOnlyCell]:
    cells = []
    for column in columns:
        cell = WriteOnlyCell(sheet, value=column)
        cell.font = Font(bold=True)
        cells.append(cell)
    return cells


def _timestamp(value) -> str:
    return value.isoformat() if value is not None else ""


def build_allotment_report(drive: Drive, groups: Iterable[Group]) -> bytes:
    group_list = sorted(groups, key=lambda g: g.created_at)
    assigned = [g for g in group_list if g.has_mentor]
    unassigned = [g for g in group_list if not g.has_mentor]

    workbook = Workbook(write_only=True)

    summary = workbook.create_sheet(title="Summary")
    summary.append(_header(summary, ("metric", "value")))
    for label, value in (
        ("drive", safe_cell(drive.name)),
        ("current_stage", drive.current_stage.value),
        ("max_groups_per_mentor", drive.max_groups_per_mentor),
        ("groups_total", len(group_list)),
        ("groups_assigned", len(assigned)),
        ("groups_unassigned", len(unassigned)),
    ):
        summary.append([label, value])

    load = workbook.create_sheet(title="Mentor load")
    load.append(_header(load, ("mentor_id", "assigned", "remaining")))
    for mentor_id in dict.fromkeys(drive.mentor_ids):
        count = sum(1 for g in assigned if g.assigned_mentor == mentor_id)
        load.append([safe_cell(mentor_id), count, max(0, drive.max_groups_per_mentor - count)])

    sheet = workbook.create_sheet(title="Assigned")
    sheet.append(_header(sheet, ASSIGNED_COLUMNS))
    for group in assigned:
        sheet.append(
            [
                safe_cell(group.group_id),
                safe_cell(group.name),
                safe_cell(group.assigned_mentor),
                _timestamp(group.mentor_allotted_at),
                safe_cell(group.mentor_allotted_by or ""),
            ]
        )

    pending = workbook.create_sheet(title="Unassigned")
    pending.append(_header(pending, UNASSIGNED_COLUMNS))
    for group in unassigned:
        prefs = list(group.preferred_mentor_ids()) + [""] * 3
        pending.append(
            [safe_cell(group.group_id), safe_cell(group.name), _timestamp(group.created_at)]
            + [safe_cell(p) for p in prefs[:3]]
        )

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


__all__ = ["XLSX_MEDIA_TYPE", "build_allotment_report", "safe_cell"]
