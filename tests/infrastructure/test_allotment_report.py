from __future__ import annotations

from io import BytesIO

from openpyxl import load_workbook

from drivetrack.infrastructure.export.allotment_report import build_allotment_report, safe_cell
from tests.factories import make_drive, make_group


def _rows(workbook, title):
    return [list(row) for row in workbook[title].iter_rows(values_only=True)]


def test_report_has_one_sheet_per_view() -> None:
    drive = make_drive(mentors=("M1", "M2"), capacity=2)
    groups = [
        make_group("G2", created=2, prefs=("M2", "M1")),
        make_group("G1", created=1, mentor="M1"),
    ]

    workbook = load_workbook(BytesIO(build_allotment_report(drive, groups)))

    assert workbook.sheetnames == ["Summary", "Mentor load", "Assigned", "Unassigned"]
    summary = dict(_rows(workbook, "Summary")[1:])
    assert summary["groups_total"] == 2
    assert summary["groups_assigned"] == 1
    assert summary["current_stage"] == "group-formation"
    assert _rows(workbook, "Mentor load")[1:] == [["M1", 1, 1], ["M2", 0, 2]]
    assigned = _rows(workbook, "Assigned")
    assert assigned[1][:3] == ["G1", "Group G1", "M1"]
    assert assigned[1][4] == "admin"
    unassigned = _rows(workbook, "Unassigned")
    assert unassigned[1][0] == "G2"
    assert [value or "" for value in unassigned[1][3:6]] == ["M2", "M1", ""]


def test_formula_like_text_is_neutralised() -> None:
    assert safe_cell("=SUM(A1:A2)") == "'=SUM(A1:A2)"
    assert safe_cell("@cmd") == "'@cmd"
    assert safe_cell("plain") == "plain"
    assert safe_cell(3) == 3

    drive = make_drive()
    group = make_group("G1")
    group.name = "=HYPERLINK(\"x\")"
    workbook = load_workbook(BytesIO(build_allotment_report(drive, [group])))

    assert _rows(workbook, "Unassigned")[1][1] == "'=HYPERLINK(\"x\")"
