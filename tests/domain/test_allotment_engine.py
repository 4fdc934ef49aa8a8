from __future__ import annotations

import pytest

from drivetrack.domain.allocation.engine import AllotmentEngine, assign_one, unassign
from drivetrack.domain.allocation.ledger import MentorCapacityLedger
from drivetrack.domain.allocation.reasons import ReasonCode
from drivetrack.domain.shared.errors import (
    CapacityExceededError,
    GroupFrozenError,
    NoMentorAssignedError,
    NotFoundError,
)
from drivetrack.domain.shared.types import GroupStatus
from tests.factories import at, make_drive, make_group


def _run(drive, groups, counts=None):
    ledger = MentorCapacityLedger.for_drive(drive, counts or {})
    return AllotmentEngine().allot(drive, ledger, groups), ledger


def test_earlier_group_takes_first_choice_and_later_falls_to_second() -> None:
    drive = make_drive(mentors=("M1", "M2"), capacity=1)
    g1 = make_group("G1", created=0, prefs=("M1", "M2"))
    g2 = make_group("G2", created=1, prefs=("M1", "M2"))

    result, _ = _run(drive, [g1, g2])

    assert [(a.group_id, a.mentor_id) for a in result.assignments] == [("G1", "M1"), ("G2", "M2")]
    assert result.assignments[0].preference_rank == 1
    assert result.assignments[1].preference_rank == 2
    assert result.assigned_count == 2
    assert result.failed_groups == []


def test_group_fails_when_no_mentor_has_capacity() -> None:
    drive = make_drive(mentors=("M1", "M2"), capacity=1)
    g1 = make_group("G1", created=0, prefs=("M1",))
    g2 = make_group("G2", created=1, prefs=("M1",))

    result, _ = _run(drive, [g1, g2], counts={"M2": 1})

    assert result.assigned_count == 1
    assert result.assignments[0].group_id == "G1"
    assert [f.group_id for f in result.failed_groups] == ["G2"]
    failed = result.failed_groups[0]
    assert failed.group_name == "Group G2"
    assert failed.preferences == ("M1",)
    assert failed.reason.code is ReasonCode.NO_MENTOR_CAPACITY
    assert result.failed_count == 1


def test_processing_follows_creation_time_not_input_order() -> None:
    drive = make_drive(mentors=("M1", "M2"), capacity=1)
    late = make_group("LATE", created=5, prefs=("M1",))
    early = make_group("EARLY", created=1, prefs=("M1",))

    result, _ = _run(drive, [late, early])

    assert result.assignments[0].group_id == "EARLY"
    assert result.assignments[0].mentor_id == "M1"
    assert result.assignments[1].group_id == "LATE"
    assert result.assignments[1].mentor_id == "M2"
    assert result.assignments[1].via_fallback


def test_equal_timestamps_keep_input_order() -> None:
    drive = make_drive(mentors=("M1",), capacity=1)
    first = make_group("B", created=0, prefs=("M1",))
    second = make_group("A", created=0, prefs=("M1",))

    result, _ = _run(drive, [first, second])

    assert [a.group_id for a in result.assignments] == ["B"]
    assert [f.group_id for f in result.failed_groups] == ["A"]


def test_rank_one_wins_even_when_listed_out_of_order() -> None:
    drive = make_drive(mentors=("M1", "M2", "M3"), capacity=2)
    group = make_group("G1", prefs=("M3", "M2"))
    group.preferences.reverse()  # rank 2 stored first

    result, _ = _run(drive, [group])

    assert result.assignments[0].mentor_id == "M3"
    assert result.assignments[0].preference_rank == 1


def test_fallback_follows_drive_mentor_order() -> None:
    drive = make_drive(mentors=("M3", "M1", "M2"), capacity=1)
    group = make_group("G1", prefs=("M1",))

    result, _ = _run(drive, [group], counts={"M1": 1})

    assert result.assignments[0].mentor_id == "M3"
    assert result.assignments[0].via_fallback


def test_group_without_preferences_gets_first_available_mentor() -> None:
    drive = make_drive(mentors=("M1", "M2"), capacity=1)
    result, _ = _run(drive, [make_group("G1")], counts={"M1": 1})

    assert result.assignments[0].mentor_id == "M2"
    assert result.assignments[0].preference_rank is None


def test_capacity_never_exceeded_across_a_large_run() -> None:
    drive = make_drive(mentors=("M1", "M2", "M3"), capacity=2)
    groups = [make_group(f"G{i}", created=i, prefs=("M1", "M2")) for i in range(10)]

    result, ledger = _run(drive, groups, counts={"M3": 1})

    per_mentor: dict[str, int] = {}
    for assignment in result.assignments:
        per_mentor[assignment.mentor_id] = per_mentor.get(assignment.mentor_id, 0) + 1
    assert per_mentor == {"M1": 2, "M2": 2, "M3": 1}
    assert result.failed_count == 5
    assert ledger.snapshot() == {"M1": 0, "M2": 0, "M3": 0}


def test_identical_snapshots_give_identical_results() -> None:
    drive = make_drive(mentors=("M1", "M2"), capacity=2)
    groups = [make_group(f"G{i}", created=i % 3, prefs=("M2",) if i % 2 else ("M1",)) for i in range(7)]

    first, _ = _run(drive, groups)
    second, _ = _run(drive, groups)

    assert first.assignments == second.assignments
    assert first.failed_groups == second.failed_groups


def test_assigned_and_foreign_groups_are_not_candidates() -> None:
    drive = make_drive(mentors=("M1",), capacity=3)
    assigned = make_group("G1", mentor="M1")
    foreign = make_group("G2", drive_id="other")
    open_group = make_group("G3")

    result, _ = _run(drive, [assigned, foreign, open_group])

    assert [a.group_id for a in result.assignments] == ["G3"]
    assert result.failed_groups == []


def test_assign_one_accepts_mentor_below_capacity() -> None:
    drive = make_drive(mentors=("M1", "M2"), capacity=2)
    group = make_group("G1", prefs=("M2",))

    assignment = assign_one(group, "M2", 1, drive)

    assert assignment.mentor_id == "M2"
    assert assignment.preference_rank == 1


def test_assign_one_rejects_full_mentor() -> None:
    drive = make_drive(mentors=("M1",), capacity=2)
    with pytest.raises(CapacityExceededError) as exc:
        assign_one(make_group("G1"), "M1", 2, drive)
    assert exc.value.error_code == "CAPACITY_EXCEEDED"
    assert exc.value.message == "Mentor has reached maximum group limit"


def test_assign_one_rejects_mentor_outside_drive() -> None:
    drive = make_drive(mentors=("M1",))
    with pytest.raises(NotFoundError) as exc:
        assign_one(make_group("G1"), "M9", 0, drive)
    assert exc.value.status_code == 404


def test_assign_one_rejects_group_of_another_drive() -> None:
    drive = make_drive(mentors=("M1",))
    with pytest.raises(NotFoundError):
        assign_one(make_group("G1", drive_id="other"), "M1", 0, drive)


def test_assign_one_refuses_frozen_group() -> None:
    drive = make_drive(mentors=("M1", "M2"), capacity=3)
    with pytest.raises(GroupFrozenError):
        assign_one(make_group("G1", mentor="M1"), "M2", 0, drive)


def test_unassign_clears_assignment_fields() -> None:
    group = make_group("G1", mentor="M1")
    assert group.mentor_allotted_at == at(0)

    previous = unassign(group)

    assert previous == "M1"
    assert group.assigned_mentor is None
    assert group.mentor_allotted_at is None
    assert group.mentor_allotted_by is None
    assert group.status is GroupStatus.FORMED


def test_unassign_without_mentor_is_an_error() -> None:
    with pytest.raises(NoMentorAssignedError) as exc:
        unassign(make_group("G1"))
    assert exc.value.message == "No mentor assigned to this group"
