from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from drivetrack.application.commands.allotment import (
    AssignMentor,
    AutoGroupRemaining,
    RunAutoAllotment,
    UnassignMentor,
    UpdatePreferences,
)
from drivetrack.application.services.allotment_service import AllotmentService
from drivetrack.domain.allocation.reasons import ReasonCode
from drivetrack.domain.shared.errors import (
    CapacityExceededError,
    GroupFrozenError,
    InvalidPreferencesError,
    NoMentorAssignedError,
    NotFoundError,
)
from drivetrack.domain.shared.types import GroupStatus, MemberStatus
from drivetrack.infrastructure.persistence.memory import InMemoryGroupRepository
from drivetrack.infrastructure.persistence.repositories import SqlDriveRepository, SqlGroupRepository
from drivetrack.infrastructure.persistence.session import create_schema, make_engine, make_session_factory
from tests.factories import BASE_TIME, make_drive, make_group


class RefusingGroupRepository(InMemoryGroupRepository):
    """Simulates a concurrent writer winning the conditional update for some groups."""

    def __init__(self, refuse: set[str]) -> None:
        super().__init__()
        self.refuse = refuse

    def assign_mentor(self, group_id, mentor_id, assigned_by, at, *, max_groups):
        if group_id in self.refuse:
            return False
        return super().assign_mentor(group_id, mentor_id, assigned_by, at, max_groups=max_groups)


class UncheckedGroupRepository(InMemoryGroupRepository):
    """Writes without re-checking capacity, as a snapshot-isolated database would."""

    def count_assigned_for_mentor(self, drive_id, mentor_id):
        count = super().count_assigned_for_mentor(drive_id, mentor_id)
        time.sleep(0.002)
        return count

    def assign_mentor(self, group_id, mentor_id, assigned_by, at, *, max_groups):
        return super().assign_mentor(group_id, mentor_id, assigned_by, at, max_groups=10**6)


def test_bulk_run_persists_assignments_and_emits_events(allotment_service, drives, groups, outbox, metrics) -> None:
    drives.add(make_drive(mentors=("M1", "M2"), capacity=1))
    groups.add(make_group("G1", created=0, prefs=("M1", "M2")))
    groups.add(make_group("G2", created=1, prefs=("M1", "M2")))
    groups.add(make_group("G3", created=2, prefs=("M1",)))

    result = allotment_service.run_auto_allotment(RunAutoAllotment("d1", "admin"))

    assert [(a.group_id, a.mentor_id) for a in result.assignments] == [("G1", "M1"), ("G2", "M2")]
    assert [f.group_id for f in result.failed_groups] == ["G3"]

    stored = groups.get("G2")
    assert stored.assigned_mentor == "M2"
    assert stored.mentor_allotted_by == "admin"
    assert stored.mentor_allotted_at == BASE_TIME
    assert stored.status is GroupStatus.MENTOR_ASSIGNED
    assert groups.get("G3").assigned_mentor is None

    events = outbox.drain()
    assert [e.event_type for e in events] == ["MentorAssigned", "MentorAssigned", "AllotmentFailed"]
    assert events[0].payload["preference_rank"] == 1
    assert events[2].payload["reason"] == "NO_MENTOR_CAPACITY"

    registry = metrics.registry
    assert registry.get_sample_value("drivetrack_allotment_runs_total") == 1.0
    assert registry.get_sample_value("drivetrack_allotment_assigned_total") == 2.0
    assert registry.get_sample_value("drivetrack_allotment_failed_total", {"reason": "NO_MENTOR_CAPACITY"}) == 1.0
    assert registry.get_sample_value(
        "drivetrack_mentor_capacity_remaining", {"drive_id": "d1", "mentor_id": "M1"}
    ) == 0.0


def test_second_run_only_considers_unassigned_groups(allotment_service, drives, groups) -> None:
    drives.add(make_drive(mentors=("M1", "M2"), capacity=2))
    groups.add(make_group("G1", prefs=("M1",)))
    allotment_service.run_auto_allotment(RunAutoAllotment("d1", "admin"))
    groups.add(make_group("G2", created=3, prefs=("M1",)))

    result = allotment_service.run_auto_allotment(RunAutoAllotment("d1", "admin"))

    assert [(a.group_id, a.mentor_id) for a in result.assignments] == [("G2", "M1")]
    assert groups.count_assigned_for_mentor("d1", "M1") == 2


def test_refused_write_is_reported_as_capacity_exceeded(drives, outbox, clock, metrics) -> None:
    repo = RefusingGroupRepository(refuse={"G1"})
    service = AllotmentService(drives=drives, groups=repo, outbox=outbox, clock=clock, metrics=metrics)
    drives.add(make_drive(mentors=("M1", "M2"), capacity=1))
    repo.add(make_group("G1", created=0, prefs=("M1",)))
    repo.add(make_group("G2", created=1, prefs=("M2",)))

    result = service.run_auto_allotment(RunAutoAllotment("d1", "admin"))

    assert [a.group_id for a in result.assignments] == ["G2"]
    assert len(result.failed_groups) == 1
    failed = result.failed_groups[0]
    assert failed.group_id == "G1"
    assert failed.reason.code is ReasonCode.CAPACITY_EXCEEDED
    assert repo.get("G1").assigned_mentor is None
    assert [e.event_type for e in outbox.drain()] == ["MentorAssigned", "AllotmentFailed"]

    def remaining(mentor_id: str) -> float | None:
        labels = {"drive_id": "d1", "mentor_id": mentor_id}
        return metrics.registry.get_sample_value("drivetrack_mentor_capacity_remaining", labels)

    assert remaining("M1") == 1.0
    assert remaining("M2") == 0.0
    assert metrics.registry.get_sample_value("drivetrack_allotment_assigned_total") == 1.0


def test_unknown_drive_is_not_found(allotment_service) -> None:
    with pytest.raises(NotFoundError) as exc:
        allotment_service.run_auto_allotment(RunAutoAllotment("missing", "admin"))
    assert exc.value.status_code == 404


def test_manual_assign_respects_capacity(allotment_service, drives, groups, outbox) -> None:
    drives.add(make_drive(mentors=("M1", "M2"), capacity=1))
    groups.add(make_group("G1", mentor="M1"))
    groups.add(make_group("G2", prefs=("M2",)))

    with pytest.raises(CapacityExceededError):
        allotment_service.assign_mentor(AssignMentor("G2", "M1", "admin"))

    group = allotment_service.assign_mentor(AssignMentor("G2", "M2", "admin"))

    assert group.assigned_mentor == "M2"
    assert groups.get("G2").assigned_mentor == "M2"
    event = outbox.drain()[-1]
    assert event.event_type == "MentorAssigned"
    assert event.payload == {
        "drive_id": "d1",
        "group_id": "G2",
        "mentor_id": "M2",
        "preference_rank": 1,
        "assigned_by": "admin",
    }


def test_manual_assign_to_assigned_group_is_refused(allotment_service, drives, groups) -> None:
    drives.add(make_drive(mentors=("M1", "M2"), capacity=2))
    groups.add(make_group("G1", mentor="M1"))

    with pytest.raises(GroupFrozenError):
        allotment_service.assign_mentor(AssignMentor("G1", "M2", "admin"))
    assert groups.get("G1").assigned_mentor == "M1"


def test_manual_assign_unknown_group(allotment_service, drives) -> None:
    drives.add(make_drive())
    with pytest.raises(NotFoundError):
        allotment_service.assign_mentor(AssignMentor("nope", "M1", "admin"))


def test_unassign_frees_the_slot(allotment_service, drives, groups, outbox) -> None:
    drives.add(make_drive(mentors=("M1",), capacity=1))
    groups.add(make_group("G1", mentor="M1"))
    groups.add(make_group("G2"))

    allotment_service.unassign_mentor(UnassignMentor("G1", "admin"))
    stored = groups.get("G1")
    assert stored.assigned_mentor is None
    assert stored.status is GroupStatus.FORMED
    assert outbox.drain()[-1].payload["mentor_id"] == "M1"

    allotment_service.assign_mentor(AssignMentor("G2", "M1", "admin"))
    assert groups.count_assigned_for_mentor("d1", "M1") == 1

    with pytest.raises(NoMentorAssignedError):
        allotment_service.unassign_mentor(UnassignMentor("G1", "admin"))


def test_update_preferences_persists_ranked_list(allotment_service, drives, groups) -> None:
    drives.add(make_drive(mentors=("M1", "M2", "M3")))
    groups.add(make_group("G1", prefs=("M1",)))

    allotment_service.update_preferences(UpdatePreferences("G1", ["M3", "M1"]))

    assert groups.get("G1").preferred_mentor_ids() == ("M3", "M1")

    with pytest.raises(InvalidPreferencesError):
        allotment_service.update_preferences(UpdatePreferences("G1", ["M1", "M2", "M3", "M4"]))
    assert groups.get("G1").preferred_mentor_ids() == ("M3", "M1")


def test_preferences_frozen_after_assignment(allotment_service, drives, groups) -> None:
    drives.add(make_drive(mentors=("M1", "M2")))
    groups.add(make_group("G1", mentor="M1"))

    with pytest.raises(GroupFrozenError):
        allotment_service.update_preferences(UpdatePreferences("G1", ["M2"]))


def test_auto_group_creates_groups_from_remaining_students(allotment_service, drives, groups) -> None:
    drives.add(make_drive(students=[f"S{i}" for i in range(1, 8)], max_group_size=3))
    groups.add(make_group("G1", leader="S1", members=["S2"]))

    assert allotment_service.remaining_students("d1") == ["S3", "S4", "S5", "S6", "S7"]

    created = allotment_service.auto_group_remaining(AutoGroupRemaining("d1", "admin"))

    assert [g.name for g in created] == ["Auto-Group-2", "Auto-Group-3"]
    assert created[0].leader_id == "S3"
    assert [m.student_id for m in created[0].members] == ["S4", "S5"]
    assert all(m.status is MemberStatus.ACCEPTED for m in created[0].members)
    assert created[1].leader_id == "S6"
    assert all(g.status is GroupStatus.FORMED for g in created)
    assert len(groups.list_for_drive("d1")) == 3
    assert allotment_service.remaining_students("d1") == []
    assert allotment_service.auto_group_remaining(AutoGroupRemaining("d1", "admin")) == []


def _assign_concurrently(service: AllotmentService, group_ids, mentor_id: str) -> list[str]:
    def attempt(group_id: str) -> str:
        try:
            service.assign_mentor(AssignMentor(group_id, mentor_id, "admin"))
        except CapacityExceededError:
            return "full"
        return "assigned"

    with ThreadPoolExecutor(max_workers=len(group_ids)) as pool:
        return list(pool.map(attempt, group_ids))


def test_concurrent_manual_assigns_are_serialized_per_drive(drives, outbox, clock) -> None:
    repo = UncheckedGroupRepository()
    service = AllotmentService(drives=drives, groups=repo, outbox=outbox, clock=clock)
    drives.add(make_drive(mentors=("M1",), capacity=3))
    group_ids = [f"G{i}" for i in range(8)]
    for offset, group_id in enumerate(group_ids):
        repo.add(make_group(group_id, created=offset))

    outcomes = _assign_concurrently(service, group_ids, "M1")

    assert outcomes.count("assigned") == 3
    assert outcomes.count("full") == 5
    assert repo.count_assigned_for_mentor("d1", "M1") == 3
    assert len(service.locks) == 0


def test_concurrent_manual_assigns_against_sql_storage(tmp_path, outbox, clock) -> None:
    engine = make_engine(f"sqlite:///{tmp_path / 'drivetrack.db'}")
    create_schema(engine)
    session_factory = make_session_factory(engine)
    drives, groups = SqlDriveRepository(session_factory), SqlGroupRepository(session_factory)
    service = AllotmentService(drives=drives, groups=groups, outbox=outbox, clock=clock)
    drives.add(make_drive(mentors=("M1", "M2"), capacity=3))
    group_ids = [f"G{i}" for i in range(8)]
    for offset, group_id in enumerate(group_ids):
        groups.add(make_group(group_id, created=offset))

    outcomes = _assign_concurrently(service, group_ids, "M1")

    assert outcomes.count("assigned") == 3
    assert groups.count_assigned_for_mentor("d1", "M1") == 3
    assert [e.event_type for e in outbox.drain()] == ["MentorAssigned"] * 3
    engine.dispose()


def test_lock_entries_are_released(allotment_service, drives, groups) -> None:
    drives.add(make_drive(mentors=("M1",), capacity=1))
    groups.add(make_group("G1", prefs=("M1",)))

    allotment_service.run_auto_allotment(RunAutoAllotment("d1", "admin"))
    for missing in ("x1", "x2", "x3"):
        with pytest.raises(NotFoundError):
            allotment_service.run_auto_allotment(RunAutoAllotment(missing, "admin"))

    assert len(allotment_service.locks) == 0


class RecordingMetrics:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def record_allotment_run(self, assigned, failed_reasons, duration) -> None:
        self.calls.append(("run", assigned, tuple(failed_reasons)))

    def record_manual_assignment(self) -> None:
        self.calls.append(("manual",))

    def record_stage_transition(self, direction, outcome) -> None:
        self.calls.append(("stage", direction, outcome))

    def observe_capacity(self, drive_id, remaining) -> None:
        self.calls.append(("capacity", drive_id, dict(remaining)))


def test_any_metrics_recorder_can_be_plugged_in(drives, groups, outbox, clock) -> None:
    recorder = RecordingMetrics()
    service = AllotmentService(drives=drives, groups=groups, outbox=outbox, clock=clock, metrics=recorder)
    drives.add(make_drive(mentors=("M1",), capacity=1))
    groups.add(make_group("G1", prefs=("M1",)))
    groups.add(make_group("G2", created=1, prefs=("M1",)))
    groups.add(make_group("G3", created=2))

    service.run_auto_allotment(RunAutoAllotment("d1", "admin"))
    service.unassign_mentor(UnassignMentor("G1", "admin"))
    service.assign_mentor(AssignMentor("G3", "M1", "admin"))

    assert recorder.calls == [
        ("capacity", "d1", {"M1": 0}),
        ("run", 1, ("NO_MENTOR_CAPACITY", "NO_MENTOR_CAPACITY")),
        ("manual",),
    ]
