# -*- coding: utf-8 -*-
from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Header, Request
from fastapi.responses import JSONResponse, Response

from drivetrack.application.commands.allotment import (
    AssignMentor,
    AutoGroupRemaining,
    RunAutoAllotment,
    UnassignMentor,
    UpdatePreferences,
)
from drivetrack.application.commands.stages import GetDriveProgress, ProgressStage, RegressStage, SetStage
from drivetrack.domain.shared.errors import NotFoundError
from drivetrack.domain.shared.types import next_stage
from drivetrack.domain.stages.machine import Blocked, StageTransition
from drivetrack.infrastructure.api.container import ApplicationContainer
from drivetrack.infrastructure.export.allotment_report import XLSX_MEDIA_TYPE, build_allotment_report
from drivetrack.interfaces.schemas import (
    AssignMentorRequest,
    FailedGroupOut,
    GroupOut,
    ProgressStageRequest,
    SetStageRequest,
    StagesOut,
    UpdatePreferencesRequest,
)

FORCE_HINT = "Use force:true to override readiness checks"


def get_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


def get_actor(
    request: Request,
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    actor = (x_user_id or "").strip()
    return actor or get_container(request).settings.default_actor_id


def _transition_payload(transition: StageTransition, message: str) -> dict:
    return {
        "success": True,
        "message": message,
        "previousStage": transition.previous_stage.value,
        "currentStage": transition.current_stage.value,
        "stages": StagesOut.from_domain(transition.stages).model_dump(mode="json"),
    }


def create_router() -> APIRouter:
    router = APIRouter()

    @router.post("/groups/auto-allot/{drive_id}")
    def auto_allot(
        drive_id: str,
        container: ApplicationContainer = Depends(get_container),
        actor: str = Depends(get_actor),
    ):
        result = container.allotment.run_auto_allotment(RunAutoAllotment(drive_id=drive_id, actor_id=actor))
        return {
            "success": True,
            "message": (
                f"{result.assigned_count} groups allotted mentors successfully "
                "(timestamp-based, first-come-first-served)"
            ),
            "allottedCount": result.assigned_count,
            "failedGroups": [FailedGroupOut.from_domain(f).model_dump() for f in result.failed_groups],
            "failedCount": result.failed_count,
        }

    @router.get("/groups/auto-allot/{drive_id}/report.xlsx")
    def allotment_report(drive_id: str, container: ApplicationContainer = Depends(get_container)):
        drive = container.drives.get(drive_id)
        if drive is None:
            raise NotFoundError("Drive", drive_id)
        content = build_allotment_report(drive, container.groups.list_for_drive(drive_id))
        return Response(
            content=content,
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f'attachment; filename="allotment-{drive_id}.xlsx"'},
        )

    @router.get("/groups/remaining/{drive_id}")
    def remaining(drive_id: str, container: ApplicationContainer = Depends(get_container)):
        students = container.allotment.remaining_students(drive_id)
        return {"success": True, "count": len(students), "data": students}

    @router.post("/groups/auto-group/{drive_id}", status_code=201)
    def auto_group(
        drive_id: str,
        container: ApplicationContainer = Depends(get_container),
        actor: str = Depends(get_actor),
    ):
        created = container.allotment.auto_group_remaining(AutoGroupRemaining(drive_id=drive_id, actor_id=actor))
        if not created:
            return JSONResponse(
                status_code=200,
                content={
                    "success": True,
                    "message": "All students are already grouped",
                    "groupsCreated": [],
                    "totalStudentsGrouped": 0,
                },
            )
        return {
            "success": True,
            "message": f"{len(created)} auto-groups created for remaining students",
            "groupsCreated": [
                {"groupId": g.group_id, "groupName": g.name, "memberCount": len(list(g.student_ids()))}
                for g in created
            ],
            "totalStudentsGrouped": sum(len(list(g.student_ids())) for g in created),
        }

    @router.put("/groups/{group_id}/mentor")
    def assign_mentor(
        group_id: str,
        payload: AssignMentorRequest,
        container: ApplicationContainer = Depends(get_container),
        actor: str = Depends(get_actor),
    ):
        group = container.allotment.assign_mentor(
            AssignMentor(group_id=group_id, mentor_id=payload.mentorId, actor_id=actor)
        )
        return {"success": True, "data": GroupOut.from_domain(group).model_dump(mode="json")}

    @router.delete("/groups/{group_id}/mentor")
    def unassign_mentor(
        group_id: str,
        container: ApplicationContainer = Depends(get_container),
        actor: str = Depends(get_actor),
    ):
        group = container.allotment.unassign_mentor(UnassignMentor(group_id=group_id, actor_id=actor))
        return {
            "success": True,
            "message": "Mentor unassigned successfully",
            "data": GroupOut.from_domain(group).model_dump(mode="json"),
        }

    @router.put("/groups/{group_id}/preferences")
    def update_preferences(
        group_id: str,
        payload: UpdatePreferencesRequest,
        container: ApplicationContainer = Depends(get_container),
    ):
        group = container.allotment.update_preferences(
            UpdatePreferences(group_id=group_id, mentor_ids=payload.mentorIds)
        )
        return {"success": True, "data": GroupOut.from_domain(group).model_dump(mode="json")}

    @router.get("/drives/{drive_id}/progress")
    def drive_progress(drive_id: str, container: ApplicationContainer = Depends(get_container)):
        report = container.stages.drive_progress(GetDriveProgress(drive_id=drive_id))
        upcoming = next_stage(report.drive.current_stage)
        snapshot = report.snapshot
        return {
            "success": True,
            "data": {
                "currentStage": report.drive.current_stage.value,
                "nextStage": upcoming.value if upcoming else None,
                "canProgress": report.readiness.ready,
                "reason": report.readiness.reason.message if report.readiness.reason else None,
                "stats": {
                    "totalStudents": snapshot.total_students,
                    "groupedStudents": snapshot.grouped_students,
                    "totalGroups": snapshot.total_groups,
                    "groupsWithMentor": snapshot.total_groups - snapshot.groups_without_mentor,
                    "approvedSynopses": snapshot.approved_synopses,
                },
                "stages": StagesOut.from_domain(report.drive.stages).model_dump(mode="json"),
            },
        }

    @router.post("/drives/{drive_id}/progress-stage")
    def progress_stage(
        drive_id: str,
        payload: ProgressStageRequest | None = Body(default=None),
        container: ApplicationContainer = Depends(get_container),
        actor: str = Depends(get_actor),
    ):
        force = payload.force if payload is not None else False
        outcome = container.stages.progress(ProgressStage(drive_id=drive_id, actor_id=actor, force=force))
        if isinstance(outcome, Blocked):
            return JSONResponse(
                status_code=400,
                content={
                    "success": False,
                    "message": outcome.reason.message,
                    "currentStage": outcome.current_stage.value,
                    "action": FORCE_HINT,
                },
            )
        suffix = " (forced)" if outcome.forced else ""
        return _transition_payload(
            outcome,
            f"Drive progressed from {outcome.previous_stage.value} to {outcome.current_stage.value}{suffix}",
        )

    @router.post("/drives/{drive_id}/regress-stage")
    def regress_stage(
        drive_id: str,
        container: ApplicationContainer = Depends(get_container),
        actor: str = Depends(get_actor),
    ):
        outcome = container.stages.regress(RegressStage(drive_id=drive_id, actor_id=actor))
        if isinstance(outcome, Blocked):
            return JSONResponse(
                status_code=400,
                content={
                    "success": False,
                    "message": outcome.reason.message,
                    "currentStage": outcome.current_stage.value,
                },
            )
        return _transition_payload(
            outcome,
            f"Drive regressed from {outcome.previous_stage.value} to {outcome.current_stage.value}",
        )

    @router.put("/drives/{drive_id}/stage")
    def set_stage(
        drive_id: str,
        payload: SetStageRequest,
        container: ApplicationContainer = Depends(get_container),
        actor: str = Depends(get_actor),
    ):
        transition = container.stages.set_stage(SetStage(drive_id=drive_id, stage=payload.stage, actor_id=actor))
        return _transition_payload(transition, f"Drive stage updated to {transition.current_stage.value}")

    return router


__all__ = ["FORCE_HINT", "create_router", "get_actor", "get_container"]
