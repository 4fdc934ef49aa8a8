# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from sqlalchemy import text

from drivetrack.application.locks import DriveLocks
from drivetrack.application.ports import DriveRepository, GroupRepository, SynopsisRepository
from drivetrack.application.services.allotment_service import AllotmentService
from drivetrack.application.services.stage_service import StageService
from drivetrack.config import AppSettings, get_settings
from drivetrack.core.clock import Clock, system_clock
from drivetrack.infrastructure.messaging.dispatcher import EventDispatcher, build_dispatcher
from drivetrack.infrastructure.messaging.outbox import InMemoryOutbox
from drivetrack.infrastructure.monitoring.metrics import ServiceMetrics, build_metrics
from drivetrack.infrastructure.persistence.repositories import (
    SqlDriveRepository,
    SqlGroupRepository,
    SqlSynopsisRepository,
)
from drivetrack.infrastructure.persistence.session import create_schema, make_engine, make_session_factory


@dataclass(slots=True)
class ApplicationContainer:
    settings: AppSettings
    clock: Clock
    metrics: ServiceMetrics
    outbox: InMemoryOutbox
    dispatcher: EventDispatcher
    drives: DriveRepository
    groups: GroupRepository
    synopses: SynopsisRepository
    allotment: AllotmentService
    stages: StageService
    readiness_check: Callable[[], bool]


def _sql_repositories(settings: AppSettings):
    engine = make_engine(settings.database_url)
    create_schema(engine)
    factory = make_session_factory(engine)

    def check_database() -> bool:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    return SqlDriveRepository(factory), SqlGroupRepository(factory), SqlSynopsisRepository(factory), check_database


def build_container(
    settings: AppSettings | None = None,
    *,
    clock: Clock | None = None,
    metrics: ServiceMetrics | None = None,
    outbox: InMemoryOutbox | None = None,
    drives: DriveRepository | None = None,
    groups: GroupRepository | None = None,
    synopses: SynopsisRepository | None = None,
) -> ApplicationContainer:
    settings = settings or get_settings()
    clock = clock or system_clock(settings.timezone)
    metrics = metrics or build_metrics(settings.metrics_namespace)
    if outbox is None:
        outbox = InMemoryOutbox()

    check_database: Callable[[], bool] = lambda: True
    if drives is None or groups is None or synopses is None:
        sql_drives, sql_groups, sql_synopses, check_database = _sql_repositories(settings)
        drives = sql_drives if drives is None else drives
        groups = sql_groups if groups is None else groups
        synopses = sql_synopses if synopses is None else synopses

    # Allotment runs and stage moves of the same drive share one lock set.
    locks = DriveLocks()
    return ApplicationContainer(
        settings=settings,
        clock=clock,
        metrics=metrics,
        outbox=outbox,
        dispatcher=build_dispatcher(outbox, metrics=metrics),
        drives=drives,
        groups=groups,
        synopses=synopses,
        allotment=AllotmentService(drives, groups, outbox, clock, locks=locks, metrics=metrics),
        stages=StageService(drives, groups, synopses, outbox, clock, locks=locks, metrics=metrics),
        readiness_check=check_database,
    )


__all__ = ["ApplicationContainer", "build_container"]
