from __future__ import annotations

from zoneinfo import ZoneInfo

import pytest
from prometheus_client import CollectorRegistry

from drivetrack.application.services.allotment_service import AllotmentService
from drivetrack.application.services.stage_service import StageService
from drivetrack.core.clock import FrozenClock
from drivetrack.infrastructure.messaging.outbox import InMemoryOutbox
from drivetrack.infrastructure.monitoring.metrics import ServiceMetrics, build_metrics
from drivetrack.infrastructure.persistence.memory import (
    InMemoryDriveRepository,
    InMemoryGroupRepository,
    InMemorySynopsisRepository,
)
from tests.factories import BASE_TIME


@pytest.fixture
def clock() -> FrozenClock:
    frozen = FrozenClock(timezone=ZoneInfo("UTC"))
    frozen.set(BASE_TIME)
    return frozen


@pytest.fixture
def outbox() -> InMemoryOutbox:
    return InMemoryOutbox()


@pytest.fixture
def metrics() -> ServiceMetrics:
    return build_metrics("drivetrack", registry=CollectorRegistry())


@pytest.fixture
def drives() -> InMemoryDriveRepository:
    return InMemoryDriveRepository()


@pytest.fixture
def groups() -> InMemoryGroupRepository:
    return InMemoryGroupRepository()


@pytest.fixture
def synopses() -> InMemorySynopsisRepository:
    return InMemorySynopsisRepository()


@pytest.fixture
def allotment_service(drives, groups, outbox, clock, metrics) -> AllotmentService:
    return AllotmentService(drives=drives, groups=groups, outbox=outbox, clock=clock, metrics=metrics)


@pytest.fixture
def stage_service(drives, groups, synopses, outbox, clock, metrics) -> StageService:
    return StageService(
        drives=drives,
        groups=groups,
        synopses=synopses,
        outbox=outbox,
        clock=clock,
        metrics=metrics,
    )
