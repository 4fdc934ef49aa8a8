# -*- coding: utf-8 -*-
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram


@dataclass(slots=True)
class ServiceMetrics:
    registry: CollectorRegistry
    allotment_runs_total: Counter
    allotment_assigned_total: Counter
    allotment_failed_total: Counter
    allotment_duration_seconds: Histogram
    stage_transitions_total: Counter
    mentor_capacity_remaining: Gauge
    events_delivered_total: Counter

    def record_allotment_run(self, assigned: int, failed_reasons: Sequence[str], duration: float) -> None:
        self.allotment_runs_total.inc()
        self.allotment_assigned_total.inc(assigned)
        for reason in failed_reasons:
            self.allotment_failed_total.labels(reason=reason).inc()
        self.allotment_duration_seconds.observe(duration)

    def record_manual_assignment(self) -> None:
        self.allotment_assigned_total.inc()

    def record_stage_transition(self, direction: str, outcome: str) -> None:
        self.stage_transitions_total.labels(direction=direction, outcome=outcome).inc()

    def record_event(self, event_type: str, outcome: str) -> None:
        self.events_delivered_total.labels(event_type=event_type, outcome=outcome).inc()

    def observe_capacity(self, drive_id: str, remaining: Mapping[str, int]) -> None:
        for mentor_id, value in remaining.items():
            self.mentor_capacity_remaining.labels(drive_id=drive_id, mentor_id=mentor_id).set(value)


def _build_histogram(
    namespace: str,
    name: str,
    documentation: str,
    *,
    registry: CollectorRegistry,
    buckets: Iterable[float],
) -> Histogram:
    return Histogram(
        f"{namespace}_{name}",
        documentation,
        registry=registry,
        buckets=tuple(buckets),
    )


def build_metrics(namespace: str = "drivetrack", registry: CollectorRegistry | None = None) -> ServiceMetrics:
    reg = registry or CollectorRegistry()
    return ServiceMetrics(
        registry=reg,
        allotment_runs_total=Counter(
            f"{namespace}_allotment_runs_total",
            "Bulk allotment runs",
            registry=reg,
        ),
        allotment_assigned_total=Counter(
            f"{namespace}_allotment_assigned_total",
            "Groups assigned a mentor (bulk and manual)",
            registry=reg,
        ),
        allotment_failed_total=Counter(
            f"{namespace}_allotment_failed_total",
            "Groups left unassigned",
            registry=reg,
            labelnames=("reason",),
        ),
        allotment_duration_seconds=_build_histogram(
            namespace,
            "allotment_duration_seconds",
            "Wall time of one bulk allotment run",
            registry=reg,
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2),
        ),
        stage_transitions_total=Counter(
            f"{namespace}_stage_transitions_total",
            "Stage transition attempts",
            registry=reg,
            labelnames=("direction", "outcome"),
        ),
        mentor_capacity_remaining=Gauge(
            f"{namespace}_mentor_capacity_remaining",
            "Remaining group slots per mentor after the last run",
            registry=reg,
            labelnames=("drive_id", "mentor_id"),
        ),
        events_delivered_total=Counter(
            f"{namespace}_events_delivered_total",
            "Outbox events handed to subscribers",
            registry=reg,
            labelnames=("event_type", "outcome"),
        ),
    )


__all__ = ["ServiceMetrics", "build_metrics"]
