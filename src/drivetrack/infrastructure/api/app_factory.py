# -*- coding: utf-8 -*-
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.concurrency import run_in_threadpool

from drivetrack.config import AppSettings
from drivetrack.core.logging_config import setup_logging
from drivetrack.infrastructure.api.container import ApplicationContainer, build_container
from drivetrack.infrastructure.api.error_handlers import install_error_handlers
from drivetrack.infrastructure.api.routes import create_router
from drivetrack.infrastructure.monitoring.logging_adapter import CorrelationIdMiddleware, configure_json_logging

logger = logging.getLogger(__name__)


def create_application(
    settings: AppSettings | None = None,
    *,
    container: ApplicationContainer | None = None,
    configure_logging: bool = True,
) -> FastAPI:
    container = container or build_container(settings)
    settings = container.settings

    if configure_logging:
        if settings.json_logs:
            configure_json_logging(settings.log_level_value, log_file=settings.log_file, clock=container.clock)
        else:
            setup_logging(settings.log_level_value, settings.log_file)

    app = FastAPI(title="drivetrack", version="1.0.0")
    app.state.container = container

    @app.middleware("http")
    async def deliver_events(request: Request, call_next):
        try:
            return await call_next(request)
        finally:
            await run_in_threadpool(container.dispatcher.dispatch)

    # Added last so it wraps event delivery and log lines carry the correlation id.
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(create_router(), prefix="/api")
    install_error_handlers(app)

    @app.get("/readyz")
    def readyz():
        try:
            ready = container.readiness_check()
        except Exception:
            logger.exception("readiness check failed")
            ready = False
        if not ready:
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return {"status": "ok"}

    @app.get("/metrics")
    async def metrics(request: Request):
        provided = (request.headers.get("X-Metrics-Token") or "").strip()
        if provided != settings.metrics_token:
            return JSONResponse(
                status_code=401,
                content={"success": False, "error": "METRICS_TOKEN_INVALID", "message": "Invalid metrics token"},
            )
        return Response(generate_latest(container.metrics.registry), media_type=CONTENT_TYPE_LATEST)

    logger.info("application created database=%s", settings.database_url.split("://", 1)[0])
    return app


create_app = create_application


__all__ = ["create_app", "create_application"]
