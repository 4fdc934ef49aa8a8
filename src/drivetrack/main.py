"""ASGI entrypoint: ``uvicorn drivetrack.main:app``."""

from __future__ import annotations

from drivetrack.infrastructure.api.app_factory import create_application

app = create_application()
