# -*- coding: utf-8 -*-
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from drivetrack.domain.shared.errors import AllocationError

logger = logging.getLogger(__name__)


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AllocationError)
    async def handle_alloc_error(request: Request, exc: AllocationError):  # type: ignore[unused-ignore]
        logger.info("request rejected path=%s code=%s", request.url.path, exc.error_code)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.error_code, "message": exc.message},
        )
