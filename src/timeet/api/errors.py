"""Exception handlers that render domain errors as JSON envelopes.

Body shape: ``{"code": "RESOURCE_NOT_FOUND", "errors": {"MeetingId": "..."}}``
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.timeet.core.errors import TimeetError

logger = structlog.get_logger(__name__)


async def timeet_error_handler(request: Request, exc: TimeetError) -> JSONResponse:
    logger.info(
        "request_rejected",
        path=request.url.path,
        status_code=exc.status_code,
        code=exc.code.value,
        errors=exc.errors,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code.value, "errors": exc.errors},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TimeetError, timeet_error_handler)  # type: ignore[arg-type]
