"""Exception handlers rendering every failure as the JSON error envelope.

    {"success": false, "error": <message>, "details": <detail, optional>}
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.capacity.core.exceptions import ProvisioningFailed, TenancyError

logger = structlog.get_logger(__name__)


def error_response(status_code: int, error: str, details=None, **extra) -> JSONResponse:
    content = {"success": False, "error": error}
    if details is not None:
        content["details"] = details
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


async def tenancy_error_handler(request: Request, exc: TenancyError) -> JSONResponse:
    extra = {}
    if isinstance(exc, ProvisioningFailed):
        extra = {
            "stage": exc.stage,
            "completedStages": exc.completed,
            "compensationErrors": exc.compensation_errors,
        }
    return error_response(exc.status_code, exc.message, exc.details, **extra)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return error_response(400, "Invalid request", details)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    response = error_response(exc.status_code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_unhandled_error", path=request.url.path, error=str(exc))
    return error_response(500, "Internal server error", str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TenancyError, tenancy_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
