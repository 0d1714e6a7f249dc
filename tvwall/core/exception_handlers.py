from __future__ import annotations

"""
Problem+JSON exception handlers (RFC 7807).

Installed by `tvwall.main.create_app`. All HTTP errors are rendered as
application/problem+json with a stable schema. `success: false` and `error`
are included for older console clients that read `error`.
"""

import logging

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tvwall.core.exceptions import AppException
from tvwall.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)


def _problem(title: str, detail: str, status_code: int, request: Request, **extra) -> JSONResponse:
    content = {
        "type": "about:blank",
        "title": title,
        "detail": detail,
        "status": status_code,
        "instance": str(request.url),
        "success": False,
        "error": detail,
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, media_type="application/problem+json")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    if isinstance(exc, AppException):
        body = exc.to_problem(request_id=get_request_id(request))
        body.pop("success", None)
        body.pop("error", None)
        return _problem(exc.__class__.__name__, detail, exc.status_code, request, **body)
    title = exc.__class__.__name__.replace("Exception", "").strip() or "Error"
    return _problem(title, detail, exc.status_code, request)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore
    return _problem(
        "Validation error",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        request,
        errors=jsonable_encoder(exc.errors()),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _problem(
        "Internal Server Error",
        "An unexpected error occurred.",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        request,
    )


__all__ = [
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
]
