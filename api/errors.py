"""
api/errors.py -- Error envelope and app-level exception handlers.

Every error the API returns has the same shape:

    {"error": {"code": "livestock_not_found", "message": "...", "detail": null}}

Route handlers raise HTTPException(detail=ErrorDetail(...).model_dump()); the
handlers registered here turn that, validation failures, rate limiting,
uniqueness races and unexpected exceptions into the envelope.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse

logger = logging.getLogger("herdwatch.api.errors")


def error_response(
    status_code: int,
    code: str,
    message: str,
    detail: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail))
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def _format_validation_errors(exc: RequestValidationError) -> str:
    """Flatten pydantic errors to "body.temperature: Input should be ..." lines."""
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with Retry-After. slowapi stores the window on exc.retry_after when known."""
    retry_after = int(getattr(exc, "retry_after", 60))
    return error_response(
        429,
        "rate_limited",
        "Too many requests.",
        detail=str(exc.detail),
        headers={"Retry-After": str(retry_after)},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(422, "validation_error", "Request validation failed.", detail=_format_validation_errors(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Structured errors for route HTTPExceptions and Starlette's own 404/405.

    A dict detail is already an ErrorDetail payload and becomes the error
    field as-is. Anything else gets a generic http_<status> code.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)
    return error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail), headers=headers)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """409 for a uniqueness race a route did not translate itself."""
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return error_response(409, "conflict", "The request conflicts with an existing record.")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """500 with a generic message. The traceback goes to the log only."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return error_response(500, "internal_error", "An unexpected error occurred.")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
