"""Translate application errors into the JSON error envelope.

Every failure response has a top-level ``error`` string and an optional
``details`` string.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from promaallem.application.exceptions import (
    IntakeError,
    RateLimited,
    Unauthorized,
    UpstreamFailure,
    UpstreamTimeout,
    ValidationError,
)

# Most specific first: UpstreamTimeout is an UpstreamFailure.
_STATUS_CODES: tuple[tuple[type[IntakeError], int], ...] = (
    (ValidationError, 400),
    (Unauthorized, 401),
    (RateLimited, 429),
    (UpstreamTimeout, 504),
    (UpstreamFailure, 500),
)


def status_code_for(exc: IntakeError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


def error_body(error: str, details: str | None = None) -> dict:
    body = {"error": error}
    if details:
        body["details"] = details
    return body


async def _intake_error_handler(request: Request, exc: IntakeError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("{} {} failed | {}: {}", request.method, request.url.path, type(exc).__name__, exc.details or exc)
    else:
        logger.info("{} {} rejected | {} {}", request.method, request.url.path, status_code, exc.message)
    return JSONResponse(status_code=status_code, content=error_body(exc.message, exc.details))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    logger.info("{} {} rejected | invalid body: {}", request.method, request.url.path, details)
    return JSONResponse(status_code=400, content=error_body("Invalid request", details))


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("{} {} crashed", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(IntakeError, _intake_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
