"""Translate domain failures into stable JSON error bodies."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import BookstoreError, Unauthenticated, ValidationFailed

logger = logging.getLogger(__name__)


def error_body(kind: str, detail: str) -> dict[str, str]:
    return {"error": kind, "detail": detail}


async def handle_bookstore_error(request: Request, exc: BookstoreError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.kind)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.kind, exc.message),
        headers=headers,
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed bodies as ``validation_failed`` without echoing input values."""
    fields = sorted(
        {".".join(str(part) for part in error["loc"][1:]) or "body" for error in exc.errors()}
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(ValidationFailed.kind, f"invalid fields: {', '.join(fields)}"),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "%s %s failed with unhandled %s", request.method, request.url.path, type(exc).__name__
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("internal_error", "internal error"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookstoreError, handle_bookstore_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
