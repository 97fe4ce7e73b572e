"""Exception handlers and error rendering for the game API.

Domain errors become ``{"error": {code, message, request_id, details?}}``
bodies. Anything else becomes a generic 500 with no internals in the body.

Rate limited handlers render their own errors through ``error_response`` so
the ``X-RateLimit-*`` headers still get attached to the response.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from escape_api.core.errors import (
    AppError,
    LLMAppError,
    NotFoundAppError,
    StorageAppError,
)
from escape_api.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Checked in order; the first matching class decides. Unlisted errors are 400.
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (NotFoundAppError, status.HTTP_404_NOT_FOUND),
    (LLMAppError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (StorageAppError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def status_code_for(exc: AppError) -> int:
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def _error_body(code: str, message: str, details: dict | None = None) -> dict:
    body = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        body["details"] = details
    return {"error": body}


def error_response(exc: AppError) -> JSONResponse:
    """Render a domain error.

    Args:
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the mapped status code; ``details`` only when set.
    """
    status_code = status_code_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "error_type": type(exc).__name__,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    return JSONResponse(
        status_code=status_code,
        content=_error_body(exc.code, exc.message, exc.details),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return error_response(exc)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler: log the failure, answer with a generic 500."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("internal_server_error", INTERNAL_ERROR_MESSAGE),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the handlers on ``app``. Safe to call more than once."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
