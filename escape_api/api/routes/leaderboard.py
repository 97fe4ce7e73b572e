import logging
import math

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from escape_api.api.dependencies import get_leaderboard_service
from escape_api.core.errors import AppError, StorageAppError, ValidationAppError
from escape_api.core.exception_handlers import error_response
from escape_api.core.rate_limit import with_rate_limit
from escape_api.core.request_body import read_json_body
from escape_api.schemas.leaderboard import (
    LeaderboardPage,
    LeaderboardSubmission,
    SubmissionResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Leaderboard"])

DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0


def _number_param(raw: str | None, default: int) -> float:
    """Read a numeric query parameter.

    Accepts any float literal (``"1e2"``, ``"20.0"``). Missing, non-numeric,
    NaN or zero values use ``default``.
    """
    try:
        value = float(raw) if raw is not None else 0.0
    except ValueError:
        value = 0.0
    if math.isnan(value) or value == 0:
        return float(default)
    return value


def _empty_page() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=LeaderboardPage().model_dump(),
    )


def _submission_error(exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        if isinstance(exc, StorageAppError)
        else status.HTTP_400_BAD_REQUEST,
        content=SubmissionResponse(success=False, error=exc.message).model_dump(exclude_none=True),
    )


@router.get(
    "/api/leaderboard",
    response_model=LeaderboardPage,
    responses={400: {"description": "Invalid pagination"}, 429: {"description": "Rate limit exceeded"}},
)
@with_rate_limit
async def get_leaderboard(request: Request) -> JSONResponse:
    """List completion times, fastest first.

    Query: ``limit`` (1..100, default 10) and ``offset`` (>= 0, default 0).

    Returns:
        JSONResponse: ``{"total": int, "data": [...]}``; an empty page with
            status 400 for out-of-range pagination.
    """
    limit = _number_param(request.query_params.get("limit"), DEFAULT_LIMIT)
    offset = _number_param(request.query_params.get("offset"), DEFAULT_OFFSET)

    if not (limit.is_integer() and offset.is_integer()):
        return _empty_page()

    try:
        page = await get_leaderboard_service().page(int(limit), int(offset))
    except ValidationAppError:
        return _empty_page()
    except StorageAppError as exc:
        return error_response(exc)

    return JSONResponse(page.model_dump(mode="json"))


@router.post(
    "/api/leaderboard",
    response_model=SubmissionResponse,
    response_model_exclude_none=True,
    responses={
        400: {"description": "Submission rejected", "model": SubmissionResponse},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Insert failed", "model": SubmissionResponse},
    },
)
@with_rate_limit
async def post_leaderboard(request: Request) -> JSONResponse:
    """Submit a completion time. Body: ``{"name": str, "time_seconds": int}``.

    Rejected submissions return 400 with the anti-cheat reason as ``error``.

    Returns:
        JSONResponse: ``{"success": true}`` or ``{"success": false, "error": str}``.
    """
    try:
        body = await read_json_body(request)
        submission = LeaderboardSubmission.model_validate(body)
        await get_leaderboard_service().submit(submission.name, submission.time_seconds)
    except AppError as exc:
        return _submission_error(exc)

    return JSONResponse(SubmissionResponse(success=True).model_dump(exclude_none=True))
