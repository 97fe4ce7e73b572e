from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from escape_api.api.dependencies import get_puzzle_service
from escape_api.core.config import settings
from escape_api.core.errors import AppError, ValidationAppError
from escape_api.core.exception_handlers import error_response
from escape_api.core.rate_limit import with_rate_limit
from escape_api.core.request_body import read_json_body
from escape_api.schemas.puzzle import PuzzleRequest, PuzzleResponse

router = APIRouter(tags=["Puzzle"])


@router.post(
    "/api/puzzle",
    response_model=PuzzleResponse,
    responses={400: {"description": "Invalid request body"}, 429: {"description": "Rate limit exceeded"}},
)
@with_rate_limit
async def post_puzzle(request: Request) -> JSONResponse:
    """Serve the next puzzles for a game session.

    Body (all optional): ``count``, ``type``, ``topic``, ``exclude_ids``.
    Puzzles come from the LLM when configured, otherwise from storage or
    the built-in set. Answers are never included.

    Returns:
        JSONResponse: ``{"puzzles": [{id, type, question}, ...]}``.
    """
    try:
        body = await read_json_body(request)
        try:
            puzzle_request = PuzzleRequest.model_validate(body)
        except ValidationError as exc:
            raise ValidationAppError(
                code="invalid_request",
                message="Invalid puzzle request",
                details={"context": {"errors": exc.errors(include_url=False, include_context=False)}},
            ) from exc

        if puzzle_request.count > settings.app.max_puzzles_per_request:
            raise ValidationAppError(
                code="invalid_request",
                message=f"count must be at most {settings.app.max_puzzles_per_request}",
                details={"field": "count"},
            )

        puzzles = await get_puzzle_service().next_puzzles(puzzle_request)
    except AppError as exc:
        return error_response(exc)

    payload = PuzzleResponse(puzzles=[p.to_public() for p in puzzles])
    return JSONResponse(payload.model_dump())
