from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from escape_api.api.dependencies import get_puzzle_service
from escape_api.core.errors import AppError, ValidationAppError
from escape_api.core.exception_handlers import error_response
from escape_api.core.rate_limit import with_rate_limit
from escape_api.core.request_body import read_json_body
from escape_api.schemas.puzzle import ValidateRequest

router = APIRouter(tags=["Puzzle"])


@router.post(
    "/api/validate",
    responses={
        400: {"description": "Invalid request body"},
        404: {"description": "Unknown puzzle"},
        429: {"description": "Rate limit exceeded"},
    },
)
@with_rate_limit
async def post_validate(request: Request) -> JSONResponse:
    """Check an answer. Body: ``{"puzzleId": str, "answer": str}``.

    Returns:
        JSONResponse: ``{"correct": bool}``.
    """
    try:
        body = await read_json_body(request)
        try:
            validate_request = ValidateRequest.model_validate(body)
        except ValidationError as exc:
            raise ValidationAppError(
                code="invalid_request",
                message="Invalid validation request",
                details={"context": {"errors": exc.errors(include_url=False, include_context=False)}},
            ) from exc

        result = await get_puzzle_service().validate_answer(
            validate_request.puzzle_id,
            validate_request.answer,
        )
    except AppError as exc:
        return error_response(exc)

    return JSONResponse({"correct": result.correct})
