"""Request body helpers for handlers that take the raw Request."""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Request

from escape_api.core.errors import ValidationAppError

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 16 * 1024


async def read_json_body(request: Request) -> dict[str, Any]:
    """Read and decode a JSON object body.

    An empty body decodes to ``{}``.

    Args:
        request: Incoming request.

    Returns:
        The decoded JSON object.

    Raises:
        ValidationAppError: If the body is too large, not JSON, or not an object.
    """
    raw = await request.body()

    if len(raw) > MAX_BODY_BYTES:
        logger.warning(
            "request_body.too_large",
            extra={"size": len(raw), "max_bytes": MAX_BODY_BYTES},
        )
        raise ValidationAppError(
            code="body_too_large",
            message=f"Request body too large. Maximum size: {MAX_BODY_BYTES} bytes",
        )

    if not raw.strip():
        return {}

    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be valid JSON",
            details={"hint": str(exc)},
        ) from exc

    if not isinstance(payload, dict):
        raise ValidationAppError(
            code="invalid_json",
            message="Request body must be a JSON object",
        )
    return payload
