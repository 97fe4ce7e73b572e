from __future__ import annotations

from fastapi import APIRouter

from escape_api.api.dependencies import get_puzzle_service

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Not rate limited, so load balancers can poll it freely.

    Returns:
        dict: ``status`` set to "ok" and ``ai_enabled`` telling whether
            puzzles are generated by the LLM or served locally.
    """

    return {"status": "ok", "ai_enabled": get_puzzle_service().ai_enabled}
