"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build a fresh instance instead of importing a module-level app.
"""

from __future__ import annotations

from fastapi import FastAPI

from escape_api.api.dependencies import get_llm_client
from escape_api.api.routes import (
    health_router,
    leaderboard_router,
    puzzle_router,
    validate_router,
)
from escape_api.core.config import settings
from escape_api.core.exception_handlers import setup_exception_handlers
from escape_api.core.logging import configure_logging
from escape_api.core.middleware import request_id_middleware
from escape_api.core.openapi import apply_openapi_customizations


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.

    Raises:
        ValidationAppError: If ``LLM_PROVIDER`` names an unknown provider.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    # Unknown LLM provider is a deployment error: refuse to start
    get_llm_client()

    app = FastAPI(
        title="Escape Room API",
        description=(
            "Backend for an escape-room puzzle game: serves LLM-generated or "
            "built-in puzzles, checks answers and keeps a leaderboard of "
            "completion times. Game endpoints are rate limited per client "
            "address and report their quota in X-RateLimit-* headers."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(puzzle_router)
    app.include_router(validate_router)
    app.include_router(leaderboard_router)
    app.include_router(health_router)

    # OpenAPI customizations (tags, rate limit headers)
    apply_openapi_customizations(app)

    return app
