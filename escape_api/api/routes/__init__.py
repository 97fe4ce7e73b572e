from __future__ import annotations

from escape_api.api.routes.health import router as health_router
from escape_api.api.routes.leaderboard import router as leaderboard_router
from escape_api.api.routes.puzzle import router as puzzle_router
from escape_api.api.routes.validate import router as validate_router

__all__ = ["health_router", "leaderboard_router", "puzzle_router", "validate_router"]
