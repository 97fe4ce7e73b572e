"""Process-wide service instances used by the route handlers.

Handlers are wrapped by ``with_rate_limit`` and take only the request, so
collaborators are resolved through these cached getters instead of FastAPI
``Depends``. Tests swap them with ``patch`` or reset them with
``reset_dependencies``.
"""

from __future__ import annotations

from functools import lru_cache

from escape_api.adapters.llm.base import AbstractLLMClient
from escape_api.adapters.llm.factory import create_llm_client
from escape_api.adapters.storage.base import AbstractGameRepository
from escape_api.adapters.storage.in_memory import InMemoryGameRepository
from escape_api.core.config import settings
from escape_api.services.leaderboard_service import LeaderboardService
from escape_api.services.puzzle_service import PuzzleService


@lru_cache(maxsize=1)
def get_repository() -> AbstractGameRepository:
    return InMemoryGameRepository()


@lru_cache(maxsize=1)
def get_llm_client() -> AbstractLLMClient | None:
    return create_llm_client()


@lru_cache(maxsize=1)
def get_puzzle_service() -> PuzzleService:
    return PuzzleService(
        llm=get_llm_client(),
        repository=get_repository(),
        use_local_puzzles=settings.app.use_local_puzzles,
    )


@lru_cache(maxsize=1)
def get_leaderboard_service() -> LeaderboardService:
    return LeaderboardService(repository=get_repository())


def reset_dependencies() -> None:
    """Drop every cached instance so the next request rebuilds them."""
    for getter in (get_repository, get_llm_client, get_puzzle_service, get_leaderboard_service):
        getter.cache_clear()
