"""Game storage interface.

Services depend on this abstraction only. A hosted database adapter
implements the same coroutines; operations signal failure by raising (so
callers can retry them) and report "nothing to do" through return values.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

from escape_api.schemas.leaderboard import LeaderboardEntry, LeaderboardPage
from escape_api.schemas.puzzle import Puzzle

AuditAction = Literal["generate", "validate"]


@dataclass(frozen=True)
class AuditRecord:
    """One LLM interaction kept for later review."""

    action: AuditAction
    puzzle_id: str | None = None
    model: str | None = None
    prompt: str | None = None
    response: dict[str, Any] | None = None
    meta: dict[str, Any] = field(default_factory=dict)


class AbstractGameRepository(ABC):
    """Persistence for puzzles, leaderboard entries and audit records."""

    @abstractmethod
    async def add_leaderboard_entry(self, name: str, time_seconds: int) -> LeaderboardEntry:
        """Insert a completion time. Empty names are stored as ``Anonymous``."""
        raise NotImplementedError

    @abstractmethod
    async def load_leaderboard(self, limit: int = 10, offset: int = 0) -> LeaderboardPage:
        """Return one page of entries, fastest first, with the total count."""
        raise NotImplementedError

    @abstractmethod
    async def save_puzzle(self, puzzle: Puzzle) -> bool:
        """Store a generated puzzle.

        Returns:
            False when a puzzle with the same normalized question exists.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_puzzle(self, puzzle_id: str) -> Puzzle | None:
        raise NotImplementedError

    @abstractmethod
    async def get_random_puzzle(self, exclude_ids: Sequence[str] = ()) -> Puzzle | None:
        """Pick one of the most recent stored puzzles not in ``exclude_ids``."""
        raise NotImplementedError

    @abstractmethod
    async def record_audit(self, record: AuditRecord) -> None:
        raise NotImplementedError
