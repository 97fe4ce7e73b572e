"""In-memory game repository.

Per-process and lost on restart; used for local play and tests. Production
deployments plug a hosted database in behind AbstractGameRepository.
"""

from __future__ import annotations

import itertools
import logging
import random
import threading
from datetime import datetime, timezone
from typing import Sequence

from escape_api.adapters.storage.base import AbstractGameRepository, AuditRecord
from escape_api.schemas.leaderboard import LeaderboardEntry, LeaderboardPage
from escape_api.schemas.puzzle import Puzzle
from escape_api.utils.text_normalizer import normalize_text

logger = logging.getLogger(__name__)

# How many of the newest puzzles get_random_puzzle samples from
RECENT_PUZZLE_WINDOW = 50


class InMemoryGameRepository(AbstractGameRepository):
    """Thread-safe dict/list backed repository."""

    def __init__(self, *, rng: random.Random | None = None) -> None:
        self._lock = threading.RLock()
        self._rng = rng or random.Random()
        self._ids = itertools.count(1)
        self._entries: list[LeaderboardEntry] = []
        self._puzzles: dict[str, Puzzle] = {}
        self._questions: set[str] = set()
        self._audit: list[AuditRecord] = []

    @property
    def audit_records(self) -> list[AuditRecord]:
        with self._lock:
            return list(self._audit)

    async def add_leaderboard_entry(self, name: str, time_seconds: int) -> LeaderboardEntry:
        with self._lock:
            entry = LeaderboardEntry(
                id=next(self._ids),
                name=name or "Anonymous",
                time_seconds=int(time_seconds),
                created_at=datetime.now(timezone.utc),
            )
            self._entries.append(entry)

        logger.debug(
            "storage.leaderboard_insert",
            extra={"entry_id": entry.id, "time_seconds": entry.time_seconds},
        )
        return entry

    async def load_leaderboard(self, limit: int = 10, offset: int = 0) -> LeaderboardPage:
        with self._lock:
            ordered = sorted(self._entries, key=lambda e: (e.time_seconds, e.id))
            return LeaderboardPage(total=len(ordered), data=ordered[offset : offset + limit])

    async def save_puzzle(self, puzzle: Puzzle) -> bool:
        normalized = normalize_text(puzzle.question)
        with self._lock:
            if normalized in self._questions or puzzle.id in self._puzzles:
                logger.debug("storage.puzzle_duplicate", extra={"puzzle_id": puzzle.id})
                return False
            self._questions.add(normalized)
            self._puzzles[puzzle.id] = puzzle
        return True

    async def get_puzzle(self, puzzle_id: str) -> Puzzle | None:
        with self._lock:
            return self._puzzles.get(puzzle_id)

    async def get_random_puzzle(self, exclude_ids: Sequence[str] = ()) -> Puzzle | None:
        excluded = set(exclude_ids)
        with self._lock:
            # dicts keep insertion order, newest last
            recent = list(self._puzzles.values())[::-1]
            candidates = [p for p in recent if p.id not in excluded][:RECENT_PUZZLE_WINDOW]
            if not candidates:
                return None
            return self._rng.choice(candidates)

    async def record_audit(self, record: AuditRecord) -> None:
        with self._lock:
            self._audit.append(record)
