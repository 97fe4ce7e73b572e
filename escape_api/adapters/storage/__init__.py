"""Storage adapters for puzzles, leaderboard entries and audit records."""

from escape_api.adapters.storage.base import AbstractGameRepository, AuditRecord
from escape_api.adapters.storage.in_memory import InMemoryGameRepository

__all__ = [
    "AbstractGameRepository",
    "AuditRecord",
    "InMemoryGameRepository",
]
