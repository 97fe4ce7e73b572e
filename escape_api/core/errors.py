"""Domain errors raised by services and adapters.

Each subclass maps to one HTTP status in ``exception_handlers``. Rate limit
and anti-cheat rejections are ordinary results, not errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Optional context attached to an error response."""

    field: str
    hint: str
    puzzle_id: str
    puzzle_type: str
    attempts: int
    model: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base class for expected failures.

    Attributes:
        code: Stable identifier clients can branch on (``puzzle_not_found``).
        message: Text safe to show to the player.
        details: Extra context, omitted from responses when empty.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Malformed request or configuration (400)."""


class NotFoundAppError(AppError):
    """Unknown puzzle or other missing resource (404)."""


class LLMAppError(AppError):
    """Provider call failed or returned unusable output (500)."""


class StorageAppError(AppError):
    """Repository call failed after retries (500)."""
