"""Leaderboard service: anti-cheat screening and retried persistence."""

from __future__ import annotations

import logging
from typing import Any

from escape_api.adapters.storage.base import AbstractGameRepository
from escape_api.core.anti_cheat import sanitize_name, validate_submission
from escape_api.core.errors import StorageAppError, ValidationAppError
from escape_api.schemas.leaderboard import LeaderboardEntry, LeaderboardPage
from escape_api.utils.retry import DB_RETRY_CONFIG, RetryConfig, with_retry

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class LeaderboardService:
    """Accepts completion times and serves the ranking.

    Attributes:
        repository: Storage for leaderboard entries.
        retry_config: Policy for storage calls.
    """

    def __init__(
        self,
        repository: AbstractGameRepository,
        *,
        retry_config: RetryConfig = DB_RETRY_CONFIG,
    ) -> None:
        self.repository = repository
        self.retry_config = retry_config

    async def submit(self, name: Any, time_seconds: Any) -> LeaderboardEntry:
        """Screen a submission and store it.

        Args:
            name: Player name as submitted.
            time_seconds: Completion time as submitted.

        Returns:
            The stored entry (name sanitized).

        Raises:
            ValidationAppError: If the anti-cheat check rejects the submission;
                ``message`` carries the rejection reason.
            StorageAppError: If every insert attempt failed.
        """
        verdict = validate_submission(name, time_seconds)
        if not verdict.valid:
            raise ValidationAppError(
                code="submission_rejected",
                message=verdict.reason or "Invalid submission",
            )

        clean_name = sanitize_name(name)
        seconds = int(time_seconds)

        try:
            entry = await with_retry(
                lambda: self.repository.add_leaderboard_entry(clean_name, seconds),
                self.retry_config,
            )
        except Exception as exc:
            logger.error(
                "leaderboard.insert_failed",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            raise StorageAppError(
                code="leaderboard_insert_failed",
                message="Insert failed",
                details={"attempts": self.retry_config.max_attempts},
            ) from exc

        logger.info(
            "leaderboard.entry_added",
            extra={"entry_id": entry.id, "time_seconds": entry.time_seconds},
        )
        return entry

    async def page(self, limit: int = 10, offset: int = 0) -> LeaderboardPage:
        """Return entries fastest first.

        Raises:
            ValidationAppError: If ``limit`` is outside 1..100 or ``offset`` is negative.
            StorageAppError: If every read attempt failed.
        """
        if not 1 <= limit <= MAX_PAGE_SIZE or offset < 0:
            raise ValidationAppError(
                code="invalid_pagination",
                message=f"limit must be between 1 and {MAX_PAGE_SIZE} and offset >= 0",
            )

        try:
            return await with_retry(
                lambda: self.repository.load_leaderboard(limit, offset),
                self.retry_config,
            )
        except Exception as exc:
            raise StorageAppError(
                code="leaderboard_load_failed",
                message="Failed to load leaderboard",
            ) from exc
