"""Anti-cheat checks for leaderboard submissions.

Rejections are returned, never raised: the caller maps an invalid result to
a 400 response and shows ``reason`` to the player.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from numbers import Real
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AntiCheatConfig:
    """Static plausibility bounds for a submission."""

    min_time_seconds: int = 5
    max_time_seconds: int = 30 * 60
    min_name_length: int = 1
    max_name_length: int = 50


ANTI_CHEAT_CONFIG = AntiCheatConfig()

# ASCII letters, digits, space, hyphen, underscore, period
_NAME_PATTERN = re.compile(r"[A-Za-z0-9 \-_.]+")


@dataclass(frozen=True)
class AntiCheatResult:
    valid: bool
    reason: str | None = None


def _reject(reason: str) -> AntiCheatResult:
    logger.info("anti_cheat.rejected", extra={"reason": reason})
    return AntiCheatResult(valid=False, reason=reason)


def validate_submission(name: Any, time_seconds: Any) -> AntiCheatResult:
    """Validate a leaderboard submission for potential cheating.

    Checks run in a fixed order and the first failure decides the reason:
    name type, name length (after trimming), name characters, then time
    type, lower bound, upper bound and whole seconds.

    Args:
        name: Player name as submitted.
        time_seconds: Completion time in seconds as submitted.

    Returns:
        AntiCheatResult; ``reason`` is set only when ``valid`` is False.
    """
    cfg = ANTI_CHEAT_CONFIG

    if not name or not isinstance(name, str):
        return _reject("Invalid name format")

    trimmed = name.strip()
    if len(trimmed) < cfg.min_name_length:
        return _reject("Name too short")

    if len(trimmed) > cfg.max_name_length:
        return _reject("Name too long")

    if not _NAME_PATTERN.fullmatch(trimmed):
        return _reject("Name contains invalid characters")

    # bool is an int subclass but never a valid time
    if isinstance(time_seconds, bool) or not isinstance(time_seconds, Real):
        return _reject("Invalid time format")

    try:
        seconds = float(time_seconds)
    except OverflowError:
        # ints beyond float range count as infinite
        return _reject("Invalid time format")

    if not math.isfinite(seconds) or seconds <= 0:
        return _reject("Invalid time format")

    if seconds < cfg.min_time_seconds:
        return _reject("Completion time too fast (possible cheat)")

    if seconds > cfg.max_time_seconds:
        return _reject("Completion time too slow (session timeout)")

    if not seconds.is_integer():
        return _reject("Time must be in whole seconds")

    return AntiCheatResult(valid=True)


def sanitize_name(name: str) -> str:
    """Trim whitespace and cap the length for storage.

    Does not re-check the character set; run after ``validate_submission``.
    """
    return name.strip()[: ANTI_CHEAT_CONFIG.max_name_length]
