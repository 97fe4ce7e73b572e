"""Retry helper with exponential backoff for flaky async operations.

``with_retry`` knows nothing about what the operation does: it invokes it,
waits between failures, and surfaces the most recent error once every
attempt is spent.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Retry policy.

    Attributes:
        max_attempts: Total invocations allowed, first one included.
        base_delay_ms: Wait after the first failure.
        max_delay_ms: Upper bound for any single wait.
        backoff_multiplier: Growth factor applied per failed attempt.
    """

    max_attempts: int
    base_delay_ms: float
    max_delay_ms: float
    backoff_multiplier: float


DEFAULT_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay_ms=1000,
    max_delay_ms=10_000,
    backoff_multiplier=2,
)

# Storage calls retry sooner and give up faster than generic operations.
DB_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay_ms=500,
    max_delay_ms=5_000,
    backoff_multiplier=2,
)


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Delay in milliseconds after failed ``attempt`` (1-indexed).

    ``min(base_delay_ms * backoff_multiplier ** (attempt - 1), max_delay_ms)``
    """
    delay = config.base_delay_ms * config.backoff_multiplier ** (attempt - 1)
    return min(delay, config.max_delay_ms)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: RetryConfig = DEFAULT_RETRY_CONFIG,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or ``config.max_attempts`` is spent.

    Failures include the operation raising before it returns an awaitable.
    Only ``Exception`` subclasses are retried, so task cancellation is never
    swallowed.

    Args:
        operation: Zero-argument callable returning an awaitable.
        config: Retry policy.
        sleep: Coroutine used to wait, given seconds.

    Returns:
        The first successful result.

    Raises:
        Exception: The error raised by the final attempt, unchanged.
        RuntimeError: If ``max_attempts`` is below 1 (nothing was attempted).
    """
    last_error: Exception | None = None

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            last_error = exc

            if attempt == config.max_attempts:
                break

            delay_ms = calculate_delay(attempt, config)
            logger.warning(
                "retry.attempt_failed",
                extra={
                    "attempt": attempt,
                    "max_attempts": config.max_attempts,
                    "delay_ms": delay_ms,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            await sleep(delay_ms / 1000)

    if last_error is None:
        raise RuntimeError(
            f"with_retry made no attempts (max_attempts={config.max_attempts})"
        )

    logger.error(
        "retry.exhausted",
        extra={
            "max_attempts": config.max_attempts,
            "error_type": type(last_error).__name__,
            "error_msg": str(last_error),
        },
    )
    raise last_error
