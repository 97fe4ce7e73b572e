"""Rate limiter interfaces and value types.

The HTTP layer depends on this abstraction (not the concrete store) so the
in-memory store can later be replaced by a shared backend (e.g., Redis)
without touching the middleware.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitConfig:
    """Admission policy for one call site.

    Attributes:
        max_requests: Requests admitted per window.
        window_ms: Window length in milliseconds.
    """

    max_requests: int
    window_ms: int


DEFAULT_RATE_LIMIT_CONFIG = RateLimitConfig(max_requests=3, window_ms=5 * 60 * 1000)


@dataclass
class RateLimitEntry:
    """Per-identifier counter for the current window.

    Attributes:
        count: Requests admitted in the current window.
        reset_time: Epoch milliseconds at which the window ends.
    """

    count: int
    reset_time: int

    def is_expired(self, now_ms: int) -> bool:
        return now_ms > self.reset_time


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate limit check.

    Attributes:
        allowed: Whether the request is admitted.
        remaining: Requests left in the current window (0 when rejected).
        reset_time: Epoch milliseconds at which the window ends.
    """

    allowed: bool
    remaining: int
    reset_time: int


class AbstractRateLimiter(ABC):
    """Interface for rate limiter stores."""

    @abstractmethod
    def check(self, identifier: str, config: RateLimitConfig | None = None) -> RateLimitResult:
        """Decide admission for ``identifier`` and record it.

        Never raises for a rejected request; rejection is a negative result.

        Args:
            identifier: Opaque client key (IP address or ``"unknown"``).
            config: Policy to apply; the store default when omitted.

        Returns:
            RateLimitResult describing the decision and quota telemetry.
        """
        raise NotImplementedError

    @abstractmethod
    def cleanup_expired_entries(self) -> int:
        """Drop entries whose window has ended.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError


def check_rate_limit(
    limiter: AbstractRateLimiter,
    identifier: str,
    config: RateLimitConfig | None = None,
) -> RateLimitResult:
    """Functional alias for ``limiter.check(identifier, config)``."""
    return limiter.check(identifier, config)
