"""In-memory fixed-window rate limiter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit,
  and a restart clears every counter.
- Thread-safe: the read-check-increment on an entry and the expiry sweep run
  under one lock, so two concurrent requests can never both observe
  ``count < max`` and both be admitted past the limit.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from escape_api.adapters.rate_limit.base import (
    DEFAULT_RATE_LIMIT_CONFIG,
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitEntry,
    RateLimitResult,
)


def epoch_ms() -> int:
    """Current UNIX time in whole milliseconds."""
    return int(time.time() * 1000)


class InMemoryRateLimiterStore(AbstractRateLimiter):
    """Fixed window with lazy reset, keyed by client identifier.

    A window starts at the first request from an identifier and lasts
    ``window_ms``. An entry whose ``reset_time`` has passed is treated as
    absent on the next check, whether or not the sweep has removed it yet.
    """

    def __init__(
        self,
        *,
        config: RateLimitConfig = DEFAULT_RATE_LIMIT_CONFIG,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        """Initialize an empty store.

        Args:
            config: Default policy used when ``check`` gets no config.
            clock: Time source returning UNIX time in milliseconds.
        """
        self._config = config
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def check(self, identifier: str, config: RateLimitConfig | None = None) -> RateLimitResult:
        """Admit or reject one request from ``identifier``.

        Rejected requests leave the entry untouched: they neither consume
        quota nor extend the window. Configs are not validated; a
        ``max_requests`` of 0 admits the first call of each window only.

        Args:
            identifier: Client key, any string including ``""``.
            config: Policy for this call site; the store default when omitted.

        Returns:
            RateLimitResult with the decision, remaining quota and reset time.
        """
        cfg = config or self._config
        now = self._clock()

        with self._lock:
            entry = self._entries.get(identifier)

            if entry is None or entry.is_expired(now):
                reset_time = now + cfg.window_ms
                self._entries[identifier] = RateLimitEntry(count=1, reset_time=reset_time)
                return RateLimitResult(
                    allowed=True,
                    remaining=cfg.max_requests - 1,
                    reset_time=reset_time,
                )

            if entry.count >= cfg.max_requests:
                return RateLimitResult(allowed=False, remaining=0, reset_time=entry.reset_time)

            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=cfg.max_requests - entry.count,
                reset_time=entry.reset_time,
            )

    def cleanup_expired_entries(self) -> int:
        """Remove entries whose window has ended; only bounds memory."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        """Forget every identifier."""
        with self._lock:
            self._entries.clear()
