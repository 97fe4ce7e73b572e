"""Rate limiting adapters.

This package provides a small abstraction layer so the game can start with an
in-memory store and later migrate to Redis or another shared store without
changing the HTTP layer.
"""

from escape_api.adapters.rate_limit.base import (
    DEFAULT_RATE_LIMIT_CONFIG,
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitEntry,
    RateLimitResult,
    check_rate_limit,
)
from escape_api.adapters.rate_limit.in_memory import InMemoryRateLimiterStore

__all__ = [
    "AbstractRateLimiter",
    "DEFAULT_RATE_LIMIT_CONFIG",
    "InMemoryRateLimiterStore",
    "RateLimitConfig",
    "RateLimitEntry",
    "RateLimitResult",
    "check_rate_limit",
]
