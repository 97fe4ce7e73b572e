"""Rate limiting wrapper for game endpoints.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: handlers are wrapped, they never talk to the store.
- Swap-friendly: the store can be replaced (e.g., Redis) behind
  AbstractRateLimiter.
- Same response shape for every wrapped endpoint.

Rate limiting strategy:
- Fixed window with lazy reset, keyed by the client's apparent address
  (``X-Forwarded-For``, then ``X-Real-IP``, else ``"unknown"``). Header values
  are trusted as-is, so a client that controls them can pick its own bucket.
- Quota is pooled per identifier: every endpoint wrapped with the same
  config draws from the same budget.
"""

from __future__ import annotations

import functools
import hashlib
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse

from escape_api.adapters.rate_limit.base import (
    AbstractRateLimiter,
    RateLimitConfig,
    RateLimitResult,
)
from escape_api.adapters.rate_limit.in_memory import InMemoryRateLimiterStore
from escape_api.core.config import settings

logger = logging.getLogger(__name__)

Handler = Callable[[Request], Awaitable[Response]]

RATE_LIMIT_EXCEEDED_MESSAGE = "Rate limit exceeded. Please try again later."
UNKNOWN_CLIENT = "unknown"

HEADER_LIMIT = "X-RateLimit-Limit"
HEADER_REMAINING = "X-RateLimit-Remaining"
HEADER_RESET = "X-RateLimit-Reset"


_limiter: AbstractRateLimiter | None = None


def default_rate_limit_config() -> RateLimitConfig:
    """Build the default policy from application settings."""
    return RateLimitConfig(
        max_requests=settings.app.rate_limit_requests,
        window_ms=settings.app.rate_limit_window_ms,
    )


def get_rate_limiter() -> AbstractRateLimiter:
    """Return the process-wide limiter store, creating it on first use.

    Returns:
        AbstractRateLimiter: Store shared by every wrapped endpoint that was
            not given its own limiter.
    """

    global _limiter

    if _limiter is None:
        _limiter = InMemoryRateLimiterStore(config=default_rate_limit_config())
    return _limiter


def reset_rate_limiter(limiter: AbstractRateLimiter | None = None) -> None:
    """Replace the process-wide store (or drop it so the next call rebuilds it)."""

    global _limiter
    _limiter = limiter


def get_client_identifier(request: Request) -> str:
    """Derive the rate limit key for a request.

    Header lookup is case-insensitive. A header that is present but empty is
    still used as the key; no address validation is performed.
    """

    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for is not None:
        return forwarded_for

    real_ip = request.headers.get("x-real-ip")
    if real_ip is not None:
        return real_ip

    return UNKNOWN_CLIENT


def format_reset_time(reset_time_ms: int) -> str:
    """Render epoch milliseconds as ISO-8601 UTC, e.g. ``2025-01-01T00:05:00.000Z``."""

    moment = datetime.fromtimestamp(reset_time_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_rate_limit_headers(config: RateLimitConfig, result: RateLimitResult) -> dict[str, str]:
    return {
        HEADER_LIMIT: str(config.max_requests),
        HEADER_REMAINING: str(result.remaining),
        HEADER_RESET: format_reset_time(result.reset_time),
    }


def _hash_identifier(identifier: str) -> str:
    """Hash the client identifier for logging without exposing addresses."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def with_rate_limit(
    handler: Handler | None = None,
    *,
    limiter: AbstractRateLimiter | None = None,
    config: RateLimitConfig | None = None,
):
    """Wrap an async request handler with admission control.

    Can be applied directly (``with_rate_limit(handler)``) or as a decorator
    factory (``@with_rate_limit(config=RateLimitConfig(10, 60_000))``).

    On rejection the wrapped handler is not invoked and a 429 JSON response is
    returned. On admission the handler's response is returned unchanged except
    for the ``X-RateLimit-*`` headers, which are only added where the handler
    did not set them itself.

    Args:
        handler: Coroutine function taking a Request and returning a Response.
        limiter: Store to consult; the process-wide store when omitted.
        config: Policy for this call site; settings-derived default when omitted.

    Returns:
        A handler with the same shape as ``handler`` (or a decorator).
    """

    def decorate(func: Handler) -> Handler:
        @functools.wraps(func)
        async def wrapper(request: Request) -> Response:
            if not settings.app.rate_limit_enabled:
                return await func(request)

            active_limiter = limiter if limiter is not None else get_rate_limiter()
            active_config = config or default_rate_limit_config()

            identifier = get_client_identifier(request)
            result = active_limiter.check(identifier, active_config)
            headers = build_rate_limit_headers(active_config, result)

            log_extra = {
                "client_hash": _hash_identifier(identifier),
                "route": request.url.path,
                "limit": active_config.max_requests,
                "remaining": result.remaining,
                "window_ms": active_config.window_ms,
            }

            if not result.allowed:
                logger.warning("rate_limit.exceeded", extra=log_extra)
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"success": False, "error": RATE_LIMIT_EXCEEDED_MESSAGE},
                    headers=headers,
                )

            logger.info("rate_limit.allowed", extra=log_extra)
            response = await func(request)
            for name, value in headers.items():
                response.headers.setdefault(name, value)
            return response

        return wrapper

    if handler is not None:
        return decorate(handler)
    return decorate
