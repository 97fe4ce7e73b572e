"""In-process counters and timings for puzzle generation and validation.

Kept deliberately small: a summary is logged periodically and a snapshot can
be read at any time. Swap for Prometheus or similar by replacing this
collector behind the same ``record_metric`` call.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Literal

logger = logging.getLogger(__name__)

MetricType = Literal["validation", "generation"]

DUMP_INTERVAL_SECONDS = 30.0


@dataclass
class _Timing:
    count: int = 0
    total_ms: float = 0.0


class MetricsCollector:
    """Thread-safe counters and timings with a periodic log summary."""

    def __init__(
        self,
        *,
        dump_interval_seconds: float = DUMP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._dump_interval = dump_interval_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._counters: dict[str, int] = {}
        self._timings: dict[str, _Timing] = {}
        self._last_dump = clock()

    def incr(self, name: str, by: int = 1) -> None:
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + by

    def record_timing(self, name: str, ms: float) -> None:
        with self._lock:
            timing = self._timings.setdefault(name, _Timing())
            timing.count += 1
            timing.total_ms += ms

    def record_metric(
        self,
        *,
        used_ai: bool,
        type: MetricType,
        tokens_estimate: float | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Record one generation or validation.

        Args:
            used_ai: Whether the LLM was called.
            type: ``"generation"`` or ``"validation"``.
            tokens_estimate: Approximate tokens used (AI calls only).
            duration_ms: Wall time of the operation.
        """
        source = "ai" if used_ai else "local"
        self.incr(f"{type}.{source}.calls")
        if used_ai and tokens_estimate is not None:
            self.incr(f"{type}.ai.tokens", round(tokens_estimate))
        if duration_ms is not None:
            self.record_timing(f"{type}.{source}.latency_ms", duration_ms)

        self._maybe_dump()

    def snapshot(self) -> dict[str, dict]:
        """Copy of all counters and timings, with averages."""
        with self._lock:
            return {
                "counters": dict(self._counters),
                "timings": {
                    name: {
                        "count": t.count,
                        "total_ms": t.total_ms,
                        "avg_ms": t.total_ms / t.count,
                    }
                    for name, t in self._timings.items()
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()
            self._last_dump = self._clock()

    def _maybe_dump(self) -> None:
        now = self._clock()
        with self._lock:
            if now - self._last_dump <= self._dump_interval:
                return
            self._last_dump = now
        logger.info("metrics.summary", extra={"metrics": self.snapshot()})


metrics = MetricsCollector()


def record_metric(
    *,
    used_ai: bool,
    type: MetricType,
    tokens_estimate: float | None = None,
    duration_ms: float | None = None,
) -> None:
    """Record on the process-wide collector."""
    metrics.record_metric(
        used_ai=used_ai,
        type=type,
        tokens_estimate=tokens_estimate,
        duration_ms=duration_ms,
    )
