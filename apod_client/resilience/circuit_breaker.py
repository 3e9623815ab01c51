"""Async circuit breaker for the APOD service.

Implements the standard three-state circuit breaker:

    CLOSED  →  (max_failures consecutive failures)  →  OPEN
    OPEN    →  (reset_timeout elapsed, can_attempt)  →  HALF_OPEN
    HALF_OPEN → (probe succeeds)                     →  CLOSED
    HALF_OPEN → (probe fails)                        →  OPEN

A failed half-open probe re-opens immediately instead of accumulating
towards ``max_failures`` again, so a half-recovered service only ever
sees one trial request per timeout window.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Async-safe circuit breaker for a single dependency.

    Args:
        name:          Human-readable dependency name (for logging/errors).
        max_failures:  Consecutive failures before opening the circuit.
        reset_timeout: Seconds the circuit stays OPEN before probing.
        half_open_max: Probes permitted while HALF_OPEN.
    """

    def __init__(
        self,
        name: str = "apod-api",
        max_failures: int = 5,
        reset_timeout: float = 60.0,
        half_open_max: int = 1,
    ) -> None:
        if max_failures < 1:
            raise ValueError("max_failures must be at least 1")
        self.name = name
        self.max_failures = max_failures
        self.reset_timeout = reset_timeout
        self.half_open_max = half_open_max

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None
        self._half_open_calls = 0
        self._lock = asyncio.Lock()

        # Metrics
        self.total_calls = 0
        self.total_failures = 0
        self.total_rejections = 0
        self.total_successes = 0

    # ── Public properties ────────────────────────────────────────────

    @property
    def state(self) -> CircuitState:
        """The stored state.  Only ``can_attempt()`` moves OPEN → HALF_OPEN."""
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_failure_time(self) -> float | None:
        return self._last_failure_time

    @property
    def retry_after(self) -> float:
        """Seconds until an OPEN circuit may be probed (0 when not OPEN)."""
        if self._state != CircuitState.OPEN or self._last_failure_time is None:
            return 0.0
        return max(0.0, self.reset_timeout - (time.monotonic() - self._last_failure_time))

    def _timeout_elapsed(self) -> bool:
        if self._last_failure_time is None:
            return True
        return time.monotonic() - self._last_failure_time > self.reset_timeout

    # ── State machine ────────────────────────────────────────────────

    async def can_attempt(self) -> bool:
        """Return whether a request may be sent now.

        An OPEN circuit whose reset timeout has elapsed transitions to
        HALF_OPEN and grants the probe.
        """
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if not self._timeout_elapsed():
                    self.total_rejections += 1
                    return False
                self._state = CircuitState.HALF_OPEN
                self._half_open_calls = 0
                logger.info("Circuit breaker '%s': open → half-open", self.name)

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max:
                    self.total_rejections += 1
                    return False
                self._half_open_calls += 1

            self.total_calls += 1
            return True

    def would_permit(self) -> bool:
        """Answer ``can_attempt()`` without changing any state."""
        if self._state == CircuitState.CLOSED:
            return True
        if self._state == CircuitState.OPEN:
            return self._timeout_elapsed()
        return self._half_open_calls < self.half_open_max

    async def record_success(self) -> None:
        """Record a successful call — close the circuit if probing."""
        async with self._lock:
            self.total_successes += 1
            if self._state in (CircuitState.HALF_OPEN, CircuitState.OPEN):
                logger.info("Circuit breaker '%s': %s → closed", self.name, self._state.value)
                self._state = CircuitState.CLOSED
                self._last_failure_time = None
                self._half_open_calls = 0
            self._failure_count = 0

    async def record_failure(self) -> None:
        """Record a failed call — potentially open the circuit."""
        async with self._lock:
            self._failure_count += 1
            self.total_failures += 1
            self._last_failure_time = time.monotonic()

            if self._state == CircuitState.HALF_OPEN:
                # Probe failed — reopen
                self._state = CircuitState.OPEN
                self._half_open_calls = 0
                logger.warning("Circuit breaker '%s': half-open → open", self.name)
            elif self._state == CircuitState.CLOSED and self._failure_count >= self.max_failures:
                self._state = CircuitState.OPEN
                logger.warning(
                    "Circuit breaker '%s' opened after %d failures",
                    self.name,
                    self._failure_count,
                )

    async def release_probe(self) -> None:
        """Give back a half-open probe whose outcome says nothing about health.

        Used when the probe ended without a verdict (cancelled, or answered
        with a client-side error), so the next caller may probe instead.
        """
        async with self._lock:
            if self._state == CircuitState.HALF_OPEN and self._half_open_calls > 0:
                self._half_open_calls -= 1

    async def reset(self) -> None:
        """Force-reset the circuit breaker to CLOSED state."""
        async with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None
            self._half_open_calls = 0
        logger.info("Circuit breaker '%s' reset", self.name)

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot for health/metrics."""
        return {
            "name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "total_calls": self.total_calls,
            "total_failures": self.total_failures,
            "total_rejections": self.total_rejections,
            "total_successes": self.total_successes,
        }
