"""Exponential backoff retry policy.

Pure decision/backoff logic around an async operation.  Errors expose a
``retryable`` attribute (see ``apod_client.core.errors``); a ``False`` value
fails fast without consuming the remaining attempts.

    delay(attempt) = min(base_delay * 2**attempt, max_delay)

No jitter; instances are immutable values.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from apod_client.core.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """Return ``False`` only for errors that classify themselves as permanent."""
    return getattr(exc, "retryable", True) is not False


@dataclass(frozen=True)
class RetryPolicy:
    """Retry an async operation with exponential backoff.

    Args:
        max_attempts: Total attempts including the first one (>= 1).
        base_delay:   Delay in seconds after the first failure (> 0).
        max_delay:    Upper bound for any single delay (>= base_delay).
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay <= 0:
            raise ValueError("base_delay must be positive")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")

    @classmethod
    def default(cls) -> RetryPolicy:
        """3 attempts, 1s base delay, 10s cap."""
        return cls()

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            base_delay=settings.RETRY_BASE_DELAY,
            max_delay=settings.RETRY_MAX_DELAY,
        )

    def delay(self, attempt: int) -> float:
        """Backoff in seconds after the 0-indexed *attempt* failed."""
        return min(self.base_delay * (2**attempt), self.max_delay)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await *operation* until it succeeds or attempts run out.

        Returns:
            The first successful result.

        Raises:
            The operation's error immediately when it is not retryable,
            otherwise the last error once every attempt has failed.
            ``asyncio.CancelledError`` always propagates untouched.
        """
        for attempt in range(self.max_attempts):
            try:
                result = await operation()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if not is_retryable(exc):
                    logger.warning("Non-retryable error (%s), skipping retry", exc)
                    raise

                if attempt == self.max_attempts - 1:
                    logger.error("Operation failed after %d attempts: %s", self.max_attempts, exc)
                    raise

                delay = self.delay(attempt)
                logger.warning(
                    "Attempt %d/%d failed (%s), retrying in %.1fs",
                    attempt + 1,
                    self.max_attempts,
                    exc,
                    delay,
                )
                await asyncio.sleep(delay)
                continue

            if attempt > 0:
                logger.info("Operation succeeded on attempt %d/%d", attempt + 1, self.max_attempts)
            return result

        # max_attempts >= 1 guarantees the loop returns or raises
        raise AssertionError("unreachable")
