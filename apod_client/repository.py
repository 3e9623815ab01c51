"""Repositories — network first, cache fallback, circuit breaker gated.

``FallbackRepository`` implements the fetch pipeline shared by records and
images.  For one key it:

1. asks the circuit breaker for permission; a denial skips the network and
   falls back with ``CircuitOpenError`` as the triggering error;
2. awaits the remote call (which retries internally), bounded by an
   optional overall deadline;
3. on success persists the value best-effort, records the success and
   returns ``Fresh``;
4. on a connectivity failure records it, then serves the cached value for
   the key or the last successful value as ``CachedFallback``.  When both
   miss, the original error is raised, never the cache miss.

Any other error (HTTP status, bad data, configuration) propagates
unchanged without touching the cache: stale data must not hide a real
server-side problem.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Generic, Protocol, TypeVar

from apod_client.cache.content_cache import ContentCache
from apod_client.core.errors import (
    CacheError,
    CircuitOpenError,
    ConnectivityError,
    InvalidDataError,
    RequestTimeoutError,
)
from apod_client.models.apod import APOD, parse_apod_date
from apod_client.models.fetch_result import CachedFallback, FetchResult, Fresh
from apod_client.network.endpoint import format_apod_date
from apod_client.resilience.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

T = TypeVar("T")


class APODSource(Protocol):
    async def fetch_apod(self, for_date: date | None = None) -> APOD: ...


class MediaSource(Protocol):
    async def fetch_media(self, url: str) -> bytes: ...


class FallbackRepository(Generic[T]):
    """Shared network → cache fallback pipeline.

    Args:
        cache:         Cache serving fallbacks and receiving fresh values.
        name:          Name of the owned circuit breaker.
        max_failures:  Consecutive connectivity failures before opening.
        reset_timeout: Seconds before an open circuit is probed.
        deadline:      Default overall bound, in seconds, on one network phase.
    """

    def __init__(
        self,
        cache: ContentCache[T],
        *,
        name: str,
        max_failures: int = 5,
        reset_timeout: float = 60.0,
        deadline: float | None = None,
    ) -> None:
        self._cache = cache
        self._circuit_breaker = CircuitBreaker(
            name=name,
            max_failures=max_failures,
            reset_timeout=reset_timeout,
        )
        self._deadline = deadline

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    async def is_available(self) -> bool:
        """Whether a fetch would currently reach the network.

        Side-effect free: never moves an open circuit to half-open.
        """
        return self._circuit_breaker.would_permit()

    async def reset(self) -> None:
        """Force the circuit closed, e.g. for a user-triggered refresh."""
        await self._circuit_breaker.reset()

    def health(self) -> dict:
        """Breaker metrics plus whether a fetch would currently reach the network."""
        return {**self._circuit_breaker.snapshot(), "available": self._circuit_breaker.would_permit()}

    # ── Pipeline ─────────────────────────────────────────────────────

    async def _fetch_with_fallback(
        self,
        key: str,
        remote_call: Callable[[], Awaitable[T]],
        deadline: float | None,
    ) -> FetchResult[T]:
        cb = self._circuit_breaker

        if not await cb.can_attempt():
            logger.warning("Circuit breaker '%s' open, using cache for %s", cb.name, key)
            error = CircuitOpenError(cb.name, cb.retry_after)
            return CachedFallback(await self._load_from_cache(key, error))

        try:
            value = await self._call_remote(remote_call, deadline)
        except ConnectivityError as exc:
            await cb.record_failure()
            logger.warning("Fetch for %s failed (%s), falling back to cache", key, exc)
            return CachedFallback(await self._load_from_cache(key, exc))
        except (Exception, asyncio.CancelledError):
            # No verdict on the service's health; free a half-open probe
            await cb.release_probe()
            raise

        try:
            persisted = await self._persist(key, value)
        finally:
            await cb.record_success()
        return Fresh(value, persisted=persisted)

    async def _call_remote(
        self,
        remote_call: Callable[[], Awaitable[T]],
        deadline: float | None,
    ) -> T:
        if deadline is None:
            return await remote_call()
        try:
            async with asyncio.timeout(deadline):
                return await remote_call()
        except TimeoutError:
            logger.warning("Fetch exceeded overall deadline of %.1fs", deadline)
            raise RequestTimeoutError(deadline) from None

    async def _load_from_cache(self, key: str, original_error: Exception) -> T:
        """Cached value for *key*, else the last successful one, else *original_error*."""
        try:
            value = await self._cache.load(key)
            logger.info("Using cached value for %s", key)
            return value
        except CacheError as exc:
            logger.debug("No cached value for %s: %s", key, exc)

        try:
            value = await self._cache.load_last_successful()
            logger.warning("Using last successful value as fallback for %s", key)
            return value
        except CacheError as exc:
            logger.error("Network and cache both failed for %s: %s", key, exc)
            raise original_error from None

    async def _persist(self, key: str, value: T) -> bool:
        """Write *value* to the cache; failures are logged, never raised."""
        try:
            await self._store(key, value)
        except (CacheError, OSError) as exc:
            logger.warning("Could not cache fresh value for %s: %s", key, exc)
            return False
        return True

    async def _store(self, key: str, value: T) -> None:
        raise NotImplementedError


class APODRepository(FallbackRepository[APOD]):
    """APOD records with circuit breaker protection and cache fallback."""

    def __init__(
        self,
        api_service: APODSource,
        cache: ContentCache[APOD],
        *,
        max_failures: int = 5,
        reset_timeout: float = 60.0,
        deadline: float | None = None,
    ) -> None:
        super().__init__(
            cache,
            name="apod-api",
            max_failures=max_failures,
            reset_timeout=reset_timeout,
            deadline=deadline,
        )
        self._api_service = api_service

    async def fetch_for_date(
        self,
        for_date: date | str,
        *,
        deadline: float | None = None,
    ) -> FetchResult[APOD]:
        """Fetch the APOD for *for_date*, falling back to the cache.

        Args:
            for_date: A ``date`` or a ``YYYY-MM-DD`` string.
            deadline: Overall bound in seconds for the network phase,
                      overriding the repository default.

        Returns:
            ``Fresh`` with the network record, or ``CachedFallback``.

        Raises:
            InvalidDataError: *for_date* is not a valid ``YYYY-MM-DD`` string.
            ConnectivityError: The network failed and nothing is cached
                (``CircuitOpenError`` when the circuit was open).
            APODError: Any non-connectivity failure, unchanged.
        """
        target = _coerce_date(for_date)
        return await self._fetch_with_fallback(
            format_apod_date(target),
            lambda: self._api_service.fetch_apod(target),
            deadline if deadline is not None else self._deadline,
        )

    async def _store(self, key: str, value: APOD) -> None:
        await self._cache.save(key, value)
        await self._cache.save_last_successful(value)


class MediaRepository(FallbackRepository[bytes]):
    """Image bytes for APOD records, keyed by the record's date."""

    def __init__(
        self,
        api_service: MediaSource,
        cache: ContentCache[bytes],
        *,
        max_failures: int = 5,
        reset_timeout: float = 60.0,
        deadline: float | None = None,
    ) -> None:
        super().__init__(
            cache,
            name="apod-media",
            max_failures=max_failures,
            reset_timeout=reset_timeout,
            deadline=deadline,
        )
        self._api_service = api_service

    async def fetch_media(
        self,
        apod: APOD,
        *,
        deadline: float | None = None,
    ) -> FetchResult[bytes]:
        """Fetch the image (or video thumbnail) bytes for *apod*.

        Raises:
            InvalidDataError: The record has no image to download.
        """
        url = apod.asset_url
        if not url:
            raise InvalidDataError(f"No media asset for {apod.date}")
        return await self._fetch_with_fallback(
            apod.date,
            lambda: self._api_service.fetch_media(url),
            deadline if deadline is not None else self._deadline,
        )

    async def _store(self, key: str, value: bytes) -> None:
        # The last-successful write may clear the directory, so it goes first
        await self._cache.save_last_successful(value)
        await self._cache.save(key, value)


def _coerce_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    parsed = parse_apod_date(value)
    if parsed is None:
        raise InvalidDataError(f"Invalid date format: {value!r}")
    return parsed
