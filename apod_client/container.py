"""Dependency wiring for the APOD client.

``DependencyContainer`` builds every component from one ``Settings``
object, lazily, and hands out the same instances on repeated access.
"""

from __future__ import annotations

from apod_client.cache.codecs import APODCodec, BytesCodec
from apod_client.cache.content_cache import ContentCache
from apod_client.core.config import Settings
from apod_client.models.apod import APOD
from apod_client.network.api_service import APIService
from apod_client.repository import APODRepository, MediaRepository


class DependencyContainer:
    """Lazily constructed application graph.

    Usage::

        container = DependencyContainer()
        result = await container.apod_repository.fetch_for_date("2024-01-15")
        ...
        await container.aclose()
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self._api_service: APIService | None = None
        self._record_cache: ContentCache[APOD] | None = None
        self._image_cache: ContentCache[bytes] | None = None
        self._apod_repository: APODRepository | None = None
        self._media_repository: MediaRepository | None = None

    @property
    def api_service(self) -> APIService:
        if self._api_service is None:
            self._api_service = APIService(self.settings)
        return self._api_service

    @property
    def record_cache(self) -> ContentCache[APOD]:
        if self._record_cache is None:
            self._record_cache = ContentCache(
                self.settings.record_cache_dir,
                APODCodec(earliest=self.settings.EARLIEST_DATE),
                name="records",
            )
        return self._record_cache

    @property
    def image_cache(self) -> ContentCache[bytes]:
        if self._image_cache is None:
            self._image_cache = ContentCache(
                self.settings.image_cache_dir,
                BytesCodec(".jpg"),
                name="images",
                retain_history=self.settings.IMAGE_CACHE_RETAIN_HISTORY,
            )
        return self._image_cache

    @property
    def apod_repository(self) -> APODRepository:
        if self._apod_repository is None:
            self._apod_repository = APODRepository(
                self.api_service,
                self.record_cache,
                max_failures=self.settings.CIRCUIT_BREAKER_THRESHOLD,
                reset_timeout=self.settings.CIRCUIT_BREAKER_RESET_SECONDS,
                deadline=self.settings.FETCH_DEADLINE_SECONDS,
            )
        return self._apod_repository

    @property
    def media_repository(self) -> MediaRepository:
        if self._media_repository is None:
            self._media_repository = MediaRepository(
                self.api_service,
                self.image_cache,
                max_failures=self.settings.CIRCUIT_BREAKER_THRESHOLD,
                reset_timeout=self.settings.CIRCUIT_BREAKER_RESET_SECONDS,
                deadline=self.settings.FETCH_DEADLINE_SECONDS,
            )
        return self._media_repository

    def health(self) -> dict:
        """Circuit breaker status for both repositories, keyed by breaker name."""
        repositories = (self.apod_repository, self.media_repository)
        return {repo.circuit_breaker.name: repo.health() for repo in repositories}

    async def aclose(self) -> None:
        """Close the HTTP client, if one was created."""
        if self._api_service is not None:
            await self._api_service.aclose()
            self._api_service = None
