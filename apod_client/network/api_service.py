"""APIService — HTTP access to the APOD service.

Sends GET requests through a single ``httpx.AsyncClient`` and translates
every transport or response failure into the closed ``APODError`` set that
``RetryPolicy`` and ``APODRepository`` branch on:

    httpx.TimeoutException                  → RequestTimeoutError
    httpx.NetworkError (connect, read, …)   → NetworkUnavailableError
    httpx.RemoteProtocolError / ProxyError  → NetworkUnavailableError
    httpx.InvalidURL / UnsupportedProtocol  → InvalidURLError
    any other httpx.HTTPError               → RepositoryError
    non-2xx status                          → HTTPStatusError
    empty body                              → EmptyResponseError
    malformed JSON / wrong shape            → DecodingError
    failed content validation               → InvalidDataError

Redirects are followed.  Each public call runs under ``RetryPolicy.execute``.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from urllib.parse import urlparse

import httpx

from apod_client.core.config import Settings
from apod_client.core.errors import (
    EmptyResponseError,
    HTTPStatusError,
    InvalidURLError,
    NetworkUnavailableError,
    RepositoryError,
    RequestTimeoutError,
)
from apod_client.models.apod import APOD
from apod_client.network.endpoint import APODEndpoint, format_apod_date
from apod_client.resilience.retry import RetryPolicy

logger = logging.getLogger(__name__)


class APIService:
    """Fetches APOD records and their image bytes.

    Args:
        settings:     Endpoint, timeout and retry configuration.
        client:       Optional pre-built ``httpx.AsyncClient`` (tests inject one
                      backed by ``httpx.MockTransport``).  Not closed by
                      ``aclose()`` when supplied.
        retry_policy: Overrides the policy built from *settings*.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.endpoint = APODEndpoint(
            base_url=self.settings.API_BASE_URL,
            api_key=self.settings.API_KEY,
            thumbs=self.settings.REQUEST_THUMBS,
        )
        self.retry_policy = retry_policy or RetryPolicy.from_settings(self.settings)
        self._timeout = self.settings.REQUEST_TIMEOUT_SECONDS
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)

    # ── Public API ───────────────────────────────────────────────────

    async def fetch_apod(self, for_date: date | None = None) -> APOD:
        """Fetch the record for *for_date* (``None`` = today).

        Raises:
            InvalidURLError: The endpoint is not a valid HTTPS URL.
            RequestTimeoutError / NetworkUnavailableError: Connectivity
                failures left after retries.
            HTTPStatusError: The service answered with a non-2xx status.
            EmptyResponseError / DecodingError / InvalidDataError: The body
                was not a valid record.
        """
        return await self.retry_policy.execute(lambda: self._request_apod(for_date))

    async def fetch_media(self, url: str) -> bytes:
        """Download the image bytes at *url* (HTTPS only)."""
        parsed = urlparse(url)
        if parsed.scheme != "https" or not parsed.netloc:
            logger.error("Refusing non-HTTPS media URL: %s", url)
            raise InvalidURLError(url)
        return await self.retry_policy.execute(lambda: self._request_media(url))

    async def aclose(self) -> None:
        """Close the underlying client if this service created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> APIService:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ── Single attempts ──────────────────────────────────────────────

    async def _request_apod(self, for_date: date | None) -> APOD:
        label = format_apod_date(for_date) if for_date else "today"
        response = await self._send(
            self.endpoint.base_url,
            params=self.endpoint.query_params(for_date),
            label=f"apod {label}",
        )
        if not response.content:
            raise EmptyResponseError()

        apod = APOD.from_json(response.content)
        apod.validate_content(earliest=self.settings.EARLIEST_DATE)
        logger.info("Fetched APOD for %s", apod.date)
        return apod

    async def _request_media(self, url: str) -> bytes:
        response = await self._send(url, params=None, label="media")
        if not response.content:
            raise EmptyResponseError()
        logger.info("Fetched media %s (%d KB)", url, len(response.content) // 1024)
        return response.content

    async def _send(self, url: str, *, params: dict | None, label: str) -> httpx.Response:
        """Send one GET and map failures to ``APODError``s."""
        start = time.monotonic()
        logger.debug("GET %s (%s)", urlparse(url).path, label)
        try:
            response = await self._client.get(
                url, params=params, timeout=self._timeout, follow_redirects=True
            )
        except httpx.TimeoutException:
            logger.warning("Request timed out after %.1fs (%s)", self._timeout, label)
            raise RequestTimeoutError(self._timeout) from None
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as exc:
            raise InvalidURLError(url) from exc
        except (httpx.NetworkError, httpx.RemoteProtocolError, httpx.ProxyError) as exc:
            logger.warning("Network error (%s): %s", label, exc)
            raise NetworkUnavailableError(str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.error("Request failed (%s): %s", label, exc)
            raise RepositoryError(str(exc)) from exc

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.debug("HTTP %d for %s in %.0fms", response.status_code, label, elapsed_ms)

        if not response.is_success:
            raise HTTPStatusError(response.status_code)
        return response
