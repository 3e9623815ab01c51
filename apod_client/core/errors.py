"""Error taxonomy for the APOD client.

Custom exception hierarchy rooted at ``APODError``.  Every error carries a
``retryable`` flag that ``RetryPolicy`` consults, and connectivity errors
share the ``ConnectivityError`` base that ``APODRepository`` uses to decide
whether serving cached data is allowed.

``ErrorPresentation`` maps any exception to user-facing text and a
machine-readable code for the presentation layer.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel


class APODError(Exception):
    """Base exception for all APOD client errors."""

    retryable: bool = False


# ── Connectivity ────────────────────────────────────────────────────────


class ConnectivityError(APODError):
    """The service could not be reached.  Retried, then cache-fallback eligible."""

    retryable = True


class NetworkUnavailableError(ConnectivityError):
    """Raised when the connection to the service fails."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        msg = "Network connection unavailable"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class RequestTimeoutError(ConnectivityError):
    """Raised when a request exceeds its configured timeout."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        if timeout_seconds is None:
            super().__init__("Request timed out")
        else:
            super().__init__(f"Request timed out after {timeout_seconds}s")


class CircuitOpenError(ConnectivityError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        backend_name: Friendly name of the failing dependency.
        retry_after: Seconds until the circuit may be probed again.
    """

    retryable = False

    def __init__(self, backend_name: str, retry_after: float = 0.0) -> None:
        self.backend_name = backend_name
        self.retry_after = max(0.0, retry_after)
        super().__init__(f"Circuit open for '{backend_name}', retry after {self.retry_after:.1f}s")


# ── Server response ─────────────────────────────────────────────────────


_STATUS_MESSAGES: dict[int, str] = {
    400: "Bad request: the date or parameters were rejected",
    401: "Unauthorized: the API key is missing or invalid",
    403: "Forbidden: the API key does not have access",
    404: "No picture found for the requested date",
    429: "Too many requests: the API key rate limit was exceeded",
}


class HTTPStatusError(APODError):
    """Raised when the service answers with a non-2xx status code.

    Only 5xx responses are retryable; 4xx responses are never fixed by
    sending the same request again.
    """

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        if status_code in _STATUS_MESSAGES:
            msg = f"HTTP {status_code}: {_STATUS_MESSAGES[status_code]}"
        elif 500 <= status_code < 600:
            msg = f"HTTP {status_code}: server error"
        else:
            msg = f"HTTP error with status code {status_code}"
        super().__init__(msg)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return 500 <= self.status_code < 600


class InvalidURLError(APODError):
    """Raised for a malformed or non-HTTPS URL.  A configuration problem."""

    def __init__(self, url: str = "") -> None:
        self.url = url
        super().__init__(f"Invalid URL: {url}" if url else "Invalid URL")


class RepositoryError(APODError):
    """Raised for transport failures that fit no other category."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(f"Request failed: {detail}" if detail else "Request failed")


# ── Data ────────────────────────────────────────────────────────────────


class EmptyResponseError(APODError, ValueError):
    """Raised when the service returns an empty body."""

    def __init__(self) -> None:
        super().__init__("No data received from server")


class DecodingError(APODError, ValueError):
    """Raised when a payload cannot be decoded into the expected shape."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        msg = "Failed to decode response"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class InvalidDataError(APODError, ValueError):
    """Raised when a decoded record fails semantic validation."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid data: {reason}")


class InvalidDateRangeError(InvalidDataError):
    """Raised when a date falls outside ``[earliest, latest]``."""

    def __init__(self, earliest: date, latest: date) -> None:
        self.earliest = earliest
        self.latest = latest
        super().__init__(f"date must be between {earliest.isoformat()} and {latest.isoformat()}")


# ── Cache ───────────────────────────────────────────────────────────────


class CacheError(APODError):
    """Base exception for content cache failures."""


class InvalidKeyError(CacheError):
    """Raised when a cache key is empty or not usable as a file name."""

    def __init__(self, key: str = "") -> None:
        self.key = key
        super().__init__(f"Invalid cache key: {key!r}")


class NoCachedDataError(CacheError):
    """Raised when a key is absent from both cache tiers."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"No cached data for key '{key}'")


class CacheCorruptedError(CacheError):
    """Raised when durable bytes fail to decode; the entry has been deleted."""

    def __init__(self, key: str, detail: str = "") -> None:
        self.key = key
        self.detail = detail
        msg = f"Cached data for key '{key}' is corrupted"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class CacheSaveError(CacheError):
    """Raised when a durable write fails."""

    def __init__(self, key: str, detail: str = "") -> None:
        self.key = key
        self.detail = detail
        super().__init__(f"Failed to save '{key}' to cache: {detail}")


class CacheLoadError(CacheError):
    """Raised when a durable read fails for a reason other than corruption."""

    def __init__(self, key: str, detail: str = "") -> None:
        self.key = key
        self.detail = detail
        super().__init__(f"Failed to load '{key}' from cache: {detail}")


# ── Presentation ────────────────────────────────────────────────────────


class ErrorPresentation(BaseModel):
    """User-facing description of an error.

    Returns ``{"code", "description", "failure_reason", "recovery_suggestion"}``
    so a UI can tailor its messaging. No stack traces.
    """

    code: str
    description: str
    failure_reason: str
    recovery_suggestion: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorPresentation":
        """Create from an exception, mapping to machine-readable codes.

        Never leaks internal details for unhandled exceptions.
        """
        if isinstance(exc, NetworkUnavailableError):
            return cls(
                code="NETWORK_UNAVAILABLE",
                description="No internet connection available. Please check your network settings.",
                failure_reason="The device is not connected to the internet.",
                recovery_suggestion="Connect to Wi-Fi or cellular data and try again.",
            )
        if isinstance(exc, RequestTimeoutError):
            return cls(
                code="REQUEST_TIMEOUT",
                description="The request timed out. Please try again.",
                failure_reason="The request took too long to complete.",
                recovery_suggestion="Check your internet connection and try again.",
            )
        if isinstance(exc, CircuitOpenError):
            return cls(
                code="CIRCUIT_OPEN",
                description="Service temporarily unavailable. Please try again later.",
                failure_reason="Too many failures have occurred. Requests are paused.",
                recovery_suggestion="Wait a few moments and try again.",
            )
        if isinstance(exc, HTTPStatusError):
            return cls(
                code=f"HTTP_{exc.status_code}",
                description=str(exc),
                failure_reason="The server returned an error response.",
                recovery_suggestion="Please try again. If the problem persists, contact support.",
            )
        if isinstance(exc, InvalidURLError):
            return cls(
                code="INVALID_URL",
                description="The URL is invalid.",
                failure_reason="The provided URL is malformed.",
                recovery_suggestion="This appears to be a configuration error. Please contact support.",
            )
        if isinstance(exc, InvalidDateRangeError):
            return cls(
                code="INVALID_DATE_RANGE",
                description=str(exc),
                failure_reason="The date is outside the valid range for APOD data.",
                recovery_suggestion="Choose a date within the valid range.",
            )
        if isinstance(exc, (EmptyResponseError, DecodingError, InvalidDataError)):
            return cls(
                code="INVALID_DATA",
                description=str(exc),
                failure_reason="The data received from the server is invalid.",
                recovery_suggestion="Try again later. If the problem persists, the API may have changed.",
            )
        if isinstance(exc, NoCachedDataError):
            return cls(
                code="NO_CACHED_DATA",
                description="No cached data available. Please connect to the internet to load fresh data.",
                failure_reason="No data has been cached yet.",
                recovery_suggestion="Connect to the internet to download the latest data.",
            )
        if isinstance(exc, CacheError):
            return cls(
                code="CACHE_ERROR",
                description="Cached data is unavailable.",
                failure_reason="The cached data failed validation checks or could not be read.",
                recovery_suggestion="The app will attempt to reload fresh data.",
            )
        if isinstance(exc, APODError):
            return cls(
                code="REPOSITORY_ERROR",
                description=str(exc),
                failure_reason="An error occurred in the data repository.",
                recovery_suggestion="Please try again.",
            )
        # Unhandled: never expose internal details
        return cls(
            code="INTERNAL_ERROR",
            description="An internal error occurred",
            failure_reason="An unexpected error occurred.",
            recovery_suggestion="Please try again.",
        )
