"""APOD endpoint URL construction."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from urllib.parse import urlencode, urlparse

from apod_client.core.errors import InvalidURLError


def format_apod_date(value: date) -> str:
    """``YYYY-MM-DD`` as the service expects it."""
    return value.strftime("%Y-%m-%d")


@dataclass(frozen=True)
class APODEndpoint:
    """The single APOD endpoint.

    Attributes:
        base_url: HTTPS origin + path of the service.
        api_key:  Service key sent as the ``api_key`` query parameter.
        thumbs:   Ask the service for video thumbnails.
    """

    base_url: str
    api_key: str
    thumbs: bool = True

    def __post_init__(self) -> None:
        parsed = urlparse(self.base_url)
        if parsed.scheme != "https" or not parsed.netloc:
            raise InvalidURLError(self.base_url)
        if not self.api_key:
            raise InvalidURLError(f"{self.base_url} (missing api_key)")

    def query_params(self, for_date: date | None = None) -> dict[str, str]:
        """Query parameters; no ``date`` asks for today's picture."""
        params = {"api_key": self.api_key}
        if self.thumbs:
            params["thumbs"] = "true"
        if for_date is not None:
            params["date"] = format_apod_date(for_date)
        return params

    def url_for(self, for_date: date | None = None) -> str:
        """Full request URL including the query string."""
        return f"{self.base_url}?{urlencode(self.query_params(for_date))}"
