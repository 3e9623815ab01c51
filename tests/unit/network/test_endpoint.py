"""Tests for APODEndpoint URL construction."""

from datetime import date
from urllib.parse import parse_qs, urlparse

import pytest

from apod_client.core.errors import InvalidURLError
from apod_client.network.endpoint import APODEndpoint

BASE = "https://api.nasa.gov/planetary/apod"


class TestAPODEndpoint:
    def test_url_includes_key_and_thumbs(self):
        url = APODEndpoint(BASE, "test-key").url_for()
        query = parse_qs(urlparse(url).query)
        assert query["api_key"] == ["test-key"]
        assert query["thumbs"] == ["true"]
        assert "date" not in query

    def test_url_includes_formatted_date(self):
        url = APODEndpoint(BASE, "test-key").url_for(date(2024, 1, 5))
        assert parse_qs(urlparse(url).query)["date"] == ["2024-01-05"]

    def test_uses_https_base(self):
        url = APODEndpoint(BASE, "test-key").url_for()
        parsed = urlparse(url)
        assert parsed.scheme == "https"
        assert parsed.netloc == "api.nasa.gov"
        assert parsed.path == "/planetary/apod"

    def test_thumbs_can_be_disabled(self):
        params = APODEndpoint(BASE, "test-key", thumbs=False).query_params()
        assert "thumbs" not in params

    @pytest.mark.parametrize("base", ["http://api.nasa.gov/planetary/apod", "not a url", ""])
    def test_rejects_non_https_base(self, base):
        with pytest.raises(InvalidURLError):
            APODEndpoint(base, "test-key")

    def test_rejects_missing_key(self):
        with pytest.raises(InvalidURLError):
            APODEndpoint(BASE, "")
