"""Tests for Settings — defaults, APOD_ env overrides, construction-time validation."""

import os
from datetime import date
from pathlib import Path

import pytest
from pydantic import ValidationError

from apod_client.core.config import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("APOD_"):
            monkeypatch.delenv(name)


class TestSettingsDefaults:
    def test_api_defaults(self):
        settings = Settings()
        assert settings.API_BASE_URL == "https://api.nasa.gov/planetary/apod"
        assert settings.API_KEY == "DEMO_KEY"
        assert settings.REQUEST_TIMEOUT_SECONDS == 30.0
        assert settings.EARLIEST_DATE == date(1995, 6, 16)

    def test_resilience_defaults(self):
        settings = Settings()
        assert settings.RETRY_MAX_ATTEMPTS == 3
        assert settings.RETRY_BASE_DELAY == 1.0
        assert settings.RETRY_MAX_DELAY == 10.0
        assert settings.CIRCUIT_BREAKER_THRESHOLD == 5
        assert settings.CIRCUIT_BREAKER_RESET_SECONDS == 60.0
        assert settings.FETCH_DEADLINE_SECONDS is None

    def test_cache_dirs(self, tmp_path):
        settings = Settings(CACHE_DIR=tmp_path)
        assert settings.record_cache_dir == tmp_path / "APODCache"
        assert settings.image_cache_dir == tmp_path / "APODImages"
        assert settings.IMAGE_CACHE_RETAIN_HISTORY is False


class TestSettingsEnvOverrides:
    def test_api_key_from_env(self, monkeypatch):
        monkeypatch.setenv("APOD_API_KEY", "abc123")
        assert Settings().API_KEY == "abc123"

    def test_numeric_from_env(self, monkeypatch):
        monkeypatch.setenv("APOD_CIRCUIT_BREAKER_THRESHOLD", "2")
        monkeypatch.setenv("APOD_FETCH_DEADLINE_SECONDS", "45.5")
        settings = Settings()
        assert settings.CIRCUIT_BREAKER_THRESHOLD == 2
        assert settings.FETCH_DEADLINE_SECONDS == 45.5

    def test_cache_dir_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("APOD_CACHE_DIR", str(tmp_path))
        assert Settings().CACHE_DIR == Path(tmp_path)


class TestSettingsValidation:
    @pytest.mark.parametrize(
        "url",
        ["http://api.nasa.gov/planetary/apod", "api.nasa.gov/planetary/apod", "https://"],
    )
    def test_rejects_non_https_base_url(self, url):
        with pytest.raises(ValidationError):
            Settings(API_BASE_URL=url)

    def test_rejects_blank_api_key(self):
        with pytest.raises(ValidationError):
            Settings(API_KEY="  ")

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValidationError):
            Settings(RETRY_MAX_ATTEMPTS=0)

    def test_rejects_max_delay_below_base(self):
        with pytest.raises(ValidationError):
            Settings(RETRY_BASE_DELAY=5.0, RETRY_MAX_DELAY=1.0)
