"""Settings for the APOD client.

Centralized configuration loaded from environment variables with the
``APOD_`` prefix.  Invalid endpoint configuration is rejected when the
settings object is constructed, never at request time.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from urllib.parse import urlparse

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """APOD client configuration.

    All fields can be overridden by environment variables prefixed with
    ``APOD_``.  For example, ``APOD_API_KEY=abc123`` overrides the key.
    """

    # ── Remote service ──────────────────────────────────────────────
    API_BASE_URL: str = "https://api.nasa.gov/planetary/apod"
    API_KEY: str = "DEMO_KEY"
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    REQUEST_THUMBS: bool = True  # Ask for video thumbnails
    EARLIEST_DATE: date = date(1995, 6, 16)  # First APOD ever published

    # ── Resilience ──────────────────────────────────────────────────
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_BASE_DELAY: float = 1.0  # Seconds, doubled per attempt
    RETRY_MAX_DELAY: float = 10.0
    CIRCUIT_BREAKER_THRESHOLD: int = 5  # Consecutive failures before OPEN
    CIRCUIT_BREAKER_RESET_SECONDS: float = 60.0  # Seconds before HALF_OPEN probe
    FETCH_DEADLINE_SECONDS: float | None = None  # Overall bound on one fetch

    # ── Cache ───────────────────────────────────────────────────────
    CACHE_DIR: Path = Path.home() / ".cache" / "apod-client"
    RECORD_CACHE_DIRNAME: str = "APODCache"
    IMAGE_CACHE_DIRNAME: str = "APODImages"
    IMAGE_CACHE_RETAIN_HISTORY: bool = False  # Keep only the last image on disk

    model_config = {
        "env_prefix": "APOD_",
    }

    @field_validator("API_BASE_URL")
    @classmethod
    def require_https(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme != "https" or not parsed.netloc:
            raise ValueError(f"API_BASE_URL must be an absolute https URL, got {v!r}")
        return v

    @field_validator("API_KEY")
    @classmethod
    def require_api_key(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("API_KEY must not be empty")
        return v

    @model_validator(mode="after")
    def check_retry_bounds(self) -> "Settings":
        if self.RETRY_MAX_ATTEMPTS < 1:
            raise ValueError("RETRY_MAX_ATTEMPTS must be at least 1")
        if self.RETRY_BASE_DELAY <= 0:
            raise ValueError("RETRY_BASE_DELAY must be positive")
        if self.RETRY_MAX_DELAY < self.RETRY_BASE_DELAY:
            raise ValueError("RETRY_MAX_DELAY must be >= RETRY_BASE_DELAY")
        if self.CIRCUIT_BREAKER_THRESHOLD < 1:
            raise ValueError("CIRCUIT_BREAKER_THRESHOLD must be at least 1")
        return self

    @property
    def record_cache_dir(self) -> Path:
        return Path(self.CACHE_DIR) / self.RECORD_CACHE_DIRNAME

    @property
    def image_cache_dir(self) -> Path:
        return Path(self.CACHE_DIR) / self.IMAGE_CACHE_DIRNAME
