"""APOD record model.

Immutable pydantic model for one Astronomy Picture of the Day entry,
keyed by its ``YYYY-MM-DD`` date.  Structural decoding failures become
``DecodingError``; semantic checks live in ``APOD.validate_content()``.
"""

from __future__ import annotations

import json
import re
from datetime import date
from enum import Enum
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, ValidationError

from apod_client.core.errors import DecodingError, InvalidDataError, InvalidDateRangeError

EARLIEST_APOD_DATE = date(1995, 6, 16)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class MediaType(str, Enum):
    """Kind of media an APOD points at."""

    IMAGE = "image"
    VIDEO = "video"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


def parse_apod_date(value: str) -> date | None:
    """Parse a strict ``YYYY-MM-DD`` string; ``None`` when malformed."""
    if not _DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc)


class APOD(BaseModel):
    """Astronomy Picture of the Day record."""

    model_config = ConfigDict(frozen=True)

    date: str
    title: str
    explanation: str
    url: str
    media_type: MediaType
    hdurl: str | None = None
    copyright: str | None = None
    thumbnail_url: str | None = None

    # ── Derived properties ───────────────────────────────────────────

    @property
    def id(self) -> str:
        return self.date

    @property
    def parsed_date(self) -> date | None:
        return parse_apod_date(self.date)

    @property
    def has_hd_version(self) -> bool:
        return bool(self.hdurl)

    @property
    def best_quality_url(self) -> str:
        """HD URL when available, otherwise the standard URL."""
        return self.hdurl or self.url

    @property
    def is_image(self) -> bool:
        return self.media_type == MediaType.IMAGE

    @property
    def is_video(self) -> bool:
        return self.media_type == MediaType.VIDEO

    @property
    def asset_url(self) -> str | None:
        """URL of the image bytes worth caching for this record.

        Images use the best quality URL; videos use their thumbnail, if the
        service returned one.
        """
        if self.is_image:
            return self.best_quality_url
        return self.thumbnail_url or None

    # ── Validation ───────────────────────────────────────────────────

    def validate_content(
        self,
        earliest: date = EARLIEST_APOD_DATE,
        today: date | None = None,
    ) -> None:
        """Validate the record's content.

        Checks, in order: non-empty date, non-empty title, an absolute URL,
        a parseable date and a date within ``[earliest, today]``.

        Raises:
            InvalidDataError: A required field is empty or malformed.
            InvalidDateRangeError: The date lies outside the allowed range.
        """
        if not self.date:
            raise InvalidDataError("Date is empty")
        if not self.title:
            raise InvalidDataError("Title is empty")
        if not self.url or not _is_absolute_url(self.url):
            raise InvalidDataError("Invalid URL")

        parsed = self.parsed_date
        if parsed is None:
            raise InvalidDataError("Invalid date format")

        latest = today or date.today()
        if not earliest <= parsed <= latest:
            raise InvalidDateRangeError(earliest, latest)

    # ── Serialization ────────────────────────────────────────────────

    def to_json(self) -> str:
        """Stable, sorted-key JSON; ``None`` fields are omitted."""
        return json.dumps(
            self.model_dump(mode="json", exclude_none=True),
            sort_keys=True,
            indent=2,
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, data: str | bytes) -> APOD:
        """Decode a JSON document into a record.

        Raises ``DecodingError`` when the document is not JSON or does not
        match the record's shape.
        """
        try:
            return cls.model_validate_json(data)
        except ValidationError as exc:
            raise DecodingError(_summarize(exc)) from exc

    @classmethod
    def from_dict(cls, payload: dict) -> APOD:
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            raise DecodingError(_summarize(exc)) from exc


def _summarize(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "document"
    return f"{location}: {first.get('msg', 'invalid')}"
