"""Payload codecs for ``ContentCache``.

A codec turns a payload into durable bytes and back.  ``decode`` raises
``ValueError`` for bytes that must be treated as corrupted.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol, TypeVar

from apod_client.models.apod import APOD, EARLIEST_APOD_DATE

T = TypeVar("T")


class Codec(Protocol[T]):
    extension: str

    def encode(self, payload: T) -> bytes: ...

    def decode(self, data: bytes) -> T: ...


class APODCodec:
    """Sorted-key JSON for APOD records; decoded records are re-validated."""

    extension = ".json"

    def __init__(self, earliest: date = EARLIEST_APOD_DATE) -> None:
        self.earliest = earliest

    def encode(self, payload: APOD) -> bytes:
        return payload.to_json().encode("utf-8")

    def decode(self, data: bytes) -> APOD:
        # DecodingError and InvalidDataError are both ValueErrors
        apod = APOD.from_json(data)
        apod.validate_content(earliest=self.earliest)
        return apod


class BytesCodec:
    """Raw image bytes, written as-is."""

    def __init__(self, extension: str = ".jpg") -> None:
        self.extension = extension

    def encode(self, payload: bytes) -> bytes:
        if not payload:
            raise ValueError("refusing to cache an empty payload")
        return bytes(payload)

    def decode(self, data: bytes) -> bytes:
        if not data:
            raise ValueError("empty payload")
        return data
