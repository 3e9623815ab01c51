"""Fetch provenance — fresh network data versus cached fallback."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    """A fetched value tagged with where it came from.

    Use the ``Fresh`` and ``CachedFallback`` subclasses; ``value`` exposes
    the payload regardless of the tag.
    """

    value: T

    @property
    def is_cached_fallback(self) -> bool:
        return isinstance(self, CachedFallback)

    @property
    def is_fresh(self) -> bool:
        return isinstance(self, Fresh)


@dataclass(frozen=True)
class Fresh(FetchResult[T]):
    """Value fetched from the network on this call.

    Attributes:
        persisted: ``False`` when the best-effort cache write after the
                   fetch failed.  Not part of equality.
    """

    persisted: bool = field(default=True, compare=False)


@dataclass(frozen=True)
class CachedFallback(FetchResult[T]):
    """Value served from the cache because the network was unavailable."""
