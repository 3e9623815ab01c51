"""Content caches — records and image bytes, memory plus disk."""

from apod_client.cache.codecs import APODCodec, BytesCodec, Codec
from apod_client.cache.content_cache import LAST_SUCCESSFUL_KEY, ContentCache, sanitize_key

__all__ = [
    "APODCodec",
    "BytesCodec",
    "Codec",
    "ContentCache",
    "LAST_SUCCESSFUL_KEY",
    "sanitize_key",
]
