"""Two-tier content cache — in-memory dict plus one durable directory.

``ContentCache`` stores arbitrary keyed payloads through a codec
(``APODCodec`` for records, ``BytesCodec`` for images).  Writes go to the
memory tier first and are then persisted atomically: the payload is written
to a temporary file in the same directory and moved over the target with
``os.replace``, so readers never observe a half-written entry.

A single reserved key holds the last successful payload.  With
``retain_history=False`` writing that slot first deletes every other entry,
keeping only the most recent result on disk.

Both tiers are keyed by ``sanitize_key(key)``, so keys that map to the same
file also share one memory entry.

All operations on one instance are serialized by an ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Generic, TypeVar

import aiofiles
import aiofiles.os

from apod_client.cache.codecs import Codec
from apod_client.core.errors import (
    CacheCorruptedError,
    CacheLoadError,
    CacheSaveError,
    InvalidKeyError,
    NoCachedDataError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

LAST_SUCCESSFUL_KEY = "lastSuccessful"

# Characters that cannot appear in a file name on common file systems
_UNSAFE_CHARS = ("/", "\\", ":")


def sanitize_key(key: str) -> str:
    """Map a cache key to a safe file stem.

    Raises ``InvalidKeyError`` for empty keys, keys containing a null byte,
    and keys that would name the directory itself or its parent.
    """
    if not key:
        raise InvalidKeyError(key)
    if "\x00" in key:
        raise InvalidKeyError(key)
    sanitized = key
    for char in _UNSAFE_CHARS:
        sanitized = sanitized.replace(char, "_")
    if sanitized in (".", ".."):
        raise InvalidKeyError(key)
    return sanitized


class ContentCache(Generic[T]):
    """Memory + disk cache for one payload type.

    Args:
        directory:      Directory holding the durable entries (created if missing).
        codec:          Converts payloads to bytes and back.
        name:           Label used in log lines.
        retain_history: When ``False``, saving the last successful payload
                        removes every other entry first.
    """

    def __init__(
        self,
        directory: Path | str,
        codec: Codec[T],
        *,
        name: str = "content",
        retain_history: bool = True,
    ) -> None:
        self.directory = Path(directory)
        self.codec = codec
        self.name = name
        self.retain_history = retain_history

        self._memory: dict[str, T] = {}
        self._lock = asyncio.Lock()

        self.directory.mkdir(parents=True, exist_ok=True)
        logger.info("Cache '%s' directory: %s", self.name, self.directory)

    def path_for(self, key: str) -> Path:
        """Durable file path for *key*."""
        return self._path(sanitize_key(key))

    def _path(self, stem: str) -> Path:
        return self.directory / f"{stem}{self.codec.extension}"

    # ── Public API ───────────────────────────────────────────────────

    async def save(self, key: str, payload: T) -> None:
        """Store *payload* in memory, then persist it atomically.

        Raises:
            InvalidKeyError: *key* is empty or unusable.
            CacheSaveError: The payload could not be encoded or written.
        """
        key = sanitize_key(key)
        async with self._lock:
            await self._save_unlocked(key, self._path(key), payload)

    async def load(self, key: str) -> T:
        """Return the payload for *key*, checking memory before disk.

        Raises:
            InvalidKeyError: *key* is empty or unusable.
            NoCachedDataError: Neither tier holds *key*.
            CacheCorruptedError: The durable bytes failed to decode; the file
                                 has been deleted.
            CacheLoadError: The file exists but could not be read.
        """
        key = sanitize_key(key)
        async with self._lock:
            if key in self._memory:
                logger.debug("Cache '%s' hit (memory): %s", self.name, key)
                return self._memory[key]

            logger.debug("Cache '%s' miss (memory): %s", self.name, key)
            payload = await self._read_unlocked(key, self._path(key))
            self._memory[key] = payload
            return payload

    async def save_last_successful(self, payload: T) -> None:
        """Overwrite the last-successful slot with *payload*."""
        async with self._lock:
            if not self.retain_history:
                await self._clear_unlocked()
            await self._save_unlocked(LAST_SUCCESSFUL_KEY, self._path(LAST_SUCCESSFUL_KEY), payload)
        logger.info("Cache '%s' saved last successful payload", self.name)

    async def load_last_successful(self) -> T:
        """Return the payload in the last-successful slot."""
        return await self.load(LAST_SUCCESSFUL_KEY)

    async def contains(self, key: str) -> bool:
        """Whether *key* is present in memory or on disk."""
        key = sanitize_key(key)
        async with self._lock:
            if key in self._memory:
                return True
            return await aiofiles.os.path.isfile(self._path(key))

    async def remove(self, key: str) -> None:
        """Delete *key* from both tiers.  Missing keys are ignored."""
        key = sanitize_key(key)
        async with self._lock:
            self._memory.pop(key, None)
            await self._discard(self._path(key))

    async def clear(self) -> None:
        """Empty the memory tier and delete every durable entry.

        Raises:
            CacheSaveError: The directory could not be listed.
        """
        async with self._lock:
            await self._clear_unlocked()
        logger.info("Cache '%s' cleared", self.name)

    # ── Disk operations (lock held by caller) ────────────────────────

    async def _save_unlocked(self, key: str, path: Path, payload: T) -> None:
        try:
            data = self.codec.encode(payload)
        except ValueError as exc:
            raise CacheSaveError(key, str(exc)) from exc

        self._memory[key] = payload

        tmp_path = path.with_name(f"{path.stem}.{uuid.uuid4().hex}.tmp")
        try:
            await aiofiles.os.makedirs(self.directory, exist_ok=True)
            async with aiofiles.open(tmp_path, "wb") as fh:
                await fh.write(data)
            await aiofiles.os.replace(tmp_path, path)
        except OSError as exc:
            await self._discard(tmp_path)
            raise CacheSaveError(key, str(exc)) from exc

        logger.debug("Cache '%s' saved to disk: %s (%d bytes)", self.name, key, len(data))

    async def _read_unlocked(self, key: str, path: Path) -> T:
        try:
            async with aiofiles.open(path, "rb") as fh:
                data = await fh.read()
        except FileNotFoundError:
            logger.debug("Cache '%s' miss (disk): %s", self.name, key)
            raise NoCachedDataError(key) from None
        except OSError as exc:
            raise CacheLoadError(key, str(exc)) from exc

        try:
            payload = self.codec.decode(data)
        except ValueError as exc:
            logger.error("Cache '%s' entry corrupted, deleting: %s (%s)", self.name, key, exc)
            await self._discard(path)
            raise CacheCorruptedError(key, str(exc)) from exc

        logger.debug("Cache '%s' hit (disk): %s", self.name, key)
        return payload

    async def _clear_unlocked(self) -> None:
        self._memory.clear()
        try:
            names = await aiofiles.os.listdir(self.directory)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise CacheSaveError(self.name, f"cannot list {self.directory}: {exc}") from exc
        for name in names:
            entry = self.directory / name
            if await aiofiles.os.path.isfile(entry):
                await self._discard(entry)

    async def _discard(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Cache '%s' could not delete %s: %s", self.name, path, exc)
