"""Shared fixtures — sample records and isolated cache directories."""

import pytest

from apod_client.cache.codecs import APODCodec, BytesCodec
from apod_client.cache.content_cache import ContentCache
from apod_client.models.apod import APOD, MediaType


@pytest.fixture
def sample_apod() -> APOD:
    return APOD(
        date="2024-01-15",
        title="The Orion Nebula",
        explanation="The Orion Nebula is a diffuse nebula south of Orion's Belt.",
        url="https://apod.nasa.gov/apod/image/2401/orion_nebula.jpg",
        media_type=MediaType.IMAGE,
        hdurl="https://apod.nasa.gov/apod/image/2401/orion_nebula_hd.jpg",
        copyright="NASA/ESA",
    )


@pytest.fixture
def sample_video_apod() -> APOD:
    return APOD(
        date="2024-01-16",
        title="Solar Eclipse Time-lapse",
        explanation="A time-lapse video of a solar eclipse captured from Earth.",
        url="https://www.youtube.com/embed/abcd123",
        media_type=MediaType.VIDEO,
        thumbnail_url="https://img.youtube.com/vi/abcd123/0.jpg",
    )


@pytest.fixture
def record_cache(tmp_path) -> ContentCache[APOD]:
    return ContentCache(tmp_path / "APODCache", APODCodec(), name="records")


@pytest.fixture
def image_cache(tmp_path) -> ContentCache[bytes]:
    return ContentCache(tmp_path / "APODImages", BytesCodec(".jpg"), name="images", retain_history=False)
