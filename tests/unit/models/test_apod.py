"""Tests for the APOD record — decoding, validation and serialization."""

import json
from datetime import date

import pytest
from pydantic import ValidationError

from apod_client.core.errors import DecodingError, InvalidDataError, InvalidDateRangeError
from apod_client.models.apod import APOD, MediaType, parse_apod_date

VALID_JSON = """
{
    "date": "2024-01-15",
    "title": "The Orion Nebula",
    "explanation": "A diffuse nebula in the Milky Way.",
    "url": "https://apod.nasa.gov/apod/image/2401/orion.jpg",
    "media_type": "image",
    "hdurl": "https://apod.nasa.gov/apod/image/2401/orion_hd.jpg",
    "copyright": "NASA/ESA",
    "service_version": "v1"
}
"""


class TestDecoding:
    def test_decode_from_valid_json(self):
        apod = APOD.from_json(VALID_JSON)
        assert apod.date == "2024-01-15"
        assert apod.title == "The Orion Nebula"
        assert apod.media_type == MediaType.IMAGE
        assert apod.hdurl == "https://apod.nasa.gov/apod/image/2401/orion_hd.jpg"
        assert apod.copyright == "NASA/ESA"

    def test_decode_with_optional_fields_missing(self):
        payload = json.loads(VALID_JSON)
        del payload["hdurl"]
        del payload["copyright"]
        apod = APOD.from_dict(payload)
        assert apod.hdurl is None
        assert apod.copyright is None

    def test_decode_video_media_type(self):
        payload = json.loads(VALID_JSON)
        payload["media_type"] = "video"
        assert APOD.from_dict(payload).media_type == MediaType.VIDEO

    def test_missing_required_field_raises_decoding_error(self):
        payload = json.loads(VALID_JSON)
        del payload["title"]
        with pytest.raises(DecodingError, match="title"):
            APOD.from_dict(payload)

    def test_unknown_media_type_raises_decoding_error(self):
        payload = json.loads(VALID_JSON)
        payload["media_type"] = "hologram"
        with pytest.raises(DecodingError):
            APOD.from_dict(payload)

    def test_malformed_json_raises_decoding_error(self):
        with pytest.raises(DecodingError):
            APOD.from_json(b"<html>oops</html>")

    def test_record_is_immutable(self, sample_apod):
        with pytest.raises(ValidationError):
            sample_apod.title = "changed"


class TestDerivedProperties:
    def test_id_returns_date(self, sample_apod):
        assert sample_apod.id == "2024-01-15"

    def test_parsed_date(self, sample_apod):
        assert sample_apod.parsed_date == date(2024, 1, 15)

    @pytest.mark.parametrize("value", ["", "2024/01/15", "15-01-2024", "2024-13-01", "2024-W03-1", "20240115"])
    def test_parse_rejects_malformed_dates(self, value):
        assert parse_apod_date(value) is None

    def test_has_hd_version(self, sample_apod):
        assert sample_apod.has_hd_version is True
        assert sample_apod.model_copy(update={"hdurl": None}).has_hd_version is False
        assert sample_apod.model_copy(update={"hdurl": ""}).has_hd_version is False

    def test_best_quality_url(self, sample_apod):
        assert sample_apod.best_quality_url == sample_apod.hdurl
        assert sample_apod.model_copy(update={"hdurl": None}).best_quality_url == sample_apod.url

    def test_media_type_flags(self, sample_apod, sample_video_apod):
        assert sample_apod.is_image and not sample_apod.is_video
        assert sample_video_apod.is_video and not sample_video_apod.is_image
        assert MediaType.VIDEO.display_name == "Video"

    def test_asset_url(self, sample_apod, sample_video_apod):
        assert sample_apod.asset_url == sample_apod.hdurl
        assert sample_video_apod.asset_url == sample_video_apod.thumbnail_url
        assert sample_video_apod.model_copy(update={"thumbnail_url": None}).asset_url is None


class TestValidation:
    TODAY = date(2024, 6, 1)

    def test_valid_record_passes(self, sample_apod):
        sample_apod.validate_content(today=self.TODAY)

    @pytest.mark.parametrize(
        "update,reason",
        [
            ({"date": ""}, "Date is empty"),
            ({"title": ""}, "Title is empty"),
            ({"url": ""}, "Invalid URL"),
            ({"url": "not a url"}, "Invalid URL"),
            ({"date": "2024-1-15"}, "Invalid date format"),
        ],
    )
    def test_invalid_fields(self, sample_apod, update, reason):
        with pytest.raises(InvalidDataError) as exc_info:
            sample_apod.model_copy(update=update).validate_content(today=self.TODAY)
        assert exc_info.value.reason == reason

    def test_date_before_earliest(self, sample_apod):
        with pytest.raises(InvalidDateRangeError) as exc_info:
            sample_apod.model_copy(update={"date": "1995-06-15"}).validate_content(today=self.TODAY)
        assert exc_info.value.earliest == date(1995, 6, 16)

    def test_future_date(self, sample_apod):
        with pytest.raises(InvalidDateRangeError):
            sample_apod.model_copy(update={"date": "2024-06-02"}).validate_content(today=self.TODAY)

    def test_boundaries_are_inclusive(self, sample_apod):
        sample_apod.model_copy(update={"date": "1995-06-16"}).validate_content(today=self.TODAY)
        sample_apod.model_copy(update={"date": "2024-06-01"}).validate_content(today=self.TODAY)

    def test_date_range_error_is_invalid_data(self):
        assert issubclass(InvalidDateRangeError, InvalidDataError)


class TestSerialization:
    def test_round_trip_preserves_all_fields(self, sample_apod, sample_video_apod):
        for apod in (sample_apod, sample_video_apod):
            assert APOD.from_json(apod.to_json()) == apod

    def test_serialization_is_byte_stable(self, sample_apod):
        encoded = sample_apod.to_json()
        assert APOD.from_json(encoded).to_json() == encoded

    def test_keys_sorted_and_none_omitted(self, sample_video_apod):
        payload = json.loads(sample_video_apod.to_json())
        assert list(payload) == sorted(payload)
        assert "hdurl" not in payload
        assert payload["media_type"] == "video"
