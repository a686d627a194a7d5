"""Unit tests for models.record module."""

from dataclasses import FrozenInstanceError
from datetime import date, datetime

import pytest

from home_gallery.models import DateSource, MediaKind, MediaRecord, validate_rel_path


def _image(**overrides):
    fields = dict(
        rel_path="2019/christmas/IMG_0001.jpg",
        media_kind=MediaKind.IMAGE,
        capture_date=date(2019, 12, 25),
        date_source=DateSource.EXIF,
    )
    fields.update(overrides)
    return MediaRecord(**fields)


class TestMediaRecord:
    """Tests for MediaRecord dataclass."""

    def test_calendar_fields_derived(self):
        record = _image()

        assert (record.year, record.month, record.day) == (2019, 12, 25)

    def test_calendar_fields_not_settable(self):
        with pytest.raises(TypeError):
            MediaRecord(
                rel_path="a.jpg", media_kind=MediaKind.IMAGE,
                capture_date=date(2020, 1, 1), date_source=DateSource.EXIF, year=1999,
            )

    def test_datetime_capture_date_truncated(self):
        record = _image(capture_date=datetime(2020, 5, 10, 23, 59))
        assert record.capture_date == date(2020, 5, 10)

    def test_image_with_video_fields_rejected(self):
        with pytest.raises(ValueError):
            _image(video_duration_sec=10)
        with pytest.raises(ValueError):
            _image(video_resolution="1920x1080")

    def test_video_fields(self):
        record = _image(
            rel_path="clip.mp4", media_kind=MediaKind.VIDEO,
            video_duration_sec=12, video_resolution="1920x1080",
        )
        assert record.is_video
        assert record.video_duration_sec == 12

    def test_frozen(self):
        record = _image()
        with pytest.raises(FrozenInstanceError):
            record.camera_model = "Canon"

    def test_with_changes_recomputes_calendar(self):
        record = _image().with_changes(capture_date=date(2021, 7, 4))
        assert (record.year, record.month, record.day) == (2021, 7, 4)

    def test_years_ago(self):
        assert _image().years_ago(date(2024, 12, 25)) == 5

    def test_to_dict(self):
        result = _image(camera_model="Canon EOS R5").to_dict()

        assert result["rel_path"] == "2019/christmas/IMG_0001.jpg"
        assert result["media_kind"] == "image"
        assert result["capture_date"] == "2019-12-25"
        assert result["date_source"] == "exif"
        assert result["month"] == 12
        assert result["camera_model"] == "Canon EOS R5"
        assert result["created_at"] is None


class TestValidateRelPath:

    def test_valid(self):
        assert validate_rel_path("a/b/c.jpg") == "a/b/c.jpg"

    @pytest.mark.parametrize("value", ["", "/abs.jpg", "a\\b.jpg", "a/../b.jpg", "a//b.jpg", "./a.jpg"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            validate_rel_path(value)

    def test_record_validates_rel_path(self):
        with pytest.raises(ValueError):
            _image(rel_path="../escape.jpg")
