"""Unit tests for models.enums module."""

import pytest

from home_gallery.models import (
    DateSource,
    MediaKind,
    file_extension,
    is_audio_file,
    is_image_file,
    is_media_file,
    is_resource_fork,
    is_video_file,
)


class TestMediaKind:
    """Tests for MediaKind enum."""

    def test_values(self):
        assert MediaKind.IMAGE.value == "image"
        assert MediaKind.VIDEO.value == "video"

    @pytest.mark.parametrize("filename,expected", [
        ("IMG_0001.JPG", MediaKind.IMAGE),
        ("pic.jpeg", MediaKind.IMAGE),
        ("anim.gif", MediaKind.IMAGE),
        ("shot.webp", MediaKind.IMAGE),
        ("clip.MOV", MediaKind.VIDEO),
        ("clip.m4v", MediaKind.VIDEO),
        ("clip.wmv", MediaKind.VIDEO),
    ])
    def test_from_filename(self, filename, expected):
        assert MediaKind.from_filename(filename) is expected

    def test_from_filename_unknown(self):
        with pytest.raises(ValueError):
            MediaKind.from_filename("notes.txt")


class TestDateSource:

    def test_wire_values(self):
        assert [source.value for source in DateSource] == ["exif", "file-creation", "file-modified"]


class TestFileClassification:
    """Tests for filename predicates."""

    def test_file_extension(self):
        assert file_extension("a/b/IMG.JPG") == "jpg"
        assert file_extension("noext") == ""

    def test_resource_forks_excluded(self):
        assert is_resource_fork("._IMG_0001.jpg")
        assert not is_image_file("._IMG_0001.jpg")
        assert not is_video_file("._clip.mp4")
        assert not is_media_file("._clip.mp4")
        assert not is_audio_file("._song.mp3")

    def test_images_and_videos(self):
        assert is_image_file("a.png")
        assert not is_image_file("a.mp4")
        assert is_video_file("a.mkv")
        assert is_media_file("a.webm")
        assert not is_media_file("a.heic")

    def test_audio(self):
        assert is_audio_file("song.MP3")
        assert is_audio_file("song.flac")
        assert not is_media_file("song.mp3")
