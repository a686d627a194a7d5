"""Unit tests for HTTP range streaming."""

from pathlib import Path

import pytest
from flask import Flask

from home_gallery.errors import RangeNotSatisfiableError
from home_gallery.web.streaming import (
    audio_content_type,
    iter_file_range,
    parse_range_header,
    stream_file,
    video_content_type,
)

PAYLOAD = bytes(range(10))


@pytest.fixture
def video(tmp_path: Path) -> Path:
    path = tmp_path / "v.mp4"
    path.write_bytes(PAYLOAD)
    return path


@pytest.fixture
def app():
    app = Flask(__name__)
    with app.test_request_context():
        yield app


class TestParseRangeHeader:
    """Tests for parse_range_header."""

    @pytest.mark.parametrize("header,expected", [
        ("bytes=2-5", (2, 5)),
        ("bytes=0-", (0, 9)),
        ("bytes=4-100", (4, 9)),
        ("bytes=-3", (7, 9)),
        ("bytes=-50", (0, 9)),
        ("bytes = 1 - 2", (1, 2)),
    ])
    def test_valid(self, header, expected):
        assert parse_range_header(header, 10) == expected

    @pytest.mark.parametrize("header", [None, "", "items=0-5", "0-5"])
    def test_no_byte_range(self, header):
        assert parse_range_header(header, 10) is None

    @pytest.mark.parametrize("header", [
        "bytes=20-",
        "bytes=10-12",
        "bytes=5-2",
        "bytes=-0",
        "bytes=0-1,3-4",
        "bytes=abc",
        "bytes=-",
    ])
    def test_unsatisfiable(self, header):
        with pytest.raises(RangeNotSatisfiableError) as exc:
            parse_range_header(header, 10)
        assert exc.value.size == 10

    def test_empty_file(self):
        with pytest.raises(RangeNotSatisfiableError):
            parse_range_header("bytes=0-", 0)

    def test_served_length_matches_range(self):
        for start in range(10):
            for end in range(start, 15):
                first, last = parse_range_header(f"bytes={start}-{end}", 10)
                assert first == start
                assert last - first + 1 == min(end, 9) - start + 1


class TestIterFileRange:

    def test_chunks_cover_range(self, video):
        chunks = list(iter_file_range(video, 1, 8, chunk_size=3))
        assert chunks == [PAYLOAD[1:4], PAYLOAD[4:7], PAYLOAD[7:9]]


class TestStreamFile:
    """Tests for stream_file responses."""

    def test_partial_content(self, app, video):
        response = stream_file(video, "bytes=2-5", "video/mp4")

        assert response.status_code == 206
        assert response.headers["Content-Range"] == "bytes 2-5/10"
        assert response.headers["Content-Length"] == "4"
        assert response.headers["Accept-Ranges"] == "bytes"
        assert b"".join(response.response) == PAYLOAD[2:6]

    def test_full_content(self, app, video):
        response = stream_file(video, None, "video/mp4")

        assert response.status_code == 200
        assert "Content-Range" not in response.headers
        assert response.headers["Content-Length"] == "10"
        assert response.headers["Cache-Control"] == "public, max-age=86400"
        assert response.mimetype == "video/mp4"
        assert b"".join(response.response) == PAYLOAD

    def test_unsatisfiable(self, app, video):
        with pytest.raises(RangeNotSatisfiableError):
            stream_file(video, "bytes=20-", "video/mp4")

    def test_empty_file(self, app, tmp_path):
        empty = tmp_path / "empty.mp3"
        empty.write_bytes(b"")

        response = stream_file(empty, None, "audio/mpeg")

        assert response.status_code == 200
        assert response.headers["Content-Length"] == "0"
        assert b"".join(response.response) == b""


class TestContentTypes:

    @pytest.mark.parametrize("name,expected", [
        ("a.mp4", "video/mp4"),
        ("a.MOV", "video/quicktime"),
        ("a.webm", "video/webm"),
        ("a.xyz", "video/mp4"),
    ])
    def test_video(self, name, expected):
        assert video_content_type(name) == expected

    @pytest.mark.parametrize("name,expected", [
        ("a.mp3", "audio/mpeg"),
        ("a.flac", "audio/flac"),
        ("a.M4A", "audio/mp4"),
    ])
    def test_audio(self, name, expected):
        assert audio_content_type(name) == expected
