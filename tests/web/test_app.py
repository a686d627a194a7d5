"""Tests for the Flask web service."""

from datetime import date

import pytest

from home_gallery.config import GalleryConfig
from home_gallery.models import DateSource, MediaKind, MediaRecord
from home_gallery.web import create_app


def touch(root, rel_path, data=b"data"):
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def app(gallery_config, catalogue):
    return create_app(gallery_config, catalogue=catalogue)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def christmas(catalogue):
    catalogue.upsert(MediaRecord(
        rel_path="2019/xmas.jpg", media_kind=MediaKind.IMAGE,
        capture_date=date(2019, 12, 25), date_source=DateSource.EXIF,
    ))
    catalogue.upsert(MediaRecord(
        rel_path="2022/xmas.mp4", media_kind=MediaKind.VIDEO,
        capture_date=date(2022, 12, 25), date_source=DateSource.FILE_MODIFIED,
        video_duration_sec=12, video_resolution="1920x1080",
    ))


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.get_json()["status"] == "ok"
        assert response.get_json()["totalInDb"] == 0

    def test_unknown_route_is_404(self, client):
        assert client.get("/api/nope").status_code == 404

    def test_unexpected_error_is_internal(self, app, client, mocker):
        mocker.patch.object(app.extensions["home_gallery"].catalogue, "count",
                            side_effect=RuntimeError("database on fire"))

        response = client.get("/api/health")

        assert response.status_code == 500
        assert response.get_json() == {"error": "internal"}


class TestSlideshowRoutes:
    """Tests for the slideshow pull protocol over HTTP."""

    def test_folders_list(self, client, media_root):
        touch(media_root, "a/1.jpg")
        touch(media_root, "b/c/2.jpg")
        touch(media_root, "d/readme.txt")

        assert client.get("/api/folders/list").get_json() == ["a", "b/c"]

    def test_next_uses_cookie_session(self, client, media_root):
        touch(media_root, "a/1.jpg")
        touch(media_root, "a/2.jpg")
        body = {"selectedFolders": ["a"]}

        first = client.post("/api/images/next", json=body).get_json()
        second = client.post("/api/images/next", json=body).get_json()

        assert [first["image"], second["image"]] == ["a/1.jpg", "a/2.jpg"]
        assert second["totalShown"] == 2
        assert second["hasMore"] is False

    def test_clients_do_not_share_sessions(self, app, media_root):
        touch(media_root, "a/1.jpg")
        touch(media_root, "a/2.jpg")

        first = app.test_client().post("/api/images/next", json={}).get_json()
        other = app.test_client().post("/api/images/next", json={}).get_json()

        assert first["image"] == other["image"] == "a/1.jpg"

    def test_list_and_reset(self, client, media_root):
        touch(media_root, "a/1.jpg")
        touch(media_root, "a/2.jpg")

        assert client.post("/api/images/list", json={}).get_json() == ["a/1.jpg", "a/2.jpg"]
        client.post("/api/images/next", json={})
        assert client.post("/api/images/list", json={}).get_json() == ["a/2.jpg"]

        assert client.post("/api/images/reset").get_json() == {"status": "reset"}
        assert client.post("/api/images/list", json={}).get_json() == ["a/1.jpg", "a/2.jpg"]

    def test_bad_body_is_400(self, client):
        response = client.post("/api/images/next", json={"selectedFolders": "a"})

        assert response.status_code == 400
        assert response.get_json()["error"] == "bad-request"


class TestMediaRoutes:
    """Tests for image, video and music serving."""

    def test_serve_image(self, client, media_root):
        touch(media_root, "trip 2019/IMG_1.jpg", b"jpeg-bytes")

        response = client.get("/images/trip%202019/IMG_1.jpg")

        assert response.status_code == 200
        assert response.data == b"jpeg-bytes"

    def test_missing_image_is_404(self, client):
        response = client.get("/images/missing.jpg")

        assert response.status_code == 404
        assert response.get_json()["error"] == "not-found"

    def test_symlink_escape_is_400(self, client, media_root, tmp_path):
        secret = touch(tmp_path, "secret.jpg", b"secret")
        (media_root / "link.jpg").symlink_to(secret)

        response = client.get("/images/link.jpg")

        assert response.status_code == 400
        assert response.get_json()["error"] == "bad-path"

    @pytest.mark.parametrize("url", [
        "/images/..%2F..%2Fsecret.jpg",
        "/api/videos/..%2Fsecret.jpg",
    ])
    def test_encoded_traversal_never_served(self, client, tmp_path, url):
        touch(tmp_path, "secret.jpg", b"secret")

        response = client.get(url)

        assert response.status_code in (400, 404)
        assert b"secret" != response.data

    def test_video_range(self, client, media_root):
        touch(media_root, "v.mp4", bytes(range(10)))

        partial = client.get("/api/videos/v.mp4", headers={"Range": "bytes=2-5"})
        assert partial.status_code == 206
        assert partial.headers["Content-Range"] == "bytes 2-5/10"
        assert partial.headers["Content-Length"] == "4"
        assert partial.data == bytes([2, 3, 4, 5])

        unsatisfiable = client.get("/api/videos/v.mp4", headers={"Range": "bytes=20-"})
        assert unsatisfiable.status_code == 416
        assert unsatisfiable.headers["Content-Range"] == "bytes */10"

    def test_video_full(self, client, media_root):
        touch(media_root, "clips/v.mov", b"0123456789")

        response = client.get("/api/videos/clips/v.mov")

        assert response.status_code == 200
        assert response.mimetype == "video/quicktime"
        assert response.data == b"0123456789"

    def test_list_videos(self, client, christmas):
        response = client.get("/api/videos").get_json()

        assert response["count"] == 1
        assert response["videos"][0]["filePath"] == "2022/xmas.mp4"
        assert response["videos"][0]["videoResolution"] == "1920x1080"

    def test_music_without_root_is_404(self, client):
        assert client.get("/api/music/list").status_code == 404
        assert client.get("/music/song.mp3").status_code == 404

    def test_music(self, gallery_config, catalogue, tmp_path):
        music_root = tmp_path / "music"
        touch(music_root, "b/2.mp3", b"ID3")
        touch(music_root, "a/1.flac", b"fLaC")
        touch(music_root, "a/cover.jpg")
        config = GalleryConfig.from_dict({
            **gallery_config.to_dict(), "music_root": str(music_root),
        })
        client = create_app(config, catalogue=catalogue).test_client()

        assert client.get("/api/music/list").get_json() == ["a/1.flac", "b/2.mp3"]
        response = client.get("/music/a/1.flac", headers={"Range": "bytes=0-1"})
        assert response.status_code == 206
        assert response.mimetype == "audio/flac"
        assert response.data == b"fL"


class TestMemoriesRoutes:
    """Tests for the memories API."""

    def test_config(self, client):
        assert client.get("/api/memories/config").get_json() == {"batchSize": 12}

    def test_memories_for_date(self, client, christmas):
        response = client.get("/api/memories/date/12/25").get_json()

        assert response["count"] == 2
        assert {m["filePath"] for m in response["memories"]} == {"2019/xmas.jpg", "2022/xmas.mp4"}
        assert response["month"] == 12
        assert response["day"] == 25

    def test_calendar(self, client, christmas):
        response = client.get("/api/memories/calendar/2024/12").get_json()

        assert response["counts"]["25"] == 2
        assert response["year"] == 2024

    @pytest.mark.parametrize("url", [
        "/api/memories/date/13/1",
        "/api/memories/date/12/32",
        "/api/memories/calendar/2024/0",
    ])
    def test_invalid_dates_are_400(self, client, url):
        response = client.get(url)

        assert response.status_code == 400
        assert response.get_json()["error"] == "bad-request"

    def test_today(self, client, catalogue):
        today = date.today()
        catalogue.upsert(MediaRecord(
            rel_path="old/today.jpg", media_kind=MediaKind.IMAGE,
            capture_date=date(2001, today.month, min(today.day, 28)),
            date_source=DateSource.EXIF,
        ))
        expected = 1 if today.day <= 28 else 0

        assert client.get("/api/memories/today/count").get_json() == {"count": expected}
        assert client.get("/api/memories/today").get_json()["count"] == expected

    def test_index_endpoint(self, client, media_root, jpeg_factory, no_ffmpeg):
        jpeg_factory(media_root / "2020/a.jpg")

        summary = client.post("/api/memories/index").get_json()

        assert summary["indexed"] == 1
        assert summary["errors"] == 0
        assert summary["total_in_db"] == 1
        assert client.get("/api/health").get_json()["totalInDb"] == 1

    def test_notification_pending_and_shown(self, app, client):
        assert client.get("/api/memories/notification/pending").get_json() == {"hasPending": False}

        app.extensions["home_gallery"].notifications.enqueue_browser_notification(
            "Memories", "You have 2 photos from this day in previous years!", 2)

        pending = client.get("/api/memories/notification/pending").get_json()
        assert pending == {
            "hasPending": True,
            "count": 2,
            "message": "You have 2 photos from this day in previous years!",
        }

        assert client.post("/api/memories/notification/shown").get_json() == {"success": True}
        assert client.get("/api/memories/notification/pending").get_json() == {"hasPending": False}
