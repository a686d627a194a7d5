"""
Test configuration management.
"""

from pathlib import Path

import pytest

from home_gallery.config import (
    GalleryConfig,
    ThumbnailConfig,
    load_config,
    with_overrides,
)


class TestGalleryConfig:
    """Test configuration classes."""

    def test_defaults(self, tmp_path):
        """Test default configuration values."""
        config = GalleryConfig(media_root=tmp_path)

        assert config.music_root is None
        assert config.database.uri == "sqlite:///home_gallery.db"
        assert config.thumbnails.edge_px == 400
        assert config.thumbnails.quality == 85
        assert config.thumbnails.hidden_dir == ".thumbnails"
        assert config.indexer.workers == 4
        assert config.indexer.probe_timeout == 30.0
        assert config.schedule.auto_index_cron == "02:00 daily"
        assert config.schedule.notification_cron == "09:00 daily"
        assert config.slideshow.session_ttl_seconds == 3600
        assert config.memories.batch_size == 12
        assert config.web.port == 5100

    def test_thumbnail_root(self, tmp_path):
        config = GalleryConfig(media_root=tmp_path)
        assert config.thumbnail_root == tmp_path / ".thumbnails"

    def test_from_dict(self, tmp_path):
        """Test building config from parsed YAML."""
        config = GalleryConfig.from_dict({
            "media_root": str(tmp_path),
            "music_root": str(tmp_path / "music"),
            "thumbnails": {"edge_px": 200},
            "schedule": {"auto_index_enabled": False},
        })

        assert config.media_root == tmp_path
        assert config.music_root == tmp_path / "music"
        assert config.thumbnails.edge_px == 200
        assert config.thumbnails.quality == 85
        assert config.schedule.auto_index_enabled is False

    def test_from_dict_requires_media_root(self):
        with pytest.raises(ValueError, match="media_root"):
            GalleryConfig.from_dict({})

    def test_from_dict_rejects_unknown_keys(self, tmp_path):
        with pytest.raises(TypeError):
            GalleryConfig.from_dict({"media_root": str(tmp_path), "thumbnails": {"size": 3}})

    @pytest.mark.parametrize("quality", [0, 101])
    def test_quality_validated(self, tmp_path, quality):
        with pytest.raises(ValueError, match="quality"):
            GalleryConfig(media_root=tmp_path, thumbnails=ThumbnailConfig(quality=quality))

    def test_to_dict(self, tmp_path):
        """Test converting config to dictionary."""
        config_dict = GalleryConfig(media_root=tmp_path).to_dict()

        assert config_dict["media_root"] == str(tmp_path)
        assert config_dict["music_root"] is None
        assert config_dict["thumbnails"]["edge_px"] == 400
        assert config_dict["indexer"]["workers"] == 4

    def test_config_is_immutable(self, tmp_path):
        config = GalleryConfig(media_root=tmp_path)
        with pytest.raises(AttributeError):
            config.media_root = Path("/elsewhere")

    def test_with_overrides(self, tmp_path):
        config = GalleryConfig(media_root=tmp_path)
        changed = with_overrides(config, music_root=tmp_path / "music")

        assert changed.music_root == tmp_path / "music"
        assert config.music_root is None


class TestLoadConfig:
    """Test loading configuration files."""

    def test_load_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("HOME_GALLERY_MEDIA_ROOT", raising=False)
        monkeypatch.delenv("HOME_GALLERY_DB_URI", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            f"media_root: {tmp_path}\n"
            "thumbnails:\n"
            "  quality: 70\n"
            "indexer:\n"
            "  workers: 8\n"
        )

        config = load_config(config_file)

        assert config.media_root == tmp_path
        assert config.thumbnails.quality == 70
        assert config.indexer.workers == 8

    def test_environment_overrides(self, tmp_path, monkeypatch):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("media_root: /not/used\n")
        monkeypatch.setenv("HOME_GALLERY_MEDIA_ROOT", str(tmp_path))
        monkeypatch.setenv("HOME_GALLERY_DB_URI", "sqlite://")
        monkeypatch.setenv("HOME_GALLERY_LOG_LEVEL", "DEBUG")

        config = load_config(config_file)

        assert config.media_root == tmp_path
        assert config.database.uri == "sqlite://"
        assert config.logging.level == "DEBUG"

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_environment_only(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr("home_gallery.config.CONFIG_SEARCH_PATHS", [])
        monkeypatch.setenv("HOME_GALLERY_MEDIA_ROOT", str(tmp_path))

        config = load_config()

        assert config.media_root == tmp_path
