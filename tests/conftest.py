"""Pytest configuration and shared fixtures."""

from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image

from home_gallery.config import GalleryConfig
from home_gallery.db import MediaCatalogue

DATETIME = 0x0132
MAKE = 0x010F
MODEL = 0x0110


def make_jpeg(
    path: Path,
    size=(64, 48),
    color=(200, 40, 40),
    captured_at: Optional[datetime] = None,
    make: Optional[str] = None,
    model: Optional[str] = None,
) -> Path:
    """Write a real JPEG, optionally with EXIF capture date and camera."""
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new("RGB", size, color)
    exif = Image.Exif()
    if make:
        exif[MAKE] = make
    if model:
        exif[MODEL] = model
    if captured_at:
        exif[DATETIME] = captured_at.strftime("%Y:%m:%d %H:%M:%S")
    if len(exif):
        img.save(path, "JPEG", exif=exif)
    else:
        img.save(path, "JPEG")
    return path


@pytest.fixture
def media_root(tmp_path: Path) -> Path:
    root = tmp_path / "media"
    root.mkdir()
    return root


@pytest.fixture
def gallery_config(tmp_path: Path, media_root: Path) -> GalleryConfig:
    """Config pointing at an empty media root and a file-backed SQLite DB."""
    return GalleryConfig.from_dict({
        "media_root": str(media_root),
        "database": {"uri": f"sqlite:///{tmp_path / 'gallery.db'}"},
        "indexer": {"workers": 2, "probe_timeout": 5},
    })


@pytest.fixture
def catalogue(gallery_config: GalleryConfig):
    catalogue = MediaCatalogue(gallery_config.database.uri)
    catalogue.create_schema()
    yield catalogue
    catalogue.dispose()


@pytest.fixture
def no_ffmpeg(mocker):
    """Pretend ffprobe/ffmpeg are not installed."""
    return mocker.patch("subprocess.run", side_effect=FileNotFoundError("ffmpeg"))


@pytest.fixture
def jpeg_factory():
    """The ``make_jpeg`` helper, for tests in subpackages."""
    return make_jpeg
