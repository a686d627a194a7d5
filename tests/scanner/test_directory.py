"""Unit tests for scanner.directory module."""

import pytest

from home_gallery.models import is_image_file
from home_gallery.scanner.directory import (
    has_direct_images,
    iter_media_files,
    list_folders_with_direct_images,
    list_image_paths,
    list_music_paths,
)


def _touch(root, *rel_paths):
    for rel in rel_paths:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x")


@pytest.fixture
def tree(tmp_path):
    """
    media/
        top.jpg
        2019/christmas/IMG_1.jpg, IMG_2.JPG, ._IMG_1.jpg
        2019/christmas/clip.mp4
        europe/paris/p.png
        only_nested/deeper/d.jpg
        videos_only/v.mov
        .thumbnails/2019/christmas/IMG_1.jpg.jpg
        notes/readme.txt
    """
    root = tmp_path / "media"
    _touch(
        root,
        "top.jpg",
        "2019/christmas/IMG_1.jpg",
        "2019/christmas/IMG_2.JPG",
        "2019/christmas/._IMG_1.jpg",
        "2019/christmas/clip.mp4",
        "europe/paris/p.png",
        "only_nested/deeper/d.jpg",
        "videos_only/v.mov",
        ".thumbnails/2019/christmas/IMG_1.jpg.jpg",
        "notes/readme.txt",
    )
    return root


class TestIterMediaFiles:
    """Tests for iter_media_files() function."""

    def test_yields_images_and_videos(self, tree):
        rel = [p.relative_to(tree).as_posix() for p in iter_media_files(tree)]

        assert rel == [
            "top.jpg",
            "2019/christmas/IMG_1.jpg",
            "2019/christmas/IMG_2.JPG",
            "2019/christmas/clip.mp4",
            "europe/paris/p.png",
            "only_nested/deeper/d.jpg",
            "videos_only/v.mov",
        ]

    def test_skips_thumbnail_dir_and_resource_forks(self, tree):
        rel = {p.relative_to(tree).as_posix() for p in iter_media_files(tree)}

        assert not any(r.startswith(".thumbnails") for r in rel)
        assert "2019/christmas/._IMG_1.jpg" not in rel

    def test_custom_filter(self, tree):
        rel = [p.name for p in iter_media_files(tree, accept=is_image_file)]
        assert "clip.mp4" not in rel
        assert "v.mov" not in rel

    def test_missing_root(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list(iter_media_files(tmp_path / "missing"))


class TestFolders:
    """Tests for folder listing."""

    def test_list_folders_with_direct_images(self, tree):
        assert list_folders_with_direct_images(tree) == [
            "2019/christmas",
            "europe/paris",
            "only_nested/deeper",
        ]

    def test_parent_without_direct_images_excluded(self, tree):
        folders = list_folders_with_direct_images(tree)
        assert "2019" not in folders
        assert "only_nested" not in folders
        assert "videos_only" not in folders

    def test_resource_fork_only_folder_excluded(self, tmp_path):
        _touch(tmp_path, "forks/._a.jpg", "real/b.jpg")
        assert list_folders_with_direct_images(tmp_path) == ["real"]

    def test_has_direct_images(self, tree):
        assert has_direct_images(tree / "europe" / "paris")
        assert not has_direct_images(tree / "europe")

    def test_empty_root(self, tmp_path):
        assert list_folders_with_direct_images(tmp_path) == []


class TestImageAndMusicPaths:

    def test_list_image_paths(self, tree):
        assert list_image_paths(tree) == [
            "top.jpg",
            "2019/christmas/IMG_1.jpg",
            "2019/christmas/IMG_2.JPG",
            "europe/paris/p.png",
            "only_nested/deeper/d.jpg",
        ]

    def test_list_music_paths(self, tmp_path):
        _touch(tmp_path, "b/song.mp3", "a.flac", "cover.jpg", "._a.mp3")
        assert list_music_paths(tmp_path) == ["a.flac", "b/song.mp3"]

    def test_list_music_paths_missing_root(self, tmp_path):
        assert list_music_paths(tmp_path / "none") == []
