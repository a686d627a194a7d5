"""Enumerations and file-type tables for home-gallery models."""

from enum import Enum
from pathlib import PurePosixPath
from typing import FrozenSet

IMAGE_EXTENSIONS: FrozenSet[str] = frozenset({"png", "jpg", "jpeg", "gif", "webp"})
VIDEO_EXTENSIONS: FrozenSet[str] = frozenset({"mp4", "mov", "avi", "mkv", "webm", "m4v", "wmv"})
AUDIO_EXTENSIONS: FrozenSet[str] = frozenset({"mp3", "m4a", "ogg", "wav", "flac"})
MEDIA_EXTENSIONS: FrozenSet[str] = IMAGE_EXTENSIONS | VIDEO_EXTENSIONS

# macOS resource-fork files ("._IMG_0001.jpg") are never media
RESOURCE_FORK_PREFIX = "._"


class MediaKind(Enum):
    """
    Kind of a catalogued media file.

    The value is the wire/storage representation.
    """
    IMAGE = "image"
    VIDEO = "video"

    @classmethod
    def from_filename(cls, filename: str) -> "MediaKind":
        """
        Classify a filename by extension.

        Raises:
            ValueError: If the extension is neither an image nor a video extension.
        """
        ext = file_extension(filename)
        if ext in IMAGE_EXTENSIONS:
            return cls.IMAGE
        if ext in VIDEO_EXTENSIONS:
            return cls.VIDEO
        raise ValueError(f"Not a media file: {filename}")


class DateSource(Enum):
    """Where a capture date came from, in order of precedence."""
    EXIF = "exif"
    FILE_CREATION = "file-creation"
    FILE_MODIFIED = "file-modified"


def file_extension(filename: str) -> str:
    """Lowercase extension without the leading dot (``"IMG.JPG" -> "jpg"``)."""
    return PurePosixPath(filename).suffix.lower().lstrip(".")


def is_resource_fork(filename: str) -> bool:
    """Check for macOS ``._`` metadata files."""
    return PurePosixPath(filename).name.startswith(RESOURCE_FORK_PREFIX)


def is_image_file(filename: str) -> bool:
    """Check if a filename is a slideshow-eligible image."""
    return not is_resource_fork(filename) and file_extension(filename) in IMAGE_EXTENSIONS


def is_video_file(filename: str) -> bool:
    """Check if a filename is a supported video."""
    return not is_resource_fork(filename) and file_extension(filename) in VIDEO_EXTENSIONS


def is_media_file(filename: str) -> bool:
    """Check if a filename should be indexed (image or video)."""
    return not is_resource_fork(filename) and file_extension(filename) in MEDIA_EXTENSIONS


def is_audio_file(filename: str) -> bool:
    """Check if a filename is playable slideshow music."""
    return not is_resource_fork(filename) and file_extension(filename) in AUDIO_EXTENSIONS
