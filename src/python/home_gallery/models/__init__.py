"""Data models for home-gallery."""

from home_gallery.models.enums import (
    AUDIO_EXTENSIONS,
    IMAGE_EXTENSIONS,
    MEDIA_EXTENSIONS,
    VIDEO_EXTENSIONS,
    DateSource,
    MediaKind,
    file_extension,
    is_audio_file,
    is_image_file,
    is_media_file,
    is_resource_fork,
    is_video_file,
)
from home_gallery.models.record import MediaRecord, validate_rel_path

__all__ = [
    "AUDIO_EXTENSIONS",
    "IMAGE_EXTENSIONS",
    "MEDIA_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "DateSource",
    "MediaKind",
    "MediaRecord",
    "file_extension",
    "is_audio_file",
    "is_image_file",
    "is_media_file",
    "is_resource_fork",
    "is_video_file",
    "validate_rel_path",
]
