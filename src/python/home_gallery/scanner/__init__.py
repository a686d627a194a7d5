"""Scanner module for discovering media files and probing their metadata."""

from home_gallery.scanner.directory import (
    iter_media_files,
    list_folders_with_direct_images,
    list_image_paths,
    list_music_paths,
)
from home_gallery.scanner.exif import ExifData, extract_exif_metadata
from home_gallery.scanner.probe import ProbeResult, probe_image, probe_video

__all__ = [
    "ExifData",
    "ProbeResult",
    "extract_exif_metadata",
    "iter_media_files",
    "list_folders_with_direct_images",
    "list_image_paths",
    "list_music_paths",
    "probe_image",
    "probe_video",
]
