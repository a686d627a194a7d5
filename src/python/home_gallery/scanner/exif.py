"""
EXIF metadata extraction for image files.

This module extracts the capture timestamp and camera identity from images:
- Pillow reads EXIF from JPEG, PNG, WebP and friends
- exifread is the fallback when Pillow cannot open the file or finds nothing

Extracted metadata includes:
- Capture timestamp (DateTimeOriginal, then DateTimeDigitized, then DateTime)
- Camera make and model
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

# EXIF tag ids
_TAG_MAKE = 0x010F
_TAG_MODEL = 0x0110
_TAG_DATETIME = 0x0132
_TAG_EXIF_IFD = 0x8769
_TAG_DATETIME_ORIGINAL = 0x9003
_TAG_DATETIME_DIGITIZED = 0x9004


class ExifData:
    """
    Container for extracted EXIF metadata.

    Attributes:
        captured_at: When the photo was taken (naive local time, as cameras record it)
        camera_make: Camera manufacturer
        camera_model: Camera model name
    """

    def __init__(
        self,
        captured_at: Optional[datetime] = None,
        camera_make: Optional[str] = None,
        camera_model: Optional[str] = None,
    ):
        self.captured_at = captured_at
        self.camera_make = camera_make
        self.camera_model = camera_model

    @property
    def camera_label(self) -> Optional[str]:
        """"<make> <model>" when both are known, otherwise whichever is."""
        if self.camera_make and self.camera_model:
            return f"{self.camera_make} {self.camera_model}"
        return self.camera_model or self.camera_make

    def to_dict(self) -> Dict[str, Optional[str | datetime]]:
        """Convert to dictionary for easy attribute assignment."""
        return {
            "captured_at": self.captured_at,
            "camera_make": self.camera_make,
            "camera_model": self.camera_model,
        }


def extract_exif_metadata(file_path: Path) -> Optional[ExifData]:
    """
    Extract EXIF metadata from an image file.

    Returns None if the file cannot be read or has no EXIF data.

    Args:
        file_path: Path to the image file

    Returns:
        ExifData object with extracted metadata, or None if extraction fails

    Example:
        >>> exif = extract_exif_metadata(Path("/photos/IMG_1234.jpg"))
        >>> if exif:
        ...     print(f"Captured: {exif.captured_at}")
        ...     print(f"Camera: {exif.camera_label}")
    """
    if not file_path.exists() or not file_path.is_file():
        logger.warning("File not found or not a file: %s", file_path)
        return None

    if file_path.stat().st_size == 0:
        logger.warning("File is empty (0 bytes): %s", file_path)
        return None

    try:
        exif = _extract_with_pillow(file_path)
        if exif is None or exif.captured_at is None:
            fallback = _extract_with_exifread(file_path)
            if fallback is not None and (exif is None or fallback.captured_at is not None):
                exif = fallback
    except Exception as e:
        logger.warning("Failed to extract EXIF from %s: %s", file_path, e)
        return None
    return exif


def _extract_with_pillow(file_path: Path) -> Optional[ExifData]:
    """
    Extract EXIF metadata using Pillow/PIL.

    Args:
        file_path: Path to the image file

    Returns:
        ExifData object or None if extraction fails
    """
    from PIL import Image, UnidentifiedImageError

    try:
        with Image.open(file_path) as img:
            exif_data = img.getexif()

            if not exif_data:
                logger.debug("No valid EXIF data found in %s", file_path)
                return None

            # DateTimeOriginal lives in the Exif sub-IFD, not IFD0
            sub_ifd = exif_data.get_ifd(_TAG_EXIF_IFD)

            captured_at = _parse_datetime(
                sub_ifd.get(_TAG_DATETIME_ORIGINAL) or
                sub_ifd.get(_TAG_DATETIME_DIGITIZED) or
                exif_data.get(_TAG_DATETIME)
            )

            return ExifData(
                captured_at=captured_at,
                camera_make=_clean_string(exif_data.get(_TAG_MAKE)),
                camera_model=_clean_string(exif_data.get(_TAG_MODEL)),
            )

    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
        logger.debug("Pillow failed to extract EXIF from %s: %s", file_path, e)
        return None


def _extract_with_exifread(file_path: Path) -> Optional[ExifData]:
    """
    Extract EXIF metadata using exifread library.

    Args:
        file_path: Path to the image file

    Returns:
        ExifData object or None if extraction fails
    """
    import exifread

    try:
        with open(file_path, 'rb') as f:
            tags = exifread.process_file(f, details=False)
    except Exception as e:
        logger.debug("exifread failed to extract EXIF from %s: %s", file_path, e)
        return None

    if not tags:
        logger.debug("No EXIF data found in %s", file_path)
        return None

    captured_at = _parse_datetime(
        tags.get("EXIF DateTimeOriginal") or
        tags.get("EXIF DateTimeDigitized") or
        tags.get("Image DateTime")
    )

    return ExifData(
        captured_at=captured_at,
        camera_make=_clean_string(tags.get("Image Make")),
        camera_model=_clean_string(tags.get("Image Model")),
    )


def _parse_datetime(value) -> Optional[datetime]:
    """
    Parse EXIF datetime to datetime object.

    Works with both string values and exifread tag objects.
    EXIF datetime format: "YYYY:MM:DD HH:MM:SS"

    Args:
        value: EXIF datetime (string or exifread tag)

    Returns:
        datetime object or None if parsing fails
    """
    if not value:
        return None

    try:
        datetime_str = str(value).strip().rstrip("\x00")
        return datetime.strptime(datetime_str, "%Y:%m:%d %H:%M:%S")
    except (ValueError, TypeError) as e:
        logger.debug("Failed to parse datetime '%s': %s", value, e)
        return None


def _clean_string(value) -> Optional[str]:
    """
    Clean and normalize a string value from EXIF.

    Removes trailing nulls, extra whitespace, etc.

    Args:
        value: Raw string value (or exifread tag)

    Returns:
        Cleaned string or None
    """
    if value is None:
        return None

    value = str(value).strip().rstrip("\x00").strip()

    return value or None
