"""
MediaRecord - one catalogued photo or video.

A MediaRecord is a plain value. The calendar fields (year, month, day) are
derived from ``capture_date`` on construction and cannot be set directly, so
the on-this-day index always agrees with the capture date.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Dict, Optional

from home_gallery.models.enums import DateSource, MediaKind


def validate_rel_path(rel_path: str) -> str:
    """
    Check that a catalogue key is a clean forward-slash relative path.

    Raises:
        ValueError: If the path is empty, absolute, uses backslashes or has
                    an empty, ``.`` or ``..`` segment.
    """
    if not rel_path:
        raise ValueError("rel_path must not be empty")
    if "\\" in rel_path or rel_path.startswith("/"):
        raise ValueError(f"rel_path must be a forward-slash relative path: {rel_path!r}")
    if any(part in ("", ".", "..") for part in rel_path.split("/")):
        raise ValueError(f"rel_path has an invalid segment: {rel_path!r}")
    return rel_path


@dataclass(frozen=True)
class MediaRecord:
    """
    Catalogue entry for a single media file.

    Attributes:
        rel_path: Path relative to the media root, forward-slash separated (unique key)
        media_kind: IMAGE or VIDEO
        capture_date: Local calendar date the media was captured
        date_source: Where capture_date came from
        camera_model: "<make> <model>" from EXIF, if known
        file_size: Size in bytes
        video_duration_sec: Rounded duration (videos only)
        video_resolution: "WIDTHxHEIGHT" or "Unknown" (videos only)
        thumbnail_rel_path: Thumbnail location under the hidden thumbnail directory
        id: Catalogue identifier, None until stored
        last_scanned / created_at / updated_at: Bookkeeping timestamps
        year / month / day: Derived from capture_date
    """
    rel_path: str
    media_kind: MediaKind
    capture_date: date
    date_source: DateSource
    camera_model: Optional[str] = None
    file_size: Optional[int] = None
    video_duration_sec: Optional[int] = None
    video_resolution: Optional[str] = None
    thumbnail_rel_path: Optional[str] = None
    id: Optional[int] = None
    last_scanned: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    year: int = field(init=False)
    month: int = field(init=False)
    day: int = field(init=False)

    def __post_init__(self):
        validate_rel_path(self.rel_path)
        if isinstance(self.capture_date, datetime):
            object.__setattr__(self, "capture_date", self.capture_date.date())
        if self.media_kind is MediaKind.IMAGE and (
            self.video_duration_sec is not None or self.video_resolution is not None
        ):
            raise ValueError(f"Image record cannot carry video fields: {self.rel_path}")
        object.__setattr__(self, "year", self.capture_date.year)
        object.__setattr__(self, "month", self.capture_date.month)
        object.__setattr__(self, "day", self.capture_date.day)

    @property
    def is_video(self) -> bool:
        return self.media_kind is MediaKind.VIDEO

    def years_ago(self, today: Optional[date] = None) -> int:
        """Number of calendar years between capture and ``today``."""
        today = today or date.today()
        return today.year - self.year

    def with_changes(self, **changes: Any) -> "MediaRecord":
        """Return a copy with fields replaced (derived fields are recomputed)."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary with enum values flattened."""
        return {
            "id": self.id,
            "rel_path": self.rel_path,
            "media_kind": self.media_kind.value,
            "capture_date": self.capture_date.isoformat(),
            "date_source": self.date_source.value,
            "year": self.year,
            "month": self.month,
            "day": self.day,
            "camera_model": self.camera_model,
            "file_size": self.file_size,
            "video_duration_sec": self.video_duration_sec,
            "video_resolution": self.video_resolution,
            "thumbnail_rel_path": self.thumbnail_rel_path,
            "last_scanned": self.last_scanned.isoformat() if self.last_scanned else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
