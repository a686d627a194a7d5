"""
"On this day" memories: photos and videos captured on today's month and day
in any year.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from home_gallery.db import MediaCatalogue
from home_gallery.errors import BadRequestError
from home_gallery.models import MediaRecord

logger = logging.getLogger(__name__)


def validate_month_day(month: int, day: Optional[int] = None) -> None:
    """
    Raises:
        BadRequestError: If month is not 1-12 or day is not 1-31.
    """
    if not 1 <= month <= 12:
        raise BadRequestError(f"Month must be between 1 and 12, got {month}")
    if day is not None and not 1 <= day <= 31:
        raise BadRequestError(f"Day must be between 1 and 31, got {day}")


def memory_to_dict(record: MediaRecord, today: Optional[date] = None) -> Dict[str, Any]:
    """JSON shape of a single memory as the memories page expects it."""
    memory = {
        "id": record.id,
        "filePath": record.rel_path,
        "thumbnailPath": record.thumbnail_rel_path,
        "captureDate": record.capture_date.isoformat(),
        "year": record.year,
        "yearsAgo": record.years_ago(today),
        "dateSource": record.date_source.value,
        "cameraModel": record.camera_model,
        "mediaType": record.media_kind.value,
        "isVideo": record.is_video,
    }
    if record.is_video:
        memory["videoDuration"] = record.video_duration_sec
        memory["videoResolution"] = record.video_resolution
    return memory


class MemoriesService:
    """Read-side queries over the catalogue for the memories page."""

    def __init__(self, catalogue: MediaCatalogue):
        self.catalogue = catalogue

    def todays_memories(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        today = today or date.today()
        records = self.catalogue.list_by_month_day(today.month, today.day)
        return [memory_to_dict(record, today) for record in records]

    def todays_count(self, today: Optional[date] = None) -> int:
        today = today or date.today()
        return self.catalogue.count_by_month_day(today.month, today.day)

    def memories_for_date(self, month: int, day: int, today: Optional[date] = None) -> List[Dict[str, Any]]:
        """Memories captured on ``month``/``day`` of any year, newest first."""
        validate_month_day(month, day)
        records = self.catalogue.list_by_month_day(month, day)
        logger.debug("Found %d memories for %02d-%02d", len(records), month, day)
        return [memory_to_dict(record, today) for record in records]

    def calendar_counts(self, month: int) -> Dict[str, int]:
        """
        Memory counts for every day of ``month`` that has any.

        Keys are day numbers as strings, the way they appear in JSON.
        """
        validate_month_day(month)
        counts = self.catalogue.counts_by_day(month)
        return {str(day): count for day, count in sorted(counts.items())}
