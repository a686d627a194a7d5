"""
SQLAlchemy models for the media catalogue.
"""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import BigInteger, Date, DateTime, Enum, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from home_gallery.models import DateSource, MediaKind, MediaRecord


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    pass


class MediaModel(Base):
    __tablename__ = "media"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Core Identity
    rel_path: Mapped[str] = mapped_column(String(1024), unique=True)
    media_kind: Mapped[MediaKind] = mapped_column(
        Enum(MediaKind, values_callable=_enum_values, native_enum=False, length=16), index=True
    )

    # Capture date and its derived calendar fields
    capture_date: Mapped[date] = mapped_column(Date)
    date_source: Mapped[DateSource] = mapped_column(
        Enum(DateSource, values_callable=_enum_values, native_enum=False, length=16)
    )
    year: Mapped[int] = mapped_column(Integer)
    month: Mapped[int] = mapped_column(Integer)
    day: Mapped[int] = mapped_column(Integer)

    # File details
    camera_model: Mapped[Optional[str]] = mapped_column(String(255))
    file_size: Mapped[Optional[int]] = mapped_column(BigInteger)
    video_duration_sec: Mapped[Optional[int]] = mapped_column(Integer)
    video_resolution: Mapped[Optional[str]] = mapped_column(String(32))
    thumbnail_rel_path: Mapped[Optional[str]] = mapped_column(String(1024))

    # Bookkeeping
    last_scanned: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index("ix_media_month_day", "month", "day"),
    )

    def apply(self, record: MediaRecord) -> None:
        """Copy every catalogued field of ``record`` onto this row."""
        self.rel_path = record.rel_path
        self.media_kind = record.media_kind
        self.capture_date = record.capture_date
        self.date_source = record.date_source
        self.year = record.year
        self.month = record.month
        self.day = record.day
        self.camera_model = record.camera_model
        self.file_size = record.file_size
        self.video_duration_sec = record.video_duration_sec
        self.video_resolution = record.video_resolution
        self.thumbnail_rel_path = record.thumbnail_rel_path
        self.last_scanned = record.last_scanned

    def to_record(self) -> MediaRecord:
        return MediaRecord(
            rel_path=self.rel_path,
            media_kind=self.media_kind,
            capture_date=self.capture_date,
            date_source=self.date_source,
            camera_model=self.camera_model,
            file_size=self.file_size,
            video_duration_sec=self.video_duration_sec,
            video_resolution=self.video_resolution,
            thumbnail_rel_path=self.thumbnail_rel_path,
            id=self.id,
            last_scanned=self.last_scanned,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<MediaModel(id={self.id}, rel_path='{self.rel_path}', kind={self.media_kind.value})>"
