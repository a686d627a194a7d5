"""Media catalogue: durable ``rel_path -> MediaRecord`` mapping.

Wraps a SQLAlchemy engine and session factory. Upserts are serialized per
key, so concurrent indexer workers racing on the same file end with the same
logical row.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Generator, List, Optional, Union

from sqlalchemy import Engine, create_engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from home_gallery.db.models import Base, MediaModel
from home_gallery.models import MediaKind, MediaRecord

logger = logging.getLogger(__name__)


def build_engine(uri: str) -> Engine:
    """Create an engine, with SQLite tuned for use from many threads."""
    if not uri:
        raise ValueError(
            "No database URI configured. Set database.uri in config.yaml "
            "or use HOME_GALLERY_DB_URI environment variable."
        )
    if uri.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30}}
        if uri in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every thread gets its own empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(uri, **kwargs)
    return create_engine(uri, pool_pre_ping=True)


class MediaCatalogue:
    """Persistent store of MediaRecords keyed by relative path.

    Example:
        >>> catalogue = MediaCatalogue("sqlite:///home_gallery.db")
        >>> catalogue.create_schema()
        >>> catalogue.count_by_month_day(12, 25)
        2
    """

    def __init__(self, uri_or_engine: Union[str, Engine]):
        if isinstance(uri_or_engine, Engine):
            self.engine = uri_or_engine
        else:
            self.engine = build_engine(uri_or_engine)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        # SQLite allows a single writer at a time
        self._write_lock = threading.Lock() if self.engine.dialect.name == "sqlite" else None

    def create_schema(self) -> None:
        """Create the catalogue tables if they do not exist."""
        Base.metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Automatically commits on success and rolls back on exception.
        Session is always closed when exiting the context.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def _key_lock(self, rel_path: str) -> Generator[None, None, None]:
        with self._locks_guard:
            lock = self._locks.setdefault(rel_path, threading.Lock())
        with lock:
            if self._write_lock is None:
                yield
            else:
                with self._write_lock:
                    yield

    def upsert(self, record: MediaRecord) -> MediaRecord:
        """Insert a record, or fully replace the one stored under its rel_path.

        ``created_at`` of an existing row is preserved and ``updated_at`` is
        bumped.

        Returns:
            The stored record, with id and timestamps filled in.
        """
        with self._key_lock(record.rel_path):
            try:
                return self._write(record)
            except IntegrityError:
                # Another writer inserted the key first; replace its row
                logger.debug("Insert raced for %s, retrying as update", record.rel_path)
                return self._write(record)

    def _write(self, record: MediaRecord) -> MediaRecord:
        now = datetime.now()
        with self.session_scope() as session:
            row = session.scalars(
                select(MediaModel).where(MediaModel.rel_path == record.rel_path)
            ).one_or_none()
            if row is None:
                row = MediaModel(created_at=now)
                session.add(row)
            row.apply(record)
            row.updated_at = now
            session.flush()
            return row.to_record()

    def find_by_path(self, rel_path: str) -> Optional[MediaRecord]:
        with self.session_scope() as session:
            row = session.scalars(
                select(MediaModel).where(MediaModel.rel_path == rel_path)
            ).one_or_none()
            return row.to_record() if row else None

    def exists_by_path(self, rel_path: str) -> bool:
        with self.session_scope() as session:
            found = session.scalar(
                select(MediaModel.id).where(MediaModel.rel_path == rel_path).limit(1)
            )
            return found is not None

    def list_by_month_day(self, month: int, day: int) -> List[MediaRecord]:
        """All records captured on ``month``/``day`` of any year, newest first."""
        with self.session_scope() as session:
            rows = session.scalars(
                select(MediaModel)
                .where(MediaModel.month == month, MediaModel.day == day)
                .order_by(MediaModel.year.desc(), MediaModel.rel_path)
            ).all()
            return [row.to_record() for row in rows]

    def count_by_month_day(self, month: int, day: int) -> int:
        with self.session_scope() as session:
            return session.scalar(
                select(func.count(MediaModel.id))
                .where(MediaModel.month == month, MediaModel.day == day)
            ) or 0

    def counts_by_day(self, month: int) -> Dict[int, int]:
        """Number of records per day of ``month`` (days without records omitted)."""
        with self.session_scope() as session:
            rows = session.execute(
                select(MediaModel.day, func.count(MediaModel.id))
                .where(MediaModel.month == month)
                .group_by(MediaModel.day)
            ).all()
            return {day: count for day, count in rows}

    def list_by_media_kind(self, kind: MediaKind) -> List[MediaRecord]:
        with self.session_scope() as session:
            rows = session.scalars(
                select(MediaModel)
                .where(MediaModel.media_kind == kind)
                .order_by(MediaModel.capture_date.desc(), MediaModel.rel_path)
            ).all()
            return [row.to_record() for row in rows]

    def count(self, kind: Optional[MediaKind] = None) -> int:
        """Total number of records, optionally restricted to one kind."""
        query = select(func.count(MediaModel.id))
        if kind is not None:
            query = query.where(MediaModel.media_kind == kind)
        with self.session_scope() as session:
            return session.scalar(query) or 0
