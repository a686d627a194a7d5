"""
Media indexer: walks the media root and registers every photo and video.

A full run is incremental: files already in the catalogue are skipped (their
thumbnails are refreshed if the source changed), new files are probed,
thumbnailed and upserted. Per-file work runs on a bounded thread pool.
"""

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Set

from home_gallery.config import GalleryConfig
from home_gallery.db import MediaCatalogue
from home_gallery.errors import GalleryError, IndexerIOError
from home_gallery.models import MediaKind, MediaRecord, is_media_file
from home_gallery.paths import resolve_media_path, to_rel_path
from home_gallery.scanner import iter_media_files, probe_image, probe_video
from home_gallery.thumbnails import ThumbnailRenderer

logger = logging.getLogger(__name__)

INDEXED = "indexed"
SKIPPED = "skipped"


@dataclass
class IndexSummary:
    """Counters for one full indexer run."""
    indexed: int = 0
    skipped: int = 0
    errors: int = 0
    duration_ms: int = 0
    total_in_db: int = 0
    aborted: bool = False

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class Indexer:
    """
    Registers media files from the configured root in the catalogue.

    Example:
        >>> indexer = Indexer(config, catalogue)
        >>> summary = indexer.index_all()
        >>> print(f"{summary.indexed} new, {summary.skipped} already known")
    """

    def __init__(
        self,
        config: GalleryConfig,
        catalogue: MediaCatalogue,
        renderer: Optional[ThumbnailRenderer] = None,
    ):
        self.config = config
        self.catalogue = catalogue
        self.renderer = renderer or ThumbnailRenderer(config)
        self.media_root = Path(config.media_root).resolve()
        self.stop_event = threading.Event()
        self._run_lock = threading.Lock()

    def request_stop(self) -> None:
        """Ask the running full index to stop after the files in flight.

        The flag is cleared when the next run starts, so a stopped indexer
        can be reused.
        """
        self.stop_event.set()

    def index_all(self, stop_event: Optional[threading.Event] = None) -> IndexSummary:
        """
        Walk the media root and index every new image and video.

        Args:
            stop_event: Cancellation flag checked between files
                        (defaults to this indexer's own stop_event)

        Returns:
            IndexSummary; ``aborted`` is set when the walk failed or the run
            was cancelled. Records upserted before that are kept.
        """
        stop_event = stop_event or self.stop_event
        summary = IndexSummary()
        started = time.monotonic()

        with self._run_lock:
            if stop_event is self.stop_event:
                self.stop_event.clear()
            logger.info("Starting media index of %s", self.media_root)
            workers = self.config.indexer.workers
            pending: Dict[Future, Path] = {}

            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="indexer") as executor:
                try:
                    files = iter_media_files(
                        self.media_root,
                        hidden_dir=self.config.thumbnails.hidden_dir,
                        accept=is_media_file,
                        strict=True,
                    )
                    for file_path in files:
                        if stop_event.is_set():
                            logger.info("Index run cancelled")
                            summary.aborted = True
                            break
                        pending[executor.submit(self._index_file, file_path)] = file_path
                        if len(pending) >= workers * 2:
                            self._collect(pending, summary, return_when=FIRST_COMPLETED)
                except OSError as e:
                    logger.error("Directory walk failed, aborting index run: %s", e)
                    summary.aborted = True

                self._collect(pending, summary)

        summary.duration_ms = int((time.monotonic() - started) * 1000)
        summary.total_in_db = self.catalogue.count()
        logger.info(
            "Index complete: %d indexed, %d skipped, %d errors in %d ms (%d in catalogue)%s",
            summary.indexed, summary.skipped, summary.errors, summary.duration_ms,
            summary.total_in_db, " [aborted]" if summary.aborted else "",
        )
        return summary

    def _collect(self, pending: Dict[Future, Path], summary: IndexSummary, return_when=None) -> None:
        """Fold finished futures into ``summary`` and drop them from ``pending``."""
        if not pending:
            return
        if return_when is None:
            done: Set[Future] = set(wait(pending).done)
        else:
            done = set(wait(pending, return_when=return_when).done)

        for future in done:
            file_path = pending.pop(future)
            try:
                outcome = future.result()
            except Exception as e:
                logger.error("Failed to index %s: %s", file_path, e)
                summary.errors += 1
                continue
            if outcome == INDEXED:
                summary.indexed += 1
            else:
                summary.skipped += 1

    def _index_file(self, file_path: Path) -> str:
        rel_path = to_rel_path(self.media_root, file_path)

        if self.catalogue.exists_by_path(rel_path):
            if self.config.indexer.refresh_stale_thumbnails:
                self._refresh_thumbnail(file_path, rel_path)
            return SKIPPED

        self._register(file_path, rel_path)
        return INDEXED

    def _refresh_thumbnail(self, file_path: Path, rel_path: str) -> None:
        target = self.renderer.target_path(rel_path)
        if self.renderer.is_fresh(file_path, target):
            return
        record = self.catalogue.find_by_path(rel_path)
        if record is None or record.thumbnail_rel_path is None:
            return
        logger.debug("Refreshing stale thumbnail for %s", rel_path)
        self.renderer.render(
            file_path, rel_path, record.media_kind,
            duration_sec=record.video_duration_sec, force=True,
        )

    def _register(self, file_path: Path, rel_path: str, force_thumbnail: bool = False) -> MediaRecord:
        """Probe, thumbnail and upsert one file."""
        kind = MediaKind.from_filename(file_path.name)
        try:
            if kind is MediaKind.VIDEO:
                probe = probe_video(file_path, timeout=self.config.indexer.probe_timeout)
            else:
                probe = probe_image(file_path)
        except OSError as e:
            raise IndexerIOError(f"Could not read {rel_path}: {e}", path=rel_path) from e

        thumbnail = self.renderer.render(
            file_path, rel_path, kind,
            duration_sec=probe.duration_sec, force=force_thumbnail,
        )

        record = MediaRecord(
            rel_path=rel_path,
            media_kind=kind,
            capture_date=probe.capture_date,
            date_source=probe.date_source,
            camera_model=probe.camera_model,
            file_size=probe.file_size,
            video_duration_sec=probe.duration_sec if kind is MediaKind.VIDEO else None,
            video_resolution=probe.resolution if kind is MediaKind.VIDEO else None,
            thumbnail_rel_path=thumbnail,
            last_scanned=datetime.now(),
        )
        stored = self.catalogue.upsert(record)
        logger.debug("Indexed %s (%s, %s)", rel_path, kind.value, probe.date_source.value)
        return stored

    def index_path(self, rel_path: str, force: bool = False) -> Optional[MediaRecord]:
        """
        Register a single file given its path relative to the media root.

        Args:
            rel_path: Client-style relative path
            force: Re-probe and replace an existing record

        Returns:
            The stored record, or the existing one when not forced.
            None if the file is not an image or video.

        Raises:
            BadPathError: If the path escapes the media root
            NotFoundError: If the file does not exist
            IndexerIOError: If the file cannot be read
        """
        file_path = resolve_media_path(self.media_root, rel_path)
        if not is_media_file(file_path.name):
            logger.warning("Not a media file, skipping: %s", rel_path)
            return None

        rel_path = to_rel_path(self.media_root, file_path)
        if not force:
            existing = self.catalogue.find_by_path(rel_path)
            if existing is not None:
                return existing

        try:
            return self._register(file_path, rel_path, force_thumbnail=force)
        except GalleryError:
            raise
        except OSError as e:
            raise IndexerIOError(f"Could not index {rel_path}: {e}", path=rel_path) from e
