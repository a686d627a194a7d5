"""
Periodic jobs: the nightly auto-index and the daily memories notification.

Both jobs run on an APScheduler ``BackgroundScheduler``. A job never overlaps
itself: APScheduler is told ``max_instances=1`` and each job also holds a
non-blocking lock, so a tick that finds the previous run still active is
skipped.
"""

import logging
import re
import threading
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from home_gallery.config import GalleryConfig
from home_gallery.indexer import Indexer
from home_gallery.notifications import MemoriesNotifier

logger = logging.getLogger(__name__)

AUTO_INDEX_JOB_ID = "auto_index"
MEMORIES_NOTIFICATION_JOB_ID = "memories_notification"

_DAILY_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s+daily\s*$", re.IGNORECASE)


def parse_cron(expression: str) -> CronTrigger:
    """
    Build a trigger from ``"HH:MM daily"`` or a five-field crontab line.

    Raises:
        ValueError: If the expression is neither form.

    Example:
        >>> parse_cron("02:00 daily")
        >>> parse_cron("30 9 * * mon-fri")
    """
    match = _DAILY_PATTERN.match(expression)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if hour > 23 or minute > 59:
            raise ValueError(f"Invalid time of day in schedule: {expression!r}")
        return CronTrigger(hour=hour, minute=minute)

    if len(expression.split()) != 5:
        raise ValueError(f"Unsupported schedule expression: {expression!r}")
    return CronTrigger.from_crontab(expression)


class GalleryScheduler:
    """Owns the background scheduler and the two gallery jobs."""

    def __init__(self, config: GalleryConfig, indexer: Indexer, notifier: MemoriesNotifier):
        self.config = config
        self.indexer = indexer
        self.notifier = notifier
        self.scheduler = BackgroundScheduler()
        self._index_lock = threading.Lock()
        self._notify_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """Register the jobs and start the background thread."""
        schedule = self.config.schedule

        if schedule.auto_index_enabled:
            self.scheduler.add_job(
                self.run_auto_index,
                parse_cron(schedule.auto_index_cron),
                id=AUTO_INDEX_JOB_ID,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            logger.info("Auto-index scheduled: %s", schedule.auto_index_cron)
        else:
            logger.info("Auto-index disabled")

        self.scheduler.add_job(
            self.run_memories_notification,
            parse_cron(schedule.notification_cron),
            id=MEMORIES_NOTIFICATION_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info("Memories notification scheduled: %s", schedule.notification_cron)

        self.scheduler.start()

    def shutdown(self, wait: bool = True) -> None:
        """Cancel a running index between files and stop the scheduler."""
        self.indexer.request_stop()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler stopped")

    def run_auto_index(self) -> bool:
        """Run a full index unless one is already running. Returns True if it ran."""
        return self._run_exclusive(AUTO_INDEX_JOB_ID, self._index_lock, self._auto_index)

    def run_memories_notification(self) -> bool:
        return self._run_exclusive(
            MEMORIES_NOTIFICATION_JOB_ID, self._notify_lock, self.notifier.check_and_notify
        )

    def _auto_index(self) -> None:
        summary = self.indexer.index_all()
        logger.info(
            "Auto-indexing complete: %d indexed, %d skipped, %d errors in %dms",
            summary.indexed, summary.skipped, summary.errors, summary.duration_ms,
        )

    @staticmethod
    def _run_exclusive(name: str, lock: threading.Lock, job: Callable[[], Optional[object]]) -> bool:
        if not lock.acquire(blocking=False):
            logger.warning("Previous %s run still active, skipping this tick", name)
            return False
        try:
            logger.info("Running scheduled job %s", name)
            job()
        except Exception:
            logger.exception("Scheduled job %s failed", name)
        finally:
            lock.release()
        return True
