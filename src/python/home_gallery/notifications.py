"""
Browser notifications for "on this day" memories.

The scheduler calls ``MemoriesNotifier.check_and_notify`` once a day. When
there are memories for today a notification is queued on the
``BrowserNotificationQueue``; the web page polls the pending endpoint and
drains the queue once the notification has been shown.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Protocol

from home_gallery.db import MediaCatalogue

logger = logging.getLogger(__name__)

MEMORIES_TITLE = "Memories"


class NotificationSink(Protocol):
    def enqueue_browser_notification(self, title: str, body: str, count: int) -> None:
        ...


@dataclass(frozen=True)
class BrowserNotification:
    """A queued notification waiting to be shown in the browser."""
    title: str
    body: str
    count: int
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, object]:
        return {
            "title": self.title,
            "message": self.body,
            "count": self.count,
            "createdAt": self.created_at.isoformat(),
        }


class BrowserNotificationQueue:
    """Thread-safe FIFO of notifications for the browser to pick up."""

    def __init__(self):
        self._items: List[BrowserNotification] = []
        self._lock = threading.Lock()

    def enqueue_browser_notification(self, title: str, body: str, count: int) -> None:
        with self._lock:
            self._items.append(BrowserNotification(title=title, body=body, count=count))
        logger.info("Queued browser notification: %s", body)

    def pending(self) -> List[BrowserNotification]:
        """Snapshot of queued notifications, oldest first."""
        with self._lock:
            return list(self._items)

    def drain(self) -> List[BrowserNotification]:
        """Remove and return every queued notification."""
        with self._lock:
            items, self._items = self._items, []
        return items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


def memories_message(count: int) -> str:
    """Human-readable notification text for ``count`` memories."""
    plural = "" if count == 1 else "s"
    return f"You have {count} photo{plural} from this day in previous years!"


class MemoriesNotifier:
    """Queues at most one memories notification per calendar day."""

    def __init__(self, catalogue: MediaCatalogue, sink: NotificationSink):
        self.catalogue = catalogue
        self.sink = sink
        self._last_notified: Optional[date] = None
        self._lock = threading.Lock()

    @property
    def last_notified(self) -> Optional[date]:
        return self._last_notified

    def check_and_notify(self, today: Optional[date] = None) -> bool:
        """
        Queue today's memories notification if there is anything to show.

        Args:
            today: Date to check (defaults to the local date)

        Returns:
            True if a notification was queued
        """
        today = today or date.today()
        with self._lock:
            if self._last_notified == today:
                logger.debug("Memories notification already sent today")
                return False

            count = self.catalogue.count_by_month_day(today.month, today.day)
            if count == 0:
                logger.debug("No memories for %s, skipping notification", today.strftime("%m-%d"))
                return False

            logger.info("Sending memories notification: %d memories found", count)
            self.sink.enqueue_browser_notification(MEMORIES_TITLE, memories_message(count), count)
            self._last_notified = today
            return True
