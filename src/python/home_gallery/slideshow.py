"""
Slideshow sessions: a per-client queue of images pulled one at a time.

Each client session is seeded with the full list of eligible images for its
``ListRequest``. ``next`` pops from the queue and records what was shown, so
every image is shown exactly once per cycle. When the queue runs dry a new
cycle starts from the same list.
"""

import logging
import posixpath
import random
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple

from home_gallery.config import GalleryConfig
from home_gallery.errors import BadRequestError
from home_gallery.scanner import list_image_paths

logger = logging.getLogger(__name__)

PROGRESS_LOG_EVERY = 10


def _optional_str(value: Any, name: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise BadRequestError(f"{name} must be a string")
    return value.strip("/") or None


@dataclass(frozen=True)
class ListRequest:
    """
    Slideshow parameters sent by the browser.

    Attributes:
        start_folder: Folder whose images are shown first
        randomize: Shuffle images within each folder (otherwise sorted)
        shuffle_all: Pool every image and shuffle, ignoring folders
        selected_folders: Restrict to these folders, in this order
    """
    start_folder: Optional[str] = None
    randomize: bool = False
    shuffle_all: bool = False
    selected_folders: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_json(cls, payload: Optional[Mapping[str, Any]]) -> "ListRequest":
        """
        Build a request from the camelCase JSON body.

        Raises:
            BadRequestError: If a field has the wrong type.
        """
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise BadRequestError("Request body must be a JSON object")

        selected = payload.get("selectedFolders")
        if selected is not None and not isinstance(selected, list):
            raise BadRequestError("selectedFolders must be a list")
        folders = tuple(
            folder for folder in (_optional_str(item, "selectedFolders") for item in selected or [])
            if folder is not None
        )

        return cls(
            start_folder=_optional_str(payload.get("startFolder"), "startFolder"),
            randomize=bool(payload.get("randomize", False)),
            shuffle_all=bool(payload.get("shuffleAll", False)),
            selected_folders=folders or None,
        )


@dataclass
class NextResult:
    """Outcome of one ``next`` call."""
    image: Optional[str]
    has_more: bool
    remaining: int
    total_shown: int
    total_images: int
    cycle_complete: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image": self.image,
            "hasMore": self.has_more,
            "remaining": self.remaining,
            "totalShown": self.total_shown,
            "totalImages": self.total_images,
            "cycleComplete": self.cycle_complete,
        }


@dataclass
class SlideshowSession:
    """
    Mutable state of one client's slideshow.

    Within a cycle ``queue`` and ``shown`` partition ``all_images``. Only
    touch the state while holding ``lock``.
    """
    session_key: str
    params: Optional[ListRequest] = None
    all_images: List[str] = field(default_factory=list)
    queue: List[str] = field(default_factory=list)
    shown: Set[str] = field(default_factory=set)
    last_access: float = field(default_factory=time.monotonic)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def seeded(self) -> bool:
        return self.params is not None

    def reseed(self, params: ListRequest, images: List[str]) -> None:
        self.params = params
        self.all_images = list(images)
        self.queue = list(images)
        self.shown = set()


class SessionStore:
    """
    Thread-safe map of session key to SlideshowSession.

    Sessions idle longer than ``ttl_seconds`` expire; beyond ``max_sessions``
    the least recently used session is evicted.
    """

    def __init__(self, ttl_seconds: float = 3600, max_sessions: int = 1000,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max_sessions
        self._clock = clock
        self._sessions: "OrderedDict[str, SlideshowSession]" = OrderedDict()
        self._lock = threading.Lock()

    def get_or_create(self, session_key: str) -> SlideshowSession:
        now = self._clock()
        with self._lock:
            self._expire(now)
            session = self._sessions.get(session_key)
            if session is None:
                session = SlideshowSession(session_key=session_key)
                self._sessions[session_key] = session
                while len(self._sessions) > self.max_sessions:
                    evicted, _ = self._sessions.popitem(last=False)
                    logger.debug("Evicted slideshow session %s", evicted)
            else:
                self._sessions.move_to_end(session_key)
            session.last_access = now
            return session

    def get(self, session_key: str) -> Optional[SlideshowSession]:
        with self._lock:
            self._expire(self._clock())
            return self._sessions.get(session_key)

    def discard(self, session_key: str) -> None:
        with self._lock:
            self._sessions.pop(session_key, None)

    def _expire(self, now: float) -> None:
        # Entries are in access order, so expired ones are at the front
        while self._sessions:
            key, session = next(iter(self._sessions.items()))
            if now - session.last_access <= self.ttl_seconds:
                break
            del self._sessions[key]
            logger.debug("Expired idle slideshow session %s", key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


class SlideshowEngine:
    """
    Serves slideshow queues for many concurrent sessions.

    Example:
        >>> engine = SlideshowEngine(config, SessionStore())
        >>> engine.next("session-1", ListRequest(start_folder="2019/christmas"))
        NextResult(image='2019/christmas/IMG_0001.jpg', ...)
    """

    def __init__(
        self,
        config: GalleryConfig,
        store: Optional[SessionStore] = None,
        rng: Optional[random.Random] = None,
        on_duplicate: Optional[Callable[[str, str], None]] = None,
    ):
        self.config = config
        self.store = store or SessionStore(
            ttl_seconds=config.slideshow.session_ttl_seconds,
            max_sessions=config.slideshow.max_sessions,
        )
        self.rng = rng or random.Random()
        self.on_duplicate = on_duplicate

    def seed(self, req: ListRequest) -> List[str]:
        """Compute the ordered image list for ``req`` (walks the media root)."""
        images = list_image_paths(self.config.media_root, self.config.thumbnails.hidden_dir)

        if req.selected_folders:
            selected = set(req.selected_folders)
            images = [image for image in images if posixpath.dirname(image) in selected]

        if req.shuffle_all:
            self.rng.shuffle(images)
            return images

        by_folder: Dict[str, List[str]] = {}
        for image in images:
            by_folder.setdefault(posixpath.dirname(image), []).append(image)

        explicit_order = bool(req.selected_folders)
        if explicit_order:
            folders = [folder for folder in dict.fromkeys(req.selected_folders) if folder in by_folder]
        else:
            folders = sorted(by_folder)

        if req.start_folder:
            folders = [folder for folder in folders if folder != req.start_folder]
            if not explicit_order:
                self.rng.shuffle(folders)
            if req.start_folder in by_folder:
                folders.insert(0, req.start_folder)
        elif not explicit_order:
            self.rng.shuffle(folders)

        ordered = []
        for folder in folders:
            folder_images = by_folder[folder]
            if req.randomize:
                self.rng.shuffle(folder_images)
            else:
                folder_images.sort()
            ordered.extend(folder_images)

        logger.info("Seeded slideshow with %d images from %d folders", len(ordered), len(folders))
        return ordered

    def _session_for(self, session_key: str, req: ListRequest) -> SlideshowSession:
        """Get the session, re-seeding it if it is new or its parameters changed."""
        session = self.store.get_or_create(session_key)
        with session.lock:
            current = session.seeded and session.params == req
        if current:
            return session

        # Walk the disk without holding the session lock
        images = self.seed(req)
        with session.lock:
            if not (session.seeded and session.params == req):
                logger.debug("Re-seeding slideshow session %s", session_key)
                session.reseed(req, images)
        return session

    def list(self, session_key: str, req: ListRequest) -> List[str]:
        """Snapshot of the session's remaining queue."""
        session = self._session_for(session_key, req)
        with session.lock:
            return list(session.queue)

    def next(self, session_key: str, req: ListRequest) -> NextResult:
        """Pop the next image for the session."""
        session = self._session_for(session_key, req)
        with session.lock:
            cycle_complete = False
            if not session.queue and session.shown:
                session.queue = [image for image in session.all_images if image not in session.shown]
                if not session.queue:
                    logger.info("Cycle complete: all %d images shown once, starting new cycle",
                                len(session.shown))
                    session.shown.clear()
                    session.queue = list(session.all_images)
                    cycle_complete = True
                else:
                    logger.warning("Queue rebuilt: %d remaining, %d already shown",
                                   len(session.queue), len(session.shown))

            if not session.queue:
                return NextResult(
                    image=None, has_more=False, remaining=0,
                    total_shown=len(session.shown), total_images=len(session.all_images),
                    cycle_complete=True,
                )

            image = session.queue.pop(0)
            if image in session.shown:
                logger.error("Duplicate slideshow image %s in session %s", image, session_key)
                if self.on_duplicate is not None:
                    self.on_duplicate(session_key, image)
            session.shown.add(image)

            total_images = len(session.all_images)
            if total_images and len(session.shown) % PROGRESS_LOG_EVERY == 0:
                logger.info("Slideshow progress: %d/%d images shown", len(session.shown), total_images)

            return NextResult(
                image=image,
                has_more=bool(session.queue),
                remaining=len(session.queue),
                total_shown=len(session.shown),
                total_images=total_images,
                cycle_complete=cycle_complete,
            )

    def reset(self, session_key: str) -> None:
        """Forget all slideshow state for the session."""
        self.store.discard(session_key)
        logger.debug("Reset slideshow session %s", session_key)
