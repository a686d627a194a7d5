"""
Home Gallery web service.

Serves the slideshow pull protocol, images, range-streamed video and music,
and the "on this day" memories API. The app is built by ``create_app`` from
a ``GalleryConfig``; collaborators can be passed in for testing.
"""

import logging
import os
import secrets
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

from flask import Flask, current_app, jsonify, request, send_file, session as flask_session
from werkzeug.exceptions import HTTPException

from home_gallery.config import GalleryConfig
from home_gallery.db import MediaCatalogue
from home_gallery.errors import GalleryError, NotFoundError, RangeNotSatisfiableError
from home_gallery.indexer import Indexer
from home_gallery.memories import MemoriesService, memory_to_dict
from home_gallery.models import MediaKind
from home_gallery.notifications import BrowserNotificationQueue, MemoriesNotifier
from home_gallery.paths import resolve_media_path
from home_gallery.scanner import list_folders_with_direct_images, list_music_paths
from home_gallery.slideshow import ListRequest, SessionStore, SlideshowEngine
from home_gallery.web.streaming import audio_content_type, stream_file, video_content_type

logger = logging.getLogger(__name__)

SESSION_KEY = "slideshow_session"


@dataclass
class GalleryServices:
    """Everything the request handlers need, attached to the Flask app."""
    config: GalleryConfig
    catalogue: MediaCatalogue
    indexer: Indexer
    slideshow: SlideshowEngine
    memories: MemoriesService
    notifications: BrowserNotificationQueue
    notifier: MemoriesNotifier


def services() -> GalleryServices:
    return current_app.extensions["home_gallery"]


def slideshow_session_key() -> str:
    """Opaque per-client key kept in the signed session cookie."""
    key = flask_session.get(SESSION_KEY)
    if not key:
        key = secrets.token_urlsafe(16)
        flask_session[SESSION_KEY] = key
    return key


def _list_request() -> ListRequest:
    return ListRequest.from_json(request.get_json(silent=True))


def create_app(
    config: GalleryConfig,
    catalogue: Optional[MediaCatalogue] = None,
    indexer: Optional[Indexer] = None,
    slideshow: Optional[SlideshowEngine] = None,
    notifications: Optional[BrowserNotificationQueue] = None,
) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Gallery configuration
        catalogue: Media catalogue (created from config.database.uri if omitted)
        indexer: Indexer used by the admin index endpoint
        slideshow: Slideshow engine with its session store
        notifications: Queue the daily memories notifier writes to

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    app.config['SECRET_KEY'] = os.environ.get('FLASK_SECRET_KEY', secrets.token_hex(32))

    if catalogue is None:
        catalogue = MediaCatalogue(config.database.uri)
        catalogue.create_schema()
    notifications = notifications or BrowserNotificationQueue()

    app.extensions["home_gallery"] = GalleryServices(
        config=config,
        catalogue=catalogue,
        indexer=indexer or Indexer(config, catalogue),
        slideshow=slideshow or SlideshowEngine(
            config,
            SessionStore(config.slideshow.session_ttl_seconds, config.slideshow.max_sessions),
        ),
        memories=MemoriesService(catalogue),
        notifications=notifications,
        notifier=MemoriesNotifier(catalogue, notifications),
    )

    _register_error_handlers(app)
    _register_slideshow_routes(app)
    _register_media_routes(app)
    _register_memories_routes(app)

    @app.route('/api/health')
    def health():
        svc = services()
        return jsonify({
            'status': 'ok',
            'mediaRoot': str(svc.config.media_root),
            'totalInDb': svc.catalogue.count(),
        })

    logger.info("Web app created for media root %s", config.media_root)
    return app


def _register_error_handlers(app: Flask) -> None:

    @app.errorhandler(GalleryError)
    def handle_gallery_error(e: GalleryError):
        if e.status_code >= 500:
            logger.error("Internal gallery error (%s): %s", e.kind, e.message)
            return jsonify({'error': 'internal'}), 500

        logger.info("Request %s %s failed: %s (%s)", request.method, request.path, e.kind, e.message)
        response = jsonify({'error': e.kind, 'message': e.message})
        response.status_code = e.status_code
        if isinstance(e, RangeNotSatisfiableError):
            response.headers['Content-Range'] = f"bytes */{e.size}"
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        return e

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({'error': 'internal'}), 500


def _register_slideshow_routes(app: Flask) -> None:

    @app.route('/api/folders/list')
    def list_folders():
        config = services().config
        return jsonify(list_folders_with_direct_images(config.media_root, config.thumbnails.hidden_dir))

    @app.route('/api/images/list', methods=['POST'])
    def list_images():
        return jsonify(services().slideshow.list(slideshow_session_key(), _list_request()))

    @app.route('/api/images/next', methods=['POST'])
    def next_image():
        result = services().slideshow.next(slideshow_session_key(), _list_request())
        return jsonify(result.to_dict())

    @app.route('/api/images/reset', methods=['POST'])
    def reset_images():
        services().slideshow.reset(slideshow_session_key())
        return jsonify({'status': 'reset'})


def _register_media_routes(app: Flask) -> None:

    @app.route('/images/<path:rel_path>')
    def serve_image(rel_path):
        # The router has already percent-decoded the path
        path = resolve_media_path(services().config.media_root, rel_path, unquote=False)
        return send_file(path, conditional=True, max_age=86400)

    @app.route('/api/videos/<path:rel_path>')
    def stream_video(rel_path):
        path = resolve_media_path(services().config.media_root, rel_path, unquote=False)
        return stream_file(path, request.headers.get('Range'), video_content_type(path.name))

    @app.route('/api/videos')
    def list_videos():
        today = date.today()
        records = services().catalogue.list_by_media_kind(MediaKind.VIDEO)
        return jsonify({
            'count': len(records),
            'videos': [memory_to_dict(record, today) for record in records],
        })

    @app.route('/music/<path:rel_path>')
    def stream_music(rel_path):
        music_root = _music_root()
        path = resolve_media_path(music_root, rel_path, unquote=False)
        return stream_file(path, request.headers.get('Range'), audio_content_type(path.name))

    @app.route('/api/music/list')
    def list_music():
        return jsonify(list_music_paths(_music_root()))


def _music_root() -> Path:
    music_root = services().config.music_root
    if music_root is None:
        raise NotFoundError("No music folder configured")
    return Path(music_root)


def _register_memories_routes(app: Flask) -> None:

    @app.route('/api/memories/config')
    def memories_config():
        return jsonify({'batchSize': services().config.memories.batch_size})

    @app.route('/api/memories/today')
    def todays_memories():
        memories = services().memories.todays_memories()
        return jsonify({'count': len(memories), 'memories': memories})

    @app.route('/api/memories/today/count')
    def todays_memory_count():
        return jsonify({'count': services().memories.todays_count()})

    @app.route('/api/memories/date/<int:month>/<int:day>')
    def memories_for_date(month, day):
        memories = services().memories.memories_for_date(month, day)
        return jsonify({'count': len(memories), 'memories': memories, 'month': month, 'day': day})

    @app.route('/api/memories/calendar/<int:year>/<int:month>')
    def memories_calendar(year, month):
        counts = services().memories.calendar_counts(month)
        return jsonify({'year': year, 'month': month, 'counts': counts})

    @app.route('/api/memories/index', methods=['POST'])
    def index_memories():
        summary = services().indexer.index_all()
        return jsonify(summary.to_dict())

    @app.route('/api/memories/notification/pending')
    def pending_notification():
        pending = services().notifications.pending()
        if not pending:
            return jsonify({'hasPending': False})
        latest = pending[-1]
        return jsonify({
            'hasPending': True,
            'count': latest.count,
            'message': latest.body,
        })

    @app.route('/api/memories/notification/shown', methods=['POST'])
    def notification_shown():
        shown = services().notifications.drain()
        logger.info("Memories notification marked as shown (%d cleared)", len(shown))
        return jsonify({'success': True})
