"""
HTTP range streaming for video and audio files.

Single byte ranges are served as ``206 Partial Content``; requests without a
range get the whole file. Bodies are generated in fixed-size chunks so large
videos never sit in memory, and the file is closed as soon as the client goes
away.
"""

import logging
import re
from pathlib import Path
from typing import Iterator, Optional, Tuple

from flask import Response

from home_gallery.errors import RangeNotSatisfiableError
from home_gallery.models import file_extension

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
CACHE_CONTROL = "public, max-age=86400"

VIDEO_CONTENT_TYPES = {
    "mp4": "video/mp4",
    "m4v": "video/mp4",
    "mov": "video/quicktime",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
    "avi": "video/x-msvideo",
    "wmv": "video/x-ms-wmv",
}

AUDIO_CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "ogg": "audio/ogg",
    "wav": "audio/wav",
    "flac": "audio/flac",
}

_RANGE_SPEC = re.compile(r"^\s*(\d*)\s*-\s*(\d*)\s*$")


def video_content_type(filename: str) -> str:
    return VIDEO_CONTENT_TYPES.get(file_extension(filename), "video/mp4")


def audio_content_type(filename: str) -> str:
    return AUDIO_CONTENT_TYPES.get(file_extension(filename), "audio/mpeg")


def parse_range_header(header: Optional[str], size: int) -> Optional[Tuple[int, int]]:
    """
    Parse a ``Range`` header into an inclusive ``(start, end)`` byte range.

    Supports ``bytes=START-END``, ``bytes=START-`` and the suffix form
    ``bytes=-N``. ``END`` is clamped to ``size - 1``.

    Args:
        header: Raw header value, or None
        size: File size in bytes

    Returns:
        (start, end), or None when no byte range was requested

    Raises:
        RangeNotSatisfiableError: For multiple ranges, malformed ranges and
                                  ranges outside the file
    """
    if not header:
        return None
    unit, sep, spec = header.strip().partition("=")
    if not sep or unit.strip().lower() != "bytes":
        return None

    if "," in spec:
        raise RangeNotSatisfiableError(size, "Multiple ranges are not supported")
    match = _RANGE_SPEC.match(spec)
    if not match or not (match.group(1) or match.group(2)):
        raise RangeNotSatisfiableError(size, f"Malformed range: {header}")

    start_s, end_s = match.groups()
    if not start_s:
        suffix = int(end_s)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiableError(size)
        return max(0, size - suffix), size - 1

    start = int(start_s)
    end = size - 1 if not end_s else min(int(end_s), size - 1)
    if start >= size or end < start:
        raise RangeNotSatisfiableError(size)
    return start, end


def iter_file_range(path: Path, start: int, end: int, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield bytes ``start..end`` (inclusive) of a file in chunks."""
    remaining = end - start + 1
    f = open(path, "rb")
    try:
        f.seek(start)
        while remaining > 0:
            chunk = f.read(min(chunk_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk
    finally:
        f.close()


def stream_file(path: Path, range_header: Optional[str], content_type: str) -> Response:
    """
    Build a full (200) or partial (206) streaming response for ``path``.

    Raises:
        RangeNotSatisfiableError: If the requested range cannot be served
    """
    size = path.stat().st_size
    byte_range = parse_range_header(range_header, size)

    if byte_range is None:
        start, end, status = 0, size - 1, 200
    else:
        (start, end), status = byte_range, 206

    length = max(0, end - start + 1)
    body = iter_file_range(path, start, end) if length else iter(())
    response = Response(body, status=status, mimetype=content_type, direct_passthrough=True)
    response.headers["Accept-Ranges"] = "bytes"
    response.headers["Content-Length"] = str(length)
    response.headers["Cache-Control"] = CACHE_CONTROL
    response.headers["ETag"] = f'"{path.name}-{size}"'
    if status == 206:
        response.headers["Content-Range"] = f"bytes {start}-{end}/{size}"
        logger.debug("Streaming %s bytes %d-%d/%d", path.name, start, end, size)
    return response
