"""
Metadata probing for images and videos.

Images get their capture date from EXIF, falling back to the file's creation
time and then its modification time. Videos are probed out-of-process with
``ffprobe``; when the prober is missing, fails or times out the duration is
estimated from the file size so indexing can always proceed.
"""

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Tuple

from home_gallery.errors import ProbeFailedError
from home_gallery.models import DateSource
from home_gallery.scanner.exif import extract_exif_metadata

logger = logging.getLogger(__name__)

FFPROBE_BIN = "ffprobe"
DEFAULT_PROBE_TIMEOUT = 30.0
UNKNOWN_RESOLUTION = "Unknown"

# Fallback bitrate for duration estimates: 640 KB/s
ESTIMATE_BYTES_PER_SECOND = 640 * 1024


@dataclass
class ProbeResult:
    """
    Best-effort metadata for one media file.

    Attributes:
        capture_date: Local calendar date of capture
        date_source: Which source produced capture_date
        file_size: Size in bytes
        camera_model: Camera identity from EXIF (images only)
        duration_sec: Rounded duration in seconds (videos only)
        resolution: "WIDTHxHEIGHT" or "Unknown" (videos only)
        probe_ok: False when the external prober could not be used
    """
    capture_date: date
    date_source: DateSource
    file_size: Optional[int] = None
    camera_model: Optional[str] = None
    duration_sec: Optional[int] = None
    resolution: Optional[str] = None
    probe_ok: bool = True


def file_creation_time(stats: os.stat_result) -> Optional[float]:
    """
    Filesystem birth time, if the platform records one.

    macOS/BSD (and Windows on recent Pythons) expose ``st_birthtime``; on
    Windows ``st_ctime`` is the creation time. Linux exposes neither through
    ``os.stat``, so None is returned there.
    """
    birthtime = getattr(stats, "st_birthtime", None)
    if birthtime:
        return birthtime
    if os.name == "nt":
        return stats.st_ctime
    return None


def _local_date(timestamp: float) -> date:
    """Calendar date of a POSIX timestamp in the host timezone."""
    return datetime.fromtimestamp(timestamp).date()


def filesystem_date(file_path: Path) -> Tuple[date, DateSource]:
    """
    Capture date from filesystem timestamps.

    Returns:
        (date, FILE_CREATION) when a creation time exists, otherwise
        (date, FILE_MODIFIED).
    """
    stats = file_path.stat()
    created = file_creation_time(stats)
    if created is not None:
        return _local_date(created), DateSource.FILE_CREATION
    return _local_date(stats.st_mtime), DateSource.FILE_MODIFIED


def probe_image(file_path: Path) -> ProbeResult:
    """
    Probe an image for capture date, camera and size.

    Args:
        file_path: Absolute path to the image

    Returns:
        ProbeResult (never raises for unreadable EXIF)

    Raises:
        OSError: If the file cannot be stat'ed at all
    """
    file_size = file_path.stat().st_size
    exif = extract_exif_metadata(file_path)

    if exif is not None and exif.captured_at is not None:
        capture_date, source = exif.captured_at.date(), DateSource.EXIF
    else:
        capture_date, source = filesystem_date(file_path)

    return ProbeResult(
        capture_date=capture_date,
        date_source=source,
        file_size=file_size,
        camera_model=exif.camera_label if exif else None,
    )


def estimate_duration(file_size: int) -> int:
    """Rough duration in seconds for a video of ``file_size`` bytes."""
    return int(file_size / ESTIMATE_BYTES_PER_SECOND)


def run_ffprobe(file_path: Path, timeout: float = DEFAULT_PROBE_TIMEOUT) -> dict:
    """
    Run ffprobe and return its parsed JSON output.

    Raises:
        ProbeFailedError: If ffprobe is missing, exits non-zero, times out
                          (the process is killed) or prints invalid JSON.
    """
    command = [
        FFPROBE_BIN,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(file_path),
    ]
    try:
        completed = subprocess.run(
            command,
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        raise ProbeFailedError(f"{FFPROBE_BIN} not available", path=str(file_path)) from e
    except subprocess.TimeoutExpired as e:
        raise ProbeFailedError(f"{FFPROBE_BIN} timed out after {timeout}s", path=str(file_path)) from e

    if completed.returncode != 0 or not completed.stdout:
        raise ProbeFailedError(
            f"{FFPROBE_BIN} exited with code {completed.returncode}", path=str(file_path)
        )

    try:
        return json.loads(completed.stdout)
    except ValueError as e:
        raise ProbeFailedError(f"Unparseable {FFPROBE_BIN} output", path=str(file_path)) from e


def parse_ffprobe_output(data: dict) -> Tuple[Optional[int], Optional[str]]:
    """
    Extract (duration_sec, resolution) from ffprobe JSON.

    Duration comes from ``format.duration`` rounded to the nearest second;
    resolution from the first video stream.
    """
    duration = None
    raw_duration = (data.get("format") or {}).get("duration")
    if raw_duration not in (None, "", "N/A"):
        try:
            duration = int(round(float(raw_duration)))
        except (TypeError, ValueError):
            logger.debug("Ignoring bad duration %r", raw_duration)

    resolution = None
    for stream in data.get("streams") or []:
        if stream.get("codec_type") != "video":
            continue
        width, height = stream.get("width"), stream.get("height")
        if width and height:
            resolution = f"{width}x{height}"
        break

    return duration, resolution


def probe_video(file_path: Path, timeout: float = DEFAULT_PROBE_TIMEOUT) -> ProbeResult:
    """
    Probe a video for duration, resolution, size and capture date.

    The capture date always comes from filesystem timestamps. Probe failures
    are logged and replaced by a size-based duration estimate with resolution
    "Unknown".

    Args:
        file_path: Absolute path to the video
        timeout: Wall-clock limit for ffprobe in seconds

    Returns:
        ProbeResult with probe_ok=False when the estimate was used
    """
    file_size = file_path.stat().st_size
    capture_date, source = filesystem_date(file_path)

    try:
        duration, resolution = parse_ffprobe_output(run_ffprobe(file_path, timeout=timeout))
        probe_ok = True
    except ProbeFailedError as e:
        logger.warning("Video probe failed for %s, using estimate: %s", file_path.name, e)
        duration, resolution, probe_ok = None, None, False

    if duration is None:
        duration = estimate_duration(file_size)

    return ProbeResult(
        capture_date=capture_date,
        date_source=source,
        file_size=file_size,
        duration_sec=duration,
        resolution=resolution or UNKNOWN_RESOLUTION,
        probe_ok=probe_ok,
    )
