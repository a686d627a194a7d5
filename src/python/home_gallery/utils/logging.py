"""
Logging setup shared by the CLI and the web server.

Example:
    >>> from home_gallery.utils import setup_logging
    >>> setup_logging('INFO', 'gallery.log')
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from home_gallery.config import DEFAULT_LOG_FORMAT

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ('PIL', 'apscheduler', 'werkzeug')


def setup_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    format_string: str = DEFAULT_LOG_FORMAT,
) -> None:
    """Replace the root handlers with a stdout handler and an optional file handler.

    Args:
        level: Level name (``'DEBUG'``) or number
        log_file: Also append to this file, creating its directory
        format_string: ``logging.Formatter`` format
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    formatter = logging.Formatter(format_string)
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding='utf-8'))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def format_file_size(size_bytes: Optional[int]) -> str:
    """Format a byte count for humans, e.g. ``1536 -> '1.5 KB'``."""
    if size_bytes is None:
        return "unknown"
    size = float(size_bytes)
    if size < 1024:
        return f"{size:.0f} B"
    for unit in ("KB", "MB", "GB"):
        size /= 1024
        if size < 1024:
            return f"{size:.1f} {unit}"
    return f"{size / 1024:.1f} TB"
