"""
Path normalization for request-visible relative paths.

Every file-serving and indexing entry point maps client paths through
``resolve_media_path`` before touching the filesystem, so nothing outside the
configured root is ever opened.
"""

import logging
from pathlib import Path
from typing import Union
from urllib.parse import unquote as url_unquote

from home_gallery.errors import BadPathError, NotFoundError

logger = logging.getLogger(__name__)


def normalize_rel_path(rel_path: str, unquote: bool = True) -> str:
    """
    Percent-decode and slash-normalize a relative path without touching disk.

    Args:
        rel_path: Relative path as received from a client
        unquote: Percent-decode first (disable when the web framework already did)

    Returns:
        Forward-slash path with empty and ``.`` segments removed

    Raises:
        BadPathError: If the path contains a NUL byte or is empty after normalization
    """
    if unquote:
        rel_path = url_unquote(rel_path)
    if "\x00" in rel_path:
        raise BadPathError("Path contains NUL byte", path=rel_path)

    parts = [part for part in rel_path.replace("\\", "/").split("/") if part not in ("", ".")]
    if not parts:
        raise BadPathError("Empty path", path=rel_path)
    return "/".join(parts)


def resolve_media_path(
    root: Union[str, Path],
    rel_path: str,
    unquote: bool = True,
) -> Path:
    """
    Map a client-supplied relative path to an existing file under ``root``.

    Args:
        root: Media (or music) root directory
        rel_path: URL-encoded relative path
        unquote: Percent-decode ``rel_path`` first

    Returns:
        Absolute, symlink-resolved path of a regular file inside ``root``

    Raises:
        BadPathError: If the resolved path escapes ``root``
        NotFoundError: If the path does not exist or is not a regular file

    Example:
        >>> resolve_media_path("/photos", "trip%202019/IMG_1.jpg")
        PosixPath('/photos/trip 2019/IMG_1.jpg')
    """
    clean = normalize_rel_path(rel_path, unquote=unquote)
    root_path = Path(root).resolve()
    candidate = (root_path / clean).resolve()

    if candidate != root_path and root_path not in candidate.parents:
        logger.warning("Rejected path outside root: %r", rel_path)
        raise BadPathError("Path escapes media root", path=rel_path)

    if not candidate.is_file():
        raise NotFoundError(f"File not found: {clean}", path=clean)

    return candidate


def to_rel_path(root: Union[str, Path], path: Union[str, Path]) -> str:
    """
    Forward-slash path of ``path`` relative to ``root``.

    Raises:
        ValueError: If ``path`` is not under ``root``.
    """
    return Path(path).relative_to(Path(root)).as_posix()


def thumbnail_rel_path(rel_path: str, hidden_dir: str = ".thumbnails") -> str:
    """Relative location of the thumbnail for a media file (``.thumbnails/a/b.jpg.jpg``)."""
    return f"{hidden_dir}/{rel_path}.jpg"
