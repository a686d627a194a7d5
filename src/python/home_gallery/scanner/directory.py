"""
Directory scanning for discovering media files and folders.

All walkers prune the hidden thumbnail directory at the top of the media root
and ignore macOS ``._`` resource-fork files.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Union

from home_gallery.models import is_audio_file, is_image_file, is_media_file

logger = logging.getLogger(__name__)


def _raise_walk_error(error: OSError) -> None:
    raise error


def iter_media_files(
    root: Union[str, Path],
    hidden_dir: Optional[str] = ".thumbnails",
    accept: Callable[[str], bool] = is_media_file,
    strict: bool = False,
) -> Iterator[Path]:
    """
    Walk ``root`` recursively yielding regular files accepted by ``accept``.

    Args:
        root: Directory to scan
        hidden_dir: Name of the thumbnail directory directly under root to skip
        accept: Filename predicate (defaults to images and videos)
        strict: If True, directory read errors propagate as OSError;
                otherwise they are logged and the directory is skipped

    Yields:
        Absolute file paths, directories visited in sorted order
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Directory not found: {root}")

    onerror = _raise_walk_error if strict else (
        lambda error: logger.warning("Skipping unreadable directory: %s", error)
    )

    for dirpath, dirnames, filenames in os.walk(root, onerror=onerror):
        current = Path(dirpath)
        if hidden_dir and current == root and hidden_dir in dirnames:
            dirnames.remove(hidden_dir)
        dirnames.sort()

        for filename in sorted(filenames):
            if not accept(filename):
                continue
            file_path = current / filename
            if file_path.is_file():
                yield file_path


def list_image_paths(root: Union[str, Path], hidden_dir: Optional[str] = ".thumbnails") -> List[str]:
    """
    All slideshow-eligible images under ``root`` as forward-slash relative paths.

    Returns:
        Relative paths in walk order (folders sorted, files sorted)
    """
    root = Path(root)
    return [
        path.relative_to(root).as_posix()
        for path in iter_media_files(root, hidden_dir=hidden_dir, accept=is_image_file)
    ]


def has_direct_images(folder: Path) -> bool:
    """Check if a folder's own children (not grandchildren) include an image."""
    try:
        with os.scandir(folder) as entries:
            return any(
                entry.is_file() and is_image_file(entry.name)
                for entry in entries
            )
    except OSError as e:
        logger.warning("Could not list %s: %s", folder, e)
        return False


def list_folders_with_direct_images(
    root: Union[str, Path],
    hidden_dir: Optional[str] = ".thumbnails",
) -> List[str]:
    """
    List folders under ``root`` that directly contain at least one image.

    A parent whose images live only in subfolders is not listed, and the root
    itself is never listed.

    Args:
        root: Media root directory
        hidden_dir: Thumbnail directory to skip

    Returns:
        Sorted forward-slash relative folder paths

    Example:
        >>> list_folders_with_direct_images(Path("/photos"))
        ['2019/christmas', 'europe', 'europe/paris']
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Directory not found: {root}")

    folders = []
    for dirpath, dirnames, _ in os.walk(root):
        current = Path(dirpath)
        if current == root:
            if hidden_dir and hidden_dir in dirnames:
                dirnames.remove(hidden_dir)
            continue
        if has_direct_images(current):
            folders.append(current.relative_to(root).as_posix())

    return sorted(folders)


def list_music_paths(music_root: Union[str, Path]) -> List[str]:
    """
    Sorted relative paths of audio files under ``music_root``.

    Returns an empty list when the music root does not exist.
    """
    music_root = Path(music_root)
    if not music_root.is_dir():
        return []
    return sorted(
        path.relative_to(music_root).as_posix()
        for path in iter_media_files(music_root, hidden_dir=None, accept=is_audio_file)
    )
