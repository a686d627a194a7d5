"""Thumbnail generation for media files.

Thumbnails live under a hidden directory of the media root that mirrors the
source tree: ``<root>/.thumbnails/<rel_path>.jpg``. A thumbnail is reused while
its mtime is at least the source's mtime and re-rendered otherwise.

Images are decoded and resized with Pillow. Videos get a frame extracted by
``ffmpeg``; when that is not possible a placeholder card is drawn instead so
every catalogued file has a thumbnail.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from home_gallery.config import GalleryConfig
from home_gallery.errors import ThumbnailFailedError
from home_gallery.models import MediaKind
from home_gallery.paths import thumbnail_rel_path

logger = logging.getLogger(__name__)

FFMPEG_BIN = "ffmpeg"
DEFAULT_SEEK_SECONDS = 5.0
MAX_PLACEHOLDER_NAME = 30

# Placeholder palette
_GRADIENT_TOP = (45, 55, 72)
_GRADIENT_BOTTOM = (26, 32, 44)


def scaled_size(width: int, height: int, edge: int) -> Tuple[int, int]:
    """Dimensions with ``max(w, h) == edge`` preserving aspect ratio."""
    if width >= height:
        return edge, max(1, round(height * edge / width))
    return max(1, round(width * edge / height)), edge


def seek_position(duration_sec: Optional[float]) -> float:
    """Frame position for a video thumbnail: 5s, or mid-video for short clips."""
    if duration_sec is not None and 0 < duration_sec < DEFAULT_SEEK_SECONDS:
        return duration_sec / 2
    return DEFAULT_SEEK_SECONDS


def _partial_path(target: Path) -> Path:
    return target.with_suffix(".part.jpg")


def _align_mtime(source: Path, target: Path) -> None:
    """Thumbnail mtime must not be older than the source mtime."""
    source_mtime = source.stat().st_mtime
    if target.stat().st_mtime < source_mtime:
        os.utime(target, (source_mtime, source_mtime))


class ThumbnailRenderer:
    """Render and refresh thumbnails under the hidden thumbnail directory."""

    def __init__(self, config: GalleryConfig, timeout: Optional[float] = None):
        self.media_root = Path(config.media_root)
        self.settings = config.thumbnails
        self.timeout = timeout if timeout is not None else config.indexer.probe_timeout

    def rel_path_for(self, rel_path: str) -> str:
        return thumbnail_rel_path(rel_path, self.settings.hidden_dir)

    def target_path(self, rel_path: str) -> Path:
        """Absolute thumbnail location for a media file."""
        return self.media_root / self.rel_path_for(rel_path)

    @staticmethod
    def is_fresh(source: Path, target: Path) -> bool:
        """A thumbnail is fresh if it exists and is not older than its source."""
        try:
            return target.is_file() and target.stat().st_mtime >= source.stat().st_mtime
        except OSError:
            return False

    def render(
        self,
        source: Path,
        rel_path: str,
        kind: MediaKind,
        duration_sec: Optional[float] = None,
        force: bool = False,
    ) -> Optional[str]:
        """Render (or reuse) the thumbnail for a media file.

        Args:
            source: Absolute path of the media file.
            rel_path: Catalogue key of the media file.
            kind: IMAGE or VIDEO.
            duration_sec: Probed video duration, used to pick the frame.
            force: Re-render even if the existing thumbnail is fresh.

        Returns:
            Thumbnail path relative to the media root, or None if rendering failed.
        """
        target = self.target_path(rel_path)
        if not force and self.is_fresh(source, target):
            return self.rel_path_for(rel_path)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if kind is MediaKind.VIDEO:
                self.render_video(source, target, duration_sec)
            else:
                self.render_image(source, target)
        except (ThumbnailFailedError, OSError) as e:
            logger.warning("Could not generate thumbnail for %s: %s", rel_path, e)
            return None

        _align_mtime(source, target)
        return self.rel_path_for(rel_path)

    def render_image(self, source: Path, target: Path) -> None:
        """Resize an image so its longer edge is ``edge_px`` and save it as JPEG.

        Raises:
            ThumbnailFailedError: If the image cannot be decoded.
        """
        try:
            with Image.open(source) as img:
                img = ImageOps.exif_transpose(img)
                if img.mode != 'RGB':
                    img = img.convert('RGB')
                size = scaled_size(img.width, img.height, self.settings.edge_px)
                thumb = img.resize(size, Image.Resampling.BICUBIC)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise ThumbnailFailedError(f"Could not read image: {e}", path=str(source)) from e

        self._save_jpeg(thumb, target)
        logger.debug("Generated thumbnail: %s -> %s (%dx%d)", source.name, target, *size)

    def render_video(self, source: Path, target: Path, duration_sec: Optional[float] = None) -> None:
        """Extract a representative frame, falling back to a placeholder card."""
        if self._extract_frame(source, target, duration_sec):
            if self.settings.play_badge:
                self._add_play_badge(target)
            return
        self.render_placeholder(source, target)

    def _extract_frame(self, source: Path, target: Path, duration_sec: Optional[float]) -> bool:
        partial = _partial_path(target)
        command = [
            FFMPEG_BIN,
            "-y",
            "-ss", f"{seek_position(duration_sec):.2f}",
            "-i", str(source),
            "-frames:v", "1",
            "-vf", f"scale={self.settings.video_width}:-1",
            "-q:v", "2",
            str(partial),
        ]
        try:
            completed = subprocess.run(command, capture_output=True, timeout=self.timeout, check=False)
        except FileNotFoundError:
            logger.warning("%s not available, using placeholder for %s", FFMPEG_BIN, source.name)
            return False
        except subprocess.TimeoutExpired:
            logger.warning("%s timed out after %ss for %s", FFMPEG_BIN, self.timeout, source.name)
            partial.unlink(missing_ok=True)
            return False

        if completed.returncode != 0 or not partial.is_file() or partial.stat().st_size == 0:
            stderr = completed.stderr.decode("utf-8", errors="replace")[-500:] if completed.stderr else ""
            logger.warning("%s failed with exit code %s for %s: %s",
                           FFMPEG_BIN, completed.returncode, source.name, stderr)
            partial.unlink(missing_ok=True)
            return False

        os.replace(partial, target)
        return True

    def _add_play_badge(self, target: Path) -> None:
        """Draw a translucent play badge in the bottom-left corner of a frame."""
        try:
            with Image.open(target) as frame:
                frame = frame.convert('RGBA')
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            logger.debug("Skipping play badge for %s: %s", target, e)
            return

        overlay = Image.new('RGBA', frame.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        box = max(24, min(frame.size) // 8)
        x0, y0 = 10, frame.height - box - 10
        draw.rounded_rectangle((x0, y0, x0 + box, y0 + box), radius=box // 5,
                               fill=(0, 0, 0, 180), outline=(255, 255, 255, 120), width=2)
        inset = box // 4
        draw.polygon(
            [(x0 + inset + 2, y0 + inset), (x0 + inset + 2, y0 + box - inset),
             (x0 + box - inset, y0 + box // 2)],
            fill=(255, 255, 255, 230),
        )
        self._save_jpeg(Image.alpha_composite(frame, overlay).convert('RGB'), target)

    def render_placeholder(self, source: Path, target: Path) -> None:
        """Draw a gradient card with a play icon and the (truncated) filename."""
        size = self.settings.edge_px
        card = Image.new('RGB', (size, size), _GRADIENT_TOP)
        draw = ImageDraw.Draw(card)
        for y in range(size):
            ratio = y / max(1, size - 1)
            color = tuple(
                round(top + (bottom - top) * ratio)
                for top, bottom in zip(_GRADIENT_TOP, _GRADIENT_BOTTOM)
            )
            draw.line([(0, y), (size, y)], fill=color)

        overlay = Image.new('RGBA', card.size, (0, 0, 0, 0))
        icon = ImageDraw.Draw(overlay)
        circle = size * 3 // 10
        cx, cy = (size - circle) // 2, (size - circle) // 2
        icon.ellipse((cx, cy, cx + circle, cy + circle), fill=(255, 255, 255, 200))
        icon.polygon(
            [(cx + circle * 3 // 8, cy + circle * 7 // 24),
             (cx + circle * 3 // 8, cy + circle * 17 // 24),
             (cx + circle * 17 // 24, cy + circle // 2)],
            fill=_GRADIENT_TOP + (255,),
        )
        card = Image.alpha_composite(card.convert('RGBA'), overlay).convert('RGB')

        name = source.name
        if len(name) > MAX_PLACEHOLDER_NAME:
            name = name[:MAX_PLACEHOLDER_NAME - 3] + "..."
        draw = ImageDraw.Draw(card)
        font = ImageFont.load_default()
        text_width = draw.textlength(name, font=font)
        draw.text(((size - text_width) / 2, size - 30), name, fill=(255, 255, 255), font=font)

        self._save_jpeg(card, target)
        logger.debug("Generated placeholder thumbnail for video: %s", source.name)

    def _save_jpeg(self, img: Image.Image, target: Path) -> None:
        """Write via a temporary file so readers never see a partial thumbnail."""
        partial = _partial_path(target)
        try:
            img.save(partial, 'JPEG', quality=self.settings.quality, optimize=True)
            os.replace(partial, target)
        except OSError as e:
            partial.unlink(missing_ok=True)
            raise ThumbnailFailedError(f"Could not write thumbnail: {e}", path=str(target)) from e
