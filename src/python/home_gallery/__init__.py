"""
Home Gallery - photo slideshow, "on this day" memories and media indexing.

The package scans a folder of photos and videos, keeps a catalogue of capture
dates with thumbnails, and serves a browser slideshow and memories page.
"""

from home_gallery.__version__ import __version__
from home_gallery.config import GalleryConfig, load_config
from home_gallery.errors import GalleryError

__all__ = ["GalleryConfig", "GalleryError", "__version__", "load_config"]
