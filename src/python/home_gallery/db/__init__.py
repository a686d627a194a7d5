"""Persistence layer for the media catalogue."""

from home_gallery.db.catalogue import MediaCatalogue, build_engine
from home_gallery.db.models import Base, MediaModel

__all__ = ["Base", "MediaCatalogue", "MediaModel", "build_engine"]
