"""Flask web layer: HTTP routes and range streaming."""

from home_gallery.web.app import create_app

__all__ = ["create_app"]
