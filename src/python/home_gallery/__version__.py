"""Version information for home-gallery."""

__version__ = "0.3.0"
