"""Utility functions and helpers for home-gallery."""

__all__ = [
    "setup_logging",
    "format_file_size",
]

from .logging import format_file_size, setup_logging
