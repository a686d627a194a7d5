"""
Error kinds raised by the gallery core.

Internal layers raise these exceptions and never build HTTP responses; the
web layer maps each kind to a status code.
"""

from typing import Optional


class GalleryError(Exception):
    """Base class for all gallery errors."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str = "", *, path: Optional[str] = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.path = path


class BadPathError(GalleryError):
    """A client-supplied path failed normalization (traversal, NUL bytes)."""

    kind = "bad-path"
    status_code = 400


class BadRequestError(GalleryError):
    """A request parameter is out of range or malformed."""

    kind = "bad-request"
    status_code = 400


class NotFoundError(GalleryError):
    """A file or record does not exist."""

    kind = "not-found"
    status_code = 404


class RangeNotSatisfiableError(GalleryError):
    """A byte range cannot be served for a file of the given size."""

    kind = "range-not-satisfiable"
    status_code = 416

    def __init__(self, size: int, message: str = ""):
        super().__init__(message or f"Requested range not satisfiable for size {size}")
        self.size = size


class ProbeFailedError(GalleryError):
    """Metadata extraction failed. Never surfaced to clients."""

    kind = "probe-failed"


class ThumbnailFailedError(GalleryError):
    """Thumbnail rendering failed. Never surfaced to clients."""

    kind = "thumbnail-failed"


class IndexerIOError(GalleryError):
    """An I/O failure while indexing a single file."""

    kind = "indexer-io"
