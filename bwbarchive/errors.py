"""Exception types shared across the archive."""

from __future__ import annotations


class ArchiveError(Exception):
    """Base class for archive errors."""
    pass


class FetchError(ArchiveError):
    """The remote source returned a non-success status or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(ArchiveError):
    """A database operation failed for a reason other than a duplicate key."""
    pass


class CatalogError(ArchiveError):
    pass


class DocumentParseError(ArchiveError):
    pass
