"""
Error taxonomy for the favorites ingestion engine.

Whether an error stops a run or only skips one candidate is decided by the
source adapter that raised it (see `SourceAdapter.failure_policy`), not here.
"""

from __future__ import annotations

from typing import Optional


class ArchiverError(Exception):
    """Base class for all archiver errors."""


class ConfigurationError(ArchiverError):
    """Credentials or library root missing; a run cannot start."""


class SyncAlreadyRunningError(ArchiverError):
    pass


class RemoteProtocolError(ArchiverError):
    """
    Non-success response (or transport failure) from a remote service.

    Attributes:
        status_code: HTTP status code, if the server answered at all.
        url: The requested URL.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class ParseError(ArchiverError):
    """Remote markup or payload did not have an expected field."""


class MediaFetchError(ArchiverError):
    """Downloading the media bytes of a resolved candidate failed."""


class UnavailableMediaError(ArchiverError):
    """The remote post exists but exposes no downloadable file."""

    def __init__(self, message: str, *, reason: str = "missing_file_url") -> None:
        super().__init__(message)
        self.reason = reason


class DuplicateItemError(ArchiverError):
    """
    Uniqueness constraint hit at persist time.

    Expected race between the pre-check and the write; callers count it as a
    skip, never as a failure.
    """

    def __init__(self, message: str, *, by_hash: bool = False) -> None:
        super().__init__(message)
        self.by_hash = by_hash


class PersistenceError(ArchiverError):
    """Disk or database failure while persisting one item."""
