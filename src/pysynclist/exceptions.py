"""Custom exception hierarchy for pysynclist."""

from __future__ import annotations


class SyncListError(Exception):
    """Base exception for all pysynclist errors."""


class SyncListConfigError(SyncListError):
    """Invalid or missing configuration."""


class SyncListUsageError(SyncListError, ValueError):
    """An operation was called with arguments it cannot accept.

    Raised synchronously, before anything is written.  The typical case is
    passing a scalar to :meth:`pysynclist.SyncedList.update`: partial-merge
    semantics only exist for keyed values, so scalar replacement must go
    through ``set``/``set_at`` instead.
    """


class SyncListStoreError(SyncListError):
    """A remote store read or write failed (network, permission, bad reply)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        path: str = "",
    ) -> None:
        self.status_code = status_code
        self.path = path
        super().__init__(message)


class SyncListPermissionError(SyncListStoreError):
    """The store rejected the request (HTTP 401/403, revoked credentials)."""


class SyncListStreamError(SyncListStoreError):
    """The change-notification stream was cancelled or sent an unusable event."""
