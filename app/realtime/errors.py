"""Errors raised by the realtime sync client."""


class SyncError(Exception):
    """Base class for recoverable sync client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SyncNotConnectedError(SyncError):
    """A create was attempted while the change feed is not connected."""

    def __init__(self, message: str = "Real-time sync is not connected"):
        super().__init__(message)


class BookmarkValidationError(SyncError):
    """Bookmark input rejected locally, before contacting the store."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class BookmarkStoreError(SyncError):
    """The bookmark store rejected or failed a write. Safe to retry."""


class SessionExpiredError(SyncError):
    """The store no longer accepts the session; the page must log in again."""

    def __init__(self, message: str = "Session expired"):
        super().__init__(message)
