"""Error handling utilities."""

from typing import Optional


class ArchiverError(Exception):
    """Base exception for the Slack archiver."""
    pass


class ConfigurationError(ArchiverError):
    """Missing or invalid configuration value."""
    pass


class FetchError(ArchiverError):
    """A Slack API request failed."""

    def __init__(self, message: str, method: Optional[str] = None, error_code: Optional[str] = None):
        super().__init__(message)
        self.method = method
        self.error_code = error_code


class StoreError(ArchiverError):
    """Supabase operation error."""
    pass


class SyncAbortedError(ArchiverError):
    """The whole sync run was aborted."""
    pass
