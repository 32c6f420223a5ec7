"""Custom exceptions for mediadisplay."""

from typing import Any, Optional


class MediaDisplayError(Exception):
    """Base exception for mediadisplay."""
    pass


class NotAuthorized(MediaDisplayError):
    """Username has no stored account."""
    pass


class RemoteRequestFailed(MediaDisplayError):
    """Transport failure, non-2xx status or unreadable body."""

    def __init__(self, message: str, status: Optional[int] = None, response: Any = None):
        super().__init__(message)
        self.status = status
        self.response = response


class RemoteAPIError(MediaDisplayError):
    """The API answered with an ``error`` object."""

    def __init__(self, message: str, error: Optional[dict] = None, status: Optional[int] = None):
        super().__init__(message)
        self.error = error or {}
        self.status = status

    @property
    def error_type(self) -> str:
        return self.error.get("type", "")

    @property
    def is_oauth(self) -> bool:
        return self.error_type == "OAuthException"


class NoData(MediaDisplayError):
    """Well-formed response without any ``data``."""
    pass


class RefreshFailed(MediaDisplayError):
    """Refreshing a long-lived token did not yield a new token."""
    pass


class NotificationError(MediaDisplayError):
    """Failed to notify the site administrator."""
    pass
