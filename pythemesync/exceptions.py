"""Custom exceptions for Shopify theme sync."""

from typing import Any, Optional


class ThemeSyncError(Exception):
    """Base exception for all theme sync errors."""

    pass


class ThemeSyncConfigError(ThemeSyncError):
    """Raised when a shop configuration is missing or invalid.

    Fatal to the affected shop only; other shops keep syncing.
    """

    pass


class ThemeSyncNetworkError(ThemeSyncError):
    """Raised when the request never reached the remote store."""

    pass


class ThemeSyncAPIError(ThemeSyncError):
    """Raised when the remote store rejected a request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors


class ThemeSyncTransformError(ThemeSyncError):
    """Raised when asset contents could not be minified."""

    pass


class ThemeSyncFileError(ThemeSyncError):
    """Raised when a local file cannot be read."""

    def __init__(self, path: Any, reason: str):
        super().__init__(f"Cannot read {path}: {reason}")
        self.path = path
