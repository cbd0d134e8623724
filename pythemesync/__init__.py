"""PyThemeSync - keep Shopify themes in sync with a local directory."""

from .api import ShopifyClient
from .exceptions import (
    ThemeSyncAPIError,
    ThemeSyncConfigError,
    ThemeSyncError,
    ThemeSyncFileError,
    ThemeSyncNetworkError,
    ThemeSyncTransformError,
)
from .models import AssetPayload, RemoteResourceRef, ShopTarget, SyncOptions, SyncResult

__version__ = "0.1.0"

__all__ = [
    "ShopifyClient",
    "ThemeSyncError",
    "ThemeSyncAPIError",
    "ThemeSyncConfigError",
    "ThemeSyncFileError",
    "ThemeSyncNetworkError",
    "ThemeSyncTransformError",
    "AssetPayload",
    "RemoteResourceRef",
    "ShopTarget",
    "SyncOptions",
    "SyncResult",
]
