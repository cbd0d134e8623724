"""Data models for Shopify theme sync."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from .utils import (
    DEFAULT_BLACKLIST,
    DEFAULT_INTERVAL,
    DEFAULT_MAX_WORKERS,
    DEFAULT_VALID_DIRECTORIES,
    asset_endpoint,
)

if TYPE_CHECKING:
    from .sync.events import SyncOperation


@dataclass(frozen=True)
class SyncOptions:
    """Per-shop sync options.

    Built from the merged ``options`` bag of the configuration file,
    see :func:`pythemesync.config.merge_options`.
    """

    compress_js: bool = False
    """Minify JavaScript and JSON before uploading"""

    ignore_dot_files: bool = True
    """Never sync files or directories whose name starts with a dot"""

    upload_original: bool = False
    """Also upload the uncompressed file as ``<key>.orig``"""

    interval: int = DEFAULT_INTERVAL
    """Poll interval hint for the watcher, in milliseconds"""

    blacklist: tuple[str, ...] = DEFAULT_BLACKLIST
    """File/directory names that are never synced"""

    valid_directories: tuple[str, ...] = DEFAULT_VALID_DIRECTORIES
    """Directory names whose contents are synced when they appear"""

    max_workers: int = DEFAULT_MAX_WORKERS
    """Number of requests in flight per shop"""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncOptions":
        """Create options from a config ``options`` dictionary.

        Args:
            data: Options using the config file's key names
                (``compress.js``, ``ignoreDotFiles``, ...)

        Returns:
            SyncOptions instance
        """
        compress = data.get("compress") or {}
        return cls(
            compress_js=compress.get("js") is True,
            ignore_dot_files=bool(data.get("ignoreDotFiles", True)),
            upload_original=data.get("uploadOriginal") is True,
            interval=int(data.get("interval", DEFAULT_INTERVAL)),
            blacklist=tuple(
                name.lower() for name in data.get("blacklist", DEFAULT_BLACKLIST)
            ),
            valid_directories=tuple(
                name.lower()
                for name in data.get("validDirectories", DEFAULT_VALID_DIRECTORIES)
            ),
            max_workers=int(data.get("maxWorkers", DEFAULT_MAX_WORKERS)),
        )


@dataclass(frozen=True)
class ShopTarget:
    """One remote shop and the local directory mirrored to it."""

    name: str
    api_key: str
    password: str
    directory: Path
    options: SyncOptions = field(default_factory=SyncOptions)

    @property
    def host(self) -> str:
        """Hostname of the shop's admin API."""
        if "." in self.name:
            return self.name
        return f"{self.name}.myshopify.com"

    @property
    def base_url(self) -> str:
        """Admin API base URL (without credentials)."""
        return f"https://{self.host}/admin/"


@dataclass(frozen=True)
class RemoteResourceRef:
    """Where a local file lives in the remote store."""

    theme_id: str
    """First path segment below the shop directory"""

    asset_key: str
    """Remaining segments joined with ``/``"""

    request_uri: str
    """Endpoint relative to the admin base URL"""

    @property
    def relative_path(self) -> str:
        """Theme id and asset key joined back together."""
        if not self.asset_key:
            return self.theme_id
        return f"{self.theme_id}/{self.asset_key}"

    def sibling(self, suffix: str) -> "RemoteResourceRef":
        """Reference to the asset whose key is this key plus ``suffix``."""
        return RemoteResourceRef(
            theme_id=self.theme_id,
            asset_key=self.asset_key + suffix,
            request_uri=asset_endpoint(self.theme_id),
        )


@dataclass(frozen=True)
class AssetPayload:
    """Base64-encoded asset contents ready for upload."""

    original: str
    compressed: Optional[str] = None

    @property
    def attachment(self) -> str:
        """The variant that is uploaded: compressed if available."""
        return self.compressed if self.compressed else self.original


@dataclass
class SyncResult:
    """Outcome of a single dispatched operation.

    Exactly one of the error fields is set when the operation failed, so
    callers can tell "never reached the remote" from "remote rejected it".
    """

    operation: "SyncOperation"
    data: Any = None
    transport_error: Optional[Exception] = None
    application_error: Optional[Exception] = None
    local_error: Optional[Exception] = None

    @property
    def error(self) -> Optional[Exception]:
        """Whichever error occurred, if any."""
        return self.transport_error or self.application_error or self.local_error

    @property
    def ok(self) -> bool:
        """True if the remote store accepted the operation."""
        return self.error is None
