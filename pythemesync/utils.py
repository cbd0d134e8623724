"""Utility functions for Shopify theme sync."""

import base64
import re
from typing import Optional
from urllib.parse import quote

# =============================================================================
# Constants
# =============================================================================

# File/directory names that are never synced (compared lowercase)
DEFAULT_BLACKLIST: tuple[str, ...] = ("thumbs.db",)

# Top-level theme directories that Shopify accepts (compared lowercase)
DEFAULT_VALID_DIRECTORIES: tuple[str, ...] = (
    "assets",
    "config",
    "layout",
    "snippets",
    "templates",
)

# Poll interval hint passed to the watcher (milliseconds)
DEFAULT_INTERVAL: int = 500

# Number of concurrent requests per shop
DEFAULT_MAX_WORKERS: int = 4

# Suffix for the uncompressed sibling uploaded with `uploadOriginal`
ORIGINAL_SUFFIX: str = ".orig"

JSON_CONTENT_TYPE = re.compile(r"(?:^|;\s*)application/json(?:\s*;|$)")


# =============================================================================
# Endpoint helpers
# =============================================================================


def asset_endpoint(theme_id: str) -> str:
    """Asset collection endpoint of a theme, relative to the admin URL."""
    return f"themes/{theme_id}/assets.json"


# =============================================================================
# Encoding helpers
# =============================================================================


def encode_base64(data: bytes) -> str:
    """Encode bytes as a base64 ASCII string.

    Args:
        data: Raw bytes

    Returns:
        Base64 string (with padding)
    """
    return base64.b64encode(data).decode("ascii")


def encode_uri_component(value: str) -> str:
    """Percent-encode a value for use inside a query string.

    Leaves the same characters unescaped as JavaScript's
    ``encodeURIComponent`` so asset keys look the way Shopify expects.

    Examples:
        >>> encode_uri_component("assets/logo.png")
        'assets%2Flogo.png'
    """
    return quote(value, safe="!*'()")


def is_json_content_type(content_type: Optional[str]) -> bool:
    """Check if a Content-Type header declares JSON.

    Matches ``application/json`` exactly or with parameters, e.g.
    ``application/json; charset=utf-8``.
    """
    if not content_type:
        return False
    return JSON_CONTENT_TYPE.search(content_type) is not None


# =============================================================================
# Display helpers
# =============================================================================


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """Mask a secret, keeping only its last few characters.

    Examples:
        >>> mask_secret("abcdef123456")
        '********3456'
    """
    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
