"""Configuration loading for Shopify theme sync.

The configuration is a JSON file::

    {
        "options": {"compress": {"js": true}},
        "shops": [
            {
                "name": "my-shop",
                "apiKey": "...",
                "password": "...",
                "directory": "~/themes/my-shop",
                "options": {"uploadOriginal": true}
            }
        ]
    }

Each shop's effective options are the defaults, overridden by the global
``options``, overridden by the shop's own ``options`` (deep merge).
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import ThemeSyncConfigError
from .models import ShopTarget, SyncOptions
from .utils import (
    DEFAULT_BLACKLIST,
    DEFAULT_INTERVAL,
    DEFAULT_MAX_WORKERS,
    DEFAULT_VALID_DIRECTORIES,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PYTHEMESYNC_CONFIG"

DEFAULT_OPTIONS: dict[str, Any] = {
    "compress": {
        # do not minify JavaScript or JSON by default
        "js": False,
    },
    "ignoreDotFiles": True,
    "uploadOriginal": False,
    "interval": DEFAULT_INTERVAL,
    "blacklist": list(DEFAULT_BLACKLIST),
    "validDirectories": list(DEFAULT_VALID_DIRECTORIES),
    "maxWorkers": DEFAULT_MAX_WORKERS,
}


def get_config_path(path: Optional[Union[str, os.PathLike]] = None) -> Path:
    """Resolve the configuration file location.

    Args:
        path: Explicit path; falls back to ``$PYTHEMESYNC_CONFIG`` and then
            ``~/.config/pythemesync/config.json``

    Returns:
        Path of the configuration file
    """
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".config" / "pythemesync" / "config.json"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge ``override`` into a copy of ``base``, recursing into dicts.

    Examples:
        >>> deep_merge({"compress": {"js": False}, "interval": 500},
        ...            {"compress": {"js": True}})
        {'compress': {'js': True}, 'interval': 500}
    """
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def merge_options(*layers: Optional[dict[str, Any]]) -> dict[str, Any]:
    """Apply option layers on top of the defaults, later layers winning."""
    merged = copy.deepcopy(DEFAULT_OPTIONS)
    for layer in layers:
        if layer is None:
            continue
        if not isinstance(layer, dict):
            raise ThemeSyncConfigError("options must be an object")
        merged = deep_merge(merged, layer)
    return merged


def load_config(path: Optional[Union[str, os.PathLike]] = None) -> dict[str, Any]:
    """Read and validate the top level of the configuration file.

    Args:
        path: Configuration file (see :func:`get_config_path`)

    Returns:
        The parsed configuration with ``options`` and ``shops`` keys

    Raises:
        ThemeSyncConfigError: If the file is missing or malformed
    """
    config_path = get_config_path(path)
    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ThemeSyncConfigError(f"Config file not found: {config_path}") from e
    except OSError as e:
        raise ThemeSyncConfigError(f"Cannot read config file {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ThemeSyncConfigError(f"Invalid JSON in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ThemeSyncConfigError(f"{config_path} must contain a JSON object")

    shops = data.get("shops", [])
    if not isinstance(shops, list):
        raise ThemeSyncConfigError("'shops' must be a list")

    return {"options": data.get("options") or {}, "shops": shops}


def _require_string(shop: dict[str, Any], key: str, name: str) -> str:
    value = shop.get(key)
    if not value or not isinstance(value, str):
        raise ThemeSyncConfigError(f"Shop {name!r} is missing a valid {key}")
    return value


def build_target(
    shop: dict[str, Any], global_options: Optional[dict[str, Any]] = None
) -> ShopTarget:
    """Validate one ``shops`` entry and build its ShopTarget.

    Args:
        shop: Shop entry from the configuration
        global_options: Top-level ``options`` of the configuration

    Returns:
        ShopTarget with merged options

    Raises:
        ThemeSyncConfigError: If the entry is invalid or its directory
            doesn't exist
    """
    if not isinstance(shop, dict):
        raise ThemeSyncConfigError("Each shop must be an object")

    name = shop.get("name")
    if not name or not isinstance(name, str):
        raise ThemeSyncConfigError("Shop is missing a valid name")

    api_key = _require_string(shop, "apiKey", name)
    password = _require_string(shop, "password", name)
    directory_value = shop.get("directory")
    if not directory_value or not isinstance(directory_value, str):
        raise ThemeSyncConfigError(f"Shop {name!r}: you must specify a directory")

    directory = Path(directory_value).expanduser().resolve()
    if not directory.is_dir():
        raise ThemeSyncConfigError(
            f"Shop {name!r}: specified directory {directory} does not exist"
        )

    options = merge_options(global_options, shop.get("options"))
    try:
        sync_options = SyncOptions.from_dict(options)
    except (TypeError, ValueError, AttributeError) as e:
        raise ThemeSyncConfigError(f"Shop {name!r}: invalid options: {e}") from e

    return ShopTarget(
        name=name,
        api_key=api_key,
        password=password,
        directory=directory,
        options=sync_options,
    )


def load_targets(
    path: Optional[Union[str, os.PathLike]] = None,
) -> tuple[list[ShopTarget], list[tuple[str, ThemeSyncConfigError]]]:
    """Load every shop from the configuration file.

    An invalid shop does not prevent the others from loading.

    Returns:
        Tuple of (valid targets, list of (shop name, error) for invalid ones)

    Raises:
        ThemeSyncConfigError: If the file itself is missing or malformed
    """
    config = load_config(path)
    targets: list[ShopTarget] = []
    errors: list[tuple[str, ThemeSyncConfigError]] = []

    for index, shop in enumerate(config["shops"]):
        label = shop.get("name") if isinstance(shop, dict) else None
        try:
            targets.append(build_target(shop, config["options"]))
        except ThemeSyncConfigError as e:
            logger.debug(f"Skipping shop #{index}: {e}")
            errors.append((label or f"#{index}", e))

    return targets, errors
