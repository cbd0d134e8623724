"""Mapping of local paths to remote asset locations."""

import os
from pathlib import Path
from typing import Union

from ..models import RemoteResourceRef
from ..utils import asset_endpoint, encode_uri_component

PathLike = Union[str, os.PathLike]


def map_path(
    base_path: PathLike, file_path: PathLike, key_in_query: bool = False
) -> RemoteResourceRef:
    """Map a local file to its theme and asset key.

    The shop directory holds one directory per theme id; everything below it
    is the asset key, e.g. ``<base>/123/assets/app.js`` maps to theme
    ``123`` and key ``assets/app.js``.

    Args:
        base_path: The shop directory being watched
        file_path: A path below ``base_path``
        key_in_query: Append ``?asset[key]=<key>`` to the request URI, for
            requests that locate the asset by key (deletes)

    Returns:
        RemoteResourceRef for the file

    Raises:
        ValueError: If ``file_path`` is not below ``base_path``

    Examples:
        >>> ref = map_path("/t", "/t/123/assets/logo.png", key_in_query=True)
        >>> ref.asset_key
        'assets/logo.png'
        >>> ref.request_uri
        'themes/123/assets.json?asset[key]=assets%2Flogo.png'
    """
    relative = os.path.relpath(os.fspath(file_path), os.fspath(base_path))
    if relative == os.curdir or relative == os.pardir or relative.startswith(
        os.pardir + os.sep
    ):
        raise ValueError(f"{file_path} is not inside {base_path}")

    parts = relative.split(os.sep)
    theme_id = parts[0]
    asset_key = "/".join(parts[1:])

    request_uri = asset_endpoint(theme_id)
    if key_in_query:
        request_uri += "?asset[key]=" + encode_uri_component(asset_key)

    return RemoteResourceRef(
        theme_id=theme_id, asset_key=asset_key, request_uri=request_uri
    )


def is_root(base_path: PathLike, file_path: PathLike) -> bool:
    """Check whether ``file_path`` is the watched directory itself."""
    return Path(os.path.normpath(os.fspath(file_path))) == Path(
        os.path.normpath(os.fspath(base_path))
    )
