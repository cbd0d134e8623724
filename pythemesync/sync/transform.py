"""Minification of assets before upload.

Only JavaScript and JSON are ever touched, and only when the shop enables
``compress.js``. The file on disk is never modified.
"""

import json
import logging
import os
import re
from pathlib import Path
from typing import Optional, Union

from calmjs.parse import es5
from calmjs.parse.unparsers.es5 import minify_print

from ..exceptions import ThemeSyncFileError, ThemeSyncTransformError
from ..models import AssetPayload, SyncOptions
from ..utils import encode_base64

logger = logging.getLogger(__name__)

COMPRESSION_METHODS: dict[str, str] = {
    ".js": "js",
    ".json": "json",
}

# Multi-line comments kept in minified output: "/*!", "/**!" and comments
# mentioning @preserve, @license or IE's conditional compilation @cc_on.
_BLOCK_COMMENT = re.compile(r"/\*([\s\S]*?)\*/")
_PRESERVED_COMMENT = re.compile(r"(^\*?!|@preserve|@license|@cc_on)", re.IGNORECASE)


def compression_method(extension: str) -> Optional[str]:
    """Compression method for a file extension, if there is one."""
    return COMPRESSION_METHODS.get(extension.lower())


def should_compress(extension: str, options: SyncOptions) -> bool:
    """Determine if files with ``extension`` are minified before upload.

    Args:
        extension: File extension including the dot (e.g. ``".js"``)
        options: Shop options

    Returns:
        True if the extension is eligible and ``compress.js`` is enabled
    """
    return compression_method(extension) is not None and options.compress_js


def preserved_comments(source: str) -> list[str]:
    """Collect the comment blocks that must survive minification."""
    return [
        match.group(0)
        for match in _BLOCK_COMMENT.finditer(source)
        if _PRESERVED_COMMENT.search(match.group(1))
    ]


def _compress_js(source: str) -> str:
    try:
        program = es5(source)
        minified = minify_print(
            program, obfuscate=True, obfuscate_globals=False, drop_semi=True
        )
    except Exception as e:
        raise ThemeSyncTransformError(f"Cannot minify JavaScript: {e}") from e

    comments = preserved_comments(source)
    if comments:
        return "\n".join(comments) + "\n" + minified
    return minified


def _compress_json(source: str) -> str:
    try:
        data = json.loads(source)
    except ValueError as e:
        raise ThemeSyncTransformError(f"Cannot minify JSON: {e}") from e
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def transform(data: bytes, method: str) -> bytes:
    """Minify ``data`` with the given method.

    Args:
        data: File contents (UTF-8)
        method: ``"js"`` or ``"json"``

    Returns:
        Minified contents

    Raises:
        ValueError: If the method does not exist
        ThemeSyncTransformError: If the contents cannot be parsed
    """
    if method == "js":
        compress = _compress_js
    elif method == "json":
        compress = _compress_json
    else:
        raise ValueError(f"Compression method {method} does not exist.")

    try:
        source = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ThemeSyncTransformError(f"Contents are not valid UTF-8: {e}") from e

    return compress(source).encode("utf-8")


def minify(data: bytes, method: str) -> Optional[bytes]:
    """Minify ``data``, returning None when it did not help.

    A transform failure is logged as a warning rather than raised; the
    caller then uploads the original contents.

    Returns:
        Minified contents, or None if the transform failed or the result
        is larger than the input
    """
    try:
        compressed = transform(data, method)
    except ThemeSyncTransformError as e:
        logger.warning(f"{e}; uploading uncompressed contents")
        return None

    if len(compressed) > len(data):
        logger.debug("Minified output is larger than the original, skipping")
        return None
    return compressed


def compress_contents(data: bytes, method: str) -> bytes:
    """Minify ``data``, falling back to the input unchanged.

    Never returns something larger than ``data``.
    """
    compressed = minify(data, method)
    return data if compressed is None else compressed


def build_payload(
    path: Union[str, os.PathLike], options: SyncOptions
) -> AssetPayload:
    """Read a file and encode it for upload.

    Args:
        path: Local file
        options: Shop options (decides whether to minify)

    Returns:
        AssetPayload with the original and, if minification succeeded and
        helped, the compressed variant

    Raises:
        ThemeSyncFileError: If the file cannot be read
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ThemeSyncFileError(path, e.strerror or str(e)) from e

    compressed: Optional[str] = None
    method = compression_method(path.suffix)
    if method is not None and should_compress(path.suffix, options):
        result = minify(data, method)
        if result is not None:
            compressed = encode_base64(result)

    return AssetPayload(original=encode_base64(data), compressed=compressed)
