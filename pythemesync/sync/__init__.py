"""Sync engine for PyThemeSync - local directory to Shopify theme assets."""

from .engine import SyncerState, SyncRunner, ThemeSyncer
from .events import (
    ChangeNotification,
    EntryKind,
    EntryMetadata,
    OperationKind,
    SyncOperation,
)
from .filter import PathFilter
from .mapper import is_root, map_path
from .operations import SyncOperations
from .transform import (
    build_payload,
    compress_contents,
    compression_method,
    minify,
    should_compress,
    transform,
)
from .watcher import TreeWatcher, walk_tree

__all__ = [
    "ThemeSyncer",
    "SyncRunner",
    "SyncerState",
    "ChangeNotification",
    "EntryKind",
    "EntryMetadata",
    "OperationKind",
    "SyncOperation",
    "PathFilter",
    "map_path",
    "is_root",
    "SyncOperations",
    "build_payload",
    "compress_contents",
    "compression_method",
    "minify",
    "should_compress",
    "transform",
    "TreeWatcher",
    "walk_tree",
]
