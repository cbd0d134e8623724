"""Path filtering for the theme syncer.

Shopify's filesystem is case insensitive, so all name comparisons here are
too.
"""

import os
from collections.abc import Iterable
from typing import Union

from ..models import SyncOptions
from ..utils import DEFAULT_BLACKLIST, DEFAULT_VALID_DIRECTORIES
from .events import EntryKind


class PathFilter:
    """Decides which local paths must never reach the remote store.

    Examples:
        >>> path_filter = PathFilter()
        >>> path_filter.is_blocked("/shop/123/assets/Thumbs.db")
        True
        >>> path_filter.is_blocked("/shop/123/.git", EntryKind.DIRECTORY)
        True
        >>> path_filter.is_blocked("/shop/123/Templates", EntryKind.DIRECTORY)
        False
    """

    def __init__(
        self,
        blacklist: Iterable[str] = DEFAULT_BLACKLIST,
        valid_directories: Iterable[str] = DEFAULT_VALID_DIRECTORIES,
        ignore_dot_files: bool = True,
    ):
        """Initialize the filter.

        Args:
            blacklist: File/directory names that are never synced
            valid_directories: Directory names whose contents may be synced
                when the directory is created or renamed
            ignore_dot_files: Block names starting with a dot
        """
        self.blacklist = frozenset(name.lower() for name in blacklist)
        self.valid_directories = frozenset(name.lower() for name in valid_directories)
        self.ignore_dot_files = ignore_dot_files

    @classmethod
    def from_options(cls, options: SyncOptions) -> "PathFilter":
        return cls(
            blacklist=options.blacklist,
            valid_directories=options.valid_directories,
            ignore_dot_files=options.ignore_dot_files,
        )

    @staticmethod
    def _name(path: Union[str, os.PathLike]) -> str:
        return os.path.basename(os.path.normpath(os.fspath(path)))

    def is_dot_file(self, path: Union[str, os.PathLike]) -> bool:
        return self.ignore_dot_files and self._name(path).startswith(".")

    def is_blacklisted(self, path: Union[str, os.PathLike]) -> bool:
        return self._name(path).lower() in self.blacklist

    def is_valid_directory(self, path: Union[str, os.PathLike]) -> bool:
        return self._name(path).lower() in self.valid_directories

    def is_blocked(
        self, path: Union[str, os.PathLike], kind: EntryKind = EntryKind.FILE
    ) -> bool:
        """Check if a path should be ignored.

        Args:
            path: Path of the entry
            kind: Entry kind; directories must also be in the allow-list

        Returns:
            True if the path must not be synced
        """
        if self.is_dot_file(path) or self.is_blacklisted(path):
            return True
        if kind == EntryKind.DIRECTORY and not self.is_valid_directory(path):
            return True
        return False
