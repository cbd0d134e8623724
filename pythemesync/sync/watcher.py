"""Filesystem watching for the theme syncer.

Turns watchdog events into ChangeNotifications carrying current and
previous metadata, and provides the recursive listing used to expand
newly created directories.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional, Union

from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    FileSystemMovedEvent,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from ..utils import DEFAULT_INTERVAL
from .events import ChangeNotification, EntryKind, EntryMetadata
from .filter import PathFilter

logger = logging.getLogger(__name__)

NotificationHandler = Callable[[ChangeNotification], None]


def walk_tree(
    directory: Union[str, os.PathLike],
    path_filter: Optional[PathFilter] = None,
) -> dict[Path, EntryMetadata]:
    """Recursively list a directory.

    Best effort: entries that vanish or cannot be read while walking are
    skipped. Entries blocked by ``path_filter`` (dot files, blacklisted
    names) are skipped together with their contents.

    Args:
        directory: Directory to list
        path_filter: Optional filter applied to every entry

    Returns:
        Metadata of every descendant (files and directories), keyed by path
    """
    entries: dict[Path, EntryMetadata] = {}
    stack = [Path(directory)]

    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as iterator:
                children = list(iterator)
        except OSError as e:
            logger.debug(f"Cannot list {current}: {e}")
            continue

        for child in children:
            path = Path(child.path)
            if path_filter is not None and path_filter.is_blocked(path):
                continue
            try:
                metadata = EntryMetadata.from_stat(child.stat())
            except OSError:
                continue
            entries[path] = metadata
            if metadata.is_dir:
                stack.append(path)

    return entries


class TreeWatcher(FileSystemEventHandler):
    """Watches a directory tree and reports changes to a handler.

    The handler receives notifications one at a time from the observer
    thread. After :meth:`start` has walked the tree it receives the
    ``walk_complete`` control notification, then one notification per
    change:

    - created: ``(path, current, None)``
    - modified: ``(path, current, previous)``
    - deleted: ``(path, removed, previous)`` for the path and for every
      file known below it
    - moved: a deletion of the source followed by a creation of the
      destination
    """

    def __init__(
        self,
        root: Union[str, os.PathLike],
        handler: NotificationHandler,
        path_filter: Optional[PathFilter] = None,
        interval: int = DEFAULT_INTERVAL,
        native: bool = False,
    ):
        """Initialize the watcher.

        Args:
            root: Directory to watch
            handler: Receives every notification
            path_filter: Filter applied while walking the tree
            interval: Poll interval in milliseconds
            native: Use the platform's native observer instead of polling
        """
        super().__init__()
        self.root = Path(root)
        self.handler = handler
        self.path_filter = path_filter
        self.interval = interval
        self.native = native
        self._known: dict[Path, EntryMetadata] = {}
        self._observer: Optional[BaseObserver] = None

    # =========================
    # Lifecycle
    # =========================

    def start(self) -> None:
        """Walk the tree, then start watching it.

        The control notification is sent once the observer is running, so
        no change made after it can be missed.

        Raises:
            OSError: If the observer cannot watch the directory
        """
        logger.info(f"Walking directory tree: {self.root}")
        self._known = walk_tree(self.root, self.path_filter)

        if self.native:
            observer: BaseObserver = Observer()
        else:
            observer = PollingObserver(timeout=self.interval / 1000)
        observer.schedule(self, str(self.root), recursive=True)
        observer.start()
        self._observer = observer

        self._emit(ChangeNotification.walk_complete())

    def stop(self) -> None:
        """Stop watching and wait for the observer thread to exit."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def is_alive(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    # =========================
    # Event translation
    # =========================

    def _emit(self, notification: ChangeNotification) -> None:
        try:
            self.handler(notification)
        except Exception:
            # keep the observer thread alive for the next event
            logger.exception(f"Failed to handle change of {notification.path}")

    def _ignored(self, path: Path) -> bool:
        """Check whether the path or one of its parents below the root is blocked."""
        if self.path_filter is None:
            return False
        try:
            parts = path.relative_to(self.root).parts
        except ValueError:
            return True
        current = self.root
        for part in parts:
            current = current / part
            if self.path_filter.is_blocked(current):
                return True
        return False

    def _stat(self, path: Path) -> Optional[EntryMetadata]:
        try:
            return EntryMetadata.from_path(path)
        except OSError:
            return None

    def _created(self, path: Path) -> None:
        current = self._stat(path)
        if current is None:
            # already gone again
            return
        self._known[path] = current
        if current.is_dir:
            self._known.update(walk_tree(path, self.path_filter))
        self._emit(ChangeNotification(path=path, current=current, previous=None))

    def _deleted(self, path: Path, is_directory: bool) -> None:
        previous = self._known.pop(path, None)
        if previous is None:
            kind = EntryKind.DIRECTORY if is_directory else EntryKind.FILE
            previous = EntryMetadata(kind=kind)

        descendants = sorted(p for p in self._known if path in p.parents)
        for child in descendants:
            child_previous = self._known.pop(child)
            if child_previous.is_file:
                self._emit(
                    ChangeNotification(
                        path=child,
                        current=child_previous.removed(),
                        previous=child_previous,
                    )
                )

        self._emit(
            ChangeNotification(path=path, current=previous.removed(), previous=previous)
        )

    def on_created(self, event: FileSystemEvent) -> None:
        path = Path(os.fsdecode(event.src_path))
        if not self._ignored(path):
            self._created(path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = Path(os.fsdecode(event.src_path))
        if self._ignored(path):
            return
        current = self._stat(path)
        if current is None:
            return
        previous = self._known.get(path)
        self._known[path] = current
        self._emit(ChangeNotification(path=path, current=current, previous=previous))

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = Path(os.fsdecode(event.src_path))
        if not self._ignored(path):
            self._deleted(path, event.is_directory)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not isinstance(event, FileSystemMovedEvent):
            return
        source = Path(os.fsdecode(event.src_path))
        destination = Path(os.fsdecode(event.dest_path))
        if source not in self._known and destination in self._known:
            # contents of a moved directory, already handled with the directory
            return
        if not self._ignored(source):
            self._deleted(source, event.is_directory)
        if not self._ignored(destination):
            self._created(destination)
