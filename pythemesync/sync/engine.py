"""Core sync engine: turns change notifications into remote operations."""

import functools
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from ..api import ShopifyClient
from ..exceptions import ThemeSyncConfigError, ThemeSyncError
from ..models import ShopTarget, SyncResult
from ..output import OutputFormatter
from .events import ChangeNotification, EntryKind, OperationKind, SyncOperation
from .filter import PathFilter
from .mapper import is_root, map_path
from .operations import SyncOperations
from .watcher import TreeWatcher, walk_tree

logger = logging.getLogger(__name__)

StatusCallback = Callable[[Optional[Exception], Any, str], None]


class SyncerState(str, Enum):
    """Lifecycle of a ThemeSyncer."""

    INITIALIZING = "initializing"
    """The watcher is still walking the directory tree"""

    WATCHING = "watching"
    """Changes are synced as they arrive"""


class ThemeSyncer:
    """Keeps one shop's themes in sync with its local directory.

    Notifications are classified synchronously; the resulting requests are
    dispatched to a thread pool and never awaited. Each finished operation
    is reported once to ``callback(error, data, message)``. Completions
    may arrive in any order.

    Examples:
        >>> syncer = ThemeSyncer(target, callback=output.handle_response)
        >>> watcher = TreeWatcher(target.directory, syncer.handle)
        >>> watcher.start()
    """

    def __init__(
        self,
        target: ShopTarget,
        client: Optional[ShopifyClient] = None,
        callback: Optional[StatusCallback] = None,
        executor: Optional[Executor] = None,
    ):
        """Initialize the syncer.

        Args:
            target: Shop to sync
            client: Client for the shop (created from ``target`` if omitted)
            callback: Receives the outcome of every operation
            executor: Pool that runs requests (one is created if omitted)
        """
        self.target = target
        self.directory = Path(target.directory)
        self.options = target.options
        self.callback = callback
        self.path_filter = PathFilter.from_options(target.options)
        self.state = SyncerState.INITIALIZING

        self._owns_executor = executor is None
        self.executor: Executor = executor or ThreadPoolExecutor(
            max_workers=target.options.max_workers,
            thread_name_prefix=f"pythemesync-{target.name}",
        )
        self.client = client or ShopifyClient(target, executor=self.executor)
        self.operations = SyncOperations(self.client, target.options)

    # =========================
    # Classification
    # =========================

    def plan(self, notification: ChangeNotification) -> list[SyncOperation]:
        """Classify a notification into the operations it requires.

        Args:
            notification: Change reported by the watcher

        Returns:
            Operations to run, possibly none. A new allow-listed directory
            yields one CREATE per file inside it.
        """
        if notification.is_walk_complete:
            if self.state != SyncerState.WATCHING:
                self.state = SyncerState.WATCHING
                logger.info(f"Now watching directory tree: {self.directory}")
            return []

        path = notification.path
        current = notification.current
        if path is None or current is None:
            logger.debug(f"Ignoring incomplete notification: {notification}")
            return []

        # the shop directory itself can't be deleted at Shopify
        if is_root(self.directory, path):
            return []

        # the watcher sometimes lets filtered files through, so check again
        if self.path_filter.is_dot_file(path):
            logger.info(f"dotFile file ignored: {path}")
            return []
        if self.path_filter.is_blacklisted(path):
            logger.info(f"filtered file ignored: {path}")
            return []

        if notification.previous is None:
            if current.is_file:
                return [self._operation(OperationKind.CREATE, path)]
            if current.is_dir:
                if self.path_filter.is_blocked(path, EntryKind.DIRECTORY):
                    logger.debug(f"Ignoring directory outside the theme layout: {path}")
                    return []
                return self._expand_directory(path)
            return []

        if current.is_removed:
            # removed directories show up as deletions of each file inside
            if current.is_dir:
                return []
            return [self._operation(OperationKind.DELETE, path)]

        # renamed directories arrive as delete + create, never as a change
        if not current.is_file:
            return []
        return [self._operation(OperationKind.MODIFY, path)]

    def _expand_directory(self, directory: Path) -> list[SyncOperation]:
        """Create operations for the existing contents of a new directory.

        There are no per-file notifications for files that were already in
        a directory when it was created or renamed, so each file is fed back
        through :meth:`plan` as a new entry.
        """
        operations: list[SyncOperation] = []
        entries = walk_tree(directory, self.path_filter)
        for path in sorted(entries):
            metadata = entries[path]
            if not metadata.is_file:
                # nested files are already part of the listing
                continue
            operations.extend(
                self.plan(ChangeNotification(path=path, current=metadata, previous=None))
            )
        return operations

    def _operation(self, kind: OperationKind, path: Path) -> SyncOperation:
        ref = map_path(
            self.directory, path, key_in_query=kind == OperationKind.DELETE
        )
        return SyncOperation(kind=kind, path=path, ref=ref)

    # =========================
    # Dispatch
    # =========================

    def handle(self, notification: ChangeNotification) -> list["Future[SyncResult]"]:
        """Classify a notification and dispatch its operations.

        Returns immediately; the returned futures complete independently.

        Args:
            notification: Change reported by the watcher

        Returns:
            One future per dispatched operation
        """
        return [self.dispatch(operation) for operation in self.plan(notification)]

    def dispatch(self, operation: SyncOperation) -> "Future[SyncResult]":
        """Run an operation in the background and report its result."""
        logger.info(f"{operation.kind.value.capitalize()}: {operation.path}")
        future = self.executor.submit(self.operations.execute, operation)
        future.add_done_callback(functools.partial(self._report, operation))
        return future

    def _report(
        self, operation: SyncOperation, future: "Future[SyncResult]"
    ) -> None:
        if self.callback is None or future.cancelled():
            return
        error = future.exception()
        if error is None:
            result = future.result()
            error, data = result.error, result.data
        else:
            data = None
        try:
            self.callback(error, data, operation.description)
        except Exception:
            logger.exception(f"Status callback failed for {operation.path}")

    def close(self, wait: bool = True) -> None:
        """Shut down the request pool."""
        if self._owns_executor:
            self.executor.shutdown(wait=wait)


class SyncRunner:
    """Runs one ThemeSyncer and TreeWatcher per shop.

    Shops are isolated from each other: a shop with a bad configuration is
    reported and skipped, and errors while syncing one shop never reach
    another.
    """

    def __init__(
        self,
        targets: list[ShopTarget],
        output: Optional[OutputFormatter] = None,
        native: bool = False,
    ):
        """Initialize the runner.

        Args:
            targets: Shops to sync
            output: Output formatter for status messages
            native: Use native filesystem events instead of polling
        """
        self.targets = targets
        self.output = output or OutputFormatter()
        self.native = native
        self.syncers: list[ThemeSyncer] = []
        self.watchers: list[TreeWatcher] = []

    def start(self) -> int:
        """Start watching every shop.

        Returns:
            Number of shops being watched
        """
        for target in self.targets:
            try:
                self._start_target(target)
            except (ThemeSyncError, OSError) as e:
                self.output.error(f"An error occurred in shop: {target.name}. {e}")
        return len(self.watchers)

    def _start_target(self, target: ShopTarget) -> None:
        if not target.directory.is_dir():
            raise ThemeSyncConfigError(
                f"Specified directory {target.directory} does not exist."
            )

        syncer = ThemeSyncer(target, callback=self.output.handle_response)
        watcher = TreeWatcher(
            target.directory,
            self._guarded(target, syncer),
            path_filter=syncer.path_filter,
            interval=target.options.interval,
            native=self.native,
        )
        self.output.info(f"Walking directory tree: {target.directory}")
        try:
            watcher.start()
        except OSError:
            syncer.close(wait=False)
            raise
        self.syncers.append(syncer)
        self.watchers.append(watcher)

    def _guarded(
        self, target: ShopTarget, syncer: ThemeSyncer
    ) -> Callable[[ChangeNotification], None]:
        def handle(notification: ChangeNotification) -> None:
            try:
                syncer.handle(notification)
            except Exception as e:
                self.output.error(
                    f"An error occurred in shop: {target.name}. Details: {e!r}"
                )
                logger.debug("Notification handling failed", exc_info=True)
                return
            if notification.is_walk_complete:
                self.output.success(
                    f"Now watching directory tree: {target.directory}"
                )

        return handle

    def is_running(self) -> bool:
        """True while at least one watcher is alive."""
        return any(watcher.is_alive() for watcher in self.watchers)

    def stop(self) -> None:
        """Stop all watchers and wait for in-flight requests."""
        for watcher in self.watchers:
            watcher.stop()
        for syncer in self.syncers:
            syncer.close()
        self.watchers.clear()
        self.syncers.clear()
