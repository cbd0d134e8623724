"""Execution of sync operations against the remote store."""

import logging

from ..api import ShopifyClient
from ..exceptions import (
    ThemeSyncAPIError,
    ThemeSyncFileError,
    ThemeSyncNetworkError,
)
from ..models import SyncOptions, SyncResult
from .events import OperationKind, SyncOperation
from .transform import build_payload

logger = logging.getLogger(__name__)


class SyncOperations:
    """Runs one SyncOperation and reports its outcome as a SyncResult."""

    def __init__(self, client: ShopifyClient, options: SyncOptions):
        """Initialize sync operations.

        Args:
            client: Client for the operation's shop
            options: Shop options (compression settings)
        """
        self.client = client
        self.options = options

    def execute(self, operation: SyncOperation) -> SyncResult:
        """Execute an operation.

        Never raises for expected failures: connection problems, rejected
        requests and unreadable files end up in the result's error fields.

        Args:
            operation: Operation to run

        Returns:
            SyncResult describing the outcome
        """
        try:
            if operation.kind == OperationKind.DELETE:
                data = self.client.delete(operation.ref)
            else:
                # the file is read now, not when the event was classified
                payload = build_payload(operation.path, self.options)
                if operation.kind == OperationKind.CREATE:
                    data = self.client.create(operation.ref, payload)
                else:
                    data = self.client.modify(operation.ref, payload)
        except ThemeSyncNetworkError as e:
            logger.debug(f"{operation.description}: {e}")
            return SyncResult(operation=operation, transport_error=e)
        except ThemeSyncAPIError as e:
            logger.debug(f"{operation.description}: {e}")
            return SyncResult(operation=operation, application_error=e)
        except ThemeSyncFileError as e:
            logger.debug(f"{operation.description}: {e}")
            return SyncResult(operation=operation, local_error=e)

        return SyncResult(operation=operation, data=data)
