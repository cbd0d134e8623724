"""API client for the Shopify theme asset endpoints."""

from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Executor
from typing import Any, Callable

import httpx

from .exceptions import ThemeSyncAPIError, ThemeSyncConfigError, ThemeSyncNetworkError
from .models import AssetPayload, RemoteResourceRef, ShopTarget
from .utils import ORIGINAL_SUFFIX, is_json_content_type

logger = logging.getLogger(__name__)


class ShopifyClient:
    """Client for uploading and deleting theme assets of one shop.

    Every call is a single request/response exchange: there are no retries
    and no pooled connections, each request opens its own connection.
    """

    def __init__(
        self,
        target: ShopTarget,
        transport: httpx.BaseTransport | None = None,
        executor: Executor | None = None,
    ):
        """Initialize the client.

        Args:
            target: The shop to talk to
            transport: Optional httpx transport (used by tests)
            executor: Where fire-and-forget requests run; a daemon thread
                is started per request when omitted
        """
        if not target.api_key or not isinstance(target.api_key, str):
            raise ThemeSyncConfigError(f"Shop {target.name!r} is missing an apiKey")
        if not target.password or not isinstance(target.password, str):
            raise ThemeSyncConfigError(f"Shop {target.name!r} is missing a password")

        self.target = target
        self.base_url = target.base_url
        self._transport = transport
        self._executor = executor

    def _open(self) -> httpx.Client:
        """Open a fresh connection to the shop."""
        return httpx.Client(
            auth=(self.target.api_key, self.target.password),
            transport=self._transport,
        )

    def send_request(
        self, uri: str, method: str = "GET", payload: Any = None
    ) -> Any:
        """Send a request to the shop's admin API.

        Args:
            uri: Endpoint relative to the admin base URL
            method: HTTP method
            payload: JSON-serializable body, or None for no body

        Returns:
            Parsed JSON if the response declares JSON and parses, otherwise
            the raw response text

        Raises:
            ThemeSyncNetworkError: If the shop could not be reached
            ThemeSyncAPIError: If the shop answered with a non-200 status or
                an ``errors`` payload
        """
        body = b""
        if payload is not None:
            body = (payload if isinstance(payload, str) else json.dumps(payload)).encode(
                "utf-8"
            )

        # Shopify requires Content-Length, even for DELETE requests
        headers = {
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
        }
        url = self.base_url + uri.lstrip("/")

        logger.debug(f"{method} {url} ({len(body)} bytes)")
        try:
            with self._open() as client:
                response = client.request(
                    method, url, content=body or None, headers=headers
                )
        except httpx.RequestError as e:
            raise ThemeSyncNetworkError(f"Network error: {e}") from e

        data: Any = response.text
        if is_json_content_type(response.headers.get("Content-Type")):
            try:
                data = json.loads(data)
            except ValueError:
                # keep the raw text
                pass

        if response.status_code != 200:
            raise ThemeSyncAPIError(
                f"StatusCode: {response.status_code}",
                status_code=response.status_code,
                errors=data,
            )
        if isinstance(data, dict) and data.get("errors"):
            raise ThemeSyncAPIError(
                f"Request rejected: {data['errors']}",
                status_code=response.status_code,
                errors=data["errors"],
            )
        return data

    # =========================
    # Asset Operations
    # =========================

    def create(self, ref: RemoteResourceRef, payload: AssetPayload) -> Any:
        """Create an asset, overwriting any asset with the same key."""
        # Shopify treats PUT as an upsert, so there is no separate POST
        return self.modify(ref, payload)

    def modify(self, ref: RemoteResourceRef, payload: AssetPayload) -> Any:
        """Upload an asset, creating it if it doesn't exist.

        If the shop enables ``uploadOriginal`` and the payload carries a
        compressed variant, the uncompressed file is also uploaded as
        ``<key>.orig``. That upload is not awaited and its outcome is only
        logged.

        Args:
            ref: Target asset
            payload: Encoded contents

        Returns:
            Response data from the shop
        """
        body = {"asset": {"key": ref.asset_key, "attachment": payload.attachment}}
        result = self.send_request(ref.request_uri, "PUT", body)

        if self.target.options.upload_original and payload.compressed:
            original_ref = ref.sibling(ORIGINAL_SUFFIX)
            original_body = {
                "asset": {"key": original_ref.asset_key, "attachment": payload.original}
            }
            self._fire_and_forget(
                lambda: self.send_request(
                    original_ref.request_uri, "PUT", original_body
                ),
                original_ref.asset_key,
            )

        return result

    def delete(self, ref: RemoteResourceRef) -> Any:
        """Delete an asset by key, if it exists.

        Args:
            ref: Asset reference whose request URI carries the key query

        Returns:
            Response data from the shop
        """
        return self.send_request(ref.request_uri, "DELETE")

    def _fire_and_forget(self, request: Callable[[], Any], key: str) -> None:
        def run() -> None:
            try:
                request()
                logger.debug(f"Uploaded original {key}")
            except (ThemeSyncNetworkError, ThemeSyncAPIError) as e:
                logger.debug(f"Upload of original {key} failed: {e}")

        if self._executor is not None:
            try:
                self._executor.submit(run)
                return
            except RuntimeError:
                # pool already shut down, e.g. while stopping
                logger.debug(f"Pool closed, uploading original {key} separately")
        threading.Thread(target=run, daemon=True).start()
