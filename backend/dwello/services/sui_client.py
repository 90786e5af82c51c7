"""Read-only Sui JSON-RPC client for access passes and caretaker capabilities."""

from __future__ import annotations

import contextlib
import itertools
import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from types import TracebackType
from typing import Any

import httpx

from dwello.config import settings
from dwello.schemas.access import OnchainListing, PaymentStatus
from dwello.utils.exceptions import LedgerQueryError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

OBJECT_OPTIONS = {"showType": True, "showContent": True}


def _listing_ref_matches(ref: Any, listing_id: str) -> bool:
    """Compare an embedded listing reference in either of its on-chain forms.

    Older contract versions store the ID as a plain string, newer ones as a
    ``{"id": ...}`` UID struct.
    """
    if ref == listing_id:
        return True
    return isinstance(ref, dict) and ref.get("id") == listing_id


def _object_fields(obj: dict[str, Any]) -> dict[str, Any]:
    content = obj.get("content") or {}
    fields = content.get("fields") if isinstance(content, dict) else None
    return fields if isinstance(fields, dict) else {}


class SuiLedgerClient:
    """Queries owned objects on a Sui full node.

    Every call is a fresh linear scan of the owner's objects; nothing is
    cached at this layer.
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        *,
        access_pass_marker: str | None = None,
        caretaker_cap_marker: str | None = None,
        listing_marker: str | None = None,
        listing_field: str | None = None,
        page_limit: int | None = None,
        max_pages: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._rpc_url = rpc_url or settings.sui_rpc_url
        self._access_pass_marker = access_pass_marker or settings.access_pass_type_marker
        self._caretaker_cap_marker = caretaker_cap_marker or settings.caretaker_cap_type_marker
        self._listing_marker = listing_marker or settings.listing_type_marker
        self._listing_field = listing_field or settings.access_pass_listing_field
        self._page_limit = page_limit or settings.sui_page_limit
        self._max_pages = max_pages or settings.sui_max_pages
        self._timeout = timeout or settings.sui_timeout_seconds
        self._transport = transport
        self._request_ids = itertools.count(1)
        self._shared_http: httpx.AsyncClient | None = None

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    # -- async context manager -------------------------------------------------

    async def __aenter__(self) -> SuiLedgerClient:
        if self._shared_http is not None:
            raise RuntimeError("SuiLedgerClient context manager is not reentrant")
        self._shared_http = self._new_http()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._shared_http is not None:
            await self._shared_http.aclose()
            self._shared_http = None

    # -- public API ------------------------------------------------------------

    async def has_access_pass(self, address: str, listing_id: str) -> PaymentStatus:
        """Return whether ``address`` owns an access pass for ``listing_id``.

        Scans the owner's objects for the access-pass type marker, loads each
        candidate in full, and returns the first whose listing reference
        matches.
        """
        if not address or not listing_id:
            raise ValidationError("userAddress and houseId are required")

        owned = await self.get_owned_objects(address)
        for obj in owned:
            object_type = obj.get("type") or ""
            if self._access_pass_marker not in object_type:
                continue

            try:
                details = await self.get_object(obj["objectId"])
            except NotFoundError:
                logger.warning("Access pass %s vanished during scan", obj["objectId"])
                continue
            fields = _object_fields(details)
            if _listing_ref_matches(fields.get(self._listing_field), listing_id):
                logger.info(
                    "Access pass %s found for %s on listing %s",
                    details.get("objectId"), address, listing_id,
                )
                return PaymentStatus(
                    has_paid=True,
                    pass_id=details.get("objectId"),
                    amount=fields.get("amount"),
                    user=fields.get("user"),
                    timestamp=datetime.now(timezone.utc),
                )

        logger.info("No access pass for %s on listing %s", address, listing_id)
        return PaymentStatus(has_paid=False, timestamp=datetime.now(timezone.utc))

    async def is_caretaker(self, address: str) -> bool:
        if not address:
            raise ValidationError("address is required")
        owned = await self.get_owned_objects(address, show_content=False)
        return any(
            self._caretaker_cap_marker in (obj.get("type") or "") for obj in owned
        )

    async def list_caretaker_listings(self, address: str) -> list[OnchainListing]:
        """Collect the full content of every listing object ``address`` owns."""
        if not address:
            raise ValidationError("caretakerAddress is required")

        listings = []
        for obj in await self.get_owned_objects(address):
            object_type = obj.get("type") or ""
            if self._listing_marker not in object_type:
                continue
            try:
                details = await self.get_object(obj["objectId"])
            except NotFoundError:
                continue
            if details.get("content"):
                listings.append(
                    OnchainListing(
                        object_id=details.get("objectId") or obj["objectId"],
                        type=details.get("type") or object_type,
                        content=details["content"],
                    )
                )
        return listings

    async def get_owned_objects(
        self, address: str, *, show_content: bool = True
    ) -> list[dict[str, Any]]:
        """Return the ``data`` payload of every object owned by ``address``.

        Follows ``nextCursor`` until the node reports no further pages or
        the page cap is reached.
        """
        options = {"showType": True, "showContent": show_content}
        objects: list[dict[str, Any]] = []
        cursor: str | None = None

        async with self._http_client() as http:
            for _ in range(self._max_pages):
                page = await self._call(
                    http,
                    "suix_getOwnedObjects",
                    [address, {"filter": None, "options": options}, cursor, self._page_limit],
                )
                for entry in page.get("data") or []:
                    data = entry.get("data") if isinstance(entry, dict) else None
                    if data and data.get("objectId"):
                        objects.append(data)
                cursor = page.get("nextCursor")
                if not page.get("hasNextPage") or not cursor:
                    break
            else:
                logger.warning(
                    "Owned-object scan for %s stopped after %d pages", address, self._max_pages
                )

        logger.debug("Address %s owns %d objects", address, len(objects))
        return objects

    async def get_object(self, object_id: str) -> dict[str, Any]:
        async with self._http_client() as http:
            result = await self._call(http, "sui_getObject", [object_id, OBJECT_OPTIONS])
        data = result.get("data")
        if not data:
            error = result.get("error") or {}
            raise NotFoundError(
                f"Object {object_id} not found ({error.get('code', 'unknown')})"
            )
        return data

    # -- internals -------------------------------------------------------------

    def _new_http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    @contextlib.asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the shared HTTP client, or a temporary one-off client."""
        if self._shared_http is not None:
            yield self._shared_http
        else:
            async with self._new_http() as http:
                yield http

    async def _call(
        self, http: httpx.AsyncClient, method: str, params: list[Any]
    ) -> dict[str, Any]:
        body = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        try:
            response = await http.post(self._rpc_url, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Sui RPC %s HTTP error: %s", method, e)
            raise LedgerQueryError(
                f"Sui RPC {method} returned {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.error("Sui RPC %s request error: %s", method, e)
            raise LedgerQueryError(f"Sui RPC {method} failed: {e}") from e
        except ValueError as e:
            raise LedgerQueryError(f"Sui RPC {method} returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise LedgerQueryError(f"Sui RPC {method} returned an unexpected payload")
        if payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise LedgerQueryError(f"Sui RPC {method} error: {message}")

        result = payload.get("result")
        return result if isinstance(result, dict) else {}


_client_instance: SuiLedgerClient | None = None


def get_ledger_client() -> SuiLedgerClient:
    global _client_instance
    if _client_instance is None:
        _client_instance = SuiLedgerClient()
    return _client_instance
