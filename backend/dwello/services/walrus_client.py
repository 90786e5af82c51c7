"""Walrus blob store client: upload via the publisher, read via the aggregator."""

from __future__ import annotations

import contextlib
import logging
import re
from collections.abc import AsyncIterator, Iterable
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

from dwello.config import settings
from dwello.schemas.blob import BlobValidation, RetrievedBlob, StoredBlob
from dwello.utils.exceptions import BlobNotFoundError, RetrievalError, UploadError

logger = logging.getLogger(__name__)

DEFAULT_BLOB_ID_FIELDS = tuple(
    f.strip() for f in settings.blob_id_fields.split(",") if f.strip()
)

_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')


def extract_blob_id(
    payload: Any, fields: Iterable[str] = DEFAULT_BLOB_ID_FIELDS
) -> str | None:
    """Return the first non-empty value found at one of the dotted ``fields``.

    >>> extract_blob_id({"alreadyCertified": {"blobId": "abc"}})
    'abc'
    """
    if not isinstance(payload, dict):
        return None
    for path in fields:
        node: Any = payload
        for key in path.split("."):
            if not isinstance(node, dict):
                node = None
                break
            node = node.get(key)
        if isinstance(node, str) and node:
            return node
        if isinstance(node, int) and not isinstance(node, bool):
            return str(node)
    return None


class WalrusClient:
    """HTTP client for the Walrus publisher/aggregator pair.

    Like the other boundary clients it can be used as an async context
    manager to share one ``httpx.AsyncClient``; otherwise each call opens a
    short-lived client. Calls are tried once; there is no retry here.
    """

    def __init__(
        self,
        publisher_url: str | None = None,
        aggregator_url: str | None = None,
        *,
        store_path: str | None = None,
        read_path: str | None = None,
        epochs: int | None = None,
        blob_id_fields: Iterable[str] | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._publisher_url = (publisher_url or settings.walrus_publisher_url).rstrip("/")
        self._aggregator_url = (aggregator_url or settings.walrus_aggregator_url).rstrip("/")
        self._store_path = "/" + (store_path or settings.walrus_store_path).strip("/")
        self._read_path = "/" + (read_path or settings.walrus_read_path).strip("/")
        self._epochs = epochs if epochs is not None else settings.walrus_epochs
        self._blob_id_fields = tuple(blob_id_fields or DEFAULT_BLOB_ID_FIELDS)
        self._timeout = timeout or settings.walrus_timeout_seconds
        self._transport = transport
        self._shared_http: httpx.AsyncClient | None = None

    @property
    def publisher_url(self) -> str:
        return self._publisher_url

    @property
    def aggregator_url(self) -> str:
        return self._aggregator_url

    # -- async context manager -------------------------------------------------

    async def __aenter__(self) -> WalrusClient:
        if self._shared_http is not None:
            raise RuntimeError("WalrusClient context manager is not reentrant")
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

    def blob_url(self, blob_id: str) -> str:
        """Public retrieval URL for a blob on the aggregator."""
        return f"{self._aggregator_url}{self._read_path}/{quote(blob_id, safe='')}"

    async def upload(
        self,
        content: bytes,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> StoredBlob:
        """Store ``content`` and return the store-assigned blob ID and URL.

        Raises UploadError on a non-2xx answer, a transport failure, or a
        response with no recognizable blob ID field.
        """
        url = f"{self._publisher_url}{self._store_path}"
        headers = {"Content-Type": content_type or "application/octet-stream"}
        params = {"epochs": str(self._epochs)}

        logger.info(
            "Uploading %s (%d bytes, %s) to Walrus", filename, len(content), content_type
        )
        try:
            async with self._http_client() as http:
                response = await http.put(url, content=content, headers=headers, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Walrus upload HTTP error: %s (body: %s)", e, e.response.text[:500]
            )
            raise UploadError(
                f"Walrus upload failed: {e.response.status_code} - {e.response.text[:200]}"
            ) from e
        except httpx.RequestError as e:
            logger.error("Walrus upload request error: %s", e)
            raise UploadError(f"Walrus upload request failed: {e}") from e
        except ValueError as e:
            raise UploadError("Walrus upload returned a non-JSON response") from e

        blob_id = extract_blob_id(payload, self._blob_id_fields)
        if not blob_id:
            logger.error("No blob ID in Walrus response: %s", str(payload)[:500])
            raise UploadError("No blob ID returned from Walrus")

        logger.info("Stored %s on Walrus as %s", filename, blob_id)
        return StoredBlob(
            blob_id=blob_id,
            url=self.blob_url(blob_id),
            size=len(content),
            filename=filename,
            content_type=content_type,
        )

    async def validate(self, blob_id: str) -> BlobValidation:
        """HEAD-probe the aggregator. Never raises."""
        if not blob_id:
            return BlobValidation(blob_id=blob_id or "", valid=False, error="No blob ID provided")

        url = self.blob_url(blob_id)
        try:
            async with self._http_client() as http:
                response = await http.head(url)
        except httpx.HTTPError as e:
            logger.warning("Walrus validation of %s failed: %s", blob_id, e)
            return BlobValidation(blob_id=blob_id, valid=False, error=str(e) or type(e).__name__)

        valid = response.is_success
        length = response.headers.get("content-length")
        return BlobValidation(
            blob_id=blob_id,
            valid=valid,
            url=url if valid else None,
            status=response.status_code,
            size=int(length) if length and length.isdigit() else None,
            content_type=response.headers.get("content-type"),
        )

    async def validate_many(self, blob_ids: Iterable[str]) -> list[BlobValidation]:
        """Validate each blob in order; one result per input ID."""
        results = []
        for blob_id in blob_ids:
            results.append(await self.validate(blob_id))
        return results

    async def retrieve(self, blob_id: str) -> RetrievedBlob:
        """Download a blob. Raises BlobNotFoundError when the store has no such blob."""
        if not blob_id:
            raise BlobNotFoundError("No blob ID provided")

        url = self.blob_url(blob_id)
        try:
            async with self._http_client() as http:
                response = await http.get(url)
        except httpx.RequestError as e:
            logger.error("Walrus retrieval of %s failed: %s", blob_id, e)
            raise RetrievalError(f"Walrus retrieval failed: {e}") from e

        if response.status_code == 404:
            raise BlobNotFoundError(f"Blob {blob_id} not found")
        if not response.is_success:
            raise RetrievalError(
                f"Walrus retrieval failed: {response.status_code} - {response.text[:200]}"
            )

        content = response.content
        content_type = response.headers.get("content-type", "application/octet-stream")
        tags = {"contentType": content_type}
        disposition = response.headers.get("content-disposition")
        if disposition:
            match = _FILENAME_RE.search(disposition)
            if match:
                tags["filename"] = match.group(1)

        logger.info("Retrieved blob %s (%d bytes)", blob_id, len(content))
        return RetrievedBlob(
            blob_id=blob_id,
            content=content,
            size=len(content),
            content_type=content_type,
            tags=tags,
        )

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


_client_instance: WalrusClient | None = None


def get_walrus_client() -> WalrusClient:
    global _client_instance
    if _client_instance is None:
        _client_instance = WalrusClient()
    return _client_instance
