"""Pytest configuration and fixtures for tests."""

from __future__ import annotations

import itertools
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dwello.database import Base, get_db
from dwello.main import app
from dwello.services.sui_client import SuiLedgerClient, get_ledger_client
from dwello.services.walrus_client import WalrusClient, get_walrus_client

PUBLISHER = "https://publisher.walrus.test"
AGGREGATOR = "https://aggregator.walrus.test"
SUI_RPC = "https://fullnode.sui.test"

ACCESS_PASS_TYPE = "0xabc::dwello::AccessPass"
CARETAKER_CAP_TYPE = "0xabc::dwello::CaretakerCap"
HOUSE_TYPE = "0xabc::dwello::House"


@pytest.fixture
def engine():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    # Import all models so they're registered
    import dwello.models  # noqa: F401

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    """Provide a fresh database session for each test."""
    SessionLocal = sessionmaker(bind=engine, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ---------------------------------------------------------------------------
# In-process fakes for Walrus and Sui, served through httpx.MockTransport
# ---------------------------------------------------------------------------


class FakeWalrus:
    """Publisher + aggregator backed by a dict."""

    def __init__(self) -> None:
        self.blobs: dict[str, tuple[bytes, str]] = {}
        self.uploads: list[httpx.Request] = []
        self.fail_uploads = False
        self.fail_after: int | None = None
        self._ids = itertools.count(1)

    def put(self, blob_id: str, content: bytes, content_type: str = "image/jpeg") -> None:
        self.blobs[blob_id] = (content, content_type)

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == httpx.URL(PUBLISHER).host:
            return self._store(request)
        blob_id = request.url.path.rsplit("/", 1)[-1]
        if blob_id not in self.blobs:
            return httpx.Response(404, text="blob not found")
        content, content_type = self.blobs[blob_id]
        if request.method == "HEAD":
            return httpx.Response(
                200,
                headers={"content-type": content_type, "content-length": str(len(content))},
            )
        return httpx.Response(
            200,
            content=content,
            headers={
                "content-type": content_type,
                "content-disposition": f'attachment; filename="{blob_id}.bin"',
            },
        )

    def _store(self, request: httpx.Request) -> httpx.Response:
        self.uploads.append(request)
        if self.fail_uploads or (
            self.fail_after is not None and len(self.uploads) > self.fail_after
        ):
            return httpx.Response(500, text="publisher unavailable")
        blob_id = f"blob{next(self._ids)}"
        self.put(blob_id, request.content, request.headers.get("content-type", ""))
        return httpx.Response(
            200, json={"newlyCreated": {"blobObject": {"blobId": blob_id}}}
        )


class FakeSui:
    """A full node that knows a handful of owned objects."""

    def __init__(self) -> None:
        self.owned: dict[str, list[dict]] = {}
        self.down = False
        self.calls: list[dict] = []
        self._ids = itertools.count(1)

    def add_object(self, owner: str, type_: str, fields: dict | None = None) -> str:
        object_id = f"0xobj{next(self._ids)}"
        self.owned.setdefault(owner, []).append(
            {
                "objectId": object_id,
                "type": type_,
                "content": {"dataType": "moveObject", "type": type_, "fields": fields or {}},
            }
        )
        return object_id

    def grant_pass(self, owner: str, listing_id: str, amount: int = 1000) -> str:
        return self.add_object(
            owner,
            ACCESS_PASS_TYPE,
            {"house_id": listing_id, "amount": amount, "user": owner},
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.calls.append(body)
        if self.down:
            return httpx.Response(503, text="node unavailable")

        method, params = body["method"], body["params"]
        if method == "suix_getOwnedObjects":
            objects = self.owned.get(params[0], [])
            result = {
                "data": [{"data": obj} for obj in objects],
                "hasNextPage": False,
                "nextCursor": None,
            }
        elif method == "sui_getObject":
            match = [
                obj for objs in self.owned.values() for obj in objs
                if obj["objectId"] == params[0]
            ]
            result = {"data": match[0]} if match else {"error": {"code": "notExists"}}
        else:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601, "message": "Method not found"}},
            )
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


@pytest.fixture
def walrus() -> FakeWalrus:
    return FakeWalrus()


@pytest.fixture
def sui() -> FakeSui:
    return FakeSui()


@pytest.fixture
def walrus_client(walrus: FakeWalrus) -> WalrusClient:
    return WalrusClient(
        PUBLISHER,
        AGGREGATOR,
        store_path="/v1/blobs",
        read_path="/v1/blobs",
        epochs=5,
        transport=httpx.MockTransport(walrus.handler),
    )


@pytest.fixture
def ledger_client(sui: FakeSui) -> SuiLedgerClient:
    return SuiLedgerClient(
        SUI_RPC,
        access_pass_marker="AccessPass",
        caretaker_cap_marker="CaretakerCap",
        listing_marker="House",
        listing_field="house_id",
        transport=httpx.MockTransport(sui.handler),
    )


@pytest.fixture
def client(db: Session, walrus_client: WalrusClient, ledger_client: SuiLedgerClient):
    """API client wired to the test database and the fake Walrus/Sui."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_walrus_client] = lambda: walrus_client
    app.dependency_overrides[get_ledger_client] = lambda: ledger_client
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
