"""HTTP tests for /api/walrus."""

from __future__ import annotations

from fastapi.testclient import TestClient

from dwello.config import settings

from conftest import FakeWalrus


def test_upload_file(client: TestClient, walrus: FakeWalrus) -> None:
    response = client.post(
        "/api/walrus/upload",
        files={"file": ("living.jpg", b"jpegdata", "image/jpeg")},
        data={"title": "Living room", "caretakerAddress": "0xcare"},
    )

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["blobId"] == "blob1"
    assert body["url"].endswith("/v1/blobs/blob1")
    assert body["size"] == 8
    assert body["title"] == "Living room"
    assert body["caretakerAddress"] == "0xcare"
    assert walrus.blobs["blob1"] == (b"jpegdata", "image/jpeg")


def test_upload_without_file(client: TestClient) -> None:
    response = client.post("/api/walrus/upload", data={"title": "nothing"})
    assert response.status_code == 400
    assert response.json()["error"] == "No file uploaded"


def test_upload_rejects_type(client: TestClient, walrus: FakeWalrus) -> None:
    response = client.post(
        "/api/walrus/upload", files={"file": ("run.exe", b"MZ", "application/x-msdownload")}
    )
    assert response.status_code == 400
    assert walrus.uploads == []


def test_upload_guesses_type_from_name(client: TestClient) -> None:
    response = client.post(
        "/api/walrus/upload",
        files={"file": ("tour.mp4", b"video", "application/octet-stream")},
    )
    assert response.status_code == 200
    assert response.json()["contentType"] == "video/mp4"


def test_upload_store_failure(client: TestClient, walrus: FakeWalrus) -> None:
    walrus.fail_uploads = True
    response = client.post(
        "/api/walrus/upload", files={"file": ("a.png", b"png", "image/png")}
    )
    assert response.status_code == 500
    assert response.json()["success"] is False


def test_get_file(client: TestClient, walrus: FakeWalrus) -> None:
    walrus.put("b1", b"\x89PNGdata", "image/png")

    response = client.get("/api/walrus/file/b1")

    assert response.status_code == 200
    assert response.content == b"\x89PNGdata"
    assert response.headers["content-type"] == "image/png"
    assert response.headers["x-blob-id"] == "b1"


def test_get_missing_file(client: TestClient) -> None:
    response = client.get("/api/walrus/file/ghost")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_verify(client: TestClient, walrus: FakeWalrus) -> None:
    walrus.put("b1", b"1234")

    body = client.get("/api/walrus/verify/b1").json()
    assert body["accessible"] is True
    assert body["size"] == 4

    body = client.get("/api/walrus/verify/missing").json()
    assert body["accessible"] is False
    assert body["status"] == 404


def test_verify_bulk(client: TestClient, walrus: FakeWalrus) -> None:
    walrus.put("a", b"1")
    walrus.put("c", b"3")

    response = client.post("/api/walrus/verify-bulk", json={"blobIds": ["a", "b", "c"]})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert body["validCount"] == 2
    assert [r["blobId"] for r in body["results"]] == ["a", "b", "c"]


def test_verify_bulk_empty(client: TestClient) -> None:
    response = client.post("/api/walrus/verify-bulk", json={"blobIds": []})
    assert response.status_code == 400


def test_verify_bulk_too_many(client: TestClient) -> None:
    ids = [f"b{i}" for i in range(settings.max_bulk_verify + 1)]
    response = client.post("/api/walrus/verify-bulk", json={"blobIds": ids})
    assert response.status_code == 400


def test_verify_bulk_missing_body(client: TestClient) -> None:
    response = client.post("/api/walrus/verify-bulk", json={})
    assert response.status_code == 400
