"""HTTP tests for /api/transactions."""

from __future__ import annotations

from fastapi.testclient import TestClient


def _listing(client: TestClient) -> str:
    response = client.post(
        "/api/properties",
        json={"name": "Harbour Flat", "address": "3 Quay", "price": 1200, "blobIds": ["t1"]},
    )
    assert response.status_code == 201, response.text
    return response.json()["property"]["id"]


def _pay(client: TestClient, property_id: str, **overrides):
    body = {"propertyId": property_id, "amount": 300, "fromAddress": "0xTenant", **overrides}
    return client.post("/api/transactions/create", json=body)


def test_create_transaction(client: TestClient) -> None:
    listing_id = _listing(client)

    response = _pay(client, listing_id, apartmentNumber=1, type="rent", txHash="0xabc")

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    tx = body["transaction"]
    assert tx["propertyId"] == listing_id
    assert tx["status"] == "pending"
    assert tx["currency"] == "USD"
    assert tx["apartmentNumber"] == 1
    assert tx["fromAddress"] == "0xTenant"
    assert tx["txHash"] == "0xabc"
    assert tx["createdAt"]


def test_create_transaction_unknown_property(client: TestClient) -> None:
    response = _pay(client, "prop_missing")
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_create_transaction_validation(client: TestClient) -> None:
    listing_id = _listing(client)

    assert _pay(client, listing_id, amount=0).status_code == 400
    assert _pay(client, listing_id, amount="lots").status_code == 400
    assert client.post("/api/transactions/create", json={"amount": 5}).status_code == 400


def test_list_transactions(client: TestClient) -> None:
    listing_id = _listing(client)
    _pay(client, listing_id, fromAddress="0xA", amount=1)
    _pay(client, listing_id, fromAddress="0xB", amount=2)

    body = client.get("/api/transactions").json()
    assert body["success"] is True
    assert body["count"] == 2
    assert [t["amount"] for t in body["transactions"]] == [2, 1]

    body = client.get("/api/transactions", params={"fromAddress": "0xa"}).json()
    assert [t["amount"] for t in body["transactions"]] == [1]

    body = client.get(
        "/api/transactions", params={"propertyId": listing_id, "status": "pending"}
    ).json()
    assert body["count"] == 2

    body = client.get("/api/transactions", params={"propertyId": "prop_other"}).json()
    assert body == {"success": True, "transactions": [], "count": 0}


def test_list_transactions_unknown_status(client: TestClient) -> None:
    response = client.get("/api/transactions", params={"status": "lost"})
    assert response.status_code == 400
