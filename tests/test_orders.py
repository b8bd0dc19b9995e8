import pytest

import orders
from conftest import make_user


@pytest.fixture(autouse=True)
def no_stripe(monkeypatch):
    monkeypatch.setattr(orders, "STRIPE_SECRET", "")


def test_order_from_cart(client, db, make_book, customer_headers):
    book = make_book(price=200, discount=25, stock=5)
    client.post("/api/cart", json={"item_id": str(book["_id"]), "kind": "book", "quantity": 2},
                headers=customer_headers)

    r = client.post("/api/orders", json={}, headers=customer_headers)
    assert r.status_code == 201
    order = r.json()["data"]
    assert order["status"] == "paid"
    assert order["total"] == 300.0
    assert order["items"][0]["unit_price"] == 150.0

    assert db["book"].find_one({"_id": book["_id"]})["stock"] == 3
    assert client.get("/api/cart", headers=customer_headers).json()["data"] == []


def test_empty_order_rejected(client, customer_headers):
    r = client.post("/api/orders", json={}, headers=customer_headers)
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_insufficient_stock_rolls_back(client, db, make_book, make_movie, customer_headers):
    book = make_book(stock=5)
    movie = make_movie(stock=1)
    items = [
        {"item_id": str(book["_id"]), "kind": "book", "quantity": 2},
        {"item_id": str(movie["_id"]), "kind": "movie", "quantity": 3},
    ]
    r = client.post("/api/orders", json={"items": items}, headers=customer_headers)
    assert r.status_code == 400
    assert db["book"].find_one({"_id": book["_id"]})["stock"] == 5
    assert db["movie"].find_one({"_id": movie["_id"]})["stock"] == 1
    assert db["order"].count_documents({}) == 0


def test_order_visibility(client, db, make_book, customer_headers, admin_headers):
    book = make_book()
    items = [{"item_id": str(book["_id"]), "kind": "book", "quantity": 1}]
    order_id = client.post("/api/orders", json={"items": items}, headers=customer_headers).json()["data"]["id"]

    assert client.get(f"/api/orders/{order_id}", headers=customer_headers).status_code == 200
    assert client.get(f"/api/orders/{order_id}", headers=admin_headers).status_code == 200
    _, stranger = make_user(db)
    assert client.get(f"/api/orders/{order_id}", headers=stranger).status_code == 404

    assert client.get("/api/orders/mine", headers=customer_headers).json()["count"] == 1
    assert client.get("/api/orders/mine", headers=stranger).json()["count"] == 0
    assert client.get("/api/orders", headers=customer_headers).status_code == 403
    assert client.get("/api/orders", headers=admin_headers).json()["count"] == 1


def test_cancel_restocks_once(client, db, make_book, customer_headers, admin_headers):
    book = make_book(stock=4)
    items = [{"item_id": str(book["_id"]), "kind": "book", "quantity": 3}]
    order_id = client.post("/api/orders", json={"items": items}, headers=customer_headers).json()["data"]["id"]
    assert db["book"].find_one({"_id": book["_id"]})["stock"] == 1

    for _ in range(2):
        r = client.put(f"/api/orders/{order_id}/status", json={"status": "cancelled"}, headers=admin_headers)
        assert r.json()["data"]["status"] == "cancelled"
    assert db["book"].find_one({"_id": book["_id"]})["stock"] == 4

    bad = client.put(f"/api/orders/{order_id}/status", json={"status": "lost"}, headers=admin_headers)
    assert bad.status_code == 400


def test_cancelled_order_cannot_be_reopened(client, db, make_book, customer_headers, admin_headers):
    book = make_book(stock=4)
    items = [{"item_id": str(book["_id"]), "kind": "book", "quantity": 3}]
    order_id = client.post("/api/orders", json={"items": items}, headers=customer_headers).json()["data"]["id"]
    client.put(f"/api/orders/{order_id}/status", json={"status": "cancelled"}, headers=admin_headers)

    r = client.put(f"/api/orders/{order_id}/status", json={"status": "paid"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert db["order"].find_one()["status"] == "cancelled"

    again = client.put(f"/api/orders/{order_id}/status", json={"status": "cancelled"}, headers=admin_headers)
    assert again.status_code == 200
    assert db["book"].find_one({"_id": book["_id"]})["stock"] == 4


def test_orders_count_in_stats(client, make_book, customer_headers):
    book = make_book()
    client.post("/api/orders", json={"items": [{"item_id": str(book["_id"]), "kind": "book"}]},
                headers=customer_headers)
    assert client.get("/api/books/stats").json()["data"]["orders"] == 1
