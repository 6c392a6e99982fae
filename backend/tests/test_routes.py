"""HTTP surface: status codes, JSON shapes and the full order flow through the test client."""

import pytest

from storefront.stores import BACKENDS


@pytest.fixture(params=BACKENDS)
def api(request, app, client):
    app.config["ORDER_STORE_BACKEND"] = request.param
    return client


def test_health_reports_database(client):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.get_json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"]["status"] == "healthy"
    assert body["order_store_backend"] == "orm"


def test_diagnostics(client):
    res = client.get("/api/system/diagnostics")
    assert res.status_code == 200
    body = res.get_json()
    assert body["dialect"] == "sqlite"
    assert body["foreign_keys"] is True
    assert "orders" in body["tables"]


def test_version(client):
    res = client.get("/version")
    assert res.status_code == 200
    assert res.get_json()["api_version"] == "1.0.0"


# =============================================================================
# Catalog
# =============================================================================

def test_category_and_product_crud(client):
    res = client.post("/api/categories", json={"name": "Books"})
    assert res.status_code == 201
    category_id = res.get_json()["id"]

    assert client.post("/api/categories", json={"name": "BOOKS"}).status_code == 409

    res = client.post(
        "/api/products",
        json={"name": "Python Essentials", "price": "129.90", "stock": 40, "category_id": category_id},
    )
    assert res.status_code == 201
    product_id = res.get_json()["id"]

    res = client.patch(f"/api/products/{product_id}", json={"price": "119.90"})
    assert res.status_code == 200
    assert res.get_json()["price"] == "119.90"

    res = client.get(f"/api/products?category_id={category_id}")
    assert res.get_json()["count"] == 1

    assert client.get("/api/products/999").status_code == 404
    assert client.post("/api/products", json={"name": "X", "price": "-5", "category_id": category_id}).status_code == 400


def test_customer_crud(client, catalog):
    res = client.post("/api/customers", json={"name": "Carla", "email": "carla@example.com"})
    assert res.status_code == 201

    res = client.post("/api/customers", json={"name": "Copy", "email": "ANA.SOUZA@example.com"})
    assert res.status_code == 409
    assert res.get_json()["error"] == "Email already registered"

    res = client.get("/api/customers")
    assert res.get_json()["count"] == 3
    assert client.get(f"/api/customers/{catalog.customer_id}").get_json()["email"] == catalog.customer_email


# =============================================================================
# Orders
# =============================================================================

def test_order_flow(api, catalog):
    res = api.post(
        "/api/orders",
        json={"customer": catalog.customer_email, "items": [{"product_id": catalog.headphones_id, "quantity": 1}]},
    )
    assert res.status_code == 201
    order = res.get_json()["order"]
    assert order["status"] == "CONFIRMED"
    assert order["total"] == "199.90"

    res = api.post(f"/api/orders/{order['id']}/items", json={"product_id": catalog.mousepad_id, "quantity": 1})
    assert res.status_code == 201
    assert res.get_json()["total"] == "259.80"

    res = api.get(f"/api/orders/{order['id']}/verify-total")
    assert res.get_json()["consistent"] is True

    res = api.get(f"/api/orders/by-number/{order['order_number']}")
    assert res.get_json()["order"]["id"] == order["id"]

    res = api.post(f"/api/orders/{order['id']}/cancel")
    assert res.status_code == 200
    assert res.get_json()["order"]["status"] == "CANCELLED"

    res = api.post(f"/api/orders/{order['id']}/cancel")
    assert res.status_code == 409

    stock = api.get(f"/api/products/{catalog.headphones_id}").get_json()["stock"]
    assert stock == 25


def test_insufficient_stock_is_conflict(api, catalog):
    res = api.post(
        "/api/orders",
        json={"customer_id": catalog.customer_id, "items": [{"product_id": catalog.keyboard_id, "quantity": 1}]},
    )
    assert res.status_code == 409
    body = res.get_json()
    assert body["details"]["on_hand"] == 0
    assert api.get("/api/orders").get_json()["count"] == 0


def test_order_input_errors(api, catalog):
    assert api.post("/api/orders", json={"items": []}).status_code == 400
    assert api.post("/api/orders", json={"customer": "ghost@example.com"}).status_code == 404
    assert api.get("/api/orders/4242").status_code == 404

    order = api.post("/api/orders", json={"customer": catalog.customer_id}).get_json()["order"]
    res = api.post(f"/api/orders/{order['id']}/items", json={"product_id": catalog.mousepad_id, "quantity": 0})
    assert res.status_code == 400
    assert api.post(f"/api/orders/{order['id']}/items", json={"quantity": 1}).status_code == 400


def test_status_and_return(api, catalog):
    order = api.post(
        "/api/orders",
        json={"customer": catalog.customer_id, "items": [{"product_id": catalog.mousepad_id, "quantity": 2}]},
    ).get_json()["order"]

    assert api.post(f"/api/orders/{order['id']}/status", json={"status": "CANCELLED"}).status_code == 409
    assert api.post(f"/api/orders/{order['id']}/status", json={"status": "BOGUS"}).status_code == 400
    assert api.post(f"/api/orders/{order['id']}/status", json={"status": "IN_PROGRESS"}).status_code == 200
    assert api.post(f"/api/orders/{order['id']}/cancel").status_code == 409
    assert api.post(f"/api/orders/{order['id']}/status", json={"status": "DELIVERED"}).status_code == 200

    res = api.post("/api/orders/return", json={"order_number": order["order_number"]})
    assert res.status_code == 200
    assert "Returned at" in res.get_json()["order"]["notes"]
    assert api.post("/api/orders/return", json={}).status_code == 400

    listed = api.get("/api/orders?status=cancelled").get_json()
    assert [o["id"] for o in listed["items"]] == [order["id"]]


# =============================================================================
# Stock and reports
# =============================================================================

def test_stock_batch(api, catalog):
    res = api.post(
        "/api/stock/batch",
        json={
            "category_id": catalog.category_id,
            "items": [
                {"product_id": catalog.headphones_id, "stock": 10},
                {"product_id": catalog.keyboard_id, "stock": 3},
            ],
        },
    )
    assert res.status_code == 200
    assert res.get_json() == {"updated": 2}

    res = api.post(
        "/api/stock/batch",
        json={"category_id": catalog.category_id, "items": [{"product_id": catalog.mousepad_id, "stock": 1}]},
    )
    assert res.status_code == 404
    assert api.post("/api/stock/batch", json={"items": []}).status_code == 400


def test_reports_endpoints(client, catalog):
    client.post(
        "/api/orders",
        json={"customer": catalog.customer_id, "items": [{"product_id": catalog.mousepad_id, "quantity": 2}]},
    )

    for path in (
        "/api/reports/sales",
        "/api/reports/revenue-by-customer",
        "/api/reports/revenue-by-category",
        "/api/reports/dead-stock",
        "/api/reports/top-products",
    ):
        res = client.get(path)
        assert res.status_code == 200, path
        assert res.get_json()["count"] >= 1, path

    assert client.get("/api/reports/stock").status_code == 200
    assert client.get("/api/reports/monthly-trend?months=2").status_code == 200
    assert client.get("/api/reports/monthly-trend?months=0").status_code == 400
    assert client.get("/api/reports/summary").get_json()["orders"]["all"] == 1
    assert client.get("/api/reports/sales?start=not-a-date").status_code == 400
