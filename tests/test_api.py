import json

import pytest

from conftest import ADDRESS
from storefront.domain.errors import PaymentProviderError


@pytest.fixture
def as_customer(customer):
    return {"user_id": customer.id}


@pytest.fixture
def as_admin(admin):
    return {"user_id": admin.id}


def _add(client, params, product, quantity):
    return client.post("/api/cart/items", params=params, json={"product_id": product.id, "quantity": quantity})


def _checkout(client, params, **extra):
    return client.post(
        "/api/orders/checkout",
        params=params,
        json={"shipping_address": ADDRESS, "payment_method": "card", **extra},
    )


def test_health(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["success"] is True


def test_users(client):
    created = client.post("/api/users", json={"id": 42, "name": "Chidi", "email": "chidi@example.com"})

    assert created.status_code == 200
    assert created.json()["data"] == {"id": 42, "name": "Chidi", "email": "chidi@example.com", "role": "customer"}
    assert client.get("/api/users/42").json()["data"]["name"] == "Chidi"

    again = client.post("/api/users", json={"id": 42, "name": "Someone Else"})
    assert again.json()["data"]["name"] == "Chidi"
    assert client.get("/api/users/43").status_code == 404


def test_checkout_to_paid_order(client, paystack, notifications, as_customer, as_admin, product_a, product_b):
    assert _add(client, as_customer, product_a, 2).status_code == 201
    _add(client, as_customer, product_b, 1)

    cart = client.get("/api/cart", params=as_customer).json()["data"]
    assert cart["total"] == "13000.00"

    resp = _checkout(client, as_customer)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    order = body["data"]
    assert order["subtotal"] == "13000.00"
    assert order["shipping_fee"] == "0.00"
    assert order["tax"] == "975.00"
    assert order["total_amount"] == "13975.00"
    assert order["order_number"].startswith("ORD-")
    assert len(order["items"]) == 2
    assert client.get("/api/cart", params=as_customer).json()["data"]["items"] == []

    started = client.post("/api/payment/initialize", params=as_customer, json={"order_id": order["id"]})
    assert started.status_code == 200
    reference = started.json()["data"]["reference"]
    assert set(started.json()["data"]) == {"authorization_url", "access_code", "reference", "payment_id"}

    data = paystack.settle(reference)
    payload = json.dumps({"event": "charge.success", "data": data}).encode()
    hook = client.post(
        "/api/payment/webhook",
        content=payload,
        headers={"x-paystack-signature": paystack.signature_for(payload), "content-type": "application/json"},
    )
    assert hook.status_code == 200
    assert hook.json()["data"]["handled"] is True

    verified = client.get(f"/api/payment/verify/{reference}", params=as_customer)
    assert verified.status_code == 200
    assert verified.json()["data"]["status"] == "success"

    paid = client.get(f"/api/orders/{order['id']}", params=as_customer).json()["data"]
    assert paid["payment_status"] == "paid"
    assert paid["status"] == "processing"
    assert len(notifications.receipts) == 1
    assert notifications.orders == [(as_customer["user_id"], order["id"])]

    stats = client.get("/api/orders/statistics", params=as_admin).json()["data"]
    assert stats["total_orders"] == 1
    assert stats["processing_orders"] == 1

    history = client.get("/api/payment/history", params=as_customer).json()["data"]
    assert [p["reference"] for p in history] == [reference]
    details = client.get(f"/api/payment/{history[0]['id']}", params=as_customer).json()["data"]
    assert details["amount"] == "13975.00"


def test_empty_cart(client, as_customer):
    resp = _checkout(client, as_customer)

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Cart is empty", "error": {"code": "empty_cart"}}


def test_insufficient_stock(client, as_customer, product_b):
    _add(client, as_customer, product_b, 6)

    resp = _checkout(client, as_customer)

    assert resp.status_code == 409
    error = resp.json()["error"]
    assert error["code"] == "insufficient_stock"
    assert error["product_id"] == product_b.id
    assert error["requested"] == 6
    assert error["available"] == 5


def test_invalid_payload(client, as_customer, product_a):
    resp = client.post("/api/cart/items", params=as_customer, json={"product_id": product_a.id, "quantity": 0})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "validation_error"
    assert body["error"]["fields"][0]["loc"] == ["body", "quantity"]


def test_checkout_requires_full_address(client, as_customer, product_a):
    _add(client, as_customer, product_a, 1)

    resp = _checkout(client, as_customer, shipping_address={"name": "Ada"})

    assert resp.status_code == 400


def test_unknown_user(client):
    resp = client.get("/api/cart", params={"user_id": 999})

    assert resp.status_code == 401
    assert resp.json()["error"]["code"] == "unauthorized"


def test_admin_routes_need_admin(client, as_customer):
    for method, path in [("get", "/api/orders"), ("get", "/api/orders/statistics")]:
        resp = getattr(client, method)(path, params=as_customer)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"

    resp = client.put("/api/orders/1/status", params=as_customer, json={"status": "shipped"})
    assert resp.status_code == 403


def test_status_changes(client, as_customer, as_admin, product_a):
    _add(client, as_customer, product_a, 1)
    order_id = _checkout(client, as_customer).json()["data"]["id"]

    delivered = client.put(f"/api/orders/{order_id}/status", params=as_admin, json={"status": "delivered"})
    assert delivered.status_code == 200
    assert delivered.json()["data"]["delivered_at"] is not None

    back = client.put(f"/api/orders/{order_id}/status", params=as_admin, json={"status": "shipped"})
    assert back.status_code == 409
    assert back.json()["error"] == {"code": "invalid_transition", "current": "delivered", "target": "shipped"}

    cancel = client.post(f"/api/orders/{order_id}/cancel", params=as_customer)
    assert cancel.status_code == 409

    bogus = client.put(f"/api/orders/{order_id}/status", params=as_admin, json={"status": "lost"})
    assert bogus.status_code == 400


def test_cancel_and_listing(client, as_customer, as_admin, other_customer, product_a, stock_of):
    _add(client, as_customer, product_a, 3)
    order_id = _checkout(client, as_customer).json()["data"]["id"]
    assert stock_of(product_a.id) == 7

    foreign = client.post(f"/api/orders/{order_id}/cancel", params={"user_id": other_customer.id})
    assert foreign.status_code == 403

    cancelled = client.post(f"/api/orders/{order_id}/cancel", params=as_customer)
    assert cancelled.status_code == 200
    assert cancelled.json()["data"]["status"] == "cancelled"
    assert stock_of(product_a.id) == 10

    mine = client.get("/api/orders/my", params={**as_customer, "status": "cancelled"}).json()["data"]
    assert mine["pagination"] == {"current_page": 1, "total_pages": 1, "total_items": 1, "items_per_page": 10}

    everything = client.get("/api/orders", params={**as_admin, "status": "pending"}).json()["data"]
    assert everything["orders"] == []


def test_webhook_signature_rejected(client, paystack, as_customer, product_a):
    _add(client, as_customer, product_a, 1)
    order_id = _checkout(client, as_customer).json()["data"]["id"]
    reference = client.post("/api/payment/initialize", params=as_customer, json={"order_id": order_id}).json()["data"][
        "reference"
    ]
    payload = json.dumps({"event": "charge.success", "data": paystack.settle(reference)}).encode()

    resp = client.post("/api/payment/webhook", content=payload, headers={"x-paystack-signature": "bad"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_signature"

    history = client.get("/api/payment/history", params=as_customer).json()["data"]
    assert [(p["reference"], p["status"], p["paid_at"]) for p in history] == [(reference, "pending", None)]
    order = client.get(f"/api/orders/{order_id}", params=as_customer).json()["data"]
    assert order["status"] == "pending"
    assert order["payment_status"] == "pending"


def test_provider_down(client, paystack, as_customer, product_a):
    _add(client, as_customer, product_a, 1)
    order_id = _checkout(client, as_customer).json()["data"]["id"]
    reference = client.post("/api/payment/initialize", params=as_customer, json={"order_id": order_id}).json()["data"][
        "reference"
    ]
    paystack.error = PaymentProviderError("Payment provider unreachable: ConnectionError")

    resp = client.get(f"/api/payment/verify/{reference}", params=as_customer)

    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "payment_provider_error"
