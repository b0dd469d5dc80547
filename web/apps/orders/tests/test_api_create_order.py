"""API tests for the create-order endpoint.

These tests exercise the orders HTTP API for the main scenarios: successful
creation with persisted rows, stock and coupon failures, storage failure,
and payload validation errors.
"""

from uuid import UUID

import pytest
from django.db import DatabaseError, connection

from apps.catalog.models import ProductSizeModel
from apps.orders import providers
from apps.orders.service import OrderCoordinator

CREATE_URL = "/api/orders/"


def size_stock(product, label="M"):
    return ProductSizeModel.objects.get(product=product, label=label).stock


@pytest.mark.django_db
def test_create_order_returns_201_and_persists(client, tee, order_payload):
    """POST a valid order and assert the row and the stock change."""
    r = client.post(CREATE_URL, data=order_payload, content_type="application/json")
    assert r.status_code == 201
    body = r.json()
    UUID(body["id"])
    assert body["status"] == "pending"
    assert body["paymentStatus"] == "pending"
    assert body["subtotal"] == "40.00"
    assert body["shipping"] == "5.00"
    assert body["discountAmount"] == "0.00"
    assert body["totalAmount"] == "45.00"
    assert body["items"][0]["title"] == "Classic Tee"
    assert body["items"][0]["unitPrice"] == "20.00"
    assert body["shippingAddress"]["district"] == "Dhaka"
    assert [h["note"] for h in body["statusHistory"]] == ["Order placed by customer."]
    assert size_stock(tee) == 3

    with connection.cursor() as cur:
        cur.execute("select status, total_amount, tracking_number from orders where id = %s", [UUID(body["id"]).hex])
        row = cur.fetchone()
    assert row is not None
    assert row[0] == "pending"
    assert row[2] == body["trackingNumber"]


@pytest.mark.django_db
def test_create_order_with_coupon(client, tee, order_payload, make_coupon):
    make_coupon(code="SAVE10")
    r = client.post(CREATE_URL, data={**order_payload, "couponCode": " save10 "}, content_type="application/json")
    assert r.status_code == 201
    body = r.json()
    assert body["discountAmount"] == "4.00"
    assert body["totalAmount"] == "41.00"


@pytest.mark.django_db
def test_create_order_insufficient_stock_returns_422(client, tee, order_payload):
    """Returns 422 with the descriptive message when the pre-check fails."""
    order_payload["items"][0]["quantity"] = 9
    r = client.post(CREATE_URL, data=order_payload, content_type="application/json")
    assert r.status_code == 422
    assert r.json() == {
        "detail": "INSUFFICIENT_STOCK",
        "message": "Not enough stock for Classic Tee (Size: M). Available: 5, Requested: 9.",
    }
    assert size_stock(tee) == 5


@pytest.mark.django_db
def test_create_order_inactive_product_returns_422(client, make_product, address):
    product = make_product(title="Old Tee", is_active=False)
    payload = {
        "shippingAddress": address,
        "items": [{"productId": str(product.id), "productSizeId": str(product.sizes.get().id), "quantity": 1}],
    }
    r = client.post(CREATE_URL, data=payload, content_type="application/json")
    assert r.status_code == 422
    assert r.json()["message"] == 'Product "Old Tee" is currently unavailable.'


@pytest.mark.django_db
def test_create_order_unknown_coupon_returns_404(client, tee, order_payload):
    r = client.post(CREATE_URL, data={**order_payload, "couponCode": "NOPE"}, content_type="application/json")
    assert r.status_code == 404
    assert r.json()["detail"] == "COUPON_NOT_FOUND"
    assert size_stock(tee) == 5


@pytest.mark.django_db
def test_create_order_storage_failure_returns_503(client, tee, order_payload, monkeypatch):
    """Returns 503 and leaves stock untouched when the insert fails."""

    original = providers.get_order_coordinator

    def broken_insert(order):
        raise DatabaseError("boom")

    def coordinator_with_broken_store():
        coordinator = original()
        monkeypatch.setattr(coordinator.orders, "insert", broken_insert)
        return coordinator

    monkeypatch.setattr(providers, "get_order_coordinator", coordinator_with_broken_store)

    r = client.post(CREATE_URL, data=order_payload, content_type="application/json")
    assert r.status_code == 503
    assert r.json() == {"detail": "UPSTREAM_UNAVAILABLE", "message": "Failed to create order. Please try again."}
    assert size_stock(tee) == 5


@pytest.mark.django_db
def test_create_order_uses_injected_coordinator(client, tee, order_payload, monkeypatch, settings):
    settings.ORDERS_TRACKING_PREFIX = "SHOP"
    seen = []
    original = providers.get_order_coordinator

    def spy():
        coordinator = original()
        seen.append(coordinator)
        return coordinator

    monkeypatch.setattr(providers, "get_order_coordinator", spy)
    r = client.post(CREATE_URL, data=order_payload, content_type="application/json")
    assert r.status_code == 201
    assert isinstance(seen[0], OrderCoordinator)
    assert r.json()["trackingNumber"].startswith("SHOP-")


@pytest.mark.django_db
@pytest.mark.parametrize(
    "mutate",
    [
        lambda p: p.update(items=[]),
        lambda p: p["items"][0].update(quantity=0),
        lambda p: p.update(shipping="-1"),
        lambda p: p.update(shipping="1e15"),
        lambda p: p.update(shipping="1.005"),
        lambda p: p["shippingAddress"].update(mobile="   "),
        lambda p: p["shippingAddress"].update(customerName="x" * 121),
        lambda p: p["shippingAddress"].update(postalCode="1" * 17),
        lambda p: p.update(couponCode="   "),
        lambda p: p.pop("shippingAddress"),
    ],
)
def test_create_order_validation_error(client, tee, order_payload, mutate):
    """Returns 400 when the payload fails DTO validation."""
    mutate(order_payload)
    r = client.post(CREATE_URL, data=order_payload, content_type="application/json")
    assert r.status_code == 400
    body = r.json()
    assert body["detail"] == "VALIDATION_ERROR"
    assert body["errors"]
    assert size_stock(tee) == 5


@pytest.mark.django_db
def test_response_carries_request_id(client, order_payload):
    r = client.post(CREATE_URL, data=order_payload, content_type="application/json", HTTP_X_REQUEST_ID="req-123")
    assert r.headers["X-Request-ID"] == "req-123"


@pytest.mark.django_db
def test_oversized_shipping_leaves_order_list_readable(client, order_payload):
    order_payload["shipping"] = "1e15"
    assert client.post(CREATE_URL, data=order_payload, content_type="application/json").status_code == 400

    r = client.get(CREATE_URL)
    assert r.status_code == 200
    assert r.json()["count"] == 0
