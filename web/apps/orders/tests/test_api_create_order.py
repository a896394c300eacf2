"""API tests for the create-order endpoint.

These tests exercise ``POST /api/orders/`` end to end against the test
database: successful creation, reference-data failures, stock exhaustion
with full rollback, payload validation and caller checks.
"""

import uuid

import pytest

from apps.catalog.models import Product
from apps.orders.models import OrderedItemModel, OrderModel

CREATE_URL = "/api/orders/"


def _post(client, payload, headers):
    return client.post(CREATE_URL, data=payload, content_type="application/json", **headers)


@pytest.mark.django_db
def test_create_order_returns_order_with_items(client, order_payload, buyer_headers, buyer_id, products):
    """10x2 + 5x1 + flat shipping 3 -> sub_total 25, grand_total 28."""
    r = _post(client, order_payload, buyer_headers)

    assert r.status_code == 201
    body = r.json()
    assert body["status"] == 201 and body["title"] == "Order created"
    data = body["data"]
    assert data["sub_total"] == 25
    assert data["shipping_charge"] == 3
    assert data["grand_total"] == 28
    assert data["payment_processing_fee"] == 3  # 10% of 28, half-up
    assert data["status"] == "PENDING" and data["is_paid"] is False
    assert data["payment_gateway"] == "fake"
    assert data["user_id"] == str(buyer_id)
    assert "nonce" not in data
    assert sorted((i["quantity"], i["price"], i["sub_total"]) for i in data["items"]) == [(1, 5, 5), (2, 10, 20)]
    assert r.headers.get("X-Request-ID")

    p1, p2 = products
    p1.refresh_from_db()
    p2.refresh_from_db()
    assert (p1.stock, p2.stock) == (3, 4)


@pytest.mark.django_db
def test_price_snapshot_survives_catalog_price_change(client, order_payload, buyer_headers, products):
    r = _post(client, order_payload, buyer_headers)
    order_id = r.json()["data"]["id"]

    p1, _ = products
    Product.objects.filter(id=p1.id).update(price=999)

    item = OrderedItemModel.objects.get(order_id=order_id, product_id=p1.id)
    assert item.price == 10 and item.sub_total == 20


@pytest.mark.django_db
def test_unknown_payment_method_leaves_stock_untouched(client, order_payload, buyer_headers, products):
    order_payload["payment_method_id"] = str(uuid.uuid4())

    r = _post(client, order_payload, buyer_headers)

    assert r.status_code == 404
    assert r.json()["code"] == "PaymentMethodNotFound"
    assert [p.stock for p in Product.objects.order_by("sku")] == [5, 5]


@pytest.mark.django_db
def test_inactive_payment_method_is_not_found(client, order_payload, buyer_headers, payment_method):
    payment_method.is_active = False
    payment_method.save()
    r = _post(client, order_payload, buyer_headers)
    assert r.json()["code"] == "PaymentMethodNotFound"


@pytest.mark.django_db
def test_unknown_shipping_method(client, order_payload, buyer_headers):
    order_payload["shipping_method_id"] = str(uuid.uuid4())
    r = _post(client, order_payload, buyer_headers)
    assert r.status_code == 404
    assert r.json()["code"] == "ShippingMethodNotFound"


@pytest.mark.django_db
def test_insufficient_stock_rolls_back_whole_order(client, order_payload, buyer_headers, products):
    """Second line exceeds stock: no order rows and the first reservation is undone."""
    order_payload["items"][1]["quantity"] = 6

    r = _post(client, order_payload, buyer_headers)

    assert r.status_code == 404
    assert r.json()["code"] == "ProductUnavailable"
    assert OrderModel.objects.count() == 0
    assert OrderedItemModel.objects.count() == 0
    p1, p2 = products
    p1.refresh_from_db()
    p2.refresh_from_db()
    assert (p1.stock, p2.stock) == (5, 5)


@pytest.mark.django_db
def test_unpublished_product_is_unavailable(client, order_payload, buyer_headers, products):
    p1, _ = products
    Product.objects.filter(id=p1.id).update(is_published=False)
    r = _post(client, order_payload, buyer_headers)
    assert r.json()["code"] == "ProductUnavailable"


@pytest.mark.django_db
def test_failed_detail_refetch_rolls_back(client, order_payload, buyer_headers, products, monkeypatch):
    monkeypatch.setattr("apps.orders.repository.OrderRepository.get_details", lambda self, order_id: None)

    r = _post(client, order_payload, buyer_headers)

    assert r.status_code == 404
    assert r.json()["code"] == "OrderNotFound"
    assert OrderModel.objects.count() == 0
    assert [p.stock for p in Product.objects.order_by("sku")] == [5, 5]


@pytest.mark.django_db
def test_empty_items_is_invalid(client, order_payload, buyer_headers):
    order_payload["items"] = []
    r = _post(client, order_payload, buyer_headers)
    assert r.status_code == 422
    body = r.json()
    assert body["code"] == "OrderDataInvalid"
    assert body["errors"]


@pytest.mark.django_db
def test_non_positive_quantity_is_invalid(client, order_payload, buyer_headers):
    order_payload["items"][0]["quantity"] = 0
    r = _post(client, order_payload, buyer_headers)
    assert r.status_code == 422
    assert r.json()["code"] == "OrderDataInvalid"


@pytest.mark.django_db
def test_malformed_json_is_invalid_request(client, buyer_headers):
    r = client.post(CREATE_URL, data="{not json", content_type="application/json", **buyer_headers)
    assert r.status_code == 400
    assert r.json()["code"] == "InvalidRequest"


@pytest.mark.django_db
def test_anonymous_caller_is_unauthorized(client, order_payload):
    r = _post(client, order_payload, {})
    assert r.status_code == 401
    assert r.json()["code"] == "Unauthorized"


@pytest.mark.django_db
def test_order_email_is_submitted_after_commit(client, order_payload, buyer_headers, monkeypatch):
    from apps.orders import providers
    from apps.orders.adapters import NotificationStub

    stub = NotificationStub()
    monkeypatch.setattr(providers, "get_notifier", lambda: stub)

    r = _post(client, order_payload, buyer_headers)

    assert r.status_code == 201
    assert stub.sent == [(uuid.UUID(r.json()["data"]["id"]), "Order placed")]
