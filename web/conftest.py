"""Shared fixtures for the checkout API tests.

Callers are identified by the headers the upstream auth layer forwards, so
API tests only need the ``*_headers`` dicts below to act as a buyer or as
store staff.
"""

import uuid

import pytest


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    settings.USE_HTTP_ADAPTERS = False


@pytest.fixture
def store_id():
    return uuid.uuid4()


@pytest.fixture
def buyer_id():
    return uuid.uuid4()


@pytest.fixture
def buyer_headers(buyer_id):
    return {"HTTP_X_USER_ID": str(buyer_id), "HTTP_X_USER_ROLE": "buyer"}


@pytest.fixture
def staff_headers(store_id):
    return {
        "HTTP_X_USER_ID": str(uuid.uuid4()),
        "HTTP_X_STORE_ID": str(store_id),
        "HTTP_X_USER_ROLE": "staff",
    }


@pytest.fixture
def payment_method(db):
    from apps.payments.models import PaymentMethod

    # 10% fee, at least 1, at most 500
    return PaymentMethod.objects.create(
        name="Card", processing_fee=10, is_flat=False, min_processing_fee=1, max_processing_fee=500
    )


@pytest.fixture
def shipping_method(db):
    from apps.shipping.models import ShippingMethod

    return ShippingMethod.objects.create(name="Courier", delivery_charge=3, is_flat=True, approximate_delivery_time=2)


@pytest.fixture
def products(db, store_id):
    from apps.catalog.models import Product

    p1 = Product.objects.create(
        store_id=store_id, name="Mug", sku="MUG-1", price=10, stock=5, weight_grams=300, is_published=True
    )
    p2 = Product.objects.create(
        store_id=store_id, name="Sticker", sku="STK-1", price=5, stock=5, weight_grams=10, is_published=True
    )
    return p1, p2


@pytest.fixture
def order_payload(store_id, products, payment_method, shipping_method):
    p1, p2 = products
    return {
        "store_id": str(store_id),
        "items": [{"id": str(p1.id), "quantity": 2}, {"id": str(p2.id), "quantity": 1}],
        "shipping_address_id": str(uuid.uuid4()),
        "billing_address_id": str(uuid.uuid4()),
        "payment_method_id": str(payment_method.id),
        "shipping_method_id": str(shipping_method.id),
    }
