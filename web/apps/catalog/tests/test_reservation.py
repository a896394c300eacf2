"""Tests for the catalog reservation gateway and product visibility reads."""

import threading
import uuid

import pytest
from django.db import connection, transaction

from apps.catalog.models import Product
from apps.catalog.repository import CatalogRepository


@pytest.fixture
def product(db, store_id):
    return Product.objects.create(
        store_id=store_id, name="Lamp", sku="LAMP-1", price=4500, stock=1, weight_grams=900, is_published=True
    )


@pytest.mark.django_db
def test_reserve_decrements_stock_and_snapshots_price(product, store_id):
    with transaction.atomic():
        reserved = CatalogRepository().reserve_for_order(store_id, product.id, 1)
    assert reserved.price == 4500 and reserved.weight_grams == 900
    product.refresh_from_db()
    assert product.stock == 0


@pytest.mark.django_db
def test_last_unit_can_only_be_reserved_once(product, store_id):
    repo = CatalogRepository()
    with transaction.atomic():
        first = repo.reserve_for_order(store_id, product.id, 1)
        second = repo.reserve_for_order(store_id, product.id, 1)
    assert first is not None
    assert second is None


@pytest.mark.django_db
def test_reserve_refuses_other_store_and_bad_quantity(product, store_id):
    repo = CatalogRepository()
    with transaction.atomic():
        assert repo.reserve_for_order(uuid.uuid4(), product.id, 1) is None
        assert repo.reserve_for_order(store_id, product.id, 0) is None
        assert repo.reserve_for_order(store_id, product.id, 2) is None
    product.refresh_from_db()
    assert product.stock == 1


def test_reserve_requires_a_transaction(transactional_db, store_id):
    product = Product.objects.create(store_id=store_id, name="Lamp", sku="LAMP-3", price=100, stock=1, is_published=True)
    with pytest.raises(RuntimeError):
        CatalogRepository().reserve_for_order(store_id, product.id, 1)
    product.refresh_from_db()
    assert product.stock == 1


@pytest.mark.django_db
def test_rollback_releases_the_reservation(product, store_id):
    with pytest.raises(ZeroDivisionError):
        with transaction.atomic():
            CatalogRepository().reserve_for_order(store_id, product.id, 1)
            1 / 0
    product.refresh_from_db()
    assert product.stock == 1


@pytest.mark.django_db
def test_visibility_paths(product, store_id):
    repo = CatalogRepository()
    Product.objects.filter(id=product.id).update(is_published=False)

    assert repo.get_details(product.id) is None
    staff_view = repo.get_as_store_staff(store_id, product.id)
    assert staff_view.stock == 1 and staff_view.is_published is False
    assert repo.get_as_store_staff(uuid.uuid4(), product.id) is None


@pytest.mark.skipif(connection.vendor != "postgresql", reason="row locks need PostgreSQL")
@pytest.mark.django_db(transaction=True)
def test_concurrent_checkouts_for_last_unit(store_id):
    product = Product.objects.create(
        store_id=store_id, name="Lamp", sku="LAMP-2", price=4500, stock=1, is_published=True
    )
    barrier = threading.Barrier(2)
    results = []

    def checkout():
        try:
            barrier.wait()
            with transaction.atomic():
                results.append(CatalogRepository().reserve_for_order(store_id, product.id, 1))
        finally:
            connection.close()

    threads = [threading.Thread(target=checkout) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(r is not None for r in results) == 1
    product.refresh_from_db()
    assert product.stock == 0


class StaleReadCatalog(CatalogRepository):
    """Another checkout takes the stock right after the row is read."""

    def _lock_product(self, store_id, product_id):
        product = super()._lock_product(store_id, product_id)
        if product is not None:
            Product.objects.filter(id=product.id).update(stock=0)
        return product


@pytest.mark.django_db
def test_decrement_rechecks_stock_after_stale_read(product, store_id):
    with transaction.atomic():
        reserved = StaleReadCatalog().reserve_for_order(store_id, product.id, 1)

    assert reserved is None
    product.refresh_from_db()
    assert product.stock == 0
