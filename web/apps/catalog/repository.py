"""Catalog persistence: stock reservation and product visibility reads.

``reserve_for_order`` is the Catalog Reservation Gateway used by the order
orchestrator. It must run inside the caller's transaction: the product row
is locked with ``SELECT ... FOR UPDATE`` and the decrement is additionally
guarded by ``stock >= quantity``, so two concurrent checkouts for the last
unit cannot both succeed. Rolling back the surrounding transaction releases
the reservation.
"""

import uuid
from typing import Optional

from django.db import transaction
from django.db.models import F

from .models import Product
from .schemas import ProductPublicDTO, ProductStaffDTO
from .types import ReservedProduct


class CatalogRepository:
    """Django ORM access to products."""

    def reserve_for_order(self, store_id: uuid.UUID, product_id: uuid.UUID, quantity: int) -> Optional[ReservedProduct]:
        """Atomically check and decrement stock for one order line.

        Args:
            store_id: Store the order is placed against.
            product_id: Product requested by the line.
            quantity: Positive quantity requested.

        Returns:
            ReservedProduct with the price snapshot, or None when the product
            is not published in that store or has insufficient stock.
        """
        if quantity <= 0:
            return None
        if not transaction.get_connection().in_atomic_block:
            raise RuntimeError("reserve_for_order must run inside a transaction")

        product = self._lock_product(store_id, product_id)
        if product is None or product.stock < quantity:
            return None

        updated = Product.objects.filter(id=product.id, stock__gte=quantity).update(stock=F("stock") - quantity)
        if updated != 1:
            return None
        return ReservedProduct(product_id=product.id, price=product.price, weight_grams=product.weight_grams)

    def _lock_product(self, store_id: uuid.UUID, product_id: uuid.UUID) -> Optional[Product]:
        # stock read here may be stale; the guarded decrement below decides
        return (
            Product.objects.select_for_update()
            .filter(id=product_id, store_id=store_id, is_published=True)
            .only("id", "price", "weight_grams", "stock")
            .first()
        )

    def get_details(self, product_id: uuid.UUID) -> Optional[ProductPublicDTO]:
        """Public view: published products only."""
        product = Product.objects.filter(id=product_id, is_published=True).first()
        return ProductPublicDTO.model_validate(product) if product else None

    def get_as_store_staff(self, store_id: uuid.UUID, product_id: uuid.UUID) -> Optional[ProductStaffDTO]:
        """Staff view: any product of the staff member's store."""
        product = Product.objects.filter(id=product_id, store_id=store_id).first()
        return ProductStaffDTO.model_validate(product) if product else None
