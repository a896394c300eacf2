"""Repository layer for persisting orders.

``OrderRepository`` maps the domain ``Order``/``OrderedItem`` dataclasses
to Django models and back so the orchestrators never see ORM types. Writes
must run inside the caller's ``transaction.atomic`` block; database errors
are translated into the shared error taxonomy (integrity violations become
``RejectedRequestError``, everything else ``PersistenceError``) and
propagate so the surrounding transaction rolls back.
"""

import uuid
from contextlib import contextmanager
from typing import Optional

from django.db import DatabaseError, IntegrityError

from apps.common.errors import PersistenceError, RejectedRequestError

from .domain import Order, OrderedItem, OrderStatus
from .models import OrderedItemModel, OrderModel


class OrderRepository:
    """Order persistence backed by the Django ORM."""

    def create(self, order: Order) -> None:
        """Insert the order header."""
        with _translate_errors():
            OrderModel.objects.create(
                id=order.id,
                hash=order.hash,
                user_id=order.user_id,
                store_id=order.store_id,
                shipping_address_id=order.shipping_address_id,
                billing_address_id=order.billing_address_id,
                payment_method_id=order.payment_method_id,
                shipping_method_id=order.shipping_method_id,
                status=order.status.value,
                is_paid=order.is_paid,
                sub_total=order.sub_total,
                total_tax=order.total_tax,
                total_vat=order.total_vat,
                shipping_charge=order.shipping_charge,
                payment_processing_fee=order.payment_processing_fee,
                grand_total=order.grand_total,
                currency=order.currency,
                payment_gateway=order.payment_gateway,
            )

    def add_ordered_item(self, item: OrderedItem) -> None:
        with _translate_errors():
            OrderedItemModel.objects.create(
                order_id=item.order_id,
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                sub_total=item.sub_total,
                total_tax=item.total_tax,
                total_vat=item.total_vat,
            )

    def get_details(self, order_id: uuid.UUID) -> Optional[Order]:
        """Load an order joined with its items, or None."""
        with _translate_errors():
            obj = OrderModel.objects.prefetch_related("items").filter(id=order_id).first()
            return to_domain(obj) if obj else None

    def get_details_for_update(self, order_id: uuid.UUID) -> Optional[Order]:
        """Like ``get_details`` but locks the order row until commit."""
        with _translate_errors():
            obj = OrderModel.objects.select_for_update().filter(id=order_id).first()
            if obj is None:
                return None
            return to_domain(obj, list(obj.items.all()))

    def mark_paid(self, order_id: uuid.UUID, transaction_id: str) -> None:
        self._update(order_id, status=OrderStatus.PAID.value, is_paid=True, transaction_id=transaction_id)

    def list_for_store(self, store_id: uuid.UUID, page: int, limit: int) -> tuple[int, list[Order]]:
        """Return ``(total_count, orders)`` for one page, newest first."""
        with _translate_errors():
            qs = OrderModel.objects.filter(store_id=store_id).order_by("-created_at", "-id")
            total = qs.count()
            offset = (page - 1) * limit
            objs = qs.prefetch_related("items")[offset : offset + limit]
            return total, [to_domain(o) for o in objs]

    def _update(self, order_id: uuid.UUID, **fields) -> None:
        with _translate_errors():
            obj = OrderModel.objects.get(id=order_id)
            for name, value in fields.items():
                setattr(obj, name, value)
            obj.save(update_fields=[*fields, "updated_at"])


def to_domain(obj: OrderModel, items: Optional[list] = None) -> Order:
    items = items if items is not None else list(obj.items.all())
    return Order(
        id=obj.id,
        hash=obj.hash,
        user_id=obj.user_id,
        store_id=obj.store_id,
        shipping_address_id=obj.shipping_address_id,
        billing_address_id=obj.billing_address_id,
        payment_method_id=obj.payment_method_id,
        shipping_method_id=obj.shipping_method_id,
        items=[
            OrderedItem(
                order_id=obj.id,
                product_id=it.product_id,
                quantity=it.quantity,
                price=it.price,
                sub_total=it.sub_total,
                total_tax=it.total_tax,
                total_vat=it.total_vat,
            )
            for it in items
        ],
        sub_total=obj.sub_total,
        total_tax=obj.total_tax,
        total_vat=obj.total_vat,
        shipping_charge=obj.shipping_charge,
        payment_processing_fee=obj.payment_processing_fee,
        grand_total=obj.grand_total,
        currency=obj.currency,
        status=OrderStatus(obj.status),
        is_paid=obj.is_paid,
        payment_gateway=obj.payment_gateway,
        transaction_id=obj.transaction_id,
        created_at=obj.created_at,
        updated_at=obj.updated_at,
    )


@contextmanager
def _translate_errors():
    """Map Django database errors to API errors."""
    try:
        yield
    except IntegrityError as exc:
        raise RejectedRequestError(errors=str(exc)) from exc
    except DatabaseError as exc:
        raise PersistenceError(errors=str(exc)) from exc
