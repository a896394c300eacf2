"""Domain entities and ports for orders.

The dataclasses here are the framework-free view of an order that the
orchestrators in ``services`` work with. Ports (``Protocol`` classes)
describe what the orchestrators need from the outside world; Django-backed
implementations live in ``adapters`` and ``repository``, in-process stubs
for tests in ``adapters`` as well.
"""

import uuid
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Protocol

from apps.catalog.types import ReservedProduct
from apps.orders.pricing import PaymentFeeRule, ShippingRule


# ---- Enums ----
class OrderStatus(str, Enum):
    """Order lifecycle.

    Persisted orders are PENDING or PAID (terminal). PAYMENT_FAILED is only
    reported with a failed capture; the order itself stays PENDING and the
    capture may be retried. A paid order may not be captured again.
    """

    PENDING = "PENDING"
    PAID = "PAID"
    PAYMENT_FAILED = "PAYMENT_FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is OrderStatus.PAID


# ---- Commands ----
@dataclass(frozen=True)
class LineRequest:
    product_id: uuid.UUID
    quantity: int


@dataclass(frozen=True)
class CreateOrderCommand:
    """Validated input of the order creation transaction.

    Duplicate product ids in ``items`` are kept as independent lines.
    """

    store_id: uuid.UUID
    shipping_address_id: uuid.UUID
    billing_address_id: uuid.UUID
    payment_method_id: uuid.UUID
    items: List[LineRequest]
    shipping_method_id: Optional[uuid.UUID] = None


# ---- Entities ----
@dataclass
class OrderedItem:
    """One line of an order; ``price`` is the snapshot taken at creation."""

    product_id: uuid.UUID
    quantity: int
    price: int
    sub_total: int
    total_tax: int = 0
    total_vat: int = 0
    order_id: Optional[uuid.UUID] = None


@dataclass
class Order:
    """Order header plus its items.

    Attributes:
        payment_gateway: Name of the gateway active when the order was
            created; captures always go through this gateway.
        nonce: One-time credential attached during capture; never persisted.
    """

    id: uuid.UUID
    hash: str
    user_id: uuid.UUID
    store_id: uuid.UUID
    shipping_address_id: uuid.UUID
    billing_address_id: uuid.UUID
    payment_method_id: uuid.UUID
    shipping_method_id: Optional[uuid.UUID] = None
    items: List[OrderedItem] = field(default_factory=list)
    sub_total: int = 0
    total_tax: int = 0
    total_vat: int = 0
    shipping_charge: int = 0
    payment_processing_fee: int = 0
    grand_total: int = 0
    currency: str = "USD"
    status: OrderStatus = OrderStatus.PENDING
    is_paid: bool = False
    payment_gateway: Optional[str] = None
    transaction_id: Optional[str] = None
    nonce: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def payable_amount(self) -> int:
        """Amount charged by the gateway: grand total plus processing fee."""
        return self.grand_total + self.payment_processing_fee


# ---- Ports (DIP) ----
class UnitOfWork(Protocol):
    """Transaction boundary: everything inside ``atomic()`` commits or none does."""

    def atomic(self) -> AbstractContextManager:
        raise NotImplementedError()


class ReferenceDataPort(Protocol):
    """Resolves configured payment and shipping methods."""

    def get_payment_fee_rule(self, payment_method_id: uuid.UUID) -> Optional[PaymentFeeRule]:
        raise NotImplementedError()

    def get_shipping_rule(self, shipping_method_id: uuid.UUID) -> Optional[ShippingRule]:
        raise NotImplementedError()


class CatalogPort(Protocol):
    """Quantity-checked, lock-respecting stock reservation."""

    def reserve_for_order(self, store_id: uuid.UUID, product_id: uuid.UUID, quantity: int) -> Optional[ReservedProduct]:
        raise NotImplementedError()


class OrderStorePort(Protocol):
    """Order persistence used by both orchestrators."""

    def create(self, order: Order) -> None:
        raise NotImplementedError()

    def add_ordered_item(self, item: OrderedItem) -> None:
        raise NotImplementedError()

    def get_details(self, order_id: uuid.UUID) -> Optional[Order]:
        raise NotImplementedError()

    def get_details_for_update(self, order_id: uuid.UUID) -> Optional[Order]:
        raise NotImplementedError()

    def mark_paid(self, order_id: uuid.UUID, transaction_id: str) -> None:
        raise NotImplementedError()


class NotificationPort(Protocol):
    """Submission side of the asynchronous email dispatcher."""

    def send_order_details_email(self, order_id: uuid.UUID, subject: str) -> None:
        raise NotImplementedError()
