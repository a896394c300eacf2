"""Pydantic schemas for orders.

Request schemas validate the JSON bodies and query strings of the orders
API; read schemas render the domain ``Order`` for responses.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .domain import CreateOrderCommand, LineRequest, OrderStatus

MAX_PAGE_LIMIT = 100


class OrderItemIn(BaseModel):
    """Input schema for a single order line.

    Attributes:
        id: Product id.
        quantity: Positive integer indicating units requested.
    """

    id: uuid.UUID
    quantity: int = Field(gt=0)


class CreateOrderDTO(BaseModel):
    """Schema for creating an order.

    Attributes:
        store_id: Store the order is placed against.
        items: At least one line; duplicates are kept as separate lines.
        shipping_address_id: Opaque address reference.
        billing_address_id: Opaque address reference.
        payment_method_id: Payment method to price the processing fee with.
        shipping_method_id: Optional shipping method.
    """

    model_config = ConfigDict(extra="ignore")

    store_id: uuid.UUID
    items: list[OrderItemIn] = Field(min_length=1)
    shipping_address_id: uuid.UUID
    billing_address_id: uuid.UUID
    payment_method_id: uuid.UUID
    shipping_method_id: Optional[uuid.UUID] = None

    def to_command(self) -> CreateOrderCommand:
        return CreateOrderCommand(
            store_id=self.store_id,
            shipping_address_id=self.shipping_address_id,
            billing_address_id=self.billing_address_id,
            payment_method_id=self.payment_method_id,
            shipping_method_id=self.shipping_method_id,
            items=[LineRequest(product_id=i.id, quantity=i.quantity) for i in self.items],
        )


class PageParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=MAX_PAGE_LIMIT)


class OrderedItemReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: uuid.UUID
    quantity: int
    price: int
    sub_total: int
    total_tax: int
    total_vat: int


class OrderReadDTO(BaseModel):
    """Public representation of an order (the nonce is never exposed)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    hash: str
    user_id: uuid.UUID
    store_id: uuid.UUID
    shipping_address_id: uuid.UUID
    billing_address_id: uuid.UUID
    payment_method_id: uuid.UUID
    shipping_method_id: Optional[uuid.UUID] = None
    status: OrderStatus
    is_paid: bool
    sub_total: int
    total_tax: int
    total_vat: int
    shipping_charge: int
    payment_processing_fee: int
    grand_total: int
    currency: str
    payment_gateway: Optional[str] = None
    transaction_id: Optional[str] = None
    items: list[OrderedItemReadDTO] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def order_to_dict(order) -> dict:
    """Render a domain ``Order`` as a JSON-safe dict."""
    return OrderReadDTO.model_validate(order).model_dump(mode="json")
