"""Pricing calculator for orders.

Pure functions over integers in minor currency units. Nothing here touches
the database, so the same code prices orders in the orchestrator and in
unit tests.

Totals invariant::

    grand_total == sub_total + total_tax + total_vat + shipping_charge

and the payment processing fee is derived from ``grand_total`` (it is not
part of it).
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Protocol

GRAMS_PER_KG = 1000


@dataclass(frozen=True)
class PaymentFeeRule:
    """Processing fee rule of a payment method.

    Attributes:
        processing_fee: Fixed fee when ``is_flat``, else a percentage.
        is_flat: Whether the fee is a fixed amount.
        min_processing_fee: Lower bound for percentage fees.
        max_processing_fee: Upper bound for percentage fees (0 = unbounded).
    """

    processing_fee: int
    is_flat: bool = False
    min_processing_fee: int = 0
    max_processing_fee: int = 0

    def calculate_processing_fee(self, grand_total: int) -> int:
        if self.is_flat:
            return self.processing_fee
        fee = _round(Decimal(grand_total) * Decimal(self.processing_fee) / Decimal(100))
        fee = max(fee, self.min_processing_fee)
        if self.max_processing_fee:
            fee = min(fee, self.max_processing_fee)
        return fee


@dataclass(frozen=True)
class ShippingRule:
    """Delivery charge rule of a shipping method.

    A flat rule charges ``delivery_charge`` once; otherwise it is charged per
    started kilogram of order weight.
    """

    delivery_charge: int
    is_flat: bool = True

    def calculate_delivery_charge(self, weight_grams: int) -> int:
        if self.is_flat:
            return self.delivery_charge
        kilograms = -(-weight_grams // GRAMS_PER_KG)
        return self.delivery_charge * kilograms


class TaxPolicy(Protocol):
    """Per-line tax/VAT policy. Jurisdiction rules live outside this service."""

    def line_taxes(self, product_id, quantity: int, sub_total: int) -> tuple[int, int]:
        """Return ``(tax, vat)`` for one line."""
        raise NotImplementedError()


class NoTaxPolicy:
    def line_taxes(self, product_id, quantity, sub_total):
        return 0, 0


@dataclass(frozen=True)
class LineTotals:
    quantity: int
    price: int
    sub_total: int
    total_tax: int = 0
    total_vat: int = 0


@dataclass(frozen=True)
class OrderTotals:
    sub_total: int
    total_tax: int
    total_vat: int
    shipping_charge: int
    grand_total: int
    payment_processing_fee: int


def price_line(product_id, quantity: int, price: int, tax_policy: Optional[TaxPolicy] = None) -> LineTotals:
    """Price one line from the unit price snapshot."""
    if quantity <= 0:
        raise ValueError("quantity must be positive")
    sub_total = quantity * price
    tax, vat = (tax_policy or NoTaxPolicy()).line_taxes(product_id, quantity, sub_total)
    return LineTotals(quantity=quantity, price=price, sub_total=sub_total, total_tax=tax, total_vat=vat)


def order_totals(
    lines: Iterable[LineTotals],
    fee_rule: PaymentFeeRule,
    shipping_charge: int = 0,
) -> OrderTotals:
    """Accumulate line totals and derive grand total and processing fee."""
    sub_total = total_tax = total_vat = 0
    for line in lines:
        sub_total += line.sub_total
        total_tax += line.total_tax
        total_vat += line.total_vat
    grand_total = sub_total + total_tax + total_vat + shipping_charge
    return OrderTotals(
        sub_total=sub_total,
        total_tax=total_tax,
        total_vat=total_vat,
        shipping_charge=shipping_charge,
        grand_total=grand_total,
        payment_processing_fee=fee_rule.calculate_processing_fee(grand_total),
    )


def _round(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
