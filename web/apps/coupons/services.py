"""Coupon availability check.

Resolves the product through the visibility path of the caller (store staff
see their store's products including unpublished ones, buyers only see
published products) and evaluates whether the coupon can be redeemed on
it right now.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.utils import timezone

from apps.catalog.repository import CatalogRepository
from apps.common.context import CallerContext
from apps.common.errors import CouponNotFound, ProductNotFound

from .models import Coupon
from .repository import CouponRepository

# Ineligibility reasons, checked in this order
INACTIVE = "inactive"
NOT_STARTED = "not_started"
EXPIRED = "expired"
USAGE_LIMIT_REACHED = "usage_limit_reached"
STORE_MISMATCH = "store_mismatch"


@dataclass(frozen=True)
class Availability:
    coupon: Coupon
    product: object
    reason: Optional[str]
    discount: int

    @property
    def available(self) -> bool:
        return self.reason is None

    def as_dict(self) -> dict:
        return {
            "coupon_id": str(self.coupon.id),
            "code": self.coupon.code,
            "available": self.available,
            "reason": self.reason,
            "discount": self.discount,
            "product": self.product.model_dump(mode="json"),
        }


def ineligibility_reason(coupon: Coupon, product_store_id: uuid.UUID, now: datetime) -> Optional[str]:
    if not coupon.is_active:
        return INACTIVE
    if coupon.start_at and now < coupon.start_at:
        return NOT_STARTED
    if coupon.end_at and now >= coupon.end_at:
        return EXPIRED
    if coupon.max_usage and coupon.times_used >= coupon.max_usage:
        return USAGE_LIMIT_REACHED
    if coupon.store_id != product_store_id:
        return STORE_MISMATCH
    return None


class CouponService:
    def __init__(self, coupons: Optional[CouponRepository] = None, catalog: Optional[CatalogRepository] = None):
        self.coupons = coupons or CouponRepository()
        self.catalog = catalog or CatalogRepository()

    def check_availability(
        self,
        caller: CallerContext,
        coupon_id: uuid.UUID,
        product_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> Availability:
        """Evaluate ``coupon_id`` against one unit of ``product_id``.

        Raises:
            CouponNotFound: Unknown coupon (or another store's, for staff).
            ProductNotFound: The product is not visible to the caller.
        """
        coupon = self.coupons.find(coupon_id, store_id=caller.store_id if caller.is_staff else None)
        if coupon is None:
            raise CouponNotFound()

        if caller.is_staff:
            product = self.catalog.get_as_store_staff(caller.store_id, product_id)
        else:
            product = self.catalog.get_details(product_id)
        if product is None:
            raise ProductNotFound()

        reason = ineligibility_reason(coupon, product.store_id, now or timezone.now())
        discount = coupon.discount_for(product.price) if reason is None else 0
        return Availability(coupon=coupon, product=product, reason=reason, discount=discount)
