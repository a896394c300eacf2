import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.db import models


class Coupon(models.Model):
    """A store discount code.

    ``max_usage`` and ``max_discount`` of 0 mean unlimited.
    """

    class DiscountType(models.TextChoices):
        FLAT = "FLAT"
        PERCENTAGE = "PERCENTAGE"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store_id = models.UUIDField(db_index=True)
    code = models.CharField(max_length=50)
    discount_type = models.CharField(max_length=16, choices=DiscountType.choices, default=DiscountType.FLAT)
    # Minor units for FLAT, percent for PERCENTAGE
    discount_amount = models.PositiveIntegerField(default=0)
    max_discount = models.PositiveIntegerField(default=0)
    max_usage = models.PositiveIntegerField(default=0)
    times_used = models.PositiveIntegerField(default=0)
    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "coupons"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(fields=["store_id", "code"], name="ux_coupons_store_code"),
        ]

    def __str__(self):
        return self.code

    def discount_for(self, price: int) -> int:
        """Discount this coupon takes off one unit sold at ``price``."""
        if self.discount_type == self.DiscountType.FLAT:
            discount = self.discount_amount
        else:
            raw = Decimal(price) * Decimal(self.discount_amount) / Decimal(100)
            discount = int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))
        if self.max_discount:
            discount = min(discount, self.max_discount)
        return min(discount, price)
