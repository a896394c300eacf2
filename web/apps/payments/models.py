import uuid

from django.db import models

from apps.orders.pricing import PaymentFeeRule


class PaymentMethod(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    # Fixed amount (minor units) when is_flat, otherwise a percentage.
    processing_fee = models.PositiveIntegerField(default=0)
    min_processing_fee = models.PositiveIntegerField(default=0)
    max_processing_fee = models.PositiveIntegerField(default=0)
    is_flat = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payment_methods"

    def __str__(self):
        return self.name

    def fee_rule(self) -> PaymentFeeRule:
        return PaymentFeeRule(
            processing_fee=self.processing_fee,
            is_flat=self.is_flat,
            min_processing_fee=self.min_processing_fee,
            max_processing_fee=self.max_processing_fee,
        )

    def calculate_processing_fee(self, grand_total: int) -> int:
        return self.fee_rule().calculate_processing_fee(grand_total)
