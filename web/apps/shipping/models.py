import uuid

from django.db import models

from apps.orders.pricing import ShippingRule


class ShippingMethod(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    delivery_charge = models.PositiveIntegerField(default=0)
    is_flat = models.BooleanField(default=True)
    approximate_delivery_time = models.PositiveIntegerField(default=0, help_text="Days")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "shipping_methods"

    def __str__(self):
        return self.name

    def charge_rule(self) -> ShippingRule:
        return ShippingRule(delivery_charge=self.delivery_charge, is_flat=self.is_flat)

    def calculate_delivery_charge(self, weight_grams: int) -> int:
        return self.charge_rule().calculate_delivery_charge(weight_grams)
