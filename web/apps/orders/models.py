import uuid

from django.db import models

from apps.catalog.models import Product
from apps.payments.models import PaymentMethod
from apps.shipping.models import ShippingMethod


class OrderModel(models.Model):
    # UUID PK exposed by the API
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # Short id buyers can quote to support
    hash = models.CharField(max_length=16, unique=True)

    user_id = models.UUIDField(db_index=True)
    store_id = models.UUIDField(db_index=True)
    shipping_address_id = models.UUIDField()
    billing_address_id = models.UUIDField()
    payment_method = models.ForeignKey(PaymentMethod, on_delete=models.PROTECT, related_name="orders")
    shipping_method = models.ForeignKey(
        ShippingMethod, on_delete=models.PROTECT, null=True, blank=True, related_name="orders"
    )

    class Status(models.TextChoices):
        PENDING = "PENDING"
        PAID = "PAID"

    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PENDING)
    is_paid = models.BooleanField(default=False)

    sub_total = models.PositiveIntegerField(default=0)
    total_tax = models.PositiveIntegerField(default=0)
    total_vat = models.PositiveIntegerField(default=0)
    shipping_charge = models.PositiveIntegerField(default=0)
    payment_processing_fee = models.PositiveIntegerField(default=0)
    grand_total = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, default="USD")

    payment_gateway = models.CharField(max_length=32, null=True, blank=True)
    transaction_id = models.CharField(max_length=128, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    grand_total=models.F("sub_total")
                    + models.F("total_tax")
                    + models.F("total_vat")
                    + models.F("shipping_charge")
                ),
                name="ck_orders_grand_total",
            ),
        ]


class OrderedItemModel(models.Model):
    order = models.ForeignKey(OrderModel, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="+")
    quantity = models.PositiveIntegerField()
    # Unit price snapshot, never refreshed from the catalog
    price = models.PositiveIntegerField()
    sub_total = models.PositiveIntegerField()
    total_tax = models.PositiveIntegerField(default=0)
    total_vat = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "ordered_items"
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name="ck_ordered_items_quantity"),
        ]


class IdempotencyKey(models.Model):
    key = models.CharField(max_length=200, primary_key=True)
    request_hash = models.CharField(max_length=64)
    response_status = models.PositiveSmallIntegerField(default=0)
    response_body = models.JSONField(default=dict)
    order = models.ForeignKey(OrderModel, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_idempotency_keys"
