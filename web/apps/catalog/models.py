import uuid

from django.db import models


class Product(models.Model):
    """A sellable product of a store.

    ``price`` is in minor currency units. ``stock`` is only ever decremented
    through ``CatalogRepository.reserve_for_order`` inside an order
    transaction.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store_id = models.UUIDField(db_index=True)
    name = models.CharField(max_length=200)
    sku = models.CharField(max_length=64)
    description = models.TextField(blank=True, default="")
    price = models.PositiveIntegerField()
    stock = models.PositiveIntegerField(default=0)
    weight_grams = models.PositiveIntegerField(default=0)
    is_published = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        constraints = [
            models.UniqueConstraint(fields=["store_id", "sku"], name="ux_products_store_sku"),
        ]

    def __str__(self):
        return f"{self.sku} ({self.name})"
