import uuid
from dataclasses import dataclass


@dataclass(frozen=True)
class ReservedProduct:
    """Snapshot of a product taken while its stock was reserved.

    Attributes:
        product_id: Reserved product.
        price: Unit price at reservation time (minor units).
        weight_grams: Unit weight, used by shipping rules.
    """

    product_id: uuid.UUID
    price: int
    weight_grams: int
