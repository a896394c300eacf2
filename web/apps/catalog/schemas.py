"""Read schemas for the two product visibility paths.

Store staff see internal fields (stock, publication flag, SKU); buyers only
see the published detail.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class ProductPublicDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    store_id: uuid.UUID
    name: str
    description: str
    price: int


class ProductStaffDTO(ProductPublicDTO):
    sku: str
    stock: int
    weight_grams: int
    is_published: bool
    created_at: datetime
    updated_at: datetime
