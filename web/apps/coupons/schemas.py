"""Pydantic schemas for coupon requests and responses."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .models import Coupon

DiscountType = Coupon.DiscountType


class CouponCreateDTO(BaseModel):
    """Full coupon definition.

    Attributes:
        code: Coupon code, normalized to uppercase; unique per store.
        discount_type: ``FLAT`` (minor units) or ``PERCENTAGE``.
        discount_amount: Amount or percentage depending on the type.
        max_discount: Cap on the discount per unit (0 = no cap).
        max_usage: Usage cap (0 = unlimited).
        start_at: Start of the validity window (open when missing).
        end_at: End of the validity window (open when missing).
    """

    model_config = ConfigDict(extra="forbid")

    code: str = Field(min_length=1, max_length=50)
    discount_type: DiscountType
    discount_amount: int = Field(ge=0)
    max_discount: int = Field(default=0, ge=0)
    max_usage: int = Field(default=0, ge=0)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v2 = v.strip().upper()
        if not v2:
            raise ValueError("code must not be blank")
        return v2

    @model_validator(mode="after")
    def check_consistency(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_amount > 100:
            raise ValueError("percentage discount cannot exceed 100")
        if self.start_at and self.end_at and self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class CouponUpdateDTO(BaseModel):
    """Partial update: only the fields sent are applied.

    The merged coupon is validated again as a ``CouponCreateDTO`` before it
    is written back.
    """

    model_config = ConfigDict(extra="forbid")

    code: Optional[str] = Field(default=None, min_length=1, max_length=50)
    discount_type: Optional[DiscountType] = None
    discount_amount: Optional[int] = Field(default=None, ge=0)
    max_discount: Optional[int] = Field(default=None, ge=0)
    max_usage: Optional[int] = Field(default=None, ge=0)
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    is_active: Optional[bool] = None


class CouponReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    store_id: uuid.UUID
    code: str
    discount_type: DiscountType
    discount_amount: int
    max_discount: int
    max_usage: int
    times_used: int
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CouponListParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    query: Optional[str] = Field(default=None, max_length=50)


class AvailabilityCheckDTO(BaseModel):
    product_id: uuid.UUID


def coupon_to_dict(coupon: Coupon) -> dict:
    return CouponReadDTO.model_validate(coupon).model_dump(mode="json")
