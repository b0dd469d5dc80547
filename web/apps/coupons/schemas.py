"""Pydantic schemas for the coupon preview endpoint."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CartItemIn(CamelModel):
    product_id: str = Field(min_length=1)
    product_size_id: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class ApplyCouponDTO(CamelModel):
    """Schema for previewing a coupon against a cart.

    Attributes:
        code: Coupon code, normalized to trimmed upper-case.
        items: At least one cart line.
    """

    code: str = Field(min_length=1)
    items: list[CartItemIn] = Field(min_length=1)

    @field_validator("code")
    @classmethod
    def normalize(cls, v: str) -> str:
        v2 = v.strip().upper()
        if not v2:
            raise ValueError("Coupon code is required")
        return v2


class CouponPreviewOut(CamelModel):
    is_valid: bool
    code: str
    message: str
    discount_amount: Decimal
    cart_subtotal: Decimal
    eligible_total: Decimal
