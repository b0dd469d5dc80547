"""Pydantic schemas for orders.

This module exposes the request/validation schemas used by the orders API
and the read schemas used to render responses. Payloads use camelCase on
the wire (``shippingAddress``, ``productSizeId``); snake_case names are
accepted too.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .domain import CartLine, OrderRequest, OrderStatus, PaymentStatus, ShippingAddress


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---- Requests ----
class ShippingAddressIn(CamelModel):
    """Customer delivery details embedded in the order."""

    customer_name: str = Field(min_length=1, max_length=120)
    mobile: str = Field(min_length=1, max_length=32)
    district: str = Field(min_length=1, max_length=120)
    address_line: str = Field(min_length=1, max_length=255)
    upazila: Optional[str] = Field(default=None, max_length=120)
    postal_code: Optional[str] = Field(default=None, max_length=16)

    @field_validator("customer_name", "mobile", "district", "address_line")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("Field cannot be blank")
        return v2


class OrderItemIn(CamelModel):
    """Input schema for a single cart line.

    Attributes:
        product_id: Catalog product id.
        product_size_id: Id of one of the product's sizes.
        quantity: Positive integer indicating units requested.
    """

    product_id: str = Field(min_length=1)
    product_size_id: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class CreateOrderDTO(CamelModel):
    """Schema for creating an order.

    Attributes:
        shipping_address: Delivery details.
        items: At least one `OrderItemIn`.
        order_note: Optional free text from the customer.
        shipping: Pre-computed shipping cost (>= 0, at most two decimal places,
            defaults to 0).
        coupon_code: Optional coupon, normalized to trimmed upper-case.
    """

    shipping_address: ShippingAddressIn
    items: list[OrderItemIn] = Field(min_length=1)
    order_note: Optional[str] = None
    shipping: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    coupon_code: Optional[str] = None

    @field_validator("coupon_code")
    @classmethod
    def normalize_coupon_code(cls, v: Optional[str]) -> Optional[str]:
        """Trim and upper-case the coupon code.

        Raises:
            ValueError: When a code is provided but blank.
        """
        if v is None:
            return None
        v2 = v.strip().upper()
        if not v2:
            raise ValueError("Coupon code cannot be empty if provided")
        return v2

    def to_request(self) -> OrderRequest:
        addr = self.shipping_address
        return OrderRequest(
            lines=[CartLine(i.product_id, i.product_size_id, i.quantity) for i in self.items],
            shipping_address=ShippingAddress(
                customer_name=addr.customer_name,
                mobile=addr.mobile,
                district=addr.district,
                address_line=addr.address_line,
                upazila=addr.upazila,
                postal_code=addr.postal_code,
            ),
            shipping=self.shipping,
            order_note=self.order_note,
            coupon_code=self.coupon_code,
        )


class UpdateOrderStatusDTO(CamelModel):
    status: OrderStatus
    payment_status: Optional[PaymentStatus] = None
    note: Optional[str] = None


class TrackOrderDTO(CamelModel):
    tracking_number: Optional[str] = None
    mobile: Optional[str] = None

    @model_validator(mode="after")
    def require_one(self) -> "TrackOrderDTO":
        if not (self.tracking_number or self.mobile):
            raise ValueError("Either tracking number or mobile number is required")
        return self


# ---- Responses ----
class OrderItemOut(CamelModel):
    product_id: str
    product_size_id: str
    title: str
    size: str
    image: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class StatusEntryOut(CamelModel):
    status: OrderStatus
    note: Optional[str] = None
    changed_by: Optional[str] = None
    changed_at: datetime


class ShippingAddressOut(CamelModel):
    customer_name: str
    mobile: str
    district: str
    address_line: str
    upazila: Optional[str] = None
    postal_code: Optional[str] = None


class OrderReadDTO(CamelModel):
    """Full order representation returned to admins and on creation."""

    id: UUID
    tracking_number: str
    status: OrderStatus
    payment_status: PaymentStatus
    shipping_address: ShippingAddressOut
    items: list[OrderItemOut]
    order_note: Optional[str] = None
    subtotal: Decimal
    shipping: Decimal
    coupon_id: Optional[str] = None
    discount_amount: Decimal
    total_amount: Decimal
    status_history: list[StatusEntryOut]
    created_at: datetime
    updated_at: datetime


class PublicStatusEntryOut(CamelModel):
    status: OrderStatus
    note: Optional[str] = None
    changed_at: datetime


class PublicItemOut(CamelModel):
    title: str
    size: str
    image: str
    quantity: int


class PublicTrackingDTO(CamelModel):
    """What anyone holding a tracking number (or mobile) may see."""

    tracking_number: str
    status: OrderStatus
    payment_status: PaymentStatus
    items: list[PublicItemOut]
    total_amount: Decimal
    status_history: list[PublicStatusEntryOut]
    created_at: datetime


def dump(dto: BaseModel) -> dict:
    return dto.model_dump(by_alias=True, mode="json")
