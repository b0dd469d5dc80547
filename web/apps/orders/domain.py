"""Domain models and ports for orders.

This module contains the dataclasses that describe a cart and an order,
the status enumerations used by the lifecycle, and the protocol
definitions (ports) for the stores the order coordinator depends on:
catalog lookups, order persistence and the inventory ledger.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Protocol
from uuid import UUID

from apps.catalog.domain import ProductSnapshot, ReservationResult


# ---- Enums ----
class OrderStatus(str, Enum):
    """Enumeration of the possible order statuses.
    Legal moves between them live in ``lifecycle.LIFECYCLE``."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


# ---- Cart input ----
@dataclass(frozen=True)
class CartLine:
    """A line submitted by the customer, before pricing."""

    product_id: str
    product_size_id: str
    quantity: int


@dataclass(frozen=True)
class ShippingAddress:
    customer_name: str
    mobile: str
    district: str
    address_line: str
    upazila: Optional[str] = None
    postal_code: Optional[str] = None


@dataclass(frozen=True)
class OrderRequest:
    """Everything needed to create an order, already shape-validated."""

    lines: List[CartLine]
    shipping_address: ShippingAddress
    shipping: Decimal = Decimal("0.00")
    order_note: Optional[str] = None
    coupon_code: Optional[str] = None


# ---- Entities ----
@dataclass(frozen=True)
class OrderItem:
    """Snapshot of one ordered line.

    Attributes:
        product_id: Catalog product id.
        product_size_id: Catalog size id.
        title: Product title at order time.
        size: Size label at order time.
        image: First product image at order time ("" if none).
        quantity: Units ordered (>= 1).
        unit_price: Price per unit resolved at order time.
        total_price: ``unit_price * quantity``.

    Frozen because items never change once the order exists; later catalog
    edits must not rewrite historical orders.
    """

    product_id: str
    product_size_id: str
    title: str
    size: str
    image: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class StatusEntry:
    status: OrderStatus
    changed_at: datetime
    note: Optional[str] = None
    changed_by: Optional[str] = None


@dataclass
class Order:
    """Order aggregate.

    Attributes:
        id: Persistent identifier, or None before insertion.
        tracking_number: Unique, shareable identifier for public lookup.
        shipping_address: Delivery details.
        items: Item snapshots (at least one).
        subtotal: Sum of item totals.
        shipping: Pre-computed shipping cost.
        discount_amount: Coupon discount, never above the eligible subtotal.
        total_amount: ``subtotal + shipping - discount_amount``.
        status: Current status, equal to the last history entry's status.
        payment_status: Set by the payment gateway or an admin.
        status_history: Append-only audit trail, first entry ``pending``.
    """

    id: Optional[UUID]
    tracking_number: str
    shipping_address: ShippingAddress
    items: List[OrderItem]
    subtotal: Decimal
    shipping: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    order_note: Optional[str] = None
    coupon_id: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status_history: List[StatusEntry] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class OrderPage:
    count: int
    page: int
    page_size: int
    results: List[Order]


# ---- Ports (DIP) ----
class CatalogPort(Protocol):
    """Port describing the catalog lookup used for pricing."""

    def get_products_by_ids(self, ids: Iterable[str]) -> Mapping[str, ProductSnapshot]:
        """Return snapshots for the known ids; unknown ids are absent.

        Raises:
            NotImplementedError: If the method is not implemented by the
                concrete class.
        """
        raise NotImplementedError()


class InventoryPort(Protocol):
    """Port describing conditional stock writes.

    Implementations must perform each call as one atomic conditional write
    and must not open their own transaction.
    """

    def reserve(self, product_id: str, size_id: str, quantity: int) -> ReservationResult:
        raise NotImplementedError()

    def release(self, product_id: str, size_id: str, quantity: int) -> ReservationResult:
        raise NotImplementedError()


class OrderStorePort(Protocol):
    """Port describing order persistence.

    Every write participates in the caller's transaction.
    """

    def insert(self, order: Order) -> Order:
        raise NotImplementedError()

    def get(self, order_id) -> Optional[Order]:
        raise NotImplementedError()

    def get_for_update(self, order_id) -> Optional[Order]:
        """Load an order and lock its row until the transaction ends."""
        raise NotImplementedError()

    def save(self, order: Order) -> Order:
        """Persist status fields and append new history entries."""
        raise NotImplementedError()

    def list(self, page: int, page_size: int) -> OrderPage:
        raise NotImplementedError()

    def find_for_tracking(self, tracking_number: Optional[str], mobile: Optional[str]) -> List[Order]:
        raise NotImplementedError()
