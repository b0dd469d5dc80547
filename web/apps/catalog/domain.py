"""Read-only catalog snapshots and inventory outcomes.

The order core never touches catalog ORM objects directly: the catalog
repository maps rows into these frozen dataclasses, and the inventory ledger
reports the outcome of each stock write as a ``ReservationResult``.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Quantize a money amount to cents, rounding half up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class ReservationResult(str, Enum):
    """Outcome of a conditional stock write."""

    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"


@dataclass(frozen=True)
class SizeSnapshot:
    id: str
    label: str
    stock: int
    price_override: Optional[Decimal] = None


@dataclass(frozen=True)
class ProductSnapshot:
    """A product as seen by the order core at lookup time.

    Attributes:
        id: Product identifier (UUID string).
        title: Display title, snapshotted into order items.
        is_active: Inactive products cannot be ordered.
        base_price: Price used when a size has no override.
        category_id: Identifier used by category-scoped coupons.
        images: Image URLs; the first one is snapshotted into order items.
        sizes: Purchasable sizes with their current stock.
    """

    id: str
    title: str
    is_active: bool
    base_price: Decimal
    category_id: str
    images: tuple[str, ...] = ()
    sizes: tuple[SizeSnapshot, ...] = field(default_factory=tuple)

    def find_size(self, size_id: str) -> Optional[SizeSnapshot]:
        for size in self.sizes:
            if size.id == size_id:
                return size
        return None

    def unit_price(self, size: SizeSnapshot) -> Decimal:
        return size.price_override if size.price_override is not None else self.base_price
