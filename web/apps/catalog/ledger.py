"""Inventory ledger: atomic per-size stock reservation.

Both operations are single ``UPDATE`` statements evaluated by the database
with ``F()`` expressions, so concurrent callers never interleave a read and
a write of the same ``stock`` value. The ledger does not open transactions
itself; the order coordinator calls it inside its own ``transaction.atomic``
block so that a later failure undoes every reservation made in that unit.
"""

import logging
import uuid

from django.db.models import F

from .domain import ReservationResult
from .models import ProductSizeModel

logger = logging.getLogger("catalog")


def _size_filter(product_id: str, size_id: str) -> dict:
    try:
        return {"pk": uuid.UUID(str(size_id)), "product_id": uuid.UUID(str(product_id))}
    except ValueError:
        return {}


class InventoryLedger:
    """Conditional stock decrement (reserve) and increment (release)."""

    def reserve(self, product_id: str, size_id: str, quantity: int) -> ReservationResult:
        """Decrement stock by ``quantity`` only if enough stock remains.

        The check and the write are the same statement
        (``UPDATE ... SET stock = stock - q WHERE ... AND stock >= q``). When
        no row changes, a follow-up existence probe tells a missing size
        apart from a shortfall.

        Args:
            product_id: Owning product id.
            size_id: Product size id.
            quantity: Units to reserve, must be positive.

        Returns:
            ReservationResult: ``OK`` when stock was decremented,
            ``INSUFFICIENT_STOCK`` when the size exists but holds fewer than
            ``quantity`` units, ``NOT_FOUND`` when the size does not exist.

        Raises:
            ValueError: If ``quantity`` is not positive.
        """
        if quantity <= 0:
            raise ValueError("quantity must be positive")
        lookup = _size_filter(product_id, size_id)
        if not lookup:
            return ReservationResult.NOT_FOUND

        updated = ProductSizeModel.objects.filter(stock__gte=quantity, **lookup).update(
            stock=F("stock") - quantity
        )
        if updated:
            return ReservationResult.OK
        if ProductSizeModel.objects.filter(**lookup).exists():
            logger.info(
                "reservation refused",
                extra={"product_id": str(product_id), "size_id": str(size_id), "quantity": quantity},
            )
            return ReservationResult.INSUFFICIENT_STOCK
        return ReservationResult.NOT_FOUND

    def release(self, product_id: str, size_id: str, quantity: int) -> ReservationResult:
        """Give ``quantity`` units back to a size. Compensation only."""
        if quantity <= 0:
            raise ValueError("quantity must be positive")
        lookup = _size_filter(product_id, size_id)
        if not lookup:
            return ReservationResult.NOT_FOUND
        updated = ProductSizeModel.objects.filter(**lookup).update(stock=F("stock") + quantity)
        return ReservationResult.OK if updated else ReservationResult.NOT_FOUND
