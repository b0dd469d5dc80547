"""Cart pricing and order construction.

Turns validated cart lines into item snapshots priced from the catalog,
builds the ``Order`` aggregate with its totals and first history entry, and
checks the invariants a new order must satisfy before it is inserted.
"""

import secrets
import string
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional

from apps.catalog.domain import ProductSnapshot, money
from apps.coupons.domain import CouponEvaluation

from .domain import CartLine, Order, OrderItem, OrderStatus, PaymentStatus, ShippingAddress, StatusEntry
from .errors import BusinessRuleError, ValidationError

ZERO = Decimal("0.00")
# largest value a money column (12 digits, 2 decimal places) can hold
MAX_AMOUNT = Decimal("9999999999.99")
INITIAL_NOTE = "Order placed by customer."
_TRACKING_ALPHABET = string.ascii_uppercase + string.digits


@dataclass(frozen=True)
class PricedLine:
    line: CartLine
    item: OrderItem


def price_cart(lines: Iterable[CartLine], products: Mapping[str, ProductSnapshot]) -> List[PricedLine]:
    """Resolve every cart line against the catalog and snapshot it.

    Quantities requested for the same size across several lines are summed
    for the stock pre-check. The pre-check only rejects carts that cannot
    possibly be served; the ledger enforces stock again under the
    transaction.

    Args:
        lines: Cart lines in submission order.
        products: Catalog snapshots keyed by product id.

    Returns:
        List[PricedLine]: One priced line per cart line, same order.

    Raises:
        ValidationError: If the cart is empty or a quantity is not positive.
        BusinessRuleError: With code ``PRODUCT_UNAVAILABLE``,
            ``INVALID_SIZE`` or ``INSUFFICIENT_STOCK``.
    """
    lines = list(lines)
    if not lines:
        raise ValidationError("Order must contain at least one item.", code="EMPTY_ORDER")

    requested: dict[str, int] = defaultdict(int)
    priced = []
    for line in lines:
        if line.quantity <= 0:
            raise ValidationError("Quantity must be a positive integer.")
        product = products.get(line.product_id)
        if product is None:
            raise BusinessRuleError(f"Product with ID {line.product_id} not found.", code="PRODUCT_UNAVAILABLE")
        if not product.is_active:
            raise BusinessRuleError(f'Product "{product.title}" is currently unavailable.', code="PRODUCT_UNAVAILABLE")
        size = product.find_size(line.product_size_id)
        if size is None:
            raise BusinessRuleError(
                f'Invalid size ID {line.product_size_id} for product "{product.title}".', code="INVALID_SIZE"
            )
        requested[size.id] += line.quantity
        if size.stock < requested[size.id]:
            raise BusinessRuleError(
                f"Not enough stock for {product.title} (Size: {size.label}). "
                f"Available: {size.stock}, Requested: {requested[size.id]}.",
                code="INSUFFICIENT_STOCK",
            )

        unit_price = money(product.unit_price(size))
        priced.append(
            PricedLine(
                line=line,
                item=OrderItem(
                    product_id=product.id,
                    product_size_id=size.id,
                    title=product.title,
                    size=size.label,
                    image=product.images[0] if product.images else "",
                    quantity=line.quantity,
                    unit_price=unit_price,
                    total_price=money(unit_price * line.quantity),
                ),
            )
        )
    return priced


def generate_tracking_number(prefix: str = "ORD") -> str:
    """Short, shareable, hard-to-guess identifier: ``PREFIX-TTTTTTTT-XXXXXX``.

    Uniqueness is enforced by the orders table, not here.
    """
    stamp = str(int(time.time()))[-8:]
    suffix = "".join(secrets.choice(_TRACKING_ALPHABET) for _ in range(6))
    return f"{prefix}-{stamp}-{suffix}"


def build_order(
    priced: List[PricedLine],
    shipping_address: ShippingAddress,
    shipping: Decimal,
    order_note: Optional[str],
    evaluation: CouponEvaluation,
    tracking_number: str,
    now: datetime,
) -> Order:
    """Assemble a new ``pending`` order from priced lines.

    The discount comes from a valid coupon evaluation only and is clamped to
    the subtotal, so the total can never go below the shipping cost.
    """
    items = [p.item for p in priced]
    subtotal = money(sum((i.total_price for i in items), ZERO))
    shipping = money(shipping)
    discount = evaluation.discount_amount if evaluation.is_valid else ZERO
    discount = money(min(discount, subtotal))
    return Order(
        id=None,
        tracking_number=tracking_number,
        shipping_address=shipping_address,
        items=items,
        order_note=order_note,
        subtotal=subtotal,
        shipping=shipping,
        coupon_id=evaluation.coupon.id if evaluation.is_valid and evaluation.coupon else None,
        discount_amount=discount,
        total_amount=money(subtotal + shipping - discount),
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        status_history=[StatusEntry(status=OrderStatus.PENDING, changed_at=now, note=INITIAL_NOTE)],
        created_at=now,
        updated_at=now,
    )


def validate_new_order(order: Order) -> None:
    """Check the invariants of an order about to be inserted.

    Called explicitly by the coordinator inside the transaction, right
    before the insert.

    Raises:
        ValidationError: Describing the first violated invariant.
    """
    if not order.items:
        raise ValidationError("Order must contain at least one item.", code="EMPTY_ORDER")
    for item in order.items:
        if item.quantity < 1 or item.unit_price < 0:
            raise ValidationError(f"Invalid quantity or price for {item.title}.")
        if item.total_price != money(item.unit_price * item.quantity):
            raise ValidationError(f"Item total does not match unit price for {item.title}.")
    if order.subtotal != money(sum((i.total_price for i in order.items), ZERO)):
        raise ValidationError("Subtotal does not match the sum of item totals.")
    if order.shipping < 0 or order.discount_amount < 0:
        raise ValidationError("Shipping and discount cannot be negative.")
    if order.discount_amount > order.subtotal:
        raise ValidationError("Discount cannot exceed the subtotal.")
    if order.total_amount != order.subtotal + order.shipping - order.discount_amount:
        raise ValidationError("Total does not equal subtotal + shipping - discount.")
    if len(order.status_history) != 1 or order.status_history[0].status is not OrderStatus.PENDING:
        raise ValidationError("A new order must start with a single pending history entry.")
    if order.status is not OrderStatus.PENDING:
        raise ValidationError("A new order must be pending.")
    if max(order.subtotal, order.shipping, order.total_amount) > MAX_AMOUNT:
        raise ValidationError(f"Order amounts cannot exceed {MAX_AMOUNT}.")
