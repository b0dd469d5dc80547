"""Order lifecycle rules.

The state table is the single source of truth for which transitions are
legal and which states still hold reserved stock. Planning a transition
mutates the in-memory order only; writes and stock compensation are done by
the coordinator inside one transaction.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import FrozenSet, Optional

from .domain import Order, OrderStatus, PaymentStatus, StatusEntry
from .errors import BusinessRuleError


@dataclass(frozen=True)
class StateSpec:
    holds_stock: bool
    next: FrozenSet[OrderStatus]


LIFECYCLE = {
    OrderStatus.PENDING: StateSpec(True, frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED})),
    OrderStatus.CONFIRMED: StateSpec(True, frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED})),
    OrderStatus.SHIPPED: StateSpec(True, frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})),
    OrderStatus.DELIVERED: StateSpec(False, frozenset({OrderStatus.REFUNDED})),
    OrderStatus.CANCELLED: StateSpec(False, frozenset()),
    OrderStatus.REFUNDED: StateSpec(False, frozenset()),
}


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return to_status in LIFECYCLE[from_status].next


def is_terminal(status: OrderStatus) -> bool:
    return not LIFECYCLE[status].next


@dataclass(frozen=True)
class Transition:
    """What a planned transition requires from the coordinator."""

    previous: OrderStatus
    changed: bool
    releases_stock: bool


def plan_transition(
    order: Order,
    new_status: OrderStatus,
    *,
    now: datetime,
    payment_status: Optional[PaymentStatus] = None,
    note: Optional[str] = None,
    actor: Optional[str] = None,
) -> Transition:
    """Apply ``new_status`` to ``order`` in memory.

    Re-applying the current status is not an error: it only records a
    payment status and/or a note when given, and is a no-op otherwise.

    Args:
        order: Order to mutate.
        new_status: Target status.
        now: Timestamp for the history entry.
        payment_status: Optional new payment status.
        note: Optional note for the history entry.
        actor: Who requested the change.

    Returns:
        Transition: ``changed`` tells whether anything must be saved,
        ``releases_stock`` whether held stock must be given back.

    Raises:
        BusinessRuleError: ``ILLEGAL_TRANSITION`` when the lifecycle forbids
            the move.
    """
    previous = order.status
    if new_status is previous:
        changed = False
        if payment_status is not None and payment_status is not order.payment_status:
            order.payment_status = payment_status
            changed = True
        if note:
            order.status_history.append(StatusEntry(status=previous, changed_at=now, note=note, changed_by=actor))
            changed = True
        if changed:
            order.updated_at = now
        return Transition(previous=previous, changed=changed, releases_stock=False)

    if not can_transition(previous, new_status):
        raise BusinessRuleError(
            f"Cannot change order status from {previous.value} to {new_status.value}.",
            code="ILLEGAL_TRANSITION",
        )

    order.status_history.append(
        StatusEntry(
            status=new_status,
            changed_at=now,
            note=note or f"Status changed to {new_status.value}",
            changed_by=actor,
        )
    )
    order.status = new_status
    if payment_status is not None:
        order.payment_status = payment_status
    order.updated_at = now
    return Transition(
        previous=previous,
        changed=True,
        releases_stock=new_status is OrderStatus.CANCELLED and LIFECYCLE[previous].holds_stock,
    )
