"""Unit tests for the order state machine."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from apps.orders.domain import Order, OrderStatus, PaymentStatus, ShippingAddress, StatusEntry
from apps.orders.errors import BusinessRuleError
from apps.orders.lifecycle import LIFECYCLE, can_transition, is_terminal, plan_transition

T0 = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=1)


def make_order(status=OrderStatus.PENDING) -> Order:
    return Order(
        id=None,
        tracking_number="ORD-1",
        shipping_address=ShippingAddress("A", "0171", "Dhaka", "Road 1"),
        items=[],
        subtotal=Decimal("10.00"),
        shipping=Decimal("0.00"),
        discount_amount=Decimal("0.00"),
        total_amount=Decimal("10.00"),
        status=status,
        status_history=[StatusEntry(status=status, changed_at=T0)],
    )


def test_stock_is_held_until_delivery():
    held = {s for s, spec in LIFECYCLE.items() if spec.holds_stock}
    assert held == {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.SHIPPED}


def test_terminal_states():
    assert is_terminal(OrderStatus.CANCELLED)
    assert is_terminal(OrderStatus.REFUNDED)
    assert not is_terminal(OrderStatus.DELIVERED)
    assert can_transition(OrderStatus.DELIVERED, OrderStatus.REFUNDED)
    assert not can_transition(OrderStatus.PENDING, OrderStatus.DELIVERED)


def test_legal_transition_appends_history_with_actor():
    order = make_order()
    t = plan_transition(order, OrderStatus.CONFIRMED, now=T1, actor="admin-7")
    assert t.changed and not t.releases_stock
    assert order.status is OrderStatus.CONFIRMED
    last = order.status_history[-1]
    assert (last.status, last.note, last.changed_by, last.changed_at) == (
        OrderStatus.CONFIRMED,
        "Status changed to confirmed",
        "admin-7",
        T1,
    )


@pytest.mark.parametrize("start", [OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.SHIPPED])
def test_cancel_from_holding_state_releases_stock(start):
    order = make_order(start)
    t = plan_transition(order, OrderStatus.CANCELLED, now=T1, note="Customer asked")
    assert t.releases_stock
    assert order.status_history[-1].note == "Customer asked"


def test_cancel_from_delivered_is_illegal():
    order = make_order(OrderStatus.DELIVERED)
    with pytest.raises(BusinessRuleError) as e:
        plan_transition(order, OrderStatus.CANCELLED, now=T1)
    assert e.value.code == "ILLEGAL_TRANSITION"
    assert e.value.message == "Cannot change order status from delivered to cancelled."
    assert order.status is OrderStatus.DELIVERED
    assert len(order.status_history) == 1


def test_same_status_without_note_is_a_noop():
    order = make_order(OrderStatus.CONFIRMED)
    t = plan_transition(order, OrderStatus.CONFIRMED, now=T1)
    assert not t.changed
    assert len(order.status_history) == 1
    assert order.updated_at is None


def test_same_status_with_note_and_payment_status():
    order = make_order(OrderStatus.CONFIRMED)
    t = plan_transition(order, OrderStatus.CONFIRMED, now=T1, payment_status=PaymentStatus.PAID, note="Paid by bKash")
    assert t.changed and not t.releases_stock
    assert order.payment_status is PaymentStatus.PAID
    assert [h.status for h in order.status_history] == [OrderStatus.CONFIRMED, OrderStatus.CONFIRMED]
    assert order.status_history[-1].note == "Paid by bKash"


def test_same_status_with_payment_status_only_adds_no_history():
    order = make_order()
    t = plan_transition(order, OrderStatus.PENDING, now=T1, payment_status=PaymentStatus.FAILED)
    assert t.changed
    assert len(order.status_history) == 1
