"""Unit tests for the coupon engine.

These tests drive ``CouponEngine.evaluate`` with in-memory snapshots and
the ``CouponStoreStub`` so validity rules and discount math are checked
without a database.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from apps.catalog.domain import ProductSnapshot, SizeSnapshot
from apps.coupons.domain import (
    CouponEngine,
    CouponRecord,
    CouponRejection,
    CouponScope,
    CouponType,
    ScopeKind,
    compute_discount,
)
from apps.orders.adapters import CouponStoreStub
from apps.orders.domain import CartLine

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

SHIRTS = "cat-shirts"
SHOES = "cat-shoes"

TEE = ProductSnapshot(
    id="p-tee",
    title="Tee",
    is_active=True,
    base_price=Decimal("25.00"),
    category_id=SHIRTS,
    sizes=(SizeSnapshot(id="s-tee-m", label="M", stock=10),),
)
SNEAKER = ProductSnapshot(
    id="p-sneaker",
    title="Sneaker",
    is_active=True,
    base_price=Decimal("50.00"),
    category_id=SHOES,
    sizes=(SizeSnapshot(id="s-sn-42", label="42", stock=10, price_override=Decimal("60.00")),),
)
PRODUCTS = {p.id: p for p in (TEE, SNEAKER)}


def coupon(**overrides) -> CouponRecord:
    fields = dict(
        id=str(uuid.uuid4()),
        code="SAVE10",
        type=CouponType.PERCENTAGE,
        value=Decimal("10"),
        usage_limit=5,
        used_count=0,
        valid_from=NOW - timedelta(days=1),
        valid_until=NOW + timedelta(days=1),
    )
    fields.update(overrides)
    return CouponRecord(**fields)


def evaluate(record, lines, code=None):
    engine = CouponEngine(CouponStoreStub([record]))
    return engine.evaluate(code or record.code, lines, PRODUCTS, NOW)


def tee_line(qty=2):
    return CartLine("p-tee", "s-tee-m", qty)


def sneaker_line(qty=1):
    return CartLine("p-sneaker", "s-sn-42", qty)


def test_percentage_discount_is_capped_by_max_discount():
    rec = coupon(max_discount_amount=Decimal("3.00"))
    out = evaluate(rec, [tee_line(2)])  # eligible 50.00, 10% = 5.00
    assert out.is_valid
    assert out.eligible_total == Decimal("50.00")
    assert out.discount_amount == Decimal("3.00")
    assert out.message == "Coupon applied successfully!"


def test_percentage_discount_without_cap():
    out = evaluate(coupon(value=Decimal("15")), [tee_line(1)])
    assert out.discount_amount == Decimal("3.75")


def test_percentage_discount_rounds_half_up():
    # 12.5% of 25.00 * 1 = 3.125
    out = evaluate(coupon(value=Decimal("12.5")), [tee_line(1)])
    assert out.discount_amount == Decimal("3.13")


def test_fixed_discount_never_exceeds_eligible_total():
    rec = coupon(code="FLAT100", type=CouponType.FIXED, value=Decimal("100.00"))
    out = evaluate(rec, [tee_line(1)])
    assert out.is_valid
    assert out.discount_amount == Decimal("25.00")


def test_code_lookup_is_case_insensitive():
    out = evaluate(coupon(), [tee_line()], code="  save10 ")
    assert out.is_valid


def test_unknown_code():
    engine = CouponEngine(CouponStoreStub())
    out = engine.evaluate("NOPE", [tee_line()], PRODUCTS, NOW)
    assert not out.is_valid
    assert out.rejection is CouponRejection.NOT_FOUND
    assert out.message == "Invalid coupon code."
    assert out.discount_amount == Decimal("0.00")


@pytest.mark.parametrize(
    "overrides, reason, message",
    [
        ({"is_active": False}, CouponRejection.INACTIVE, "This coupon is not active."),
        (
            {"valid_from": NOW + timedelta(hours=1), "valid_until": NOW + timedelta(days=2)},
            CouponRejection.NOT_YET_VALID,
            "This coupon is not yet valid.",
        ),
        (
            {"valid_from": NOW - timedelta(days=3), "valid_until": NOW - timedelta(seconds=1)},
            CouponRejection.EXPIRED,
            "This coupon has expired.",
        ),
        ({"used_count": 5}, CouponRejection.USAGE_LIMIT_REACHED, "This coupon has reached its usage limit."),
    ],
)
def test_validity_rejections(overrides, reason, message):
    out = evaluate(coupon(**overrides), [tee_line()])
    assert not out.is_valid
    assert out.rejection is reason
    assert out.message == message


def test_inactive_is_reported_before_expiry():
    rec = coupon(is_active=False, valid_from=NOW - timedelta(days=3), valid_until=NOW - timedelta(days=1))
    assert evaluate(rec, [tee_line()]).rejection is CouponRejection.INACTIVE


def test_min_order_uses_full_cart_subtotal_not_eligible_total():
    # eligible (shoes only) is 60.00 but the whole cart is 110.00
    rec = coupon(
        scope=CouponScope.for_categories([SHOES]),
        min_order_amount=Decimal("100.00"),
    )
    out = evaluate(rec, [tee_line(2), sneaker_line(1)])
    assert out.is_valid
    assert out.cart_subtotal == Decimal("110.00")
    assert out.eligible_total == Decimal("60.00")
    assert out.discount_amount == Decimal("6.00")


def test_min_order_not_met():
    rec = coupon(min_order_amount=Decimal("100"))
    out = evaluate(rec, [tee_line(2)])
    assert out.rejection is CouponRejection.MIN_ORDER_NOT_MET
    assert out.message == "Minimum order amount of 100.00 is required."
    assert out.cart_subtotal == Decimal("50.00")


def test_scope_that_matches_nothing_is_not_applicable():
    rec = coupon(scope=CouponScope.for_products(["p-sneaker"]))
    out = evaluate(rec, [tee_line(2)])
    assert out.rejection is CouponRejection.NOT_APPLICABLE
    assert out.message == "This coupon does not apply to any items in your cart."


def test_product_scope_discounts_only_listed_products():
    rec = coupon(code="SNEAK", type=CouponType.FIXED, value=Decimal("10.00"), scope=CouponScope.for_products(["p-sneaker"]))
    out = evaluate(rec, [tee_line(2), sneaker_line(1)])
    assert out.eligible_total == Decimal("60.00")
    assert out.discount_amount == Decimal("10.00")


def test_evaluate_never_consumes_usage():
    rec = coupon()
    store = CouponStoreStub([rec])
    CouponEngine(store).evaluate(rec.code, [tee_line()], PRODUCTS, NOW)
    assert store.find_by_code(rec.code).used_count == 0


def test_stub_increment_usage_stops_at_limit():
    rec = coupon(usage_limit=1)
    store = CouponStoreStub([rec])
    assert store.increment_usage(rec.id) is True
    assert store.increment_usage(rec.id) is False
    assert store.find_by_code(rec.code).used_count == 1


def test_compute_discount_clamps_to_eligible_total():
    rec = coupon(value=Decimal("100"))
    assert compute_discount(rec, Decimal("19.99")) == Decimal("19.99")


@pytest.mark.parametrize(
    "overrides",
    [
        {"code": "lower"},
        {"value": Decimal("0")},
        {"value": Decimal("101")},
        {"type": CouponType.FIXED, "value": Decimal("5"), "max_discount_amount": Decimal("2")},
        {"usage_limit": 0},
        {"used_count": 6},
        {"valid_until": NOW - timedelta(days=2)},
    ],
)
def test_record_invariants_are_enforced_on_construction(overrides):
    with pytest.raises(ValueError):
        coupon(**overrides)


def test_scope_variant_is_exclusive():
    with pytest.raises(ValueError):
        CouponScope(ScopeKind.ALL, frozenset({"x"}))
    with pytest.raises(ValueError):
        CouponScope(ScopeKind.CATEGORIES)
    scope = CouponScope.for_categories([SHIRTS])
    assert scope.covers(TEE) and not scope.covers(SNEAKER)
    assert replace(scope, kind=ScopeKind.PRODUCTS, ids=frozenset({"p-sneaker"})).covers(SNEAKER)
