"""API tests for the coupon preview endpoint."""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.coupons.domain import CouponScope, CouponType
from apps.coupons.models import CouponModel

APPLY_URL = "/api/coupons/apply/"


def used_count(rec):
    return CouponModel.objects.get(pk=rec.id).used_count


def cart(product, qty=2, label="M"):
    return [{"productId": str(product.id), "productSizeId": str(product.sizes.get(label=label).id), "quantity": qty}]


@pytest.mark.django_db
def test_apply_valid_coupon_returns_discount(client, tee, make_coupon):
    make_coupon(code="SAVE10", value="10", max_discount_amount=Decimal("3.00"))
    r = client.post(APPLY_URL, data={"code": "save10", "items": cart(tee)}, content_type="application/json")
    assert r.status_code == 200
    body = r.json()
    assert body["isValid"] is True
    assert body["code"] == "SAVE10"
    assert body["discountAmount"] == "3.00"
    assert body["cartSubtotal"] == "40.00"
    assert body["eligibleTotal"] == "40.00"


@pytest.mark.django_db
def test_apply_does_not_consume_the_coupon(client, tee, make_coupon):
    rec = make_coupon(code="ONCE", usage_limit=1)
    for _ in range(2):
        r = client.post(APPLY_URL, data={"code": "ONCE", "items": cart(tee)}, content_type="application/json")
        assert r.status_code == 200
    assert used_count(rec) == 0


@pytest.mark.django_db
def test_apply_unknown_code_returns_404(client, tee):
    r = client.post(APPLY_URL, data={"code": "GHOST", "items": cart(tee)}, content_type="application/json")
    assert r.status_code == 404
    body = r.json()
    assert body["detail"] == "NOT_FOUND"
    assert body["message"] == "Invalid coupon code."
    assert body["isValid"] is False


@pytest.mark.django_db
def test_apply_expired_coupon_returns_422(client, tee, make_coupon):
    now = timezone.now()
    make_coupon(code="OLD", valid_from=now - timedelta(days=10), valid_until=now - timedelta(days=1))
    r = client.post(APPLY_URL, data={"code": "OLD", "items": cart(tee)}, content_type="application/json")
    assert r.status_code == 422
    assert r.json()["detail"] == "EXPIRED"
    assert r.json()["message"] == "This coupon has expired."


@pytest.mark.django_db
def test_apply_category_coupon_outside_scope_returns_422(client, tee, make_coupon):
    from apps.catalog.models import CategoryModel

    shoes = CategoryModel.objects.create(name="Shoes")
    make_coupon(code="SHOES5", type=CouponType.FIXED, value="5.00", scope=CouponScope.for_categories([str(shoes.id)]))
    r = client.post(APPLY_URL, data={"code": "SHOES5", "items": cart(tee)}, content_type="application/json")
    assert r.status_code == 422
    assert r.json()["detail"] == "NOT_APPLICABLE"


@pytest.mark.django_db
def test_apply_ignores_inactive_products(client, tee, make_product, make_coupon):
    hidden = make_product(title="Retired Tee", is_active=False)
    make_coupon(code="SAVE10")
    items = cart(tee, qty=1) + cart(hidden, qty=1)
    r = client.post(APPLY_URL, data={"code": "SAVE10", "items": items}, content_type="application/json")
    assert r.status_code == 200
    assert r.json()["cartSubtotal"] == "20.00"
    assert r.json()["discountAmount"] == "2.00"


@pytest.mark.django_db
def test_apply_validation_error(client):
    r = client.post(APPLY_URL, data={"code": "  ", "items": []}, content_type="application/json")
    assert r.status_code == 400
    assert r.json()["detail"] == "VALIDATION_ERROR"
