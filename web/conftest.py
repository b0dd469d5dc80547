"""Shared pytest fixtures.

Catalog rows and coupons are created through the ORM models and the coupon
repository, so API and coordinator tests run against the same adapters the
service uses in production.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.utils import timezone

from apps.catalog.models import CategoryModel, ProductModel, ProductSizeModel
from apps.coupons.domain import CouponRecord, CouponScope, CouponType
from apps.coupons.repository import CouponRepository
from apps.orders.providers import get_order_coordinator


@pytest.fixture(autouse=True)
def reset_throttle_cache():
    # DRF throttles keep their history in the default cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def category(db):
    return CategoryModel.objects.create(name="Shirts")


@pytest.fixture
def make_product(category):
    """Factory: ``make_product(title, base_price, sizes={"M": 5}, ...)``.

    Returns the product model with its sizes created; ``sizes`` maps a size
    label to its stock, or to a ``(stock, price_override)`` tuple.
    """

    def _make(title="Classic Tee", base_price="20.00", sizes=None, is_active=True, images=None, category_obj=None):
        product = ProductModel.objects.create(
            title=title,
            category=category_obj or category,
            base_price=Decimal(base_price),
            images=images if images is not None else [f"https://cdn.example.com/{title.lower().replace(' ', '-')}.jpg"],
            is_active=is_active,
        )
        for label, spec in (sizes or {"M": 5}).items():
            stock, override = spec if isinstance(spec, tuple) else (spec, None)
            ProductSizeModel.objects.create(
                product=product,
                label=label,
                stock=stock,
                price_override=Decimal(override) if override is not None else None,
            )
        return product

    return _make


@pytest.fixture
def tee(make_product):
    """Active product priced 20.00 with a single size ``M`` holding 5 units."""
    return make_product()


def size_of(product, label="M"):
    return product.sizes.get(label=label)


@pytest.fixture
def make_coupon(db):
    """Factory storing a coupon through ``CouponRepository.create``."""

    def _make(code="SAVE10", type=CouponType.PERCENTAGE, value="10", **overrides):
        now = timezone.now()
        fields = {
            "id": str(uuid.uuid4()),
            "code": code,
            "type": type,
            "value": Decimal(value),
            "usage_limit": 100,
            "used_count": 0,
            "valid_from": now - timedelta(days=1),
            "valid_until": now + timedelta(days=30),
            "is_active": True,
            "scope": CouponScope.all_products(),
        }
        fields.update(overrides)
        record = CouponRecord(**fields)
        CouponRepository().create(record, created_by="admin-1")
        return record

    return _make


@pytest.fixture
def coordinator(db):
    return get_order_coordinator()


@pytest.fixture
def address():
    return {
        "customerName": "Rahim Uddin",
        "mobile": "01711000000",
        "district": "Dhaka",
        "addressLine": "House 12, Road 5",
    }


@pytest.fixture
def order_payload(tee, address):
    """Camel-case create-order payload: 2 x ``tee`` size M, shipping 5.00."""
    return {
        "shippingAddress": address,
        "items": [{"productId": str(tee.id), "productSizeId": str(size_of(tee).id), "quantity": 2}],
        "shipping": "5.00",
    }
