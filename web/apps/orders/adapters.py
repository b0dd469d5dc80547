"""In-process stub adapters for the read ports of the orders domain.

These stubs implement ``CatalogPort`` and ``CouponStorePort`` over plain
dictionaries. They are intended for unit tests of pricing and coupon rules
where deterministic data is useful and no database is required.
"""

import threading
from dataclasses import replace
from typing import Dict, Iterable, Optional

from apps.catalog.domain import ProductSnapshot
from apps.coupons.domain import CouponRecord, CouponStorePort, normalize_code

from .domain import CatalogPort


class CatalogStub(CatalogPort):
    """Stub implementation of ``CatalogPort`` backed by a dict of snapshots."""

    def __init__(self, products: Iterable[ProductSnapshot] = ()):
        self.products: Dict[str, ProductSnapshot] = {p.id: p for p in products}

    def get_products_by_ids(self, ids: Iterable[str]) -> Dict[str, ProductSnapshot]:
        """Return the known snapshots among ``ids``."""
        return {i: self.products[i] for i in ids if i in self.products}


class CouponStoreStub(CouponStorePort):
    """Stub implementation of ``CouponStorePort``.

    ``increment_usage`` follows the same rule as the ORM repository: it only
    consumes a use while the coupon is active and below its limit.
    """

    def __init__(self, coupons: Iterable[CouponRecord] = ()):
        self._lock = threading.Lock()
        self.coupons: Dict[str, CouponRecord] = {c.code: c for c in coupons}

    def find_by_code(self, code: str) -> Optional[CouponRecord]:
        return self.coupons.get(normalize_code(code))

    def increment_usage(self, coupon_id: str) -> bool:
        with self._lock:
            for code, coupon in self.coupons.items():
                if coupon.id != coupon_id:
                    continue
                if not coupon.is_active or coupon.used_count >= coupon.usage_limit:
                    return False
                self.coupons[code] = replace(coupon, used_count=coupon.used_count + 1)
                return True
        return False
