"""Service provider helpers for wiring OrderCoordinator with ports.

This module exposes a small factory function `get_order_coordinator` that
returns an `OrderCoordinator` wired to the Django ORM adapters. Views call
it per request, so tests can monkeypatch it to inject stubs or faulty
ports without changing view logic.
"""

from django.conf import settings

from apps.catalog.ledger import InventoryLedger
from apps.catalog.repository import CatalogRepository
from apps.coupons.repository import CouponRepository

from .repository import OrderRepository
from .service import OrderCoordinator


def get_order_coordinator() -> OrderCoordinator:
    """Return a configured OrderCoordinator instance.

    Returns:
        OrderCoordinator: Coordinator backed by the ORM repositories and
        the inventory ledger, using ``settings.ORDERS_TRACKING_PREFIX``.
    """
    return OrderCoordinator(
        catalog=CatalogRepository(),
        coupons=CouponRepository(),
        orders=OrderRepository(),
        ledger=InventoryLedger(),
        tracking_prefix=getattr(settings, "ORDERS_TRACKING_PREFIX", "ORD"),
    )
