"""Order coordinator: the transaction boundary of the fulfillment core.

Every multi-record write happens here, inside ``transaction.atomic``:

- creating an order reserves stock for each line, consumes one coupon use
  and inserts the order, all or nothing;
- changing an order's status locks the order row, appends history and,
  when cancelling an order that still holds stock, gives that stock back.

Business and validation errors raised inside a unit propagate unchanged
(the ``atomic`` block rolls back on the way out). Database errors are
logged and re-raised as ``InfrastructureError`` once the rollback is done.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.catalog.domain import ReservationResult
from apps.coupons.domain import CouponEngine, CouponEvaluation, CouponRejection, CouponStorePort

from .domain import CatalogPort, InventoryPort, Order, OrderPage, OrderRequest, OrderStatus, OrderStorePort, PaymentStatus
from .errors import BusinessRuleError, ConflictError, InfrastructureError, NotFoundError, ValidationError
from .lifecycle import plan_transition
from .pricing import MAX_AMOUNT, PricedLine, build_order, generate_tracking_number, price_cart, validate_new_order

logger = logging.getLogger("orders")


@dataclass(frozen=True)
class PreparedOrder:
    """A priced order that has not touched any shared record yet."""

    order: Order
    lines: List[PricedLine]
    evaluation: CouponEvaluation


class OrderCoordinator:
    """Creates orders and drives their status through the lifecycle.

    The coordinator only depends on ports, so the same code runs against
    the Django ORM adapters in production and against stubs in tests.
    """

    def __init__(
        self,
        catalog: CatalogPort,
        coupons: CouponStorePort,
        orders: OrderStorePort,
        ledger: InventoryPort,
        clock: Callable[[], datetime] = timezone.now,
        tracking_prefix: str = "ORD",
    ):
        self.catalog = catalog
        self.coupons = coupons
        self.orders = orders
        self.ledger = ledger
        self.clock = clock
        self.tracking_prefix = tracking_prefix.upper()
        self.coupon_engine = CouponEngine(coupons)

    # ---- creation ----
    def create_order(self, request: OrderRequest) -> Order:
        """Price, reserve, consume the coupon and persist in one unit.

        Args:
            request: Shape-validated order request.

        Returns:
            Order: The persisted order in ``pending`` status.

        Raises:
            ValidationError: Malformed request.
            NotFoundError: Unknown coupon code or catalog size vanished.
            BusinessRuleError: Unavailable product, invalid size, stock
                pre-check failure or rejected coupon.
            ConflictError: Stock was taken by a concurrent order between the
                pre-check and the reservation. Retryable.
            InfrastructureError: The database failed; nothing was written.
        """
        return self.commit(self.prepare(request))

    def prepare(self, request: OrderRequest) -> PreparedOrder:
        """Read-only phase: catalog lookup, pricing and coupon evaluation."""
        if request.shipping < 0:
            raise ValidationError("Shipping cost cannot be negative.")
        if request.shipping > MAX_AMOUNT:
            raise ValidationError(f"Shipping cost cannot exceed {MAX_AMOUNT}.")
        products = self.catalog.get_products_by_ids(line.product_id for line in request.lines)
        priced = price_cart(request.lines, products)
        now = self.clock()

        evaluation = CouponEvaluation.no_coupon()
        if request.coupon_code:
            evaluation = self.coupon_engine.evaluate(request.coupon_code, request.lines, products, now)
            if not evaluation.is_valid:
                if evaluation.rejection is CouponRejection.NOT_FOUND:
                    raise NotFoundError(evaluation.message, code="COUPON_NOT_FOUND")
                raise BusinessRuleError(evaluation.message, code="INVALID_COUPON")

        order = build_order(
            priced,
            request.shipping_address,
            request.shipping,
            request.order_note,
            evaluation,
            generate_tracking_number(self.tracking_prefix),
            now,
        )
        return PreparedOrder(order=order, lines=priced, evaluation=evaluation)

    def commit(self, prepared: PreparedOrder) -> Order:
        """Write phase: one atomic unit over stock, coupon and order rows."""
        order = prepared.order
        try:
            with transaction.atomic():
                for priced in prepared.lines:
                    item = priced.item
                    result = self.ledger.reserve(item.product_id, item.product_size_id, item.quantity)
                    if result is ReservationResult.NOT_FOUND:
                        raise NotFoundError(
                            f'Size {item.size} of "{item.title}" no longer exists.', code="INVALID_SIZE"
                        )
                    if result is ReservationResult.INSUFFICIENT_STOCK:
                        raise ConflictError(
                            f"Not enough stock for {item.title} (Size: {item.size}). "
                            f"Requested: {item.quantity}. Please try again."
                        )

                if order.coupon_id is not None and not self.coupons.increment_usage(order.coupon_id):
                    raise BusinessRuleError("This coupon has reached its usage limit.", code="INVALID_COUPON")

                validate_new_order(order)
                order = self.orders.insert(order)
        except DatabaseError as exc:
            logger.exception("order creation rolled back", extra={"tracking_number": order.tracking_number})
            raise InfrastructureError("Failed to create order. Please try again.") from exc

        logger.info(
            "order created",
            extra={
                "order_id": str(order.id),
                "tracking_number": order.tracking_number,
                "total_amount": str(order.total_amount),
                "coupon_id": order.coupon_id,
            },
        )
        return order

    # ---- lifecycle ----
    def transition_status(
        self,
        order_id,
        new_status: OrderStatus,
        payment_status: Optional[PaymentStatus] = None,
        note: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Order:
        """Move an order to ``new_status`` in one atomic unit.

        The order row is locked first, so two concurrent cancellations
        cannot both release the same stock.

        Raises:
            NotFoundError: Unknown order, or a size to restock is gone.
            BusinessRuleError: ``ILLEGAL_TRANSITION``.
            InfrastructureError: The database failed; nothing was written.
        """
        try:
            with transaction.atomic():
                order = self.orders.get_for_update(order_id)
                if order is None:
                    raise NotFoundError("Order not found.")
                outcome = plan_transition(
                    order,
                    new_status,
                    now=self.clock(),
                    payment_status=payment_status,
                    note=note,
                    actor=actor,
                )
                if outcome.releases_stock:
                    for item in order.items:
                        result = self.ledger.release(item.product_id, item.product_size_id, item.quantity)
                        if result is not ReservationResult.OK:
                            raise NotFoundError(
                                f'Cannot restock size {item.size} of "{item.title}": it no longer exists.',
                                code="INVALID_SIZE",
                            )
                if outcome.changed:
                    self.orders.save(order)
        except DatabaseError as exc:
            logger.exception("status change rolled back", extra={"order_id": str(order_id)})
            raise InfrastructureError("Failed to update order status. Please try again.") from exc

        if outcome.changed:
            logger.info(
                "order status changed",
                extra={
                    "order_id": str(order.id),
                    "from": outcome.previous.value,
                    "to": order.status.value,
                    "stock_released": outcome.releases_stock,
                    "actor": actor,
                },
            )
        return order

    # ---- reads ----
    def get_order(self, order_id) -> Order:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order not found.")
        return order

    def list_orders(self, page: int = 1, page_size: int = 20) -> OrderPage:
        return self.orders.list(page, page_size)

    def track_orders(self, tracking_number: Optional[str] = None, mobile: Optional[str] = None) -> List[Order]:
        """Public lookup by tracking number and/or mobile number.

        When both are given, an order must match both.
        """
        if not tracking_number and not mobile:
            raise ValidationError("Either tracking number or mobile number is required.")
        found = self.orders.find_for_tracking(tracking_number, mobile)
        if not found:
            raise NotFoundError("No orders found.")
        return found
