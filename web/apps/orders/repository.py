"""Repository layer for persisting orders.

This module maps the ``Order`` aggregate to its three tables (orders,
items, status history) and back, so the domain layer is not coupled to
Django ORM details. None of the methods open a transaction: the order
coordinator wraps them in ``transaction.atomic`` together with stock and
coupon writes.
"""

import uuid
from typing import List, Optional

from django.core.paginator import Paginator

from .domain import Order, OrderItem, OrderPage, OrderStatus, PaymentStatus, ShippingAddress, StatusEntry
from .models import OrderItemModel, OrderModel, OrderStatusEntryModel


def _as_uuid(value) -> Optional[uuid.UUID]:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        return None


def to_domain(obj: OrderModel) -> Order:
    """Build an ``Order`` from a model whose items and history are loaded."""
    return Order(
        id=obj.id,
        tracking_number=obj.tracking_number,
        shipping_address=ShippingAddress(
            customer_name=obj.customer_name,
            mobile=obj.mobile,
            district=obj.district,
            address_line=obj.address_line,
            upazila=obj.upazila,
            postal_code=obj.postal_code,
        ),
        items=[
            OrderItem(
                product_id=str(i.product_id),
                product_size_id=str(i.product_size_id),
                title=i.title,
                size=i.size,
                image=i.image,
                quantity=i.quantity,
                unit_price=i.unit_price,
                total_price=i.total_price,
            )
            for i in obj.items.all()
        ],
        order_note=obj.order_note,
        subtotal=obj.subtotal,
        shipping=obj.shipping,
        coupon_id=str(obj.coupon_id) if obj.coupon_id else None,
        discount_amount=obj.discount_amount,
        total_amount=obj.total_amount,
        status=OrderStatus(obj.status),
        payment_status=PaymentStatus(obj.payment_status),
        status_history=[
            StatusEntry(status=OrderStatus(h.status), changed_at=h.changed_at, note=h.note, changed_by=h.changed_by)
            for h in obj.history.all()
        ],
        created_at=obj.created_at,
        updated_at=obj.updated_at,
    )


def _history_rows(order_pk, entries, start: int) -> List[OrderStatusEntryModel]:
    return [
        OrderStatusEntryModel(
            order_id=order_pk,
            sequence=start + n,
            status=e.status.value,
            note=e.note,
            changed_by=e.changed_by,
            changed_at=e.changed_at,
        )
        for n, e in enumerate(entries)
    ]


class OrderRepository:
    """Persists ``Order`` aggregates using Django ORM."""

    def _base_qs(self):
        return OrderModel.objects.prefetch_related("items", "history")

    def insert(self, order: Order) -> Order:
        """Insert a new order with its items and initial history.

        Args:
            order: Order built by ``pricing.build_order`` (``id`` is None).

        Returns:
            Order: The same instance with ``id`` set.
        """
        addr = order.shipping_address
        obj = OrderModel.objects.create(
            tracking_number=order.tracking_number,
            status=order.status.value,
            payment_status=order.payment_status.value,
            customer_name=addr.customer_name,
            mobile=addr.mobile,
            district=addr.district,
            upazila=addr.upazila,
            address_line=addr.address_line,
            postal_code=addr.postal_code,
            order_note=order.order_note,
            subtotal=order.subtotal,
            shipping=order.shipping,
            coupon_id=_as_uuid(order.coupon_id) if order.coupon_id else None,
            discount_amount=order.discount_amount,
            total_amount=order.total_amount,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
        OrderItemModel.objects.bulk_create(
            [
                OrderItemModel(
                    order=obj,
                    position=n,
                    product_id=_as_uuid(i.product_id),
                    product_size_id=_as_uuid(i.product_size_id),
                    title=i.title,
                    size=i.size,
                    image=i.image,
                    quantity=i.quantity,
                    unit_price=i.unit_price,
                    total_price=i.total_price,
                )
                for n, i in enumerate(order.items)
            ]
        )
        OrderStatusEntryModel.objects.bulk_create(_history_rows(obj.pk, order.status_history, 0))
        order.id = obj.id
        return order

    def get(self, order_id) -> Optional[Order]:
        pk = _as_uuid(order_id)
        if pk is None:
            return None
        obj = self._base_qs().filter(pk=pk).first()
        return to_domain(obj) if obj else None

    def get_for_update(self, order_id) -> Optional[Order]:
        """Lock the order row (``SELECT ... FOR UPDATE``) and load it.

        Must be called inside ``transaction.atomic``.
        """
        pk = _as_uuid(order_id)
        if pk is None:
            return None
        obj = OrderModel.objects.select_for_update().filter(pk=pk).first()
        return to_domain(obj) if obj else None

    def save(self, order: Order) -> Order:
        """Write status fields and append history entries not yet stored."""
        OrderModel.objects.filter(pk=order.id).update(
            status=order.status.value,
            payment_status=order.payment_status.value,
            updated_at=order.updated_at,
        )
        stored = OrderStatusEntryModel.objects.filter(order_id=order.id).count()
        fresh = order.status_history[stored:]
        if fresh:
            OrderStatusEntryModel.objects.bulk_create(_history_rows(order.id, fresh, stored))
        return order

    def list(self, page: int, page_size: int) -> OrderPage:
        p = Paginator(self._base_qs().order_by("-created_at"), page_size)
        page_obj = p.get_page(page)
        return OrderPage(
            count=p.count,
            page=page_obj.number,
            page_size=page_size,
            results=[to_domain(o) for o in page_obj.object_list],
        )

    def find_for_tracking(self, tracking_number: Optional[str], mobile: Optional[str]) -> List[Order]:
        qs = self._base_qs()
        if tracking_number:
            qs = qs.filter(tracking_number=tracking_number.strip().upper())
        if mobile:
            qs = qs.filter(mobile=mobile.strip())
        return [to_domain(o) for o in qs.order_by("-created_at")]
