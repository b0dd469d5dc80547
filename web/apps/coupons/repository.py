"""Repository layer for coupons.

Maps ``CouponModel`` rows to ``CouponRecord`` values and performs the one
write the order core needs: consuming a coupon use with a conditional
``UPDATE`` so ``used_count`` can never pass ``usage_limit``.
"""

import uuid
from typing import Optional

from django.db.models import F

from .domain import CouponRecord, CouponScope, CouponType, ScopeKind, normalize_code, validate_coupon_record
from .models import CouponModel


def to_record(obj: CouponModel) -> CouponRecord:
    kind = ScopeKind(obj.scope_kind)
    scope = CouponScope(kind, frozenset(str(i) for i in (obj.scope_ids or ())))
    return CouponRecord(
        id=str(obj.id),
        code=obj.code,
        type=CouponType(obj.type),
        value=obj.value,
        usage_limit=obj.usage_limit,
        used_count=obj.used_count,
        valid_from=obj.valid_from,
        valid_until=obj.valid_until,
        is_active=obj.is_active,
        scope=scope,
        min_order_amount=obj.min_order_amount,
        max_discount_amount=obj.max_discount_amount,
        description=obj.description,
    )


class CouponRepository:
    """Persistence for coupons backed by the Django ORM."""

    def find_by_code(self, code: str) -> Optional[CouponRecord]:
        obj = CouponModel.objects.filter(code=normalize_code(code)).first()
        return to_record(obj) if obj else None

    def create(self, record: CouponRecord, created_by: str = "") -> str:
        """Persist a coupon after validating it explicitly.

        Args:
            record: Coupon to store. Its ``id`` is used as primary key.
            created_by: Identifier of the admin creating it.

        Returns:
            str: The coupon id.

        Raises:
            ValueError: If the record breaks a coupon invariant or the code
                is already taken.
        """
        validate_coupon_record(record)
        if CouponModel.objects.filter(code=record.code).exists():
            raise ValueError(f"A coupon with the code '{record.code}' already exists.")
        obj = CouponModel.objects.create(
            id=uuid.UUID(record.id),
            code=record.code,
            description=record.description,
            type=record.type.value,
            value=record.value,
            min_order_amount=record.min_order_amount,
            max_discount_amount=record.max_discount_amount,
            usage_limit=record.usage_limit,
            used_count=record.used_count,
            valid_from=record.valid_from,
            valid_until=record.valid_until,
            is_active=record.is_active,
            scope_kind=record.scope.kind.value,
            scope_ids=sorted(record.scope.ids),
            created_by=created_by,
        )
        return str(obj.id)

    def increment_usage(self, coupon_id: str) -> bool:
        """Consume one use of the coupon.

        Single conditional ``UPDATE``: succeeds only while the coupon is
        active and ``used_count < usage_limit``.

        Returns:
            bool: True if a use was consumed.
        """
        updated = CouponModel.objects.filter(
            pk=coupon_id, is_active=True, used_count__lt=F("usage_limit")
        ).update(used_count=F("used_count") + 1)
        return updated == 1
