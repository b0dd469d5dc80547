import uuid

from django.db import models


class CouponModel(models.Model):
    """Stored coupon.

    The scope is persisted as a tag (``scope_kind``) plus the list of ids it
    targets, mirroring ``CouponScope`` in the domain layer.
    """

    class Type(models.TextChoices):
        PERCENTAGE = "percentage"
        FIXED = "fixed"

    class ScopeKind(models.TextChoices):
        ALL = "all"
        CATEGORIES = "categories"
        PRODUCTS = "products"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=64, unique=True)
    description = models.CharField(max_length=255, blank=True, default="")
    type = models.CharField(max_length=16, choices=Type.choices)
    value = models.DecimalField(max_digits=12, decimal_places=2)
    min_order_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    max_discount_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    usage_limit = models.PositiveIntegerField()
    used_count = models.PositiveIntegerField(default=0)
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()
    is_active = models.BooleanField(default=True)
    scope_kind = models.CharField(max_length=16, choices=ScopeKind.choices, default=ScopeKind.ALL)
    scope_ids = models.JSONField(default=list, blank=True)
    created_by = models.CharField(max_length=64, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "coupons"
