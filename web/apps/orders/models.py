import uuid

from django.db import models


class OrderModel(models.Model):
    # UUID PK exposed in the API
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tracking_number = models.CharField(max_length=32, unique=True)

    class Status(models.TextChoices):
        PENDING = "pending"
        CONFIRMED = "confirmed"
        SHIPPED = "shipped"
        DELIVERED = "delivered"
        CANCELLED = "cancelled"
        REFUNDED = "refunded"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending"
        PAID = "paid"
        FAILED = "failed"

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)

    # Shipping address, embedded
    customer_name = models.CharField(max_length=120)
    mobile = models.CharField(max_length=32, db_index=True)
    district = models.CharField(max_length=120)
    upazila = models.CharField(max_length=120, null=True, blank=True)
    address_line = models.CharField(max_length=255)
    postal_code = models.CharField(max_length=16, null=True, blank=True)

    order_note = models.TextField(null=True, blank=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    shipping = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    coupon_id = models.UUIDField(null=True, blank=True)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]


class OrderItemModel(models.Model):
    order = models.ForeignKey(OrderModel, on_delete=models.CASCADE, related_name="items")
    position = models.PositiveSmallIntegerField()
    product_id = models.UUIDField()
    product_size_id = models.UUIDField()
    title = models.CharField(max_length=200)
    size = models.CharField(max_length=32)
    image = models.CharField(max_length=500, blank=True, default="")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_price = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = "order_items"
        ordering = ["position"]


class OrderStatusEntryModel(models.Model):
    # Append-only; rows are never updated or deleted
    order = models.ForeignKey(OrderModel, on_delete=models.CASCADE, related_name="history")
    sequence = models.PositiveIntegerField()
    status = models.CharField(max_length=16, choices=OrderModel.Status.choices)
    note = models.TextField(null=True, blank=True)
    changed_by = models.CharField(max_length=64, null=True, blank=True)
    changed_at = models.DateTimeField()

    class Meta:
        db_table = "order_status_history"
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(fields=["order", "sequence"], name="unique_history_sequence_per_order"),
        ]


class IdempotencyKey(models.Model):
    key = models.CharField(max_length=128, unique=True)
    request_hash = models.CharField(max_length=64)
    response_status = models.PositiveSmallIntegerField(default=0)
    response_body = models.JSONField(default=dict)
    order = models.ForeignKey(OrderModel, null=True, blank=True, on_delete=models.SET_NULL)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "idempotency_keys"
