import uuid

import django.db.models.deletion
from django.db import migrations, models

STATUS_CHOICES = [
    ("pending", "Pending"),
    ("confirmed", "Confirmed"),
    ("shipped", "Shipped"),
    ("delivered", "Delivered"),
    ("cancelled", "Cancelled"),
    ("refunded", "Refunded"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="OrderModel",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("tracking_number", models.CharField(max_length=32, unique=True)),
                ("status", models.CharField(choices=STATUS_CHOICES, default="pending", max_length=16)),
                (
                    "payment_status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("paid", "Paid"), ("failed", "Failed")],
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("customer_name", models.CharField(max_length=120)),
                ("mobile", models.CharField(db_index=True, max_length=32)),
                ("district", models.CharField(max_length=120)),
                ("upazila", models.CharField(blank=True, max_length=120, null=True)),
                ("address_line", models.CharField(max_length=255)),
                ("postal_code", models.CharField(blank=True, max_length=16, null=True)),
                ("order_note", models.TextField(blank=True, null=True)),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                ("shipping", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("coupon_id", models.UUIDField(blank=True, null=True)),
                ("discount_amount", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
            ],
            options={"db_table": "orders", "ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="OrderItemModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveSmallIntegerField()),
                ("product_id", models.UUIDField()),
                ("product_size_id", models.UUIDField()),
                ("title", models.CharField(max_length=200)),
                ("size", models.CharField(max_length=32)),
                ("image", models.CharField(blank=True, default="", max_length=500)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.ordermodel",
                    ),
                ),
            ],
            options={"db_table": "order_items", "ordering": ["position"]},
        ),
        migrations.CreateModel(
            name="OrderStatusEntryModel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sequence", models.PositiveIntegerField()),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=16)),
                ("note", models.TextField(blank=True, null=True)),
                ("changed_by", models.CharField(blank=True, max_length=64, null=True)),
                ("changed_at", models.DateTimeField()),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="orders.ordermodel",
                    ),
                ),
            ],
            options={"db_table": "order_status_history", "ordering": ["sequence"]},
        ),
        migrations.AddConstraint(
            model_name="orderstatusentrymodel",
            constraint=models.UniqueConstraint(fields=("order", "sequence"), name="unique_history_sequence_per_order"),
        ),
        migrations.CreateModel(
            name="IdempotencyKey",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("key", models.CharField(max_length=128, unique=True)),
                ("request_hash", models.CharField(max_length=64)),
                ("response_status", models.PositiveSmallIntegerField(default=0)),
                ("response_body", models.JSONField(default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to="orders.ordermodel",
                    ),
                ),
            ],
            options={"db_table": "idempotency_keys"},
        ),
    ]
