import django.db.models.deletion
import django.utils.timezone
import uuid6
from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="IdempotencyRecord",
            fields=[
                (
                    "key",
                    models.CharField(max_length=255, primary_key=True, serialize=False),
                ),
                ("payload_hash", models.CharField(max_length=64)),
                ("order_id", models.CharField(max_length=50)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "idempotency_records",
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "order_id",
                    models.CharField(
                        editable=False, max_length=50, primary_key=True, serialize=False
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "status",
                    models.CharField(
                        choices=[("ACTIVE", "Active"), ("CANCELLED", "Cancelled")],
                        default="ACTIVE",
                        max_length=20,
                    ),
                ),
                (
                    "cancelled_at",
                    models.DateTimeField(blank=True, default=None, null=True),
                ),
                (
                    "origin_zone",
                    models.CharField(
                        choices=[
                            ("METRO", "Metro"),
                            ("INTERIOR", "Interior"),
                            ("FRONTERA", "Frontera"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "destination_zone",
                    models.CharField(
                        choices=[
                            ("METRO", "Metro"),
                            ("INTERIOR", "Interior"),
                            ("FRONTERA", "Frontera"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "service_type",
                    models.CharField(
                        choices=[
                            ("STANDARD", "Standard"),
                            ("EXPRESS", "Express"),
                            ("SAME_DAY", "Same day"),
                        ],
                        max_length=20,
                    ),
                ),
                ("insurance_enabled", models.BooleanField(default=False)),
                (
                    "discount_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("NONE", "None"),
                            ("PERCENT", "Percent"),
                            ("FIXED", "Fixed"),
                        ],
                        max_length=20,
                        null=True,
                    ),
                ),
                (
                    "discount_value",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                (
                    "order_billable_kg",
                    models.DecimalField(decimal_places=2, max_digits=12),
                ),
                ("base_subtotal", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "service_subtotal",
                    models.DecimalField(decimal_places=2, max_digits=12),
                ),
                (
                    "fragile_surcharge",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=12
                    ),
                ),
                (
                    "insurance_surcharge",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=12
                    ),
                ),
                (
                    "subtotal_with_surcharges",
                    models.DecimalField(decimal_places=2, max_digits=12),
                ),
                (
                    "discount_amount",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=12
                    ),
                ),
                ("total", models.DecimalField(decimal_places=2, max_digits=12)),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at", "-order_id"],
                "indexes": [
                    models.Index(fields=["status"], name="orders_status_idx"),
                    models.Index(fields=["-created_at"], name="orders_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Package",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("position", models.PositiveIntegerField()),
                ("weight_kg", models.DecimalField(decimal_places=3, max_digits=10)),
                ("height_cm", models.DecimalField(decimal_places=3, max_digits=10)),
                ("width_cm", models.DecimalField(decimal_places=3, max_digits=10)),
                ("length_cm", models.DecimalField(decimal_places=3, max_digits=10)),
                ("fragile", models.BooleanField(default=False)),
                (
                    "declared_value",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=12
                    ),
                ),
                ("volumetric_kg", models.DecimalField(decimal_places=2, max_digits=12)),
                ("billable_kg", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="packages",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "packages",
                "ordering": ["position"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "position"),
                        name="packages_order_position_uniq",
                    )
                ],
            },
        ),
    ]
