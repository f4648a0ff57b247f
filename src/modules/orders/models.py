"""Order, Package and IdempotencyRecord models.

Business rules implemented:
- ``order_id`` is generated by the service (``ORD-<uuid7>``) and is the
  primary key; it never changes.
- ``created_at`` is assigned by the service at creation, not by the
  database, so every storage backend reports the same timestamp.
- Packages are immutable once attached and keep their request position.
- The breakdown is stored flat on the order, rounded to 2 decimals.
- Status only moves ACTIVE -> CANCELLED (enforced at service layer);
  ``cancelled_at`` is set exactly once, on that transition.
- ``IdempotencyRecord.key`` is the primary key: the database enforces
  the write-once rule with a single conditional insert.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import OrderStatus
from modules.pricing.constants import DiscountType, ServiceType, Zone


def _money(**kwargs) -> models.DecimalField:
    return models.DecimalField(max_digits=12, decimal_places=2, **kwargs)


def _measure() -> models.DecimalField:
    return models.DecimalField(max_digits=10, decimal_places=3)


class Order(models.Model):
    """Order aggregate root (packages are its children)."""

    order_id: models.CharField = models.CharField(
        max_length=50, primary_key=True, editable=False
    )
    created_at: models.DateTimeField = models.DateTimeField(default=timezone.now)
    updated_at: models.DateTimeField = models.DateTimeField(auto_now=True)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.ACTIVE,
    )
    cancelled_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True, default=None
    )

    origin_zone: models.CharField = models.CharField(max_length=20, choices=Zone.choices)
    destination_zone: models.CharField = models.CharField(
        max_length=20, choices=Zone.choices
    )
    service_type: models.CharField = models.CharField(
        max_length=20, choices=ServiceType.choices
    )
    insurance_enabled: models.BooleanField = models.BooleanField(default=False)
    discount_type: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=DiscountType.choices,
        null=True,
        blank=True,
    )
    discount_value: models.DecimalField = _money(null=True, blank=True)

    # Breakdown
    order_billable_kg: models.DecimalField = _money()
    base_subtotal: models.DecimalField = _money()
    service_subtotal: models.DecimalField = _money()
    fragile_surcharge: models.DecimalField = _money(default=Decimal("0.00"))
    insurance_surcharge: models.DecimalField = _money(default=Decimal("0.00"))
    subtotal_with_surcharges: models.DecimalField = _money()
    discount_amount: models.DecimalField = _money(default=Decimal("0.00"))
    total: models.DecimalField = _money()

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "-order_id"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} ({self.status})"


class Package(BaseModel):
    """A package attached to an order, with its derived weights."""

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="packages",
    )
    position: models.PositiveIntegerField = models.PositiveIntegerField()
    weight_kg: models.DecimalField = _measure()
    height_cm: models.DecimalField = _measure()
    width_cm: models.DecimalField = _measure()
    length_cm: models.DecimalField = _measure()
    fragile: models.BooleanField = models.BooleanField(default=False)
    declared_value: models.DecimalField = _money(default=Decimal("0.00"))
    volumetric_kg: models.DecimalField = _money()
    billable_kg: models.DecimalField = _money()

    class Meta:
        db_table = "packages"
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "position"], name="packages_order_position_uniq"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}#{self.position} ({self.weight_kg} kg)"


class IdempotencyRecord(models.Model):
    """Write-once binding ``key -> (payload_hash, order_id)``."""

    key: models.CharField = models.CharField(max_length=255, primary_key=True)
    payload_hash: models.CharField = models.CharField(max_length=64)
    order_id: models.CharField = models.CharField(max_length=50)
    created_at: models.DateTimeField = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "idempotency_records"

    def __str__(self) -> str:
        return f"{self.key} -> {self.order_id}"
