"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.  Range checks on packages and
discounts belong to the pricing service; these serializers only
enforce types, precision and enum wire forms.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from rest_framework import serializers

from modules.core.fields import WireEnumField
from modules.orders.constants import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, ORDER_STATUS_CODEC
from modules.orders.dtos import CreateOrderDTO
from modules.pricing.constants import DISCOUNT_TYPE_CODEC, SERVICE_TYPE_CODEC, ZONE_CODEC
from modules.pricing.dtos import DiscountDTO, PackageDTO


def _measure(**kwargs: Any) -> serializers.DecimalField:
    return serializers.DecimalField(max_digits=10, decimal_places=3, **kwargs)


def _money(**kwargs: Any) -> serializers.DecimalField:
    return serializers.DecimalField(max_digits=12, decimal_places=2, **kwargs)


# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class PackageInputSerializer(serializers.Serializer):
    """Validates a single package in an order creation request."""

    weight_kg = _measure()
    height_cm = _measure()
    width_cm = _measure()
    length_cm = _measure()
    fragile = serializers.BooleanField(required=False, default=False)
    declared_value = _money(required=False, default=Decimal("0"))


class DiscountInputSerializer(serializers.Serializer):
    kind = WireEnumField(DISCOUNT_TYPE_CODEC)
    value = _money(required=False, default=Decimal("0"))


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    origin_zone = WireEnumField(ZONE_CODEC)
    destination_zone = WireEnumField(ZONE_CODEC)
    service_type = WireEnumField(SERVICE_TYPE_CODEC)
    packages = PackageInputSerializer(many=True)
    discount = DiscountInputSerializer(required=False, allow_null=True, default=None)
    insurance_enabled = serializers.BooleanField(required=False, default=False)

    def to_dto(self, idempotency_key: Optional[str] = None) -> CreateOrderDTO:
        data: Dict[str, Any] = self.validated_data
        discount = data.get("discount")
        return CreateOrderDTO(
            origin_zone=data["origin_zone"],
            destination_zone=data["destination_zone"],
            service_type=data["service_type"],
            packages=[PackageDTO(**package) for package in data["packages"]],
            discount=DiscountDTO(**discount) if discount else None,
            insurance_enabled=data["insurance_enabled"],
            idempotency_key=idempotency_key,
        )


class OrderListQuerySerializer(serializers.Serializer):
    """Query string of ``GET /orders/``.  Out-of-range windows are normalized later."""

    page = serializers.IntegerField(required=False, default=DEFAULT_PAGE)
    page_size = serializers.IntegerField(required=False, default=DEFAULT_PAGE_SIZE)
    status = WireEnumField(ORDER_STATUS_CODEC, required=False, default=None, allow_null=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class PackageSerializer(serializers.Serializer):
    weight_kg = _measure(read_only=True)
    height_cm = _measure(read_only=True)
    width_cm = _measure(read_only=True)
    length_cm = _measure(read_only=True)
    fragile = serializers.BooleanField(read_only=True)
    declared_value = _money(read_only=True)
    volumetric_kg = _money(read_only=True)
    billable_kg = _money(read_only=True)


class DiscountSerializer(serializers.Serializer):
    kind = WireEnumField(DISCOUNT_TYPE_CODEC, read_only=True)
    value = _money(read_only=True)


class BreakdownSerializer(serializers.Serializer):
    order_billable_kg = _money(read_only=True)
    base_subtotal = _money(read_only=True)
    service_subtotal = _money(read_only=True)
    fragile_surcharge = _money(read_only=True)
    insurance_surcharge = _money(read_only=True)
    subtotal_with_surcharges = _money(read_only=True)
    discount_amount = _money(read_only=True)
    total = _money(read_only=True)


class OrderSerializer(serializers.Serializer):
    """Read serializer for an ``OrderDTO`` with packages and breakdown."""

    order_id = serializers.CharField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    status = WireEnumField(ORDER_STATUS_CODEC, read_only=True)
    origin_zone = WireEnumField(ZONE_CODEC, read_only=True)
    destination_zone = WireEnumField(ZONE_CODEC, read_only=True)
    service_type = WireEnumField(SERVICE_TYPE_CODEC, read_only=True)
    packages = PackageSerializer(many=True, read_only=True)
    discount = DiscountSerializer(read_only=True, allow_null=True)
    insurance_enabled = serializers.BooleanField(read_only=True)
    breakdown = BreakdownSerializer(read_only=True)
    total = _money(read_only=True)
    cancelled_at = serializers.DateTimeField(read_only=True, allow_null=True)


class OrderPageSerializer(serializers.Serializer):
    orders = OrderSerializer(many=True, read_only=True)
    page = serializers.IntegerField(read_only=True)
    page_size = serializers.IntegerField(read_only=True)
    total_items = serializers.IntegerField(read_only=True)
    total_pages = serializers.IntegerField(read_only=True)
