"""Pricing enumerations and fixed rate tables.

Zone rates are in currency units per billable kilogram; the service
multiplier scales the base subtotal.  Both tables are total over their
enums: an unmapped member is a configuration error surfaced as
``InvalidArgument`` by the pricing service.  Rates are floats because
quotes are computed in double precision.
"""

from decimal import Decimal

from django.db import models

from modules.core.wire import WireCodec


class Zone(models.TextChoices):
    METRO = "METRO", "Metro"
    INTERIOR = "INTERIOR", "Interior"
    FRONTERA = "FRONTERA", "Frontera"


class ServiceType(models.TextChoices):
    STANDARD = "STANDARD", "Standard"
    EXPRESS = "EXPRESS", "Express"
    SAME_DAY = "SAME_DAY", "Same day"


class DiscountType(models.TextChoices):
    NONE = "NONE", "None"
    PERCENT = "PERCENT", "Percent"
    FIXED = "FIXED", "Fixed"


ZONE_RATES: dict[str, float] = {
    Zone.METRO: 8.0,
    Zone.INTERIOR: 12.0,
    Zone.FRONTERA: 16.0,
}

SERVICE_MULTIPLIERS: dict[str, float] = {
    ServiceType.STANDARD: 1.0,
    ServiceType.EXPRESS: 1.35,
    ServiceType.SAME_DAY: 1.8,
}

VOLUMETRIC_DIVISOR = 5000.0
FRAGILE_SURCHARGE_PER_PACKAGE = 7.0
INSURANCE_RATE = 0.025
PERCENT_DISCOUNT_MAX = Decimal("35")

MONEY_PLACES = Decimal("0.01")

# Wire codes follow the numeric values of the public protobuf contract.
ZONE_CODEC = WireCodec(
    Zone,
    prefix="ZONE_",
    codes={Zone.METRO: 1, Zone.INTERIOR: 2, Zone.FRONTERA: 3},
)
SERVICE_TYPE_CODEC = WireCodec(
    ServiceType,
    prefix="SERVICE_TYPE_",
    codes={ServiceType.STANDARD: 1, ServiceType.EXPRESS: 2, ServiceType.SAME_DAY: 3},
)
DISCOUNT_TYPE_CODEC = WireCodec(
    DiscountType,
    prefix="DISCOUNT_TYPE_",
    codes={DiscountType.NONE: 1, DiscountType.PERCENT: 2, DiscountType.FIXED: 3},
)
