"""Pricing DTOs.

Immutable Pydantic v2 models exchanged with the pricing service.  Range
checks (positive dimensions, discount bounds) are deliberately left to
``PricingService.validate`` so every violation is reported as an
``InvalidArgument`` naming the offending field and package index.

Floats are converted to ``Decimal`` through their shortest ``repr`` so
``2.3`` prices as ``Decimal("2.3")`` and not as its binary expansion.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.pricing.constants import DiscountType, ServiceType, Zone


def _coerce_decimal(value: Any) -> Any:
    if isinstance(value, float):
        return Decimal(repr(value))
    return value


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class PackageDTO(BaseModel):
    """A single package: actual weight, dimensions, fragility, declared value."""

    model_config = ConfigDict(frozen=True)

    weight_kg: Decimal
    height_cm: Decimal
    width_cm: Decimal
    length_cm: Decimal
    fragile: bool = False
    declared_value: Decimal = Decimal("0")

    @field_validator(
        "weight_kg",
        "height_cm",
        "width_cm",
        "length_cm",
        "declared_value",
        mode="before",
    )
    @classmethod
    def floats_as_decimal(cls, v: Any) -> Any:
        return _coerce_decimal(v)


class DiscountDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: DiscountType = DiscountType.NONE
    value: Decimal = Decimal("0")

    @field_validator("value", mode="before")
    @classmethod
    def float_as_decimal(cls, v: Any) -> Any:
        return _coerce_decimal(v)

    @property
    def is_effective(self) -> bool:
        """``False`` for kind NONE, which carries no pricing effect."""
        return self.kind != DiscountType.NONE


class PricingRequestDTO(BaseModel):
    """Everything the pricing service needs to quote an order."""

    model_config = ConfigDict(frozen=True)

    origin_zone: Zone
    destination_zone: Zone
    service_type: ServiceType
    packages: List[PackageDTO]
    discount: Optional[DiscountDTO] = None
    insurance_enabled: bool = False


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class BreakdownDTO(BaseModel):
    """Itemised figures behind an order total.  All rounded to 2 decimals."""

    model_config = ConfigDict(frozen=True)

    order_billable_kg: Decimal
    base_subtotal: Decimal
    service_subtotal: Decimal
    fragile_surcharge: Decimal
    insurance_surcharge: Decimal
    subtotal_with_surcharges: Decimal
    discount_amount: Decimal
    total: Decimal


class PackageWeightDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    volumetric_kg: Decimal
    billable_kg: Decimal


class PricingResultDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    breakdown: BreakdownDTO
    total: Decimal
    package_weights: List[PackageWeightDTO]
