"""Pricing service: turns an order shape into a cost breakdown.

Pure and deterministic: no state, no I/O.  The same request always
yields the same ``PricingResultDTO``.

Pricing steps:
1. Per package, volumetric weight = h * w * l / 5000 and billable
   weight = max(actual, volumetric).
2. Order billable weight = sum of package billable weights.
3. Base subtotal = order billable weight * destination zone rate.
4. Service subtotal = base subtotal * service multiplier.
5. Fragile surcharge = 7 per fragile package.
6. Insurance surcharge = 2.5% of the declared value sum, when enabled.
7. Subtotal with surcharges = service + fragile + insurance.
8. Discount: PERCENT of the *unrounded* subtotal, or a FIXED amount.
9. Total = max(0, unrounded subtotal - unrounded discount).

Quotes are computed in IEEE double precision, in the order above, and
each output field is rounded on its own to 2 decimals, half away from
zero, after adding machine epsilon.  These are the published figures:
exact decimal arithmetic would move some half-cent results by a cent.
Rounding the discount and the total independently may also leave them
one cent apart from a rounded chain; that is preserved too.
"""

from __future__ import annotations

import math
import sys
from decimal import Decimal
from functools import reduce
from operator import add
from typing import Iterable, List, Protocol, Sequence

import structlog

from modules.pricing.constants import (
    FRAGILE_SURCHARGE_PER_PACKAGE,
    INSURANCE_RATE,
    MONEY_PLACES,
    PERCENT_DISCOUNT_MAX,
    SERVICE_MULTIPLIERS,
    VOLUMETRIC_DIVISOR,
    ZONE_RATES,
    DiscountType,
)
from modules.pricing.dtos import (
    BreakdownDTO,
    DiscountDTO,
    PackageDTO,
    PackageWeightDTO,
    PricingRequestDTO,
    PricingResultDTO,
)
from modules.pricing.exceptions import InvalidPricingInput

logger = structlog.get_logger(__name__)

ZERO = Decimal("0")

_POSITIVE_PACKAGE_FIELDS = ("weight_kg", "height_cm", "width_cm", "length_cm")


class IPricingEngine(Protocol):
    """Anything able to quote an order (local service, remote client)."""

    def calculate(self, request: PricingRequestDTO) -> PricingResultDTO: ...


def round_money(value: float) -> Decimal:
    """Round a non-negative float to cents: ``floor((x + eps) * 100 + 0.5) / 100``."""
    cents = math.floor((value + sys.float_info.epsilon) * 100 + 0.5) / 100
    return Decimal(repr(cents)).quantize(MONEY_PLACES)


def float_sum(values: Iterable[float]) -> float:
    # Left to right; built-in sum() compensates rounding on 3.12+.
    return reduce(add, values, 0.0)


def volumetric_weight(package: PackageDTO) -> float:
    height, width, length = (
        float(package.height_cm),
        float(package.width_cm),
        float(package.length_cm),
    )
    return height * width * length / VOLUMETRIC_DIVISOR


def billable_weight(package: PackageDTO) -> float:
    return max(float(package.weight_kg), volumetric_weight(package))


class PricingService:
    """Local, in-process pricing engine."""

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, request: PricingRequestDTO) -> None:
        """Reject requests that cannot be priced.

        Raises:
            InvalidPricingInput: naming the first offending field.
        """
        if not request.packages:
            raise InvalidPricingInput(
                "packages must contain at least 1 package", field="packages"
            )

        for index, package in enumerate(request.packages):
            for name in _POSITIVE_PACKAGE_FIELDS:
                if getattr(package, name) <= ZERO:
                    field = f"packages[{index}].{name}"
                    raise InvalidPricingInput(f"{field} must be > 0", field=field)
            if package.declared_value < ZERO:
                field = f"packages[{index}].declared_value"
                raise InvalidPricingInput(f"{field} must be >= 0", field=field)

        if request.insurance_enabled and self._declared_sum(request.packages) <= ZERO:
            raise InvalidPricingInput(
                "insurance_enabled requires sum(declared_value) > 0",
                field="insurance_enabled",
            )

        self._validate_discount(request.discount)

        if request.destination_zone not in ZONE_RATES:
            raise InvalidPricingInput(
                f"destination_zone {request.destination_zone!r} has no rate",
                field="destination_zone",
            )
        if request.service_type not in SERVICE_MULTIPLIERS:
            raise InvalidPricingInput(
                f"service_type {request.service_type!r} has no multiplier",
                field="service_type",
            )

    @staticmethod
    def _validate_discount(discount: DiscountDTO | None) -> None:
        if discount is None or not discount.is_effective:
            return
        if discount.value < ZERO:
            raise InvalidPricingInput(
                f"discount.value must be >= 0 for {discount.kind}",
                field="discount.value",
            )
        if discount.kind == DiscountType.PERCENT and discount.value > PERCENT_DISCOUNT_MAX:
            raise InvalidPricingInput(
                f"discount.value must be <= {PERCENT_DISCOUNT_MAX} for PERCENT",
                field="discount.value",
            )

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def calculate(self, request: PricingRequestDTO) -> PricingResultDTO:
        """Validate and price ``request``.

        Raises:
            InvalidPricingInput: the request violates a pricing rule.
        """
        self.validate(request)

        billables: List[float] = [billable_weight(p) for p in request.packages]
        order_billable_kg = float_sum(billables)

        base_subtotal = order_billable_kg * ZONE_RATES[request.destination_zone]
        service_subtotal = base_subtotal * SERVICE_MULTIPLIERS[request.service_type]

        fragile_count = sum(1 for p in request.packages if p.fragile)
        fragile_surcharge = fragile_count * FRAGILE_SURCHARGE_PER_PACKAGE

        insurance_surcharge = (
            INSURANCE_RATE * float_sum(float(p.declared_value) for p in request.packages)
            if request.insurance_enabled
            else 0.0
        )

        subtotal_with_surcharges = service_subtotal + fragile_surcharge + insurance_surcharge
        discount_amount = self._discount_amount(request.discount, subtotal_with_surcharges)
        total = max(0.0, subtotal_with_surcharges - discount_amount)

        breakdown = BreakdownDTO(
            order_billable_kg=round_money(order_billable_kg),
            base_subtotal=round_money(base_subtotal),
            service_subtotal=round_money(service_subtotal),
            fragile_surcharge=round_money(fragile_surcharge),
            insurance_surcharge=round_money(insurance_surcharge),
            subtotal_with_surcharges=round_money(subtotal_with_surcharges),
            discount_amount=round_money(discount_amount),
            total=round_money(total),
        )
        package_weights = [
            PackageWeightDTO(
                volumetric_kg=round_money(volumetric_weight(p)),
                billable_kg=round_money(billable),
            )
            for p, billable in zip(request.packages, billables)
        ]

        logger.debug(
            "pricing.calculated",
            destination_zone=str(request.destination_zone),
            service_type=str(request.service_type),
            package_count=len(request.packages),
            total=str(breakdown.total),
        )
        return PricingResultDTO(
            breakdown=breakdown,
            total=breakdown.total,
            package_weights=package_weights,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _declared_sum(packages: Sequence[PackageDTO]) -> Decimal:
        return sum((p.declared_value for p in packages), ZERO)

    @staticmethod
    def _discount_amount(discount: DiscountDTO | None, subtotal: float) -> float:
        if discount is None or not discount.is_effective:
            return 0.0
        if discount.kind == DiscountType.PERCENT:
            return float(discount.value) / 100 * subtotal
        # FIXED is a flat amount, not a rate.
        return float(discount.value)
