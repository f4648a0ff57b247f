"""Unit tests for PricingService.

Covers:
- Reference quote (volumetric weights, surcharges, percent discount).
- FIXED discount larger than the subtotal floors the total at 0.
- Independent per-field rounding, half away from zero after epsilon.
- Double-precision figures at half-cent boundaries.
- Validation errors name the offending field.
- Determinism.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.pricing.constants import DiscountType, ServiceType, Zone
from modules.pricing.dtos import DiscountDTO, PackageDTO, PricingRequestDTO
from modules.pricing.exceptions import InvalidPricingInput
from modules.pricing.services import (
    PricingService,
    billable_weight,
    round_money,
    volumetric_weight,
)

pytestmark = pytest.mark.unit


@pytest.fixture()
def pricing():
    return PricingService()


@pytest.fixture()
def reference_request(reference_packages):
    return PricingRequestDTO(
        origin_zone=Zone.METRO,
        destination_zone=Zone.INTERIOR,
        service_type=ServiceType.EXPRESS,
        packages=reference_packages,
        discount=DiscountDTO(kind=DiscountType.PERCENT, value=Decimal("10")),
        insurance_enabled=True,
    )


def _small_package(**overrides) -> PackageDTO:
    fields = {
        "weight_kg": Decimal("1"),
        "height_cm": Decimal("10"),
        "width_cm": Decimal("10"),
        "length_cm": Decimal("10"),
    }
    fields.update(overrides)
    return PackageDTO(**fields)


def _request(**overrides) -> PricingRequestDTO:
    fields = {
        "origin_zone": Zone.METRO,
        "destination_zone": Zone.METRO,
        "service_type": ServiceType.STANDARD,
        "packages": [_small_package()],
    }
    fields.update(overrides)
    return PricingRequestDTO(**fields)


# ---------------------------------------------------------------------------
# Weights
# ---------------------------------------------------------------------------


class TestWeights:
    def test_volumetric_weight(self):
        package = _small_package(
            height_cm=Decimal("30"), width_cm=Decimal("20"), length_cm=Decimal("40")
        )
        assert volumetric_weight(package) == 4.8

    def test_billable_is_volumetric_when_larger(self):
        package = _small_package(
            weight_kg=Decimal("2.5"),
            height_cm=Decimal("30"),
            width_cm=Decimal("20"),
            length_cm=Decimal("40"),
        )
        assert billable_weight(package) == 4.8

    def test_billable_is_actual_when_larger(self):
        assert billable_weight(_small_package()) == 1.0

    def test_float_input_is_read_through_repr(self):
        package = _small_package(weight_kg=2.3)
        assert package.weight_kg == Decimal("2.3")


# ---------------------------------------------------------------------------
# Calculation
# ---------------------------------------------------------------------------


class TestCalculate:
    def test_reference_quote(self, pricing, reference_request):
        result = pricing.calculate(reference_request)
        breakdown = result.breakdown

        assert breakdown.order_billable_kg == Decimal("5.80")
        assert breakdown.base_subtotal == Decimal("69.60")
        assert breakdown.service_subtotal == Decimal("93.96")
        assert breakdown.fragile_surcharge == Decimal("7.00")
        assert breakdown.insurance_surcharge == Decimal("12.50")
        assert breakdown.subtotal_with_surcharges == Decimal("113.46")
        assert breakdown.discount_amount == Decimal("11.35")
        assert breakdown.total == Decimal("102.11")
        assert result.total == Decimal("102.11")

    def test_package_weights_follow_request_order(self, pricing, reference_request):
        result = pricing.calculate(reference_request)

        assert [w.volumetric_kg for w in result.package_weights] == [
            Decimal("4.80"),
            Decimal("0.20"),
        ]
        assert [w.billable_kg for w in result.package_weights] == [
            Decimal("4.80"),
            Decimal("1.00"),
        ]

    def test_fixed_discount_floors_total_at_zero(self, pricing):
        result = pricing.calculate(
            _request(discount=DiscountDTO(kind=DiscountType.FIXED, value=Decimal("100")))
        )

        assert result.breakdown.subtotal_with_surcharges == Decimal("8.00")
        assert result.breakdown.discount_amount == Decimal("100.00")
        assert result.total == Decimal("0.00")

    def test_none_discount_has_no_effect(self, pricing):
        with_none = pricing.calculate(_request(discount=DiscountDTO(kind=DiscountType.NONE)))
        without = pricing.calculate(_request())
        assert with_none == without
        assert with_none.breakdown.discount_amount == Decimal("0.00")

    def test_insurance_disabled_ignores_declared_value(self, pricing):
        result = pricing.calculate(
            _request(packages=[_small_package(declared_value=Decimal("1000"))])
        )
        assert result.breakdown.insurance_surcharge == Decimal("0.00")

    @pytest.mark.parametrize(
        ("zone", "expected"),
        [
            (Zone.METRO, Decimal("8.00")),
            (Zone.INTERIOR, Decimal("12.00")),
            (Zone.FRONTERA, Decimal("16.00")),
        ],
    )
    def test_destination_zone_rate(self, pricing, zone, expected):
        result = pricing.calculate(_request(destination_zone=zone))
        assert result.breakdown.base_subtotal == expected

    def test_origin_zone_does_not_affect_price(self, pricing):
        metro = pricing.calculate(_request(origin_zone=Zone.METRO))
        frontera = pricing.calculate(_request(origin_zone=Zone.FRONTERA))
        assert metro == frontera

    def test_same_day_multiplier(self, pricing):
        result = pricing.calculate(_request(service_type=ServiceType.SAME_DAY))
        assert result.breakdown.service_subtotal == Decimal("14.40")

    def test_fields_are_rounded_independently(self, pricing):
        # subtotal 8.40, 35% discount = 2.94 exactly; total 5.46
        result = pricing.calculate(
            _request(
                packages=[_small_package(weight_kg=Decimal("1.05"))],
                discount=DiscountDTO(kind=DiscountType.PERCENT, value=Decimal("35")),
            )
        )
        assert result.breakdown.subtotal_with_surcharges == Decimal("8.40")
        assert result.breakdown.discount_amount == Decimal("2.94")
        assert result.total == Decimal("5.46")

    def test_is_deterministic(self, pricing, reference_request):
        assert pricing.calculate(reference_request) == pricing.calculate(reference_request)


class TestRoundMoney:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0.005, Decimal("0.01")),
            (0.004, Decimal("0.00")),
            (11.346, Decimal("11.35")),
            (1.005, Decimal("1.01")),
            (2.675, Decimal("2.68")),
            (36.855, Decimal("36.85")),
            (7.034999999999999, Decimal("7.03")),
            (0.0, Decimal("0.00")),
        ],
    )
    def test_half_away_from_zero_after_epsilon(self, value, expected):
        assert round_money(value) == expected

    def test_always_two_places(self):
        assert str(round_money(8.0)) == "8.00"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_empty_packages(self, pricing):
        with pytest.raises(InvalidPricingInput) as exc_info:
            pricing.calculate(_request(packages=[]))
        assert exc_info.value.field == "packages"

    @pytest.mark.parametrize("field", ["weight_kg", "height_cm", "width_cm", "length_cm"])
    def test_non_positive_package_field(self, pricing, field):
        packages = [_small_package(), _small_package(**{field: Decimal("0")})]
        with pytest.raises(InvalidPricingInput) as exc_info:
            pricing.calculate(_request(packages=packages))
        assert exc_info.value.field == f"packages[1].{field}"
        assert str(exc_info.value) == f"packages[1].{field} must be > 0"

    def test_negative_declared_value(self, pricing):
        packages = [_small_package(declared_value=Decimal("-1"))]
        with pytest.raises(InvalidPricingInput) as exc_info:
            pricing.calculate(_request(packages=packages))
        assert exc_info.value.field == "packages[0].declared_value"

    def test_insurance_requires_declared_value(self, pricing):
        with pytest.raises(InvalidPricingInput) as exc_info:
            pricing.calculate(_request(insurance_enabled=True))
        assert exc_info.value.field == "insurance_enabled"

    def test_percent_discount_above_maximum(self, pricing):
        discount = DiscountDTO(kind=DiscountType.PERCENT, value=Decimal("35.01"))
        with pytest.raises(InvalidPricingInput) as exc_info:
            pricing.calculate(_request(discount=discount))
        assert exc_info.value.field == "discount.value"

    def test_percent_discount_at_maximum_is_accepted(self, pricing):
        discount = DiscountDTO(kind=DiscountType.PERCENT, value=Decimal("35"))
        result = pricing.calculate(_request(discount=discount))
        assert result.breakdown.discount_amount == Decimal("2.80")

    def test_negative_fixed_discount(self, pricing):
        discount = DiscountDTO(kind=DiscountType.FIXED, value=Decimal("-5"))
        with pytest.raises(InvalidPricingInput) as exc_info:
            pricing.calculate(_request(discount=discount))
        assert exc_info.value.field == "discount.value"

    def test_invalid_pricing_input_is_invalid_argument(self, pricing):
        from modules.core.exceptions import InvalidArgument

        with pytest.raises(InvalidArgument):
            pricing.calculate(_request(packages=[]))


class TestDoublePrecisionFigures:
    """Half-cent boundaries where double arithmetic lands just below the tie."""

    @pytest.mark.parametrize(
        ("weight", "service_subtotal"),
        [
            (Decimal("0.475"), Decimal("7.69")),
            (Decimal("2.275"), Decimal("36.85")),
            (Decimal("2.675"), Decimal("43.33")),
        ],
    )
    def test_express_interior(self, pricing, weight, service_subtotal):
        result = pricing.calculate(
            _request(
                destination_zone=Zone.INTERIOR,
                service_type=ServiceType.EXPRESS,
                packages=[_small_package(weight_kg=weight)],
            )
        )
        assert result.breakdown.service_subtotal == service_subtotal
        assert result.total == service_subtotal

    def test_percent_discount_on_half_cent(self, pricing):
        result = pricing.calculate(
            _request(
                packages=[_small_package(weight_kg=Decimal("2.93125"))],
                discount=DiscountDTO(kind=DiscountType.PERCENT, value=Decimal("30")),
            )
        )
        assert result.breakdown.subtotal_with_surcharges == Decimal("23.45")
        assert result.breakdown.discount_amount == Decimal("7.03")
        assert result.total == Decimal("16.42")
