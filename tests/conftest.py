from decimal import Decimal

import pytest

from rest_framework.test import APIClient

from modules.orders.dtos import CreateOrderDTO
from modules.orders.repositories.in_memory import (
    InMemoryIdempotencyLedger,
    InMemoryOrderRepository,
)
from modules.orders.services import OrderService
from modules.pricing.constants import DiscountType, ServiceType, Zone
from modules.pricing.dtos import DiscountDTO, PackageDTO
from modules.pricing.services import PricingService


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Order payloads
# ---------------------------------------------------------------------------


@pytest.fixture()
def reference_packages():
    """Two packages: one fragile and insured, one light and small."""
    return [
        PackageDTO(
            weight_kg=Decimal("2.5"),
            height_cm=Decimal("30"),
            width_cm=Decimal("20"),
            length_cm=Decimal("40"),
            fragile=True,
            declared_value=Decimal("500"),
        ),
        PackageDTO(
            weight_kg=Decimal("1"),
            height_cm=Decimal("10"),
            width_cm=Decimal("10"),
            length_cm=Decimal("10"),
        ),
    ]


@pytest.fixture()
def make_create_dto(reference_packages):
    """Factory for ``CreateOrderDTO`` defaulting to the reference quote."""

    def _make(**overrides) -> CreateOrderDTO:
        fields = {
            "origin_zone": Zone.METRO,
            "destination_zone": Zone.INTERIOR,
            "service_type": ServiceType.EXPRESS,
            "packages": reference_packages,
            "discount": DiscountDTO(kind=DiscountType.PERCENT, value=Decimal("10")),
            "insurance_enabled": True,
        }
        fields.update(overrides)
        return CreateOrderDTO(**fields)

    return _make


@pytest.fixture()
def order_payload():
    """JSON body of the reference quote, as a client would send it."""
    return {
        "origin_zone": "METRO",
        "destination_zone": "INTERIOR",
        "service_type": "EXPRESS",
        "packages": [
            {
                "weight_kg": "2.5",
                "height_cm": "30",
                "width_cm": "20",
                "length_cm": "40",
                "fragile": True,
                "declared_value": "500",
            },
            {
                "weight_kg": "1",
                "height_cm": "10",
                "width_cm": "10",
                "length_cm": "10",
            },
        ],
        "discount": {"kind": "PERCENT", "value": "10"},
        "insurance_enabled": True,
    }


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_repo():
    return InMemoryOrderRepository()


@pytest.fixture()
def ledger(order_repo):
    return InMemoryIdempotencyLedger(lock=order_repo.lock)


@pytest.fixture()
def service(order_repo, ledger):
    return OrderService(
        order_repository=order_repo,
        idempotency_ledger=ledger,
        pricing_engine=PricingService(),
    )
