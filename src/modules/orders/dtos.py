"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  These are
the contracts between the API layer (DRF serializers), the service and
the repositories.  DTOs are immutable (``frozen=True``); repositories
hand out ``OrderDTO`` snapshots, never live ORM rows.

- ``CreateOrderDTO``: input for order creation (plus idempotency key).
- ``StoredPackageDTO``: a package as persisted, with derived weights.
- ``OrderDTO``: the full order as stored.
- ``OrderPageDTO``: one page of ``list_orders``.
- ``IdempotencyRecordDTO``: a ledger entry.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.orders.constants import VALID_TRANSITIONS, OrderStatus
from modules.pricing.constants import ServiceType, Zone
from modules.pricing.dtos import BreakdownDTO, DiscountDTO, PackageDTO, PricingRequestDTO

if TYPE_CHECKING:
    from modules.orders.models import IdempotencyRecord, Order


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    ``idempotency_key`` scopes client retries; it is not part of the
    payload hash.  An empty key is treated as no key.
    """

    model_config = ConfigDict(frozen=True)

    origin_zone: Zone
    destination_zone: Zone
    service_type: ServiceType
    packages: List[PackageDTO]
    discount: Optional[DiscountDTO] = None
    insurance_enabled: bool = False
    idempotency_key: Optional[str] = None

    @field_validator("idempotency_key")
    @classmethod
    def blank_key_is_no_key(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def to_pricing_request(self) -> PricingRequestDTO:
        return PricingRequestDTO(
            origin_zone=self.origin_zone,
            destination_zone=self.destination_zone,
            service_type=self.service_type,
            packages=self.packages,
            discount=self.discount,
            insurance_enabled=self.insurance_enabled,
        )


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class StoredPackageDTO(PackageDTO):
    volumetric_kg: Decimal
    billable_kg: Decimal


class OrderDTO(BaseModel):
    """Immutable snapshot of a stored order."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    created_at: datetime
    status: OrderStatus
    origin_zone: Zone
    destination_zone: Zone
    service_type: ServiceType
    packages: List[StoredPackageDTO]
    discount: Optional[DiscountDTO] = None
    insurance_enabled: bool
    breakdown: BreakdownDTO
    total: Decimal
    cancelled_at: Optional[datetime] = None

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    @classmethod
    def from_entity(cls, order: Order) -> OrderDTO:
        """Build a DTO from an ``Order`` model instance.

        Assumes ``packages`` are prefetched.
        """
        discount = None
        if order.discount_type is not None:
            discount = DiscountDTO(
                kind=order.discount_type,
                value=order.discount_value or Decimal("0"),
            )
        packages = [
            StoredPackageDTO(
                weight_kg=p.weight_kg,
                height_cm=p.height_cm,
                width_cm=p.width_cm,
                length_cm=p.length_cm,
                fragile=p.fragile,
                declared_value=p.declared_value,
                volumetric_kg=p.volumetric_kg,
                billable_kg=p.billable_kg,
            )
            for p in order.packages.all()
        ]
        return cls(
            order_id=order.order_id,
            created_at=order.created_at,
            status=order.status,
            origin_zone=order.origin_zone,
            destination_zone=order.destination_zone,
            service_type=order.service_type,
            packages=packages,
            discount=discount,
            insurance_enabled=order.insurance_enabled,
            breakdown=BreakdownDTO(
                order_billable_kg=order.order_billable_kg,
                base_subtotal=order.base_subtotal,
                service_subtotal=order.service_subtotal,
                fragile_surcharge=order.fragile_surcharge,
                insurance_surcharge=order.insurance_surcharge,
                subtotal_with_surcharges=order.subtotal_with_surcharges,
                discount_amount=order.discount_amount,
                total=order.total,
            ),
            total=order.total,
            cancelled_at=order.cancelled_at,
        )


class OrderPageDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    orders: List[OrderDTO]
    page: int
    page_size: int
    total_items: int
    total_pages: int


class IdempotencyRecordDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    payload_hash: str
    order_id: str

    @classmethod
    def from_entity(cls, record: IdempotencyRecord) -> IdempotencyRecordDTO:
        return cls(
            key=record.key,
            payload_hash=record.payload_hash,
            order_id=record.order_id,
        )
