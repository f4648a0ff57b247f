"""Django ORM implementation of the order store and idempotency ledger.

All write operations run inside ``transaction.atomic()`` so an order
and its packages are persisted together.

Concurrency control:
- cancellation locks the row (``select_for_update``) and then applies a
  conditional ``UPDATE ... WHERE status = 'ACTIVE'``, so two concurrent
  cancellations can never both succeed;
- the ledger relies on the primary key of ``idempotency_records``: the
  insert either wins or raises ``IntegrityError``, which is translated
  into ``IdempotencyRecordExists``.
"""

from __future__ import annotations

from datetime import datetime
from typing import ContextManager, List, Optional

import structlog
from django.db import IntegrityError, transaction
from django.db.models import QuerySet
from django.utils import timezone

from modules.orders.constants import OrderStatus
from modules.orders.dtos import IdempotencyRecordDTO, OrderDTO
from modules.orders.exceptions import IdempotencyRecordExists
from modules.orders.models import IdempotencyRecord, Order, Package
from modules.orders.repositories.interfaces import IIdempotencyLedger, IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete order store backed by Django ORM."""

    def atomic(self) -> ContextManager[None]:
        return transaction.atomic()

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, order: OrderDTO) -> OrderDTO:
        """Insert the order row and its packages atomically."""
        if not order.packages:
            raise ValueError("An order must have at least one package.")

        discount = order.discount if order.discount and order.discount.is_effective else None
        breakdown = order.breakdown
        entity = Order.objects.create(
            order_id=order.order_id,
            created_at=order.created_at,
            status=order.status,
            origin_zone=order.origin_zone,
            destination_zone=order.destination_zone,
            service_type=order.service_type,
            insurance_enabled=order.insurance_enabled,
            discount_type=discount.kind if discount else None,
            discount_value=discount.value if discount else None,
            order_billable_kg=breakdown.order_billable_kg,
            base_subtotal=breakdown.base_subtotal,
            service_subtotal=breakdown.service_subtotal,
            fragile_surcharge=breakdown.fragile_surcharge,
            insurance_surcharge=breakdown.insurance_surcharge,
            subtotal_with_surcharges=breakdown.subtotal_with_surcharges,
            discount_amount=breakdown.discount_amount,
            total=order.total,
        )
        Package.objects.bulk_create(
            [
                Package(
                    order=entity,
                    position=position,
                    weight_kg=p.weight_kg,
                    height_cm=p.height_cm,
                    width_cm=p.width_cm,
                    length_cm=p.length_cm,
                    fragile=p.fragile,
                    declared_value=p.declared_value,
                    volumetric_kg=p.volumetric_kg,
                    billable_kg=p.billable_kg,
                )
                for position, p in enumerate(order.packages)
            ]
        )

        logger.info(
            "order.persisted", order_id=order.order_id, package_count=len(order.packages)
        )
        return self.get_by_id(order.order_id) or order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @staticmethod
    def _queryset() -> QuerySet:
        return Order.objects.prefetch_related("packages")

    def get_by_id(self, id: str) -> Optional[OrderDTO]:
        """Retrieve an order with its packages prefetched (no N+1)."""
        entity = self._queryset().filter(pk=id).first()
        return OrderDTO.from_entity(entity) if entity else None

    def get_for_update(self, id: str) -> Optional[OrderDTO]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Must run inside ``atomic()``.
        """
        entity = (
            Order.objects.select_for_update()
            .prefetch_related("packages")
            .filter(pk=id)
            .first()
        )
        return OrderDTO.from_entity(entity) if entity else None

    def count(self, status: Optional[OrderStatus] = None) -> int:
        queryset = Order.objects.all()
        if status is not None:
            queryset = queryset.filter(status=status)
        return queryset.count()

    def list(
        self,
        status: Optional[OrderStatus] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[OrderDTO]:
        queryset = self._queryset().order_by("-created_at", "-order_id")
        if status is not None:
            queryset = queryset.filter(status=status)
        end = None if limit is None else offset + limit
        return [OrderDTO.from_entity(entity) for entity in queryset[offset:end]]

    # ------------------------------------------------------------------
    # Update / Delete
    # ------------------------------------------------------------------

    @transaction.atomic
    def mark_cancelled(self, id: str, cancelled_at: datetime) -> Optional[OrderDTO]:
        updated = Order.objects.filter(pk=id, status=OrderStatus.ACTIVE).update(
            status=OrderStatus.CANCELLED,
            cancelled_at=cancelled_at,
            updated_at=timezone.now(),
        )
        if not updated:
            logger.warning("order.cancel_lost_race", order_id=id)
            return None
        return self.get_by_id(id)

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Hard-delete an order and its packages (CASCADE)."""
        deleted, _ = Order.objects.filter(pk=id).delete()
        if deleted:
            logger.info("order.deleted", order_id=id)
        return bool(deleted)


class IdempotencyDjangoLedger(IIdempotencyLedger):
    """Idempotency ledger backed by the ``idempotency_records`` table."""

    def lookup(self, key: str) -> Optional[IdempotencyRecordDTO]:
        record = IdempotencyRecord.objects.filter(pk=key).first()
        return IdempotencyRecordDTO.from_entity(record) if record else None

    def record(self, key: str, payload_hash: str, order_id: str) -> IdempotencyRecordDTO:
        try:
            # Savepoint: a duplicate key must not poison the caller's transaction.
            with transaction.atomic():
                record = IdempotencyRecord.objects.create(
                    key=key,
                    payload_hash=payload_hash,
                    order_id=order_id,
                )
        except IntegrityError as exc:
            raise IdempotencyRecordExists(key) from exc

        logger.info("idempotency.recorded", key=key, order_id=order_id)
        return IdempotencyRecordDTO.from_entity(record)
