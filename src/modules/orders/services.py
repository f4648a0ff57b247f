"""Order service layer (Use Cases).

Orchestrates order creation, lookup, cancellation and listing.  The
service receives its collaborators by constructor injection and holds
no order state between calls.

Business rules enforced:
- A retried creation with the same idempotency key and payload returns
  the stored order verbatim; pricing is not invoked again.
- The same key with a different payload is rejected, nothing is written.
- Concurrent creations under one key converge on a single order: the
  order insert and the ledger insert share one unit of work, the
  loser's unit of work rolls back, and it replays the winner.
- Status only moves ACTIVE -> CANCELLED; cancelling twice is an error.
- An unreachable dependency surfaces as ``ServiceUnavailable``, never
  as a validation error.
"""

from __future__ import annotations

import math
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Optional, Tuple

import structlog
import uuid6
from django.apps import apps
from django.conf import settings
from django.db import DataError, InterfaceError, OperationalError
from django.utils import timezone

from modules.orders.constants import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ORDER_ID_PREFIX,
    OrderStatus,
)
from modules.orders.dtos import OrderDTO, OrderPageDTO, StoredPackageDTO
from modules.orders.exceptions import (
    IdempotencyKeyConflict,
    IdempotencyRecordExists,
    OrderAlreadyCancelled,
    OrderNotFound,
    OrderValueOutOfRange,
    ServiceUnavailable,
)
from modules.orders.hashing import payload_hash
from modules.pricing.services import PricingService

if TYPE_CHECKING:
    from modules.orders.dtos import CreateOrderDTO, IdempotencyRecordDTO
    from modules.orders.repositories.interfaces import IIdempotencyLedger, IOrderRepository
    from modules.pricing.dtos import PricingResultDTO
    from modules.pricing.services import IPricingEngine

logger = structlog.get_logger(__name__)


@contextmanager
def storage_guard(operation: str) -> Iterator[None]:
    """Translate store failures into domain errors.

    Connectivity failures become ``ServiceUnavailable``; a value too large
    for its column becomes ``OrderValueOutOfRange``.
    """
    try:
        yield
    except DataError as exc:
        logger.warning("order.storage_value_rejected", operation=operation, error=str(exc))
        raise OrderValueOutOfRange(
            "Order figures exceed the supported precision; reduce package sizes or values."
        ) from exc
    except (OperationalError, InterfaceError) as exc:
        logger.error("order.storage_unavailable", operation=operation, error=str(exc))
        raise ServiceUnavailable("Order storage is unavailable.") from exc


def normalize_window(page: int, page_size: int) -> Tuple[int, int]:
    """Apply listing defaults: page >= 1, 1 <= page_size <= MAX_PAGE_SIZE."""
    page = page if page > 0 else DEFAULT_PAGE
    page_size = min(page_size, MAX_PAGE_SIZE) if page_size > 0 else DEFAULT_PAGE_SIZE
    return page, page_size


class OrderService:
    """Application service for Order use-cases.

    Receives the order store, the idempotency ledger and the pricing
    engine via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        idempotency_ledger: IIdempotencyLedger,
        pricing_engine: IPricingEngine,
    ) -> None:
        self._order_repo = order_repository
        self._ledger = idempotency_ledger
        self._pricing = pricing_engine

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO) -> OrderDTO:
        """Price and store a new order, honouring the idempotency key.

        Raises:
            IdempotencyKeyConflict: key already used with another payload.
            InvalidPricingInput: the request cannot be priced.
            ServiceUnavailable: storage or pricing unreachable.
        """
        key = dto.idempotency_key
        digest = payload_hash(dto)
        log = logger.bind(idempotency_key=key, payload_hash=digest[:12])
        log.info("order.creation_started")

        # 0. Idempotency check
        if key:
            with storage_guard("idempotency_lookup"):
                record = self._ledger.lookup(key)
            if record is not None:
                return self._replay(record, digest)

        # 1. Price (validation errors propagate unchanged)
        pricing = self._price(dto)

        # 2. Build the new order
        order = self._build_order(dto, pricing)

        # 3. Persist order + ledger entry as one unit of work
        try:
            with storage_guard("create_order"), self._order_repo.atomic():
                created = self._order_repo.create(order)
                if key:
                    self._ledger.record(key, digest, created.order_id)
        except IdempotencyRecordExists:
            return self._converge_on_winner(key, digest, order.order_id)

        log.info("order.created", order_id=created.order_id, total=str(created.total))
        return created

    def cancel_order(self, order_id: str) -> OrderDTO:
        """Move an ACTIVE order to CANCELLED.

        Raises:
            OrderNotFound: order does not exist.
            OrderAlreadyCancelled: order is already CANCELLED.
            ServiceUnavailable: storage unreachable.
        """
        log = logger.bind(order_id=order_id)

        with storage_guard("cancel_order"), self._order_repo.atomic():
            # 1. Lock the order
            order = self._order_repo.get_for_update(order_id)
            if order is None:
                raise OrderNotFound(f"Order {order_id} not found.", field="order_id")

            # 2. Validate FSM transition
            if not order.can_transition_to(OrderStatus.CANCELLED):
                log.warning("order.cancel_not_allowed", current_status=str(order.status))
                raise OrderAlreadyCancelled("Order already cancelled.")

            # 3. Conditional write: only one concurrent cancellation wins
            cancelled = self._order_repo.mark_cancelled(order_id, timezone.now())
            if cancelled is None:
                raise OrderAlreadyCancelled("Order already cancelled.")

        log.info("order.cancelled")
        return cancelled

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> OrderDTO:
        """Retrieve a single order by ID.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        with storage_guard("get_order"):
            order = self._order_repo.get_by_id(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.", field="order_id")
        return order

    def list_orders(
        self,
        page: int = DEFAULT_PAGE,
        page_size: int = DEFAULT_PAGE_SIZE,
        status: Optional[OrderStatus] = None,
    ) -> OrderPageDTO:
        """Return one page of orders, most recent first.

        An out-of-range page yields an empty ``orders`` list.
        """
        page, page_size = normalize_window(page, page_size)

        with storage_guard("list_orders"):
            total_items = self._order_repo.count(status)
            orders = self._order_repo.list(
                status=status,
                offset=(page - 1) * page_size,
                limit=page_size,
            )

        return OrderPageDTO(
            orders=orders,
            page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=max(1, math.ceil(total_items / page_size)),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _price(self, dto: CreateOrderDTO) -> PricingResultDTO:
        try:
            return self._pricing.calculate(dto.to_pricing_request())
        except (ConnectionError, TimeoutError) as exc:
            logger.error("order.pricing_unavailable", error=str(exc))
            raise ServiceUnavailable(f"Pricing engine unavailable: {exc}") from exc

    @staticmethod
    def _new_order_id() -> str:
        return f"{ORDER_ID_PREFIX}{uuid6.uuid7()}"

    def _build_order(self, dto: CreateOrderDTO, pricing: PricingResultDTO) -> OrderDTO:
        packages = [
            StoredPackageDTO(
                **package.model_dump(),
                volumetric_kg=weights.volumetric_kg,
                billable_kg=weights.billable_kg,
            )
            for package, weights in zip(dto.packages, pricing.package_weights)
        ]
        discount = dto.discount if dto.discount and dto.discount.is_effective else None
        return OrderDTO(
            order_id=self._new_order_id(),
            created_at=timezone.now(),
            status=OrderStatus.ACTIVE,
            origin_zone=dto.origin_zone,
            destination_zone=dto.destination_zone,
            service_type=dto.service_type,
            packages=packages,
            discount=discount,
            insurance_enabled=dto.insurance_enabled,
            breakdown=pricing.breakdown,
            total=pricing.total,
        )

    def _replay(self, record: IdempotencyRecordDTO, digest: str) -> OrderDTO:
        log = logger.bind(idempotency_key=record.key, order_id=record.order_id)
        if record.payload_hash != digest:
            log.warning("order.idempotency_conflict")
            raise IdempotencyKeyConflict(
                "Idempotency key reused with different payload.",
                field="idempotency_key",
            )

        with storage_guard("idempotency_replay"):
            existing = self._order_repo.get_by_id(record.order_id)
        if existing is None:
            raise OrderNotFound(
                f"Order {record.order_id} bound to idempotency key {record.key!r} not found."
            )
        log.info("order.idempotency_hit")
        return existing

    def _converge_on_winner(self, key: str, digest: str, lost_order_id: str) -> OrderDTO:
        """Another request recorded ``key`` first; our write was rolled back.  Answer like it."""
        with storage_guard("idempotency_race"):
            record = self._ledger.lookup(key)
        logger.warning(
            "order.idempotency_race_lost",
            idempotency_key=key,
            rolled_back_order_id=lost_order_id,
        )
        if record is None:
            raise ServiceUnavailable("Idempotency ledger is inconsistent; retry the request.")
        return self._replay(record, digest)


# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------


def build_order_service() -> OrderService:
    """Wire ``OrderService`` with the backend chosen by ``ORDERS_REPOSITORY_BACKEND``."""
    backend = getattr(settings, "ORDERS_REPOSITORY_BACKEND", "django")
    if backend == "memory":
        # One store per process, owned by the app registry.
        order_repo, ledger = apps.get_app_config("orders").memory_backend
    elif backend == "django":
        from modules.orders.repositories.django_repository import (
            IdempotencyDjangoLedger,
            OrderDjangoRepository,
        )

        order_repo, ledger = OrderDjangoRepository(), IdempotencyDjangoLedger()
    else:
        raise ValueError(f"Unknown ORDERS_REPOSITORY_BACKEND: {backend!r}")
    return OrderService(
        order_repository=order_repo,
        idempotency_ledger=ledger,
        pricing_engine=PricingService(),
    )
