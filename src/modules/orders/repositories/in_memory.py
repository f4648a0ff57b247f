"""Process-local order store and idempotency ledger.

Used by unit tests and single-process deployments
(``ORDERS_REPOSITORY_BACKEND=memory``).  A store and its ledger share
one re-entrant lock.  ``atomic()`` holds it for the whole unit of work
and keeps an undo log, so an order written inside a block that fails
(e.g. on a lost ledger insert) is rolled back before any reader can
see it.  Every read takes the same lock.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple

import structlog

from modules.orders.constants import OrderStatus
from modules.orders.dtos import IdempotencyRecordDTO, OrderDTO
from modules.orders.exceptions import IdempotencyRecordExists
from modules.orders.repositories.interfaces import IIdempotencyLedger, IOrderRepository

logger = structlog.get_logger(__name__)

# (order_id, value before the write); None means the order did not exist.
UndoEntry = Tuple[str, Optional[OrderDTO]]


class InMemoryOrderRepository(IOrderRepository):
    def __init__(self, lock: Optional[threading.RLock] = None) -> None:
        self._orders: Dict[str, OrderDTO] = {}
        self._lock = lock if lock is not None else threading.RLock()
        self._undo: Optional[List[UndoEntry]] = None

    @property
    def lock(self) -> threading.RLock:
        """Lock to hand to the ledger that shares this store's transactions."""
        return self._lock

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            outer = self._undo
            self._undo = []
            try:
                yield
            except BaseException:
                for order_id, previous in reversed(self._undo):
                    if previous is None:
                        self._orders.pop(order_id, None)
                    else:
                        self._orders[order_id] = previous
                if self._undo:
                    logger.info("order.rolled_back", writes=len(self._undo))
                raise
            else:
                if outer is not None:
                    outer.extend(self._undo)
            finally:
                self._undo = outer

    def create(self, order: OrderDTO) -> OrderDTO:
        if not order.packages:
            raise ValueError("An order must have at least one package.")
        with self._lock:
            if order.order_id in self._orders:
                raise ValueError(f"Order {order.order_id} already exists.")
            self._write(order.order_id, order)
        logger.info(
            "order.persisted", order_id=order.order_id, package_count=len(order.packages)
        )
        return order

    def get_by_id(self, id: str) -> Optional[OrderDTO]:
        with self._lock:
            return self._orders.get(id)

    def get_for_update(self, id: str) -> Optional[OrderDTO]:
        # Inside atomic() the caller already holds the lock.
        with self._lock:
            return self._orders.get(id)

    def mark_cancelled(self, id: str, cancelled_at: datetime) -> Optional[OrderDTO]:
        with self._lock:
            current = self._orders.get(id)
            if current is None or current.status != OrderStatus.ACTIVE:
                logger.warning("order.cancel_lost_race", order_id=id)
                return None
            updated = current.model_copy(
                update={"status": OrderStatus.CANCELLED, "cancelled_at": cancelled_at}
            )
            self._write(id, updated)
        return updated

    def count(self, status: Optional[OrderStatus] = None) -> int:
        return len(self._select(status))

    def list(
        self,
        status: Optional[OrderStatus] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[OrderDTO]:
        ordered = sorted(
            self._select(status),
            key=lambda o: (o.created_at, o.order_id),
            reverse=True,
        )
        end = None if limit is None else offset + limit
        return ordered[offset:end]

    def delete(self, id: str) -> bool:
        with self._lock:
            removed = self._orders.get(id)
            if removed is not None:
                self._write(id, None)
        if removed is not None:
            logger.info("order.deleted", order_id=id)
        return removed is not None

    def _select(self, status: Optional[OrderStatus]) -> List[OrderDTO]:
        with self._lock:
            orders = list(self._orders.values())
        if status is None:
            return orders
        return [o for o in orders if o.status == status]

    def _write(self, id: str, order: Optional[OrderDTO]) -> None:
        """Set or remove one order, journaling the old value inside atomic()."""
        if self._undo is not None:
            self._undo.append((id, self._orders.get(id)))
        if order is None:
            self._orders.pop(id, None)
        else:
            self._orders[id] = order


class InMemoryIdempotencyLedger(IIdempotencyLedger):
    """Write-once key map.  Pass the store's ``lock`` to join its transactions."""

    def __init__(self, lock: Optional[threading.RLock] = None) -> None:
        self._records: Dict[str, IdempotencyRecordDTO] = {}
        self._lock = lock if lock is not None else threading.RLock()

    def lookup(self, key: str) -> Optional[IdempotencyRecordDTO]:
        with self._lock:
            return self._records.get(key)

    def record(self, key: str, payload_hash: str, order_id: str) -> IdempotencyRecordDTO:
        with self._lock:
            if key in self._records:
                raise IdempotencyRecordExists(key)
            record = IdempotencyRecordDTO(
                key=key, payload_hash=payload_hash, order_id=order_id
            )
            self._records[key] = record
        logger.info("idempotency.recorded", key=key, order_id=order_id)
        return record


def in_memory_backend() -> Tuple[InMemoryOrderRepository, InMemoryIdempotencyLedger]:
    """A store and a ledger sharing one lock."""
    orders = InMemoryOrderRepository()
    return orders, InMemoryIdempotencyLedger(lock=orders.lock)
