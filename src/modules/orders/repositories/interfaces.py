"""Order store and idempotency ledger interfaces.

The Service Layer depends exclusively on these contracts (DIP).  Two
implementations ship: the Django ORM one (``django_repository``) and a
process-local one (``in_memory``) used for tests and single-process
deployments.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, ContextManager, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.constants import OrderStatus
    from modules.orders.dtos import IdempotencyRecordDTO, OrderDTO


class IOrderRepository(IRepository["OrderDTO"]):
    """Repository contract for the Order aggregate (order + packages).

    Orders are sorted by ``created_at`` descending, ties broken by
    ``order_id`` descending.
    """

    @abstractmethod
    def atomic(self) -> ContextManager[None]:
        """Unit-of-work boundary shared with the idempotency ledger."""

    @abstractmethod
    def create(self, order: OrderDTO) -> OrderDTO:
        """Insert a new order with its packages.  Requires >= 1 package."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[OrderDTO]:
        """Point lookup.  ``None`` when absent."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[OrderDTO]:
        """Point lookup that serialises concurrent writers of the same order."""

    @abstractmethod
    def mark_cancelled(self, id: str, cancelled_at: datetime) -> Optional[OrderDTO]:
        """Conditionally move ACTIVE -> CANCELLED.

        Returns the updated order, or ``None`` if the order was not ACTIVE
        at write time (another writer won).
        """

    @abstractmethod
    def count(self, status: Optional[OrderStatus] = None) -> int:
        """Number of orders, optionally restricted to one status."""

    @abstractmethod
    def list(
        self,
        status: Optional[OrderStatus] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[OrderDTO]:
        """A sorted window of orders, optionally restricted to one status."""


class IIdempotencyLedger(ABC):
    """Write-once map ``key -> (payload_hash, order_id)``."""

    @abstractmethod
    def lookup(self, key: str) -> Optional[IdempotencyRecordDTO]:
        """Return the record bound to ``key``, if any."""

    @abstractmethod
    def record(self, key: str, payload_hash: str, order_id: str) -> IdempotencyRecordDTO:
        """Bind ``key`` atomically.

        Raises:
            IdempotencyRecordExists: ``key`` is already bound.
        """
