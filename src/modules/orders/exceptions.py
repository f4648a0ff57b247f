"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.  Each
one belongs to a category of ``modules.core.exceptions``; the API
layer renders them through the shared exception handler.
"""

from __future__ import annotations

from modules.core.exceptions import FailedPrecondition, InvalidArgument, NotFound, Unavailable


class OrderNotFound(NotFound):
    """The requested order does not exist."""


class OrderAlreadyCancelled(FailedPrecondition):
    """Cancellation attempted on an order that is already CANCELLED."""


class IdempotencyKeyConflict(FailedPrecondition):
    """An idempotency key was reused with a different payload."""


class IdempotencyRecordExists(Exception):
    """The ledger already binds this key.

    Internal to the service: a second ``record()`` for the same key is a
    protocol violation and is never surfaced to API clients as-is.
    """

    def __init__(self, key: str) -> None:
        super().__init__(f"Idempotency key {key!r} is already recorded.")
        self.key = key


class OrderValueOutOfRange(InvalidArgument):
    """A priced figure does not fit the storage precision."""


class ServiceUnavailable(Unavailable):
    """Persistence or pricing could not be reached.  Safe to retry."""
