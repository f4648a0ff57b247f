"""Order domain constants.

Defines status choices and valid status transitions for the order
state machine, plus the listing window limits.
"""

from django.db import models

from modules.core.wire import WireCodec


class OrderStatus(models.TextChoices):
    ACTIVE = "ACTIVE", "Active"
    CANCELLED = "CANCELLED", "Cancelled"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.ACTIVE: {OrderStatus.CANCELLED},
    OrderStatus.CANCELLED: set(),
}

ORDER_STATUS_CODEC = WireCodec(
    OrderStatus,
    prefix="ORDER_STATUS_",
    codes={OrderStatus.ACTIVE: 1, OrderStatus.CANCELLED: 2},
)

ORDER_ID_PREFIX = "ORD-"

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
