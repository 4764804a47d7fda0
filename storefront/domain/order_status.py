# storefront/domain/order_status.py
from enum import Enum

from storefront.domain.errors import InvalidTransitionError


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# fulfilment pipeline, forward only
PIPELINE = (
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)
TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def check_transition(current: str, target: str) -> None:
    """
    Validate an order status change.

    - delivered and cancelled accept nothing
    - any non-terminal status can be cancelled
    - otherwise the target must lie strictly ahead in the pipeline
    """
    current_status = OrderStatus(current)
    target_status = OrderStatus(target)

    if current_status in TERMINAL:
        raise InvalidTransitionError(
            current_status.value,
            target_status.value,
            f"Cannot change a {current_status.value} order",
        )

    if target_status is OrderStatus.CANCELLED:
        return

    if PIPELINE.index(target_status) <= PIPELINE.index(current_status):
        raise InvalidTransitionError(current_status.value, target_status.value)
