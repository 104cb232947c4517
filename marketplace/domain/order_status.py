# marketplace/domain/order_status.py
from datetime import datetime, timezone
from enum import Enum

from marketplace.domain.errors import IllegalTransitionError


class OrderStatus(str, Enum):
    """
    Flow normalny:     PENDING -> CONFIRMED -> PREPARING -> SHIPPED -> DELIVERED
    Flow alternatywny: PENDING/CONFIRMED -> CANCELLED (zwrot stocku)
    """

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    def can_cancel(self) -> bool:
        return self in (OrderStatus.PENDING, OrderStatus.CONFIRMED)

    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

    def can_transition_to(self, new_status: "OrderStatus") -> bool:
        return new_status in ALLOWED_TRANSITIONS[self]

    @property
    def label(self) -> str:
        return _LABELS[self]


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

#teksty dla klienta w powiadomieniach
_LABELS = {
    OrderStatus.PENDING: "waiting for confirmation",
    OrderStatus.CONFIRMED: "confirmed by the seller",
    OrderStatus.PREPARING: "being prepared",
    OrderStatus.SHIPPED: "on its way",
    OrderStatus.DELIVERED: "delivered",
    OrderStatus.CANCELLED: "cancelled",
}


def transition(order, new_status: OrderStatus, reason: str | None = None, now: datetime | None = None):
    """
    Zmienia status zamowienia wedlug tabeli ALLOWED_TRANSITIONS i stempluje daty.
    Nie rusza stocku, zwrot przy CANCELLED robi OrderService.
    """
    current = OrderStatus(order.status)
    new_status = OrderStatus(new_status)

    if not current.can_transition_to(new_status):
        raise IllegalTransitionError(current.value, new_status.value)

    now = now or datetime.now(timezone.utc)
    order.status = new_status.value
    order.updated_at = now

    if new_status is OrderStatus.DELIVERED:
        order.delivered_at = now
    elif new_status is OrderStatus.CANCELLED:
        order.cancelled_at = now
        order.cancel_reason = reason

    return order
