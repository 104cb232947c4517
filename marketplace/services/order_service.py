# marketplace/services/order_service.py
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.domain.errors import (
    ForbiddenError,
    IllegalTransitionError,
    NotCancellableError,
    NotFoundError,
)
from marketplace.domain.order_status import OrderStatus, transition
from marketplace.domain.schemas import OrderOut, OrderPage, OrderSummaryOut
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.notification_service import (
    EventType,
    NotificationService,
    NotificationSink,
    emit_safely,
)
from marketplace.services.stock_ledger import StockLedger
from marketplace.utils.logging import get_logger
from marketplace.utils.settings import DEFAULT_PAGE_SIZE, DUE_SOON_HOURS, MAX_PAGE_SIZE

logger = get_logger(__name__)

IN_PROGRESS = [OrderStatus.CONFIRMED.value, OrderStatus.PREPARING.value, OrderStatus.SHIPPED.value]
NOT_TERMINAL = [s.value for s in OrderStatus if not s.is_terminal()]


class OrderService:
    """
    Serwis odpowiedzialny za domenę zamówień po checkout:
    odczyty, zmiany statusu (maszyna stanów), anulowanie ze zwrotem stocku.
    """

    def __init__(self, db: Session, notifier: NotificationSink | None = None):
        self.db = db
        self.repo = OrderRepo(db)
        self.ledger = StockLedger(db)
        self.notifier = notifier or NotificationService()

    # =====================================================
    # QUERY
    # =====================================================
    def get_order(self, order_id: int, buyer_id: int | None = None) -> OrderOut:
        """buyer_id podany -> widok kupujacego, sprawdzamy wlasciciela."""
        order = self._load(order_id)

        if buyer_id is not None and order.buyer_id != buyer_id:
            raise ForbiddenError("You are not allowed to view this order")

        return OrderOut.model_validate(order)

    def list_for_buyer(self, buyer_id: int, page: int = 0, size: int = DEFAULT_PAGE_SIZE) -> OrderPage:
        page, size = _paging(page, size)
        rows, total = self.repo.list_for_buyer(buyer_id, page, size)
        return _to_page(rows, page, size, total)

    def list_for_seller(self, seller_id: int, page: int = 0, size: int = DEFAULT_PAGE_SIZE) -> OrderPage:
        page, size = _paging(page, size)
        rows, total = self.repo.list_for_seller(seller_id, page, size)
        return _to_page(rows, page, size, total)

    def list_all(self, page: int = 0, size: int = DEFAULT_PAGE_SIZE) -> OrderPage:
        page, size = _paging(page, size)
        rows, total = self.repo.list_all(page, size)
        return _to_page(rows, page, size, total)

    def list_in_progress(self) -> list[OrderOut]:
        return [OrderOut.model_validate(o) for o in self.repo.list_by_statuses(IN_PROGRESS)]

    def list_due_soon(self, now: datetime | None = None, hours: int = DUE_SOON_HOURS) -> list[OrderOut]:
        now = now or datetime.now(timezone.utc)
        rows = self.repo.list_due_between(NOT_TERMINAL, now, now + timedelta(hours=hours))
        return [OrderOut.model_validate(o) for o in rows]

    def summary(self, buyer_id: int) -> OrderSummaryOut:
        counts = self.repo.count_by_status(buyer_id)
        spent = self.repo.total_spent(buyer_id, [OrderStatus.CANCELLED.value])

        return OrderSummaryOut(
            pending=counts.get(OrderStatus.PENDING.value, 0),
            confirmed=counts.get(OrderStatus.CONFIRMED.value, 0),
            preparing=counts.get(OrderStatus.PREPARING.value, 0),
            shipped=counts.get(OrderStatus.SHIPPED.value, 0),
            delivered=counts.get(OrderStatus.DELIVERED.value, 0),
            cancelled=counts.get(OrderStatus.CANCELLED.value, 0),
            total_orders=sum(counts.values()),
            total_spent=Decimal(str(spent)).quantize(Decimal("0.01")),
        )

    # =====================================================
    # COMMANDS
    # =====================================================
    def update_status(self, order_id: int, new_status: OrderStatus, notes: str | None = None) -> OrderOut:
        """
        Zmiana statusu przez sprzedawce/operatora.
        Notatki sa dopisywane do log-a w `notes`, nigdy nadpisywane.
        """
        new_status = OrderStatus(new_status)
        order = self._load(order_id, for_update=True)

        try:
            now = datetime.now(timezone.utc)
            if new_status is OrderStatus.CANCELLED:
                self._cancel_in_tx(order, notes, now)
            else:
                transition(order, new_status, now=now)

            if notes:
                _append_note(order, notes, now)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Order {order.order_number} moved to {order.status}")

        result = OrderOut.model_validate(order)
        self._notify_status(result)
        return result

    def cancel(self, order_id: int, buyer_id: int, reason: str | None = None) -> OrderOut:
        order = self._load(order_id, for_update=True)

        try:
            if order.buyer_id != buyer_id:
                raise ForbiddenError("You are not allowed to cancel this order")

            self._cancel_in_tx(order, reason, datetime.now(timezone.utc))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Order {order.order_number} cancelled by buyer {buyer_id}")

        result = OrderOut.model_validate(order)
        self._notify_status(result)
        return result

    def set_estimated_delivery(self, order_id: int, when: datetime) -> OrderOut:
        order = self._load(order_id, for_update=True)

        try:
            status = OrderStatus(order.status)
            if status.is_terminal():
                raise IllegalTransitionError(
                    status.value,
                    status.value,
                    f"Delivery estimate cannot be changed on a {status.value} order",
                )

            order.estimated_delivery_at = when
            order.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Order {order.order_number} estimated delivery set to {when.isoformat()}")
        return OrderOut.model_validate(order)

    # =====================================================
    # helpers
    # =====================================================
    def _load(self, order_id: int, for_update: bool = False) -> OrderModel:
        order = self.repo.get_order_for_update(order_id) if for_update else self.repo.get_order(order_id)
        if not order:
            self.db.rollback()
            raise NotFoundError("Order", order_id)
        return order

    def _cancel_in_tx(self, order: OrderModel, reason: str | None, now: datetime) -> None:
        status = OrderStatus(order.status)
        if not status.can_cancel():
            raise NotCancellableError(status.value)

        #zwrot stocku, produkt mogl zostac usuniety -> tylko log
        for item in order.items:
            self.ledger.release(item.product_id, item.quantity)

        transition(order, OrderStatus.CANCELLED, reason=reason, now=now)

    def _notify_status(self, order: OrderOut) -> None:
        if order.status is OrderStatus.CANCELLED:
            event = EventType.ORDER_CANCELLED
            message = f"Your order {order.order_number} has been cancelled"
        else:
            event = EventType.ORDER_STATUS_CHANGED
            message = f"Your order {order.order_number} is {order.status.label}"

        emit_safely(
            self.notifier,
            order.buyer_id,
            event,
            {
                "order_id": order.id,
                "order_number": order.order_number,
                "status": order.status.value,
                "message": message,
            },
        )


def _append_note(order: OrderModel, note: str, now: datetime) -> None:
    entry = f"[{now.isoformat(timespec='seconds')}] {note}"
    order.notes = f"{order.notes}\n{entry}" if order.notes else entry


def _paging(page: int, size: int) -> tuple[int, int]:
    return max(page, 0), min(max(size, 1), MAX_PAGE_SIZE)


def _to_page(rows, page: int, size: int, total: int) -> OrderPage:
    return OrderPage(
        items=[OrderOut.model_validate(o) for o in rows],
        page=page,
        size=size,
        total=total,
    )
