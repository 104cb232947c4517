"""Tests for OrderService: transitions, cancellation and queries."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from conftest import BUYER, OTHER_BUYER, SELLER_A, SELLER_B, stock_of
from marketplace.data.models.product import ProductModel
from marketplace.domain.errors import (
    ForbiddenError,
    IllegalTransitionError,
    NotCancellableError,
    NotFoundError,
)
from marketplace.domain.order_status import OrderStatus
from marketplace.services.cart_service import CartService
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.order_service import OrderService


@pytest.fixture
def place_order(db, catalog, notifier, shipping):
    def _place(buyer_id=BUYER, lines=(("lamp", 2),)):
        cart = CartService(db)
        for name, qty in lines:
            cart.add_item(buyer_id, catalog[name], qty)
        return CheckoutService(db, notifier).checkout(buyer_id, shipping)

    return _place


def advance(svc, order_id, *statuses):
    order = None
    for status in statuses:
        order = svc.update_status(order_id, status)
    return order


class TestGetOrder:
    def test_owner_can_read(self, db, place_order, notifier):
        placed = place_order()

        order = OrderService(db, notifier).get_order(placed.id, buyer_id=BUYER)

        assert order == placed

    def test_other_buyer_forbidden(self, db, place_order, notifier):
        placed = place_order()

        with pytest.raises(ForbiddenError):
            OrderService(db, notifier).get_order(placed.id, buyer_id=OTHER_BUYER)

    def test_missing(self, db, catalog, notifier):
        with pytest.raises(NotFoundError):
            OrderService(db, notifier).get_order(999)

    def test_refetch_is_stable(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        placed = place_order()
        confirmed = svc.update_status(placed.id, OrderStatus.CONFIRMED)

        assert svc.get_order(placed.id) == svc.get_order(placed.id) == confirmed


class TestUpdateStatus:
    def test_full_lifecycle(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        placed = place_order()

        order = advance(
            svc, placed.id,
            OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.SHIPPED, OrderStatus.DELIVERED,
        )

        assert order.status is OrderStatus.DELIVERED
        assert order.delivered_at is not None
        assert order.is_terminal and not order.can_cancel

        with pytest.raises(IllegalTransitionError):
            svc.update_status(placed.id, OrderStatus.CONFIRMED)

    def test_illegal_jump_leaves_order_untouched(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        placed = place_order()

        with pytest.raises(IllegalTransitionError):
            svc.update_status(placed.id, OrderStatus.SHIPPED)

        assert svc.get_order(placed.id).status is OrderStatus.PENDING

    def test_notes_are_appended(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        placed = place_order()

        svc.update_status(placed.id, OrderStatus.CONFIRMED, notes="seller accepted")
        order = svc.update_status(placed.id, OrderStatus.PREPARING, notes="packing")

        lines = order.notes.split("\n")
        assert lines[0] == "Deliver after 9am"
        assert lines[1].endswith("] seller accepted")
        assert lines[2].endswith("] packing")

    def test_emits_user_facing_status(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        placed = place_order()

        advance(svc, placed.id, OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.SHIPPED)

        changes = notifier.of_type("ORDER_STATUS_CHANGED")
        assert [p["status"] for _, _, p in changes] == ["CONFIRMED", "PREPARING", "SHIPPED"]
        assert changes[-1][0] == BUYER
        assert changes[-1][2]["message"] == f"Your order {placed.order_number} is on its way"

    def test_cancel_through_status_update_restocks(self, db, place_order, catalog, notifier):
        svc = OrderService(db, notifier)
        placed = place_order()

        order = svc.update_status(placed.id, OrderStatus.CANCELLED, notes="fraud check failed")

        assert order.status is OrderStatus.CANCELLED
        assert order.cancel_reason == "fraud check failed"
        assert stock_of(db, catalog["lamp"]) == 5
        assert len(notifier.of_type("ORDER_CANCELLED")) == 1

    def test_missing_order(self, db, catalog, notifier):
        with pytest.raises(NotFoundError):
            OrderService(db, notifier).update_status(999, OrderStatus.CONFIRMED)


class TestCancel:
    def test_pending_order(self, db, place_order, catalog, notifier):
        svc = OrderService(db, notifier)
        placed = place_order(lines=(("lamp", 2), ("chair", 3)))
        assert stock_of(db, catalog["lamp"]) == 3
        assert stock_of(db, catalog["chair"]) == 1

        order = svc.cancel(placed.id, BUYER, "found it cheaper")

        assert order.status is OrderStatus.CANCELLED
        assert order.cancelled_at is not None
        assert order.cancel_reason == "found it cheaper"
        assert stock_of(db, catalog["lamp"]) == 5
        assert stock_of(db, catalog["chair"]) == 4

        cancelled = notifier.of_type("ORDER_CANCELLED")
        assert cancelled[0][0] == BUYER

        with pytest.raises(NotCancellableError):
            svc.cancel(placed.id, BUYER, "again")
        assert stock_of(db, catalog["lamp"]) == 5

    def test_confirmed_order(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        placed = place_order()
        svc.update_status(placed.id, OrderStatus.CONFIRMED)

        assert svc.cancel(placed.id, BUYER).status is OrderStatus.CANCELLED

    @pytest.mark.parametrize(
        "path",
        [
            (OrderStatus.CONFIRMED, OrderStatus.PREPARING),
            (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.SHIPPED),
            (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.SHIPPED, OrderStatus.DELIVERED),
        ],
    )
    def test_not_cancellable_after_preparing(self, db, place_order, catalog, notifier, path):
        svc = OrderService(db, notifier)
        placed = place_order()
        advance(svc, placed.id, *path)

        with pytest.raises(NotCancellableError):
            svc.cancel(placed.id, BUYER)

        assert stock_of(db, catalog["lamp"]) == 3

    def test_only_owner(self, db, place_order, catalog, notifier):
        placed = place_order()

        with pytest.raises(ForbiddenError):
            OrderService(db, notifier).cancel(placed.id, OTHER_BUYER)

        assert stock_of(db, catalog["lamp"]) == 3

    def test_deleted_product_is_skipped(self, db, place_order, catalog, notifier):
        placed = place_order(lines=(("lamp", 1), ("chair", 1)))
        db.delete(db.get(ProductModel, catalog["lamp"]))
        db.commit()

        order = OrderService(db, notifier).cancel(placed.id, BUYER)

        assert order.status is OrderStatus.CANCELLED
        assert stock_of(db, catalog["chair"]) == 4


class TestQueries:
    def test_list_for_buyer_newest_first(self, db, place_order, notifier):
        first = place_order()
        second = place_order()
        place_order(buyer_id=OTHER_BUYER, lines=(("lamp", 1),))

        page = OrderService(db, notifier).list_for_buyer(BUYER)

        assert page.total == 2
        assert [o.id for o in page.items] == [second.id, first.id]

    def test_pagination(self, db, place_order, notifier):
        ids = [place_order(lines=(("lamp", 1),)).id for _ in range(3)]

        page = OrderService(db, notifier).list_for_buyer(BUYER, page=1, size=2)

        assert page.total == 3
        assert [o.id for o in page.items] == [ids[0]]

    def test_list_for_seller(self, db, place_order, notifier):
        lamp_only = place_order(lines=(("lamp", 1),))
        both = place_order(buyer_id=OTHER_BUYER, lines=(("lamp", 1), ("chair", 1)))
        svc = OrderService(db, notifier)

        assert [o.id for o in svc.list_for_seller(SELLER_A).items] == [both.id, lamp_only.id]
        assert [o.id for o in svc.list_for_seller(SELLER_B).items] == [both.id]

    def test_list_all(self, db, place_order, notifier):
        place_order()
        place_order(buyer_id=OTHER_BUYER)

        assert OrderService(db, notifier).list_all().total == 2

    def test_summary(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        kept = place_order(lines=(("lamp", 2),))
        dropped = place_order(lines=(("chair", 1),))
        place_order(buyer_id=OTHER_BUYER, lines=(("lamp", 1),))
        svc.update_status(kept.id, OrderStatus.CONFIRMED)
        svc.cancel(dropped.id, BUYER)

        summary = svc.summary(BUYER)

        assert summary.total_orders == 2
        assert summary.confirmed == 1
        assert summary.cancelled == 1
        assert summary.pending == 0
        assert summary.total_spent == Decimal("20.00")

    def test_summary_without_orders(self, db, catalog, notifier):
        summary = OrderService(db, notifier).summary(BUYER)

        assert summary.total_orders == 0
        assert summary.total_spent == Decimal("0.00")

    def test_in_progress(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        pending = place_order()
        confirmed = place_order()
        shipped = place_order(lines=(("chair", 1),))
        svc.update_status(confirmed.id, OrderStatus.CONFIRMED)
        advance(svc, shipped.id, OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.SHIPPED)

        ids = {o.id for o in svc.list_in_progress()}

        assert ids == {confirmed.id, shipped.id}
        assert pending.id not in ids


class TestEstimatedDelivery:
    def test_set_and_due_soon(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        now = datetime.now(timezone.utc)
        soon = place_order()
        later = place_order()
        delivered = place_order(lines=(("chair", 1),))

        svc.set_estimated_delivery(soon.id, now + timedelta(hours=3))
        svc.set_estimated_delivery(later.id, now + timedelta(hours=48))
        svc.set_estimated_delivery(delivered.id, now + timedelta(hours=1))
        advance(
            svc, delivered.id,
            OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.SHIPPED, OrderStatus.DELIVERED,
        )

        due = svc.list_due_soon(now=now)

        assert [o.id for o in due] == [soon.id]
        assert due[0].estimated_delivery_at is not None

    def test_rejected_on_terminal_order(self, db, place_order, notifier):
        svc = OrderService(db, notifier)
        placed = place_order()
        svc.cancel(placed.id, BUYER)

        with pytest.raises(IllegalTransitionError) as exc:
            svc.set_estimated_delivery(placed.id, datetime.now(timezone.utc))

        assert exc.value.message == "Delivery estimate cannot be changed on a CANCELLED order"
