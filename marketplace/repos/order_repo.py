# marketplace/repos/order_repo.py
from datetime import date, datetime

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.data.models.order_sequence import OrderSequenceModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_for_update(self, order_id: int) -> OrderModel | None:
        #postgres: SELECT ... FOR UPDATE, dwie zmiany statusu naraz ida po kolei
        return self.db.execute(
            select(OrderModel).where(OrderModel.id == order_id).with_for_update()
        ).scalar_one_or_none()

    # ---------- listy ----------
    def _page(self, stmt, page: int, size: int) -> tuple[list[OrderModel], int]:
        total = self.db.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        rows = self.db.execute(
            stmt.offset(page * size).limit(size)
        ).scalars().all()
        return list(rows), total

    def list_for_buyer(self, buyer_id: int, page: int, size: int):
        stmt = (
            select(OrderModel)
            .where(OrderModel.buyer_id == buyer_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return self._page(stmt, page, size)

    def list_for_seller(self, seller_id: int, page: int, size: int):
        with_seller = select(OrderItemModel.order_id).where(OrderItemModel.seller_id == seller_id)
        stmt = (
            select(OrderModel)
            .where(OrderModel.id.in_(with_seller))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        return self._page(stmt, page, size)

    def list_all(self, page: int, size: int):
        stmt = select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        return self._page(stmt, page, size)

    def list_by_statuses(self, statuses: list[str]) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.status.in_(statuses))
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def list_due_between(self, statuses: list[str], start: datetime, end: datetime) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(
                    OrderModel.status.in_(statuses),
                    OrderModel.estimated_delivery_at.is_not(None),
                    OrderModel.estimated_delivery_at.between(start, end),
                )
                .order_by(OrderModel.estimated_delivery_at.asc())
            ).scalars().all()
        )

    # ---------- podsumowanie ----------
    def count_by_status(self, buyer_id: int) -> dict[str, int]:
        rows = self.db.execute(
            select(OrderModel.status, func.count())
            .where(OrderModel.buyer_id == buyer_id)
            .group_by(OrderModel.status)
        ).all()
        return {status: count for status, count in rows}

    def total_spent(self, buyer_id: int, excluded_statuses: list[str]):
        return self.db.execute(
            select(func.coalesce(func.sum(OrderModel.total), 0))
            .where(
                OrderModel.buyer_id == buyer_id,
                OrderModel.status.not_in(excluded_statuses),
            )
        ).scalar_one()

    # ---------- numeracja ----------
    def increment_sequence(self, day: date) -> int | None:
        """
        Atomowe increment-and-read licznika dnia (UPDATE ... RETURNING).
        None gdy licznika na ten dzien jeszcze nie ma.
        """
        return self.db.execute(
            update(OrderSequenceModel)
            .where(OrderSequenceModel.day == day)
            .values(last_value=OrderSequenceModel.last_value + 1)
            .returning(OrderSequenceModel.last_value)
            .execution_options(synchronize_session=False)
        ).scalar_one_or_none()

    def create_sequence(self, day: date, first_value: int = 1) -> int:
        #savepoint, zeby IntegrityError (ktos byl pierwszy) nie zabil calej transakcji
        with self.db.begin_nested():
            self.db.add(OrderSequenceModel(day=day, last_value=first_value))
            self.db.flush()
        return first_value
