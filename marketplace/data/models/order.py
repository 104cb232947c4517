from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Text
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from marketplace.data.database import Base
from marketplace.domain.order_status import OrderStatus

class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    order_number = Column(String(50), nullable=False, unique=True)

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    total = Column(Numeric(10, 2), nullable=False)

    shipping_address = Column(String(500), nullable=False)
    phone = Column(String(20), nullable=False)
    payment_method = Column(String(50), nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(String(500), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    estimated_delivery_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItemModel",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.position",
        lazy="selectin",
    )

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    @property
    def can_cancel(self) -> bool:
        return OrderStatus(self.status).can_cancel()

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status).is_terminal()
