# marketplace/data/models/product.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, CheckConstraint
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class ProductModel(Base):
    """
    Rekord katalogu (zewnetrzny wzgledem koszyka i zamowien).
    Rdzen czyta z niego dane do snapshotu, a pisze tylko do `stock`
    przez StockLedger.
    """
    __tablename__ = "products"
    __table_args__ = (CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),)

    id = Column(Integer, primary_key=True)
    seller_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    image_url = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    discount_price = Column(Numeric(10, 2), nullable=True)
    status = Column(String(20), nullable=False, default="APPROVED")  # PENDING_REVIEW, APPROVED, REJECTED
    stock = Column(Integer, nullable=False, default=0)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    seller = relationship("UserModel", lazy="joined")

    @property
    def effective_price(self):
        return self.discount_price if self.discount_price is not None else self.price

    @property
    def is_sellable(self) -> bool:
        return self.status == "APPROVED"
