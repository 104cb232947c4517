# marketplace/data/models/order_item.py
from sqlalchemy import Column, Integer, ForeignKey, String, Numeric

from marketplace.data.database import Base


class OrderItemModel(Base):
    """
    Zamrozona kopia produktu z chwili zakupu. Nigdy nie synchronizowana
    z products, dlatego product_id nie jest kluczem obcym (produkt moze zniknac).
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    product_id = Column(Integer, nullable=False)
    product_name = Column(String(200), nullable=False)
    product_image = Column(String(500), nullable=True)
    seller_id = Column(Integer, nullable=False, index=True)
    seller_name = Column(String(100), nullable=False)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
