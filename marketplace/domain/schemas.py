# marketplace/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List
from decimal import Decimal
from datetime import datetime

from marketplace.domain.order_status import OrderStatus


# =====================================================
# CART
# =====================================================
class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    quantity: int = Field(..., gt=0, description="Ilość produktu (musi być > 0)")


class QuantityIn(BaseModel):
    """Schema dla zmiany ilości pozycji w koszyku."""

    quantity: int = Field(..., gt=0, description="Nowa ilość (musi być > 0)")


class CartItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    product_image: str | None = None
    available_stock: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class CartOut(BaseModel):
    """Widok koszyka, total i item_count liczone z pozycji."""

    cart_id: int | None = None
    buyer_id: int
    items: List[CartItemOut]
    item_count: int
    total: Decimal
    is_empty: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CartCountOut(BaseModel):
    count: int


class StockCheckOut(BaseModel):
    stock_available: bool
    message: str


# =====================================================
# ORDERS
# =====================================================
class ShippingInfo(BaseModel):
    """Dane wysyłki i płatności podawane przy checkout."""

    shipping_address: str = Field(..., min_length=10, max_length=500)
    phone: str = Field(..., min_length=8, max_length=20)
    payment_method: str = Field(..., min_length=1, max_length=50, description="np. CASH, TRANSFER, CARD, WALLET")
    notes: str | None = Field(None, max_length=1000)


class OrderItemSnapshot(BaseModel):
    """
    Niezmienna kopia danych produktu z chwili checkoutu.
    Tworzona raz, nigdy nie odświeżana z aktualnego produktu.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    product_id: int
    product_name: str
    product_image: str | None = None
    seller_id: int
    seller_name: str
    quantity: int = Field(..., ge=1)
    unit_price: Decimal
    subtotal: Decimal


class OrderItemOut(OrderItemSnapshot):
    id: int


class StatusUpdateIn(BaseModel):
    status: OrderStatus
    notes: str | None = Field(None, max_length=1000)


class CancelIn(BaseModel):
    reason: str | None = Field(None, max_length=500)


class EstimatedDeliveryIn(BaseModel):
    estimated_delivery_at: datetime


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    order_number: str
    buyer_id: int
    items: List[OrderItemOut]
    item_count: int
    total: Decimal
    status: OrderStatus
    shipping_address: str
    phone: str
    payment_method: str
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    delivered_at: datetime | None = None
    estimated_delivery_at: datetime | None = None
    can_cancel: bool
    is_terminal: bool

    model_config = ConfigDict(from_attributes=True)


class OrderPage(BaseModel):
    items: List[OrderOut]
    page: int
    size: int
    total: int


class OrderSummaryOut(BaseModel):
    """Liczba zamówień kupującego w każdym statusie + suma wydatków."""

    pending: int = 0
    confirmed: int = 0
    preparing: int = 0
    shipped: int = 0
    delivered: int = 0
    cancelled: int = 0
    total_orders: int = 0
    total_spent: Decimal = Decimal("0.00")
