# marketplace/services/checkout_service.py
from collections import OrderedDict
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.domain.errors import (
    ConflictError,
    EmptyCartError,
    InsufficientStockError,
    MarketplaceError,
    NotFoundError,
)
from marketplace.domain.order_status import OrderStatus
from marketplace.domain.schemas import OrderItemSnapshot, OrderOut, ShippingInfo
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.services.notification_service import (
    EventType,
    NotificationService,
    NotificationSink,
    emit_safely,
)
from marketplace.services.order_number import OrderNumberGenerator
from marketplace.services.stock_ledger import StockLedger
from marketplace.utils.logging import get_logger
from marketplace.utils.settings import LOW_STOCK_THRESHOLD

logger = get_logger(__name__)

CENT = Decimal("0.01")


def snapshot_item(cart_item, product) -> OrderItemSnapshot:
    """Zamraza dane produktu w chwili zakupu (nazwa, zdjecie, sprzedawca, cena z koszyka)."""
    unit_price = Decimal(cart_item.unit_price).quantize(CENT)
    return OrderItemSnapshot(
        product_id=product.id,
        product_name=product.name,
        product_image=product.image_url,
        seller_id=product.seller_id,
        seller_name=product.seller.name,
        quantity=cart_item.quantity,
        unit_price=unit_price,
        subtotal=(unit_price * cart_item.quantity).quantize(CENT),
    )


class CheckoutService:
    """
    Zamiana koszyka na zamowienie, jedna transakcja:

    1. koszyk kupujacego, pusty -> EmptyCartError
    2. ponowna walidacja stocku kazdej pozycji (koszyk mogl sie zestarzec)
    3. numer zamowienia
    4. snapshot pozycji
    5. total = suma subtotali
    6. atomowe zdjecie stocku (warunkowy UPDATE per produkt)
    7. czyszczenie koszyka
    commit, dopiero potem:
    8. powiadomienia (kupujacy, sprzedawcy, niski stan)

    Blad w 1-7 -> rollback, nie zostaje ani zamowienie, ani zdjety stock.
    Przegrany wyscig o stock idzie do klienta jako InsufficientStockError, bez retry po stronie serwera.
    """

    def __init__(
        self,
        db: Session,
        notifier: NotificationSink | None = None,
        low_stock_threshold: int = LOW_STOCK_THRESHOLD,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.ledger = StockLedger(db)
        self.numbers = OrderNumberGenerator(db)
        self.notifier = notifier or NotificationService()
        self.low_stock_threshold = low_stock_threshold

    def checkout(self, buyer_id: int, shipping: ShippingInfo, today: date | None = None) -> OrderOut:
        try:
            order, remaining = self._place_order(buyer_id, shipping, today)
            self.db.commit()
        except MarketplaceError as e:
            self.db.rollback()
            logger.warning(f"Checkout for buyer {buyer_id} rolled back: {e}")
            raise
        except Exception:
            self.db.rollback()
            logger.exception(f"Checkout for buyer {buyer_id} failed")
            raise

        logger.info(
            f"Order {order.order_number} created for buyer {buyer_id}, "
            f"{len(order.items)} items, total {order.total}"
        )

        result = OrderOut.model_validate(order)
        self._notify(result, remaining)
        return result

    def _place_order(self, buyer_id: int, shipping: ShippingInfo, today: date | None):
        # 1. koszyk
        cart = self.carts.get_cart_by_buyer(buyer_id)
        items = self.carts.get_cart_items(cart.id) if cart else []
        if not items:
            raise EmptyCartError()

        # 2. walidacja na swiezych danych
        products = self.products.get_products(i.product_id for i in items)
        for item in items:
            product = products.get(item.product_id)
            if product is None:
                raise NotFoundError("Product", item.product_id)
            if product.stock < item.quantity:
                raise InsufficientStockError(product.id, product.name, product.stock, item.quantity)

        # 3. numer
        order_number = self.numbers.generate(today)

        # 4. snapshoty
        snapshots = [snapshot_item(item, products[item.product_id]) for item in items]

        # 5. total
        total = sum((s.subtotal for s in snapshots), Decimal("0.00"))

        now = datetime.now(timezone.utc)
        order = OrderModel(
            buyer_id=buyer_id,
            order_number=order_number,
            status=OrderStatus.PENDING.value,
            total=total,
            shipping_address=shipping.shipping_address,
            phone=shipping.phone,
            payment_method=shipping.payment_method,
            notes=shipping.notes,
            created_at=now,
            updated_at=now,
        )
        order.items = [
            OrderItemModel(position=position, **s.model_dump())
            for position, s in enumerate(snapshots)
        ]
        self.orders.create_order(order)

        # 6. stock, warunkowy UPDATE chroni tez przed wyscigiem po kroku 2
        self.ledger.reserve_all((s.product_id, s.quantity, s.product_name) for s in snapshots)

        # 7. czyszczenie koszyka (nie usuwamy samego koszyka)
        version = cart.version
        self.carts.clear_items(cart.id)
        if self.carts.bump_version(cart.id, version) == 0:
            #koszyk zmieniony w trakcie, nie wiemy co kupujacy chcial
            raise ConflictError("Cart was modified during checkout, please review it and retry")

        remaining = {
            product_id: self.ledger.available(product_id)
            for product_id in sorted({s.product_id for s in snapshots})
        }
        return order, remaining

    def _notify(self, order: OrderOut, remaining: dict[int, int]) -> None:
        emit_safely(
            self.notifier,
            order.buyer_id,
            EventType.ORDER_CREATED,
            {"order_id": order.id, "order_number": order.order_number, "total": str(order.total)},
        )

        #jedno powiadomienie na sprzedawce, z jego pozycjami
        by_seller: OrderedDict[int, list] = OrderedDict()
        for item in order.items:
            by_seller.setdefault(item.seller_id, []).append(item)

        for seller_id, seller_items in by_seller.items():
            emit_safely(
                self.notifier,
                seller_id,
                EventType.NEW_SALE,
                {
                    "order_number": order.order_number,
                    "items": [
                        {"product_id": i.product_id, "product_name": i.product_name, "quantity": i.quantity}
                        for i in seller_items
                    ],
                },
            )

        #koszyk ma max jedna pozycje na produkt
        for item in order.items:
            stock = remaining.get(item.product_id, 0)
            if 0 < stock < self.low_stock_threshold:
                emit_safely(
                    self.notifier,
                    item.seller_id,
                    EventType.LOW_STOCK,
                    {"product_id": item.product_id, "product_name": item.product_name, "stock": stock},
                )
