# marketplace/services/cart_service.py
from decimal import Decimal

from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.domain.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientStockError,
    InvalidQuantityError,
    NotFoundError,
    ProductUnavailableError,
)
from marketplace.domain.schemas import CartOut, CartItemOut, CartCountOut, StockCheckOut
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def cart_total(items) -> Decimal:
    return sum((i.unit_price * i.quantity for i in items), Decimal("0.00"))


def cart_item_count(items) -> int:
    return sum(i.quantity for i in items)


class CartService:
    """
    Use case'y koszyka, CQRS:
    commands (add, update, remove, clear) modyfikuja stan,
    query (get, count, verify_stock) tylko odczyt.

    Koszyk to tylko prosba o produkty: nic tu nie rusza stocku,
    rezerwacja dzieje sie dopiero w checkout.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)

    # =====================================================
    # QUERY
    # =====================================================
    def get_cart(self, buyer_id: int) -> CartOut:
        cart = self.repo.get_cart_by_buyer(buyer_id)

        if not cart:
            #brak koszyka = pusty koszyk, odczyt niczego nie tworzy
            return CartOut(buyer_id=buyer_id, items=[], item_count=0, total=Decimal("0.00"), is_empty=True)

        items = self.repo.get_cart_items(cart.id)
        return self._to_out(cart, items)

    def count_items(self, buyer_id: int) -> CartCountOut:
        cart = self.repo.get_cart_by_buyer(buyer_id)
        if not cart:
            return CartCountOut(count=0)
        return CartCountOut(count=cart_item_count(self.repo.get_cart_items(cart.id)))

    def verify_stock(self, buyer_id: int) -> StockCheckOut:
        cart = self.repo.get_cart_by_buyer(buyer_id)
        items = self.repo.get_cart_items(cart.id) if cart else []

        ok = all(i.product is not None and i.product.stock >= i.quantity for i in items)
        message = (
            "All products in your cart are in stock"
            if ok
            else "Some products in your cart do not have enough stock"
        )
        return StockCheckOut(stock_available=ok, message=message)

    # =====================================================
    # COMMANDS
    # =====================================================
    def add_item(self, buyer_id: int, product_id: int, quantity: int) -> CartOut:
        if quantity < 1:
            raise InvalidQuantityError(quantity)

        product = self.products.get_product(product_id)
        if not product:
            raise NotFoundError("Product", product_id)

        if not product.is_sellable:
            raise ProductUnavailableError(product.id, product.name)

        #koszyk tworzony leniwie przy pierwszym dodaniu
        cart = self.repo.get_cart_by_buyer(buyer_id)
        if not cart:
            cart = self.repo.create_cart(CartModel(buyer_id=buyer_id, version=1))
            logger.info(f"Utworzono nowy koszyk {cart.id} dla kupujacego {buyer_id}")

        existing_item = self.repo.get_cart_item(cart.id, product_id)
        already = existing_item.quantity if existing_item else 0

        #stock liczony od lacznej ilosci w koszyku
        if product.stock < already + quantity:
            self.repo.rollback()
            raise InsufficientStockError(product.id, product.name, product.stock, already + quantity)

        price = product.effective_price

        if existing_item:
            logger.info(
                f"Produkt {product_id} juz jest w koszyku, zwiekszam ilosc "
                f"z {existing_item.quantity} do {existing_item.quantity + quantity}"
            )
            existing_item.quantity += quantity
            existing_item.unit_price = price
            self.repo.add_cart_item(existing_item)
        else:
            logger.info(f"Dodaje nowy produkt {product_id} do koszyka {cart.id}")
            self.repo.add_cart_item(
                CartItemModel(
                    cart_id=cart.id,
                    product_id=product_id,
                    quantity=quantity,
                    unit_price=price,
                )
            )

        self._bump_and_commit(cart)
        return self.get_cart(buyer_id)

    def update_quantity(self, buyer_id: int, item_id: int, quantity: int) -> CartOut:
        if quantity < 1:
            raise InvalidQuantityError(quantity)

        cart, item = self._owned_item(buyer_id, item_id)

        product = item.product
        if product.stock < quantity:
            self.repo.rollback()
            raise InsufficientStockError(product.id, product.name, product.stock, quantity)

        logger.info(f"Zmiana ilosci pozycji {item_id} z {item.quantity} na {quantity}")
        item.quantity = quantity
        self.repo.add_cart_item(item)

        self._bump_and_commit(cart)
        return self.get_cart(buyer_id)

    def remove_item(self, buyer_id: int, item_id: int) -> CartOut:
        cart, item = self._owned_item(buyer_id, item_id)

        logger.info(f"Usuwanie pozycji {item_id} (produkt {item.product_id}) z koszyka {cart.id}")
        self.repo.delete_item(item)

        self._bump_and_commit(cart)
        return self.get_cart(buyer_id)

    def clear(self, buyer_id: int) -> CartOut:
        cart = self.repo.get_cart_by_buyer(buyer_id)
        if not cart:
            return self.get_cart(buyer_id)

        removed = self.repo.clear_items(cart.id)
        self._bump_and_commit(cart)

        logger.info(f"Koszyk {cart.id} wyczyszczony, usunieto {removed} pozycji")
        return self.get_cart(buyer_id)

    # =====================================================
    # helpers
    # =====================================================
    def _owned_item(self, buyer_id: int, item_id: int) -> tuple[CartModel, CartItemModel]:
        item = self.repo.get_item(item_id)
        if not item:
            raise NotFoundError("Cart item", item_id)

        cart = self.repo.get_cart_by_buyer(buyer_id)
        if not cart or item.cart_id != cart.id:
            raise ForbiddenError("You are not allowed to modify this cart item")

        return cart, item

    def _bump_and_commit(self, cart: CartModel) -> None:
        #optimistic locking na wersji koszyka
        #np w bazie update set version 2 where id 1 and version 1
        version = cart.version
        rowcount = self.repo.bump_version(cart.id, version)

        if rowcount == 0:
            self.repo.rollback()
            raise ConflictError("Cart was modified by another request, please retry")

        self.repo.commit()
        logger.info(f"Koszyk {cart.id} zapisany, nowa wersja: {version + 1}")

    @staticmethod
    def _to_out(cart: CartModel, items: list[CartItemModel]) -> CartOut:
        #pozycja bez produktu (usuniety z katalogu) nie jest pokazywana ani liczona
        items = [i for i in items if i.product is not None]
        return CartOut(
            cart_id=cart.id,
            buyer_id=cart.buyer_id,
            items=[
                CartItemOut(
                    id=i.id,
                    product_id=i.product_id,
                    product_name=i.product.name,
                    product_image=i.product.image_url,
                    available_stock=i.product.stock,
                    quantity=i.quantity,
                    unit_price=i.unit_price,
                    subtotal=i.subtotal,
                )
                for i in items
            ],
            item_count=cart_item_count(items),
            total=cart_total(items),
            is_empty=not items,
            created_at=cart.created_at,
            updated_at=cart.updated_at,
        )
