# marketplace/services/stock_ledger.py
from typing import Iterable

from sqlalchemy.orm import Session

from marketplace.domain.errors import InsufficientStockError, NotFoundError
from marketplace.repos.product_repo import ProductRepo
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class StockLedger:
    """
    Jedyna droga zapisu do products.stock.
    - reserve: warunkowy UPDATE (stock >= n), sprawdzany rowcount
    - release: dodanie ilosci z powrotem (anulowanie)
    Nie commituje, transakcja nalezy do wolajacego serwisu.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def available(self, product_id: int) -> int:
        stock = self.repo.get_stock(product_id)
        if stock is None:
            raise NotFoundError("Product", product_id)
        return stock

    def reserve(self, product_id: int, quantity: int, name: str | None = None) -> None:
        if quantity < 1:
            raise ValueError("Reserved quantity must be positive")

        rowcount = self.repo.decrement_stock(product_id, quantity)
        if rowcount == 1:
            logger.info(f"Reserved {quantity} of product {product_id}")
            return

        #0 rows: produktu nie ma albo stock < quantity
        stock = self.repo.get_stock(product_id)
        if stock is None:
            raise NotFoundError("Product", product_id)
        raise InsufficientStockError(product_id, name or f"product {product_id}", stock, quantity)

    def reserve_all(self, lines: Iterable[tuple[int, int, str]]) -> None:
        """
        lines: (product_id, quantity, name). Kolejnosc po product_id,
        zeby dwa rownolegle checkouty blokowaly wiersze w tej samej kolejnosci.
        Przy bledzie wolajacy robi rollback calej transakcji.
        """
        for product_id, quantity, name in sorted(lines, key=lambda line: line[0]):
            self.reserve(product_id, quantity, name)

    def release(self, product_id: int, quantity: int) -> bool:
        if quantity < 1:
            raise ValueError("Released quantity must be positive")

        rowcount = self.repo.increment_stock(product_id, quantity)
        if rowcount == 0:
            logger.warning(
                f"Product {product_id} no longer exists, skipping release of {quantity} units"
            )
            return False

        logger.info(f"Released {quantity} of product {product_id}")
        return True
