# marketplace/data/seed.py
from decimal import Decimal

from sqlalchemy.orm import Session

from marketplace.data.database import SessionLocal
from marketplace.data.models.product import ProductModel
from marketplace.data.models.user import UserModel

USERS = [
    {"id": 1, "name": "alice"},
    {"id": 2, "name": "bob"},
    {"id": 10, "name": "keyboard-shop"},
    {"id": 11, "name": "display-house"},
]

PRODUCTS = [
    {"id": 1, "seller_id": 10, "name": "Keyboard", "price": Decimal("199.99"), "stock": 25},
    {"id": 2, "seller_id": 10, "name": "Mouse", "price": Decimal("49.50"), "discount_price": Decimal("39.50"), "stock": 8},
    {"id": 3, "seller_id": 11, "name": "Monitor", "price": Decimal("899.00"), "stock": 3},
]


def seed(db: Session | None = None) -> bool:
    """Dane deweloperskie, tylko gdy baza jest pusta. Zwraca True jesli cos dodano."""
    own = db is None
    db = db or SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(UserModel).first():
            return False
        db.add_all(UserModel(**u) for u in USERS)
        db.flush()
        db.add_all(ProductModel(**p) for p in PRODUCTS)
        db.commit()
        return True
    finally:
        if own:
            db.close()


if __name__ == "__main__":
    seed()
