"""Pytest fixtures for marketplace tests."""

import os

# settings are read at import time, never point tests at the real database
os.environ["DATABASE_URL"] = "sqlite://"

from decimal import Decimal

import pytest
from sqlalchemy import select

from marketplace.data.database import init_db, make_engine, make_session_factory
from marketplace.data.models.product import ProductModel
from marketplace.data.models.user import UserModel
from marketplace.domain.schemas import ShippingInfo

BUYER = 1
OTHER_BUYER = 2
SELLER_A = 10
SELLER_B = 11


class RecordingNotifier:
    """Notification sink that keeps every event in memory."""

    def __init__(self):
        self.events = []

    def emit(self, recipient_id, event_type, payload):
        self.events.append((recipient_id, event_type.value, payload))

    def of_type(self, event_type):
        return [e for e in self.events if e[1] == event_type]


class FailingNotifier:
    def emit(self, recipient_id, event_type, payload):
        raise ConnectionError("broker down")


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'marketplace.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def catalog(db):
    """
    Two buyers, two sellers and four products:
    1 Lamp   10.00 stock 5 (seller 10)
    2 Vase   25.50 stock 0 (seller 11)
    3 Chair  80.00 -> 60.00 discount, stock 4 (seller 11)
    4 Draft  15.00 stock 9, not approved (seller 10)
    """
    db.add_all(
        [
            UserModel(id=BUYER, name="alice"),
            UserModel(id=OTHER_BUYER, name="bob"),
            UserModel(id=SELLER_A, name="lamp-store"),
            UserModel(id=SELLER_B, name="home-goods"),
        ]
    )
    db.flush()
    db.add_all(
        [
            ProductModel(id=1, seller_id=SELLER_A, name="Lamp", image_url="img/lamp.png",
                         price=Decimal("10.00"), stock=5),
            ProductModel(id=2, seller_id=SELLER_B, name="Vase", price=Decimal("25.50"), stock=0),
            ProductModel(id=3, seller_id=SELLER_B, name="Chair", price=Decimal("80.00"),
                         discount_price=Decimal("60.00"), stock=4),
            ProductModel(id=4, seller_id=SELLER_A, name="Draft", price=Decimal("15.00"), stock=9,
                         status="PENDING_REVIEW"),
        ]
    )
    db.commit()
    return {"lamp": 1, "vase": 2, "chair": 3, "draft": 4}


@pytest.fixture
def shipping():
    return ShippingInfo(
        shipping_address="5th Avenue 10-50, Zone 1, Springfield",
        phone="+502 5555-1234",
        payment_method="CASH",
        notes="Deliver after 9am",
    )


def stock_of(db, product_id):
    return db.execute(select(ProductModel.stock).where(ProductModel.id == product_id)).scalar_one()


def set_stock(db, product_id, stock):
    db.get(ProductModel, product_id).stock = stock
    db.commit()
