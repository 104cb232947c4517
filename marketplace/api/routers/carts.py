#marketplace/api/routers/carts.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.http_errors import to_http
from marketplace.data.database import get_db
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import (
    CartCountOut,
    CartOut,
    ItemIn,
    QuantityIn,
    StockCheckOut,
)
from marketplace.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["cart"])


def get_service(db: Session):
    return CartService(db)


@router.get("", response_model=CartOut)
def get_cart(user_id: int = Query(...), db: Session = Depends(get_db)):
    return get_service(db).get_cart(user_id)


@router.get("/count", response_model=CartCountOut)
def count_items(user_id: int = Query(...), db: Session = Depends(get_db)):
    return get_service(db).count_items(user_id)


@router.get("/verify-stock", response_model=StockCheckOut)
def verify_stock(user_id: int = Query(...), db: Session = Depends(get_db)):
    return get_service(db).verify_stock(user_id)


@router.post("/items", response_model=CartOut, status_code=201)
def add_item(
    payload: ItemIn,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.add_item(user_id, payload.product_id, payload.quantity)
    except MarketplaceError as e:
        raise to_http(e)


@router.put("/items/{item_id}", response_model=CartOut)
def update_quantity(
    item_id: int,
    payload: QuantityIn,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.update_quantity(user_id, item_id, payload.quantity)
    except MarketplaceError as e:
        raise to_http(e)


@router.delete("/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: int,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    svc = get_service(db)
    try:
        return svc.remove_item(user_id, item_id)
    except MarketplaceError as e:
        raise to_http(e)


@router.delete("", response_model=CartOut)
def clear_cart(user_id: int = Query(...), db: Session = Depends(get_db)):
    svc = get_service(db)
    try:
        return svc.clear(user_id)
    except MarketplaceError as e:
        raise to_http(e)
