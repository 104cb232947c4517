# marketplace/api/routers/orders.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from marketplace.api.http_errors import to_http
from marketplace.data.database import get_db
from marketplace.domain.errors import MarketplaceError
from marketplace.domain.schemas import (
    CancelIn,
    EstimatedDeliveryIn,
    OrderOut,
    OrderPage,
    OrderSummaryOut,
    ShippingInfo,
    StatusUpdateIn,
)
from marketplace.services.checkout_service import CheckoutService
from marketplace.services.order_service import OrderService
from marketplace.utils.settings import DEFAULT_PAGE_SIZE

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(db: Session):
    return OrderService(db)


@router.post("/checkout", response_model=OrderOut, status_code=201)
def checkout(
    payload: ShippingInfo,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    """
    Tworzy zamówienie z koszyka kupującego.
    Powiadomienia idą asynchronicznie po commit.
    """
    try:
        return CheckoutService(db).checkout(user_id, payload)
    except MarketplaceError as e:
        raise to_http(e)


@router.get("", response_model=OrderPage)
def list_my_orders(
    user_id: int = Query(...),
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
):
    return get_service(db).list_for_buyer(user_id, page, size)


@router.get("/summary", response_model=OrderSummaryOut)
def summary(user_id: int = Query(...), db: Session = Depends(get_db)):
    return get_service(db).summary(user_id)


@router.get("/seller", response_model=OrderPage)
def list_seller_orders(
    user_id: int = Query(...),
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
):
    return get_service(db).list_for_seller(user_id, page, size)


@router.get("/all", response_model=OrderPage)
def list_all_orders(
    page: int = Query(0, ge=0),
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    db: Session = Depends(get_db),
):
    return get_service(db).list_all(page, size)


@router.get("/in-progress", response_model=list[OrderOut])
def list_in_progress(db: Session = Depends(get_db)):
    return get_service(db).list_in_progress()


@router.get("/due-soon", response_model=list[OrderOut])
def list_due_soon(db: Session = Depends(get_db)):
    return get_service(db).list_due_soon()


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    """
    Pobiera szczegóły zamówienia kupującego.
    """
    try:
        return get_service(db).get_order(order_id, buyer_id=user_id)
    except MarketplaceError as e:
        raise to_http(e)


@router.put("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: int,
    payload: StatusUpdateIn,
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).update_status(order_id, payload.status, payload.notes)
    except MarketplaceError as e:
        raise to_http(e)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: int,
    payload: CancelIn,
    user_id: int = Query(...),
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).cancel(order_id, user_id, payload.reason)
    except MarketplaceError as e:
        raise to_http(e)


@router.put("/{order_id}/estimated-delivery", response_model=OrderOut)
def set_estimated_delivery(
    order_id: int,
    payload: EstimatedDeliveryIn,
    db: Session = Depends(get_db),
):
    try:
        return get_service(db).set_estimated_delivery(order_id, payload.estimated_delivery_at)
    except MarketplaceError as e:
        raise to_http(e)
