# orderflow/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from orderflow.api.deps import get_lock_service, get_notification_service, get_product_client
from orderflow.data.database import get_db
from orderflow.domain.errors import OrderFlowError
from orderflow.domain.schemas import ItemChangeOut, OrderCancelOut, OrderCreate, OrderOut, ReasonIn
from orderflow.services.checkout_service import CheckoutService
from orderflow.services.lock_service import LockService
from orderflow.services.notification_service import NotificationService
from orderflow.services.order_service import OrderService
from orderflow.services.product_client import ProductClient

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
    lock_service: LockService = Depends(get_lock_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> OrderService:
    return OrderService(db, product_client, lock_service, notification_service)


def get_checkout_service(
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
    lock_service: LockService = Depends(get_lock_service),
) -> CheckoutService:
    return CheckoutService(db, product_client, lock_service)


@router.post("/", response_model=OrderOut, status_code=201)
def place_order(payload: OrderCreate, svc: CheckoutService = Depends(get_checkout_service)):
    """
    Składa zamówienie z koszyka użytkownika.
    """
    try:
        return svc.place_order(
            user_id=payload.user_id,
            shipping_address=payload.shipping_address,
            payment_method=payload.payment_method,
            payment_details=payload.payment_details,
        )
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.get("/", response_model=List[OrderOut])
def list_orders(user_id: int = Query(...), svc: OrderService = Depends(get_service)):
    return svc.list_orders(user_id)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    """
    Pobiera szczegóły zamówienia.
    """
    try:
        return svc.get_order(order_id, user_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{order_id}/cancel", response_model=OrderCancelOut)
def cancel_order(
    order_id: int,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.cancel_order(order_id, user_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{order_id}/return", response_model=OrderOut)
def request_return(
    order_id: int,
    payload: ReasonIn,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.request_return(order_id, user_id, payload.reason)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{order_id}/items/{item_id}/cancel", response_model=ItemChangeOut)
def cancel_item(
    order_id: int,
    item_id: int,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.cancel_item(order_id, item_id, user_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{order_id}/items/{item_id}/return", response_model=ItemChangeOut)
def return_item(
    order_id: int,
    item_id: int,
    payload: ReasonIn,
    user_id: int = Query(...),
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.return_item(order_id, item_id, user_id, payload.reason)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
