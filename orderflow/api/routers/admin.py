# orderflow/api/routers/admin.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from orderflow.api.routers.orders import get_service
from orderflow.domain.errors import OrderFlowError
from orderflow.domain.schemas import ItemChangeOut, ItemStatusIn, OrderCancelOut, OrderOut
from orderflow.services.order_service import OrderService

router = APIRouter(prefix="/admin/orders", tags=["admin"])


@router.get("/", response_model=List[OrderOut])
def list_all_orders(svc: OrderService = Depends(get_service)):
    return svc.list_all_orders()


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, svc: OrderService = Depends(get_service)):
    try:
        return svc.get_order(order_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.patch("/{order_id}/items/{item_id}", response_model=ItemChangeOut)
def set_item_status(
    order_id: int,
    item_id: int,
    payload: ItemStatusIn,
    svc: OrderService = Depends(get_service),
):
    try:
        return svc.set_item_status(order_id, item_id, payload.status, payload.reason)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{order_id}/items/{item_id}/cancel", response_model=ItemChangeOut)
def cancel_item(order_id: int, item_id: int, svc: OrderService = Depends(get_service)):
    try:
        return svc.cancel_item(order_id, item_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/{order_id}/cancel", response_model=OrderCancelOut)
def cancel_order(order_id: int, svc: OrderService = Depends(get_service)):
    try:
        return svc.cancel_order(order_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
