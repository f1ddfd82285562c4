#orderflow/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from orderflow.api.deps import get_product_client
from orderflow.data.database import get_db
from orderflow.domain.errors import OrderFlowError
from orderflow.domain.schemas import (
    CartOut,
    CouponIn,
    CouponVerifyOut,
    ItemIn,
    QuantityIn,
)
from orderflow.services.cart_service import CartService
from orderflow.services.coupon_service import CouponService
from orderflow.services.product_client import ProductClient

router = APIRouter(prefix="/carts", tags=["carts"])


def get_service(
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
) -> CartService:
    return CartService(db=db, product_client=product_client)


def get_coupon_service(
    db: Session = Depends(get_db),
    product_client: ProductClient = Depends(get_product_client),
) -> CouponService:
    return CouponService(db=db, product_client=product_client)


@router.get("/me", response_model=CartOut)
def get_cart(user_id: int = Query(...), svc: CartService = Depends(get_service)):
    try:
        return svc.get_cart(user_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/me/items", response_model=CartOut)
def add_item(
    payload: ItemIn,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.add_product(
            user_id=user_id,
            product_id=payload.product_id,
            size=payload.size,
            quantity=payload.quantity,
        )
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.patch("/me/items/{item_id}", response_model=CartOut)
def update_item(
    item_id: int,
    payload: QuantityIn,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.update_quantity(user_id, item_id, payload.quantity)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/me/items/{item_id}", response_model=CartOut)
def remove_item(
    item_id: int,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.remove_product(user_id, item_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/me/items/{item_id}/save", response_model=CartOut)
def save_for_later(
    item_id: int,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.save_for_later(user_id, item_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/me/saved/{item_id}/move", response_model=CartOut)
def move_to_cart(
    item_id: int,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.move_to_cart(user_id, item_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/me/saved/{item_id}", response_model=CartOut)
def remove_saved_item(
    item_id: int,
    user_id: int = Query(...),
    svc: CartService = Depends(get_service),
):
    try:
        return svc.remove_saved_item(user_id, item_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.post("/me/coupon", response_model=CouponVerifyOut)
def apply_coupon(
    payload: CouponIn,
    user_id: int = Query(...),
    svc: CouponService = Depends(get_coupon_service),
):
    try:
        return svc.verify_coupon(user_id, payload.code)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


@router.delete("/me/coupon", response_model=CartOut)
def remove_coupon(user_id: int = Query(...), svc: CartService = Depends(get_service)):
    try:
        return svc.remove_coupon(user_id)
    except OrderFlowError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
