# orderflow/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from orderflow.domain.statuses import ItemStatus, PaymentMethod


class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    size: str = Field(..., min_length=1, description="Rozmiar produktu")
    quantity: int = Field(..., gt=0, description="Ilość produktu (musi być > 0)")


class QuantityIn(BaseModel):
    quantity: int = Field(..., gt=0)


class CouponIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


class CartItemOut(BaseModel):
    """Schema dla produktu w koszyku (response)."""

    id: int
    product_id: int
    size: Optional[str] = None
    quantity: int
    price: Decimal
    is_out_of_stock: bool = False
    max_stock: int = 0


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: int
    user_id: int
    items: List[CartItemOut]
    saved_items: List[CartItemOut] = []
    total_price: Decimal
    discount_amount: Decimal
    total_after_discount: Decimal
    coupon: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CouponVerifyOut(BaseModel):
    valid: bool
    code: str
    discount_amount: Decimal
    new_total: Decimal
    shipping_discount: bool
    message: str


class UserCreate(BaseModel):
    """Schema dla tworzenia użytkownika."""

    id: int = Field(..., gt=0, description="ID użytkownika (musi być > 0)")
    name: str = Field(..., min_length=1, max_length=100, description="Imię użytkownika")
    email: Optional[str] = Field(None, max_length=255)


class UserRead(BaseModel):
    """Schema dla użytkownika (response)."""

    id: int
    name: str
    email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderCreate(BaseModel):
    """Schema dla złożenia zamówienia z koszyka użytkownika."""

    user_id: int = Field(..., gt=0, description="ID użytkownika (musi być > 0)")
    shipping_address: dict
    payment_method: PaymentMethod
    payment_details: Optional[dict] = None


class ReasonIn(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class ItemStatusIn(BaseModel):
    status: ItemStatus
    reason: Optional[str] = Field(None, max_length=500)


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    quantity: int
    price: Decimal
    original_price: Decimal
    image: Optional[str] = None
    size: Optional[str] = None
    status: str
    rejection_reason: Optional[str] = None
    return_reason: Optional[str] = None


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    user_id: int
    items: List[OrderItemOut]
    shipping_address: dict
    payment_method: str
    payment_status: str
    order_status: str
    subtotal: Decimal
    coupon_code: Optional[str] = None
    discount_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal
    created_at: datetime
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ItemChangeOut(BaseModel):
    """Wynik zmiany statusu pozycji - zamowienie po zmianie + delta finansowa."""

    order: OrderOut
    item_id: int
    previous_status: str
    status: str
    changed: bool
    refund_amount: Decimal = Decimal("0")
    refunded_to_wallet: bool = False
    coupon_revoked: bool = False


class OrderCancelOut(BaseModel):
    order: OrderOut
    cancelled_items: List[int]
    refund_amount: Decimal
    refunded_to_wallet: bool


class WalletTransactionOut(BaseModel):
    type: str
    amount: Decimal
    description: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletOut(BaseModel):
    user_id: int
    balance: Decimal
    transactions: List[WalletTransactionOut] = []
