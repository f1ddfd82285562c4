# orderflow/domain/errors.py
"""
Typowane bledy domeny zamowien.

Serwisy je rzucaja, routery tlumacza na HTTPException(status_code, detail).
"""


class OrderFlowError(Exception):
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class EmptyCart(OrderFlowError):
    default_message = "Cart is empty"


class CartNotFound(OrderFlowError):
    status_code = 404
    default_message = "Cart not found"


class ItemUnavailable(OrderFlowError):
    default_message = "Item unavailable"


class InsufficientStock(OrderFlowError):
    default_message = "Insufficient stock"


class InsufficientBalance(OrderFlowError):
    default_message = "Insufficient wallet balance"


class CouponInvalid(OrderFlowError):
    default_message = "Invalid coupon code"


class OrderNotFound(OrderFlowError):
    status_code = 404
    default_message = "Order not found"


class ItemNotFound(OrderFlowError):
    status_code = 404
    default_message = "Item not found"


class IllegalTransition(OrderFlowError):
    status_code = 409
    default_message = "Illegal status transition"


class ReasonRequired(OrderFlowError):
    default_message = "Reason required"


class ConcurrencyConflict(OrderFlowError):
    status_code = 409
    default_message = "Resource was modified by another operation, retry"


class RefundFailed(OrderFlowError):
    status_code = 502
    default_message = "Refund could not be recorded"


class InvalidQuantity(OrderFlowError):
    default_message = "Invalid quantity"


class ProductNotFound(ItemUnavailable):
    default_message = "Product no longer exists"


class UserNotFound(OrderFlowError):
    status_code = 404
    default_message = "User not found"


class EmailTaken(OrderFlowError):
    status_code = 409
    default_message = "E-mail already registered"
