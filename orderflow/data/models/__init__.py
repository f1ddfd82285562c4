#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from orderflow.data.models.user import UserModel
from orderflow.data.models.coupon import CouponModel, CouponRedemptionModel
from orderflow.data.models.cart import CartModel
from orderflow.data.models.cart_item import CartItemModel
from orderflow.data.models.order import OrderModel
from orderflow.data.models.order_item import OrderItemModel
from orderflow.data.models.wallet import WalletModel, WalletTransactionModel

__all__ = [
    "UserModel",
    "CouponModel",
    "CouponRedemptionModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "WalletModel",
    "WalletTransactionModel",
]
