# orderflow/services/checkout_service.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from orderflow.data.models.cart import CartModel
from orderflow.data.models.cart_item import CartItemModel
from orderflow.data.models.order import OrderModel
from orderflow.data.models.order_item import OrderItemModel
from orderflow.domain.errors import (
    CouponInvalid,
    EmptyCart,
    InsufficientBalance,
    InsufficientStock,
    ItemUnavailable,
)
from orderflow.domain.pricing import (
    ZERO,
    PricedLine,
    allocate_discount,
    eligible_subtotal,
    ensure_coupon_usable,
    shipping_cost,
    to_units,
)
from orderflow.domain.snapshots import CouponRules, ProductInfo
from orderflow.domain.statuses import ItemStatus, OrderStatus, PaymentMethod, PaymentStatus
from orderflow.repos.cart_repo import CartRepo
from orderflow.repos.coupon_repo import CouponRepo
from orderflow.repos.order_repo import OrderRepo
from orderflow.services.lock_service import LockService, checkout_lock_key
from orderflow.services.order_service import serialize_order
from orderflow.services.product_client import ProductClient
from orderflow.services.wallet_service import DEBIT, WalletService
from orderflow.utils.settings import CHECKOUT_LOCK_TTL_SECONDS
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


def _is_coupon_reuse(error: IntegrityError) -> bool:
    # postgres podaje nazwe constraintu, sqlite tylko kolumny
    message = str(error.orig)
    return "u_user_coupon" in message or "coupon_redemptions.user_id" in message


class CheckoutService:
    """
    Zamiana koszyka w zamowienie.

    Zamowienie, debet portfela i rezerwacja kuponu ida w jednej transakcji.
    Po commicie zamowienie jest zlozone - zdjecie stanu magazynowego, licznik
    kuponu i czyszczenie koszyka tylko loguja bledy, nic nie cofaja.
    """

    def __init__(self, db: Session, product_client: ProductClient, lock_service: LockService):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.coupons = CouponRepo(db)
        self.wallet = WalletService(db)
        self.product_client = product_client
        self.lock_service = lock_service

    def place_order(
        self,
        user_id: int,
        shipping_address: dict,
        payment_method: PaymentMethod | str,
        payment_details: dict | None = None,
    ) -> Dict[str, Any]:
        payment_method = PaymentMethod(payment_method)

        # dwa rownolegle checkouty tego samego usera = podwojny debet / kupon
        with self.lock_service.hold(checkout_lock_key(user_id), ttl=CHECKOUT_LOCK_TTL_SECONDS):
            cart = self.carts.get_cart_by_user(user_id)
            items = self.carts.get_cart_items(cart.id) if cart else []
            if not items:
                raise EmptyCart()

            coupon = self._resolve_coupon(cart)
            products = self._fetch_products(items)
            self._check_availability(items, products)

            order = self._build_order(user_id, cart, items, products, coupon, shipping_address, payment_method, payment_details)
            self._persist(order, coupon, payment_method)

            logger.info(
                f"Order {order.id} placed by user {user_id}: total {order.total_amount}, "
                f"shipping {order.shipping_cost}, coupon {order.coupon_code}"
            )

            self._decrement_stock(order)
            if coupon:
                self._consume_coupon(coupon)
            self._clear_cart(cart)

        return serialize_order(order)

    # kroki
    def _resolve_coupon(self, cart: CartModel) -> CouponRules | None:
        if cart.coupon_id is None and not cart.coupon_code:
            return None

        coupon = self.coupons.resolve(cart.coupon_id, cart.coupon_code)
        if coupon is None:
            raise CouponInvalid("Applied coupon no longer exists, remove it and try again")
        ensure_coupon_usable(coupon, datetime.now(timezone.utc))
        return coupon

    def _fetch_products(self, items: List[CartItemModel]) -> Dict[int, ProductInfo]:
        products = {}
        for item in items:
            if item.product_id not in products:
                products[item.product_id] = self.product_client.fetch_product(item.product_id)
        return products

    @staticmethod
    def _check_availability(items: List[CartItemModel], products: Dict[int, ProductInfo]) -> None:
        wanted: Dict[int, int] = {}
        for item in items:
            product = products[item.product_id]
            if not product.is_active:
                raise ItemUnavailable(f"{product.name or 'Item'} is no longer available.")

            if item.size:
                size_stock = product.size_stock(item.size)
                if size_stock is None or size_stock < item.quantity:
                    raise InsufficientStock(f"Size {item.size} of {product.name} is out of stock.")

            wanted[item.product_id] = wanted.get(item.product_id, 0) + item.quantity

        for product_id, quantity in wanted.items():
            product = products[product_id]
            if product.stock_quantity < quantity:
                raise InsufficientStock(f"Insufficient stock for {product.name}.")

    def _build_order(
        self,
        user_id: int,
        cart: CartModel,
        items: List[CartItemModel],
        products: Dict[int, ProductInfo],
        coupon: CouponRules | None,
        shipping_address: dict,
        payment_method: PaymentMethod,
        payment_details: dict | None,
    ) -> OrderModel:
        subtotal = sum((i.price * i.quantity for i in items), ZERO)
        shipping = shipping_cost(subtotal, coupon)

        lines = [
            PricedLine(
                unit_price=i.price,
                quantity=i.quantity,
                eligible=coupon is not None and coupon.matches(products[i.product_id]),
            )
            for i in items
        ]

        discount = ZERO
        if coupon is not None and not coupon.grants_free_shipping:
            # laczny rabat policzony i zaokraglony przy weryfikacji kuponu
            discount = min(Decimal(cart.discount_amount or 0), eligible_subtotal(lines))

        effective = allocate_discount(lines, discount)
        items_total = sum((price * i.quantity for price, i in zip(effective, items)), ZERO)

        paid_upfront = payment_method in (PaymentMethod.ONLINE, PaymentMethod.WALLET)

        return OrderModel(
            user_id=user_id,
            shipping_address=shipping_address,
            payment_method=payment_method.value,
            payment_status=(PaymentStatus.PAID if paid_upfront else PaymentStatus.PENDING).value,
            payment_details=payment_details,
            order_status=OrderStatus.PENDING.value,
            subtotal=subtotal,
            coupon_code=coupon.code if coupon else None,
            coupon_min_quantity=coupon.min_quantity if coupon else 0,
            discount_amount=discount,
            shipping_cost=shipping,
            total_amount=to_units(items_total + shipping),
            items=[
                OrderItemModel(
                    product_id=i.product_id,
                    name=products[i.product_id].name,
                    quantity=i.quantity,
                    price=price,
                    original_price=i.price,
                    image=products[i.product_id].image,
                    size=i.size,
                    status=ItemStatus.PENDING.value,
                )
                for price, i in zip(effective, items)
            ],
        )

    def _persist(self, order: OrderModel, coupon: CouponRules | None, payment_method: PaymentMethod) -> None:
        try:
            self.orders.create_order(order)

            if coupon is not None and not coupon.grants_free_shipping:
                self.coupons.add_redemption(order.user_id, coupon.code, order.id)

            if payment_method == PaymentMethod.WALLET:
                if not self.wallet.post(order.user_id, order.total_amount, DEBIT, "Order Purchase"):
                    raise InsufficientBalance("Insufficient Wallet Balance")

            self.orders.commit()
        except IntegrityError as e:
            self.orders.rollback()
            if _is_coupon_reuse(e):
                raise CouponInvalid("You have already used this coupon.")
            raise
        except Exception:
            self.orders.rollback()
            raise

    def _decrement_stock(self, order: OrderModel) -> None:
        for item in order.items:
            try:
                self.product_client.adjust_stock(item.product_id, item.size, -item.quantity)
            except Exception:
                logger.exception(
                    f"Order {order.id}: stock decrement failed for product {item.product_id} "
                    f"(size {item.size}, qty {item.quantity})"
                )

    def _consume_coupon(self, coupon: CouponRules) -> None:
        try:
            self.coupons.increment_usage(coupon.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"Coupon {coupon.code}: usage increment failed")

    def _clear_cart(self, cart: CartModel) -> None:
        try:
            self.carts.delete_active_items(cart.id)
            self.carts.reset_cart(cart.id)
            self.carts.commit()
        except Exception:
            self.carts.rollback()
            logger.exception(f"Cart {cart.id}: clearing after checkout failed")
