# orderflow/services/coupon_service.py
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy.orm import Session

from orderflow.domain.errors import CartNotFound, ConcurrencyConflict, CouponInvalid
from orderflow.domain.pricing import ZERO, coupon_discount, ensure_coupon_usable
from orderflow.repos.cart_repo import CartRepo
from orderflow.repos.coupon_repo import CouponRepo
from orderflow.services.product_client import ProductClient
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


class CouponService:
    """
    Weryfikacja i przypiecie kuponu do koszyka.

    Jedno uzycie na uzytkownika sprawdzamy tutaj (przy weryfikacji), a nie
    przy checkoucie - checkout polega na unikalnym indeksie coupon_redemptions.
    """

    def __init__(self, db: Session, product_client: ProductClient):
        self.carts = CartRepo(db)
        self.coupons = CouponRepo(db)
        self.product_client = product_client

    def verify_coupon(self, user_id: int, code: str, now: datetime | None = None) -> Dict[str, Any]:
        coupon = self.coupons.get_by_code(code)
        if not coupon:
            raise CouponInvalid("Invalid Coupon Code")

        rules = CouponRepo.to_rules(coupon)
        ensure_coupon_usable(rules, now or datetime.now(timezone.utc))

        cart = self.carts.get_cart_by_user(user_id)
        if not cart:
            raise CartNotFound()

        if not rules.grants_free_shipping and self.coupons.find_prior_use(user_id, rules.code):
            raise CouponInvalid("You have already used this coupon.")

        current_total = ZERO
        total_units = 0
        eligible_amount = ZERO
        scope_hit = False

        for item in self.carts.get_cart_items(cart.id):
            product = self.product_client.fetch_product(item.product_id)
            if not product.is_available:
                continue

            line_total = item.price * item.quantity
            current_total += line_total
            total_units += item.quantity

            if rules.matches(product):
                eligible_amount += line_total
                scope_hit = True

        if rules.min_quantity > 0 and total_units < rules.min_quantity:
            raise CouponInvalid(f"Add {rules.min_quantity - total_units} more valid items.")

        if rules.min_order_value > 0 and current_total < rules.min_order_value:
            raise CouponInvalid(f"Min order value is {rules.min_order_value}")

        if not scope_hit:
            raise CouponInvalid("Coupon not valid for these items.")

        discount = coupon_discount(rules, eligible_amount)

        # Optimistic locking
        rowcount = self.carts.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={
                **CartRepo.totals_payload(current_total, discount, rules.id, rules.code),
                "version": cart.version + 1,
            },
        )
        if rowcount == 0:
            self.carts.rollback()
            raise ConcurrencyConflict("Cart was modified by another operation")

        self.carts.commit()
        logger.info(f"Kupon {rules.code} przypiety do koszyka {cart.id}, rabat {discount}")

        return {
            "valid": True,
            "code": rules.code,
            "discount_amount": discount,
            "new_total": current_total - discount,
            "shipping_discount": rules.grants_free_shipping,
            "message": "Coupon Applied",
        }
