from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from orderflow.data.models import CouponRedemptionModel
from orderflow.domain.errors import CartNotFound, CouponInvalid
from orderflow.repos.cart_repo import CartRepo
from tests.conftest import fill_cart, make_coupon


class TestVerifyCoupon:

    def test_percentage_on_whole_cart(self, db, carts, coupons, user):
        make_coupon(db, "WELCOME10")
        fill_cart(carts, user, [(1, "M", 1), (2, "M", 1)])

        result = coupons.verify_coupon(user, "welcome10")

        assert result["valid"] is True
        assert result["code"] == "WELCOME10"
        assert result["discount_amount"] == Decimal("100")
        assert result["new_total"] == Decimal("900")

        cart = CartRepo(db).get_cart_by_user(user)
        assert cart.coupon_code == "WELCOME10"
        assert cart.total_after_discount == Decimal("900")

    def test_category_scope_discounts_only_matching_lines(self, db, carts, coupons, user):
        make_coupon(db, "DUO20", discount_value=Decimal("20"), applies_to="category",
                    target_ids=["jerseys"], min_quantity=2)
        fill_cart(carts, user, [(1, "M", 1), (2, "M", 1), (3, "M", 1)])

        result = coupons.verify_coupon(user, "DUO20")
        assert result["discount_amount"] == Decimal("200")
        assert result["new_total"] == Decimal("999")

    def test_fixed_amount(self, db, carts, coupons, user):
        make_coupon(db, "TOKYO100", discount_type="fixed", discount_value=Decimal("100"),
                    applies_to="team", target_ids=["tokyo"])
        fill_cart(carts, user, [(1, "M", 1)])

        assert coupons.verify_coupon(user, "TOKYO100")["discount_amount"] == Decimal("100")

    def test_free_shipping(self, db, carts, coupons, user):
        make_coupon(db, "SHIPFREE", discount_type="free_shipping", discount_value=Decimal("0"))
        fill_cart(carts, user, [(3, "M", 1)])

        result = coupons.verify_coupon(user, "SHIPFREE")
        assert result["shipping_discount"] is True
        assert result["discount_amount"] == Decimal("0")

    def test_unknown_code(self, carts, coupons, user):
        fill_cart(carts, user, [(1, "M", 1)])
        with pytest.raises(CouponInvalid, match="Invalid Coupon Code"):
            coupons.verify_coupon(user, "NOPE")

    def test_no_cart(self, db, coupons, user):
        make_coupon(db, "WELCOME10")
        with pytest.raises(CartNotFound):
            coupons.verify_coupon(user, "WELCOME10")

    def test_expired(self, db, carts, coupons, user):
        make_coupon(db, "OLD", expiration_date=datetime.now(timezone.utc) - timedelta(days=1))
        fill_cart(carts, user, [(1, "M", 1)])
        with pytest.raises(CouponInvalid, match="expired"):
            coupons.verify_coupon(user, "OLD")

    def test_min_quantity_counts_units(self, db, carts, coupons, user):
        make_coupon(db, "DUO20", discount_value=Decimal("20"), min_quantity=2)
        fill_cart(carts, user, [(1, "M", 1)])
        with pytest.raises(CouponInvalid, match="Add 1 more"):
            coupons.verify_coupon(user, "DUO20")

    def test_min_order_value(self, db, carts, coupons, user):
        make_coupon(db, "BIG", min_order_value=Decimal("400"))
        fill_cart(carts, user, [(3, "M", 1)])
        with pytest.raises(CouponInvalid, match="Min order value"):
            coupons.verify_coupon(user, "BIG")

    def test_scope_mismatch(self, db, carts, coupons, user):
        make_coupon(db, "OSAKA", applies_to="team", target_ids=["osaka"])
        fill_cart(carts, user, [(1, "M", 1)])
        with pytest.raises(CouponInvalid, match="not valid for these items"):
            coupons.verify_coupon(user, "OSAKA")

    def test_already_used(self, db, carts, coupons, user):
        make_coupon(db, "WELCOME10")
        db.add(CouponRedemptionModel(user_id=user, coupon_code="WELCOME10", order_id=1))
        db.commit()
        fill_cart(carts, user, [(1, "M", 1)])

        with pytest.raises(CouponInvalid, match="already used"):
            coupons.verify_coupon(user, "WELCOME10")
