from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from orderflow.domain.errors import (
    ConcurrencyConflict,
    IllegalTransition,
    ItemNotFound,
    OrderNotFound,
    ReasonRequired,
    RefundFailed,
)
from orderflow.repos.coupon_repo import CouponRepo
from orderflow.services.wallet_service import WalletService
from tests.conftest import ADDRESS, fill_cart, fund_wallet, make_coupon, product


def balance(db, user_id):
    db.expire_all()
    return WalletService(db).get_balance(user_id)


def place(carts, coupons, checkout, user, lines, code=None, method="Online"):
    fill_cart(carts, user, lines)
    if code:
        coupons.verify_coupon(user, code)
    return checkout.place_order(user, ADDRESS, method)


def deliver(orders, order_id, item_id):
    return orders.set_item_status(order_id, item_id, "Delivered")


@pytest.fixture
def welcome_order(db, carts, coupons, checkout, user):
    """1000 w koszyku, -10% na wszystko, darmowa wysylka -> 900."""
    make_coupon(db, "WELCOME10")
    return place(carts, coupons, checkout, user, [(1, "M", 1), (2, "M", 1)], code="WELCOME10")


@pytest.fixture
def duo_order(db, carts, coupons, checkout, user):
    """Dwie koszulki z kuponem 20% wymagajacym 2 pozycji -> 800."""
    make_coupon(db, "DUO20", discount_value=Decimal("20"), applies_to="category",
                target_ids=["jerseys"], min_quantity=2)
    return place(carts, coupons, checkout, user, [(1, "M", 1), (2, "M", 1)], code="DUO20")


# ============================================================================
# cancel_item
# ============================================================================


class TestCancelItem:

    def test_proportional_refund_end_to_end(self, db, orders, catalog, notifier, user, welcome_order):
        item = welcome_order["items"][0]

        result = orders.cancel_item(welcome_order["id"], item["id"], user)

        assert result["changed"] is True
        assert result["previous_status"] == "Pending"
        assert result["status"] == "Cancelled"
        assert result["refund_amount"] == Decimal("450")
        assert result["refunded_to_wallet"] is True
        assert result["coupon_revoked"] is False
        assert result["order"]["total_amount"] == Decimal("450")
        assert result["order"]["order_status"] == "Pending"
        assert balance(db, user) == Decimal("450")

        assert (1, "M", 1) in catalog.adjustments
        assert notifier.sent[-1]["status"] == "Cancelled"
        assert notifier.sent[-1]["order_ref"] == f"{welcome_order['id']:06d}"
        assert notifier.sent[-1]["email"] == "aiko@example.com"

    def test_wallet_credit_description(self, db, orders, user, welcome_order):
        orders.cancel_item(welcome_order["id"], welcome_order["items"][0]["id"], user)

        txn = WalletService(db).get_wallet(user)["transactions"][0]
        assert txn["type"] == "credit"
        assert txn["description"] == "Refund (Cancelled): Home Jersey (Qty: 1)"

    def test_no_op_is_idempotent(self, db, orders, notifier, user, welcome_order):
        item_id = welcome_order["items"][0]["id"]
        orders.cancel_item(welcome_order["id"], item_id, user)
        sent = len(notifier.sent)

        result = orders.cancel_item(welcome_order["id"], item_id, user)

        assert result["changed"] is False
        assert result["refund_amount"] == Decimal("0")
        assert result["order"]["total_amount"] == Decimal("450")
        assert balance(db, user) == Decimal("450")
        assert len(notifier.sent) == sent

    def test_coupon_revocation(self, db, orders, user, duo_order):
        assert duo_order["total_amount"] == Decimal("800")

        result = orders.cancel_item(duo_order["id"], duo_order["items"][0]["id"], user)

        assert result["coupon_revoked"] is True
        assert result["refund_amount"] == Decimal("300")
        assert result["order"]["total_amount"] == Decimal("500")
        txn = WalletService(db).get_wallet(user)["transactions"][0]
        assert "Coupon Reversal: 100.00" in txn["description"]

    def test_last_item_refunds_shipping_and_settles(self, db, carts, coupons, checkout, orders, user):
        order = place(carts, coupons, checkout, user, [(3, "M", 1)])
        assert order["total_amount"] == Decimal("249")

        result = orders.cancel_item(order["id"], order["items"][0]["id"], user)

        assert result["refund_amount"] == Decimal("249")
        assert result["order"]["total_amount"] == Decimal("0")
        assert result["order"]["shipping_cost"] == Decimal("0")
        assert result["order"]["order_status"] == "Completed"
        assert result["order"]["payment_status"] == "Refunded"
        assert result["order"]["cancelled_at"] is not None

    def test_unpaid_cod_cancel_posts_nothing(self, db, carts, coupons, checkout, orders, user):
        order = place(carts, coupons, checkout, user, [(1, "M", 1), (3, "M", 1)], method="COD")

        result = orders.cancel_item(order["id"], order["items"][1]["id"], user)

        assert result["refund_amount"] == Decimal("199")
        assert result["refunded_to_wallet"] is False
        assert result["order"]["total_amount"] == Decimal("500")
        assert balance(db, user) == Decimal("0")

    def test_user_cannot_cancel_delivered(self, orders, user, welcome_order):
        item_id = welcome_order["items"][0]["id"]
        deliver(orders, welcome_order["id"], item_id)

        with pytest.raises(IllegalTransition):
            orders.cancel_item(welcome_order["id"], item_id, user)

    def test_foreign_order_not_found(self, orders, welcome_order):
        with pytest.raises(OrderNotFound):
            orders.cancel_item(welcome_order["id"], welcome_order["items"][0]["id"], 2)

    def test_unknown_item(self, orders, user, welcome_order):
        with pytest.raises(ItemNotFound):
            orders.cancel_item(welcome_order["id"], 999, user)

    def test_locked_order(self, orders, locks, user, welcome_order):
        locks.held.add(f"order:{welcome_order['id']}:lock")
        with pytest.raises(ConcurrencyConflict):
            orders.cancel_item(welcome_order["id"], welcome_order["items"][0]["id"], user)

    def test_restock_failure_keeps_refund(self, db, orders, catalog, user, welcome_order):
        catalog.fail_adjust = True

        result = orders.cancel_item(welcome_order["id"], welcome_order["items"][0]["id"], user)

        assert result["status"] == "Cancelled"
        assert balance(db, user) == Decimal("450")


# ============================================================================
# returns
# ============================================================================


class TestReturns:

    def test_return_flow(self, db, orders, notifier, user, welcome_order):
        order_id = welcome_order["id"]
        first, second = (i["id"] for i in welcome_order["items"])
        deliver(orders, order_id, first)
        result = deliver(orders, order_id, second)
        assert result["order"]["order_status"] == "Completed"
        assert result["order"]["delivered_at"] is not None

        result = orders.return_item(order_id, first, user, "Too small")
        assert result["status"] == "Return Requested"
        assert result["refund_amount"] == Decimal("0")
        assert result["order"]["order_status"] == "Return Requested"
        assert result["order"]["items"][0]["return_reason"] == "Too small"

        result = orders.set_item_status(order_id, first, "Returned")
        assert result["refund_amount"] == Decimal("450")
        assert result["order"]["order_status"] == "Completed"
        assert result["order"]["payment_status"] == "Paid"
        assert balance(db, user) == Decimal("450")
        assert notifier.sent[-1]["status"] == "Returned"

    def test_return_requires_delivered(self, orders, user, welcome_order):
        with pytest.raises(IllegalTransition):
            orders.return_item(welcome_order["id"], welcome_order["items"][0]["id"], user)

    def test_reject_requires_reason(self, orders, user, welcome_order):
        order_id = welcome_order["id"]
        item_id = welcome_order["items"][0]["id"]
        deliver(orders, order_id, item_id)
        orders.return_item(order_id, item_id, user)

        with pytest.raises(ReasonRequired):
            orders.set_item_status(order_id, item_id, "Return Rejected", "   ")

        result = orders.set_item_status(order_id, item_id, "Return Rejected", "Worn")
        assert result["status"] == "Return Rejected"
        assert result["refund_amount"] == Decimal("0")
        assert result["order"]["items"][0]["rejection_reason"] == "Worn"

    def test_terminal_item_cannot_move(self, orders, user, welcome_order):
        item_id = welcome_order["items"][0]["id"]
        orders.cancel_item(welcome_order["id"], item_id, user)

        with pytest.raises(IllegalTransition):
            orders.set_item_status(welcome_order["id"], item_id, "Processing")

    def test_cod_return_credits_collected_cash(self, db, carts, coupons, checkout, orders, user):
        order = place(carts, coupons, checkout, user, [(1, "M", 1), (3, "M", 1)], method="COD")
        order_id = order["id"]
        jersey, shorts = (i["id"] for i in order["items"])

        deliver(orders, order_id, jersey)
        orders.return_item(order_id, jersey, user, "Wrong colour")
        result = orders.set_item_status(order_id, jersey, "Returned")

        assert result["refunded_to_wallet"] is True
        assert result["order"]["payment_status"] == "Pending"
        assert balance(db, user) == Decimal("500")

        result = deliver(orders, order_id, shorts)
        assert result["order"]["payment_status"] == "Paid"

    def test_request_return_whole_order(self, orders, user, welcome_order):
        order_id = welcome_order["id"]
        for item in welcome_order["items"]:
            deliver(orders, order_id, item["id"])

        order = orders.request_return(order_id, user, "Changed my mind")

        assert order["order_status"] == "Return Requested"
        assert {i["status"] for i in order["items"]} == {"Return Requested"}

    def test_request_return_without_delivered_items(self, orders, user, welcome_order):
        with pytest.raises(IllegalTransition):
            orders.request_return(welcome_order["id"], user)


# ============================================================================
# cancel_order
# ============================================================================


class TestCancelOrder:

    def test_refunds_remaining_total(self, db, orders, catalog, notifier, user, welcome_order):
        orders.cancel_item(welcome_order["id"], welcome_order["items"][0]["id"], user)

        result = orders.cancel_order(welcome_order["id"], user)

        assert result["refund_amount"] == Decimal("450")
        assert result["refunded_to_wallet"] is True
        assert result["cancelled_items"] == [welcome_order["items"][1]["id"]]
        assert result["order"]["order_status"] == "Completed"
        assert result["order"]["payment_status"] == "Refunded"
        assert result["order"]["total_amount"] == Decimal("0")
        assert balance(db, user) == Decimal("900")
        assert (2, "M", 1) in catalog.adjustments

    def test_releases_coupon_redemption(self, db, orders, user, welcome_order):
        assert CouponRepo(db).find_prior_use(user, "WELCOME10")

        orders.cancel_order(welcome_order["id"], user)

        assert not CouponRepo(db).find_prior_use(user, "WELCOME10")

    def test_not_allowed_after_delivery(self, orders, user, welcome_order):
        deliver(orders, welcome_order["id"], welcome_order["items"][0]["id"])

        with pytest.raises(IllegalTransition):
            orders.cancel_order(welcome_order["id"], user)

    def test_not_allowed_when_completed(self, orders, user, welcome_order):
        orders.cancel_order(welcome_order["id"], user)

        with pytest.raises(IllegalTransition):
            orders.cancel_order(welcome_order["id"], user)

    def test_wallet_order_refunded(self, db, carts, coupons, checkout, orders, user):
        fund_wallet(db, user, "1000")
        order = place(carts, coupons, checkout, user, [(1, "M", 1)], method="Wallet")
        assert balance(db, user) == Decimal("450")

        orders.cancel_order(order["id"], user)
        assert balance(db, user) == Decimal("1000")


class TestQueries:

    def test_list_and_get(self, orders, user, welcome_order):
        assert [o["id"] for o in orders.list_orders(user)] == [welcome_order["id"]]
        assert orders.list_orders(2) == []
        assert orders.get_order(welcome_order["id"], user)["total_amount"] == Decimal("900")
        assert len(orders.list_all_orders()) == 1


# ============================================================================
# cancelling every item
# ============================================================================


@pytest.fixture
def hundreds(catalog):
    catalog.products[5] = product(5, "100", name="Socks")
    catalog.products[6] = product(6, "100", name="Cap")


class TestCancelEveryItem:

    def test_refunds_sum_to_total_after_coupon_revocation(self, db, carts, coupons, checkout, orders, user, hundreds):
        make_coupon(db, "DUO10", min_quantity=2)
        order = place(carts, coupons, checkout, user, [(5, "M", 1), (6, "M", 1)], code="DUO10")
        assert order["total_amount"] == Decimal("230")
        first, second = (i["id"] for i in order["items"])

        r1 = orders.cancel_item(order["id"], first, user)
        r2 = orders.cancel_item(order["id"], second, user)

        assert r1["coupon_revoked"] is True
        assert r1["refund_amount"] == Decimal("80")
        assert r2["refund_amount"] == Decimal("150")
        assert r1["refund_amount"] + r2["refund_amount"] == Decimal("230")
        assert r2["order"]["total_amount"] == Decimal("0")
        assert r2["order"]["payment_status"] == "Refunded"
        assert balance(db, user) == Decimal("230")

    def test_rounding_remainder_refunded_with_last_item(self, db, carts, coupons, checkout, orders, user, hundreds):
        make_coupon(db, "MINUS101", discount_type="fixed", discount_value=Decimal("101"))
        order = place(
            carts, coupons, checkout, user, [(5, "M", 1), (5, "L", 1), (6, "M", 1)], code="MINUS101"
        )
        assert [i["price"] for i in order["items"]] == [Decimal("66.33")] * 3
        assert order["total_amount"] == Decimal("249")

        refunds = [orders.cancel_item(order["id"], i["id"], user) for i in order["items"]]

        assert [r["refund_amount"] for r in refunds] == [Decimal("66.33"), Decimal("66.33"), Decimal("116.34")]
        assert refunds[-1]["order"]["total_amount"] == Decimal("0")
        assert balance(db, user) == Decimal("249")


# ============================================================================
# refund posting failure
# ============================================================================


class TestRefundFailure:

    @pytest.mark.parametrize("failure", ["rejected", "db_error"])
    def test_failed_credit_aborts_transition(
        self, db, orders, catalog, notifier, monkeypatch, user, welcome_order, failure
    ):
        def post(*args, **kwargs):
            if failure == "db_error":
                raise SQLAlchemyError("wallet table locked")
            return False

        monkeypatch.setattr(orders.wallet, "post", post)
        item_id = welcome_order["items"][0]["id"]

        with pytest.raises(RefundFailed):
            orders.cancel_item(welcome_order["id"], item_id, user)

        db.expire_all()
        order = orders.get_order(welcome_order["id"], user)
        assert order["items"][0]["status"] == "Pending"
        assert order["total_amount"] == Decimal("900")
        assert order["payment_status"] == "Paid"
        assert all(delta < 0 for _, _, delta in catalog.adjustments)
        assert notifier.sent == []
        assert balance(db, user) == Decimal("0")
