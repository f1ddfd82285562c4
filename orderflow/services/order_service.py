# orderflow/services/order_service.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from orderflow.data.models.order import OrderModel
from orderflow.data.models.order_item import OrderItemModel
from orderflow.domain.errors import (
    ConcurrencyConflict,
    IllegalTransition,
    ItemNotFound,
    OrderNotFound,
    ReasonRequired,
    RefundFailed,
)
from orderflow.domain.pricing import ZERO
from orderflow.domain.refunds import RefundQuote, describe_refund, quote_refund, should_credit_wallet
from orderflow.domain.snapshots import OrderLine, OrderSnapshot
from orderflow.domain.status_reducer import settle_order
from orderflow.domain.statuses import (
    Actor,
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    OPEN_STATES,
    REFUNDABLE_STATES,
    validate_transition,
)
from orderflow.repos.coupon_repo import CouponRepo
from orderflow.repos.order_repo import OrderRepo
from orderflow.repos.user_repo import UserRepo
from orderflow.services.lock_service import LockService, order_lock_key
from orderflow.services.notification_service import NotificationService
from orderflow.services.product_client import ProductClient
from orderflow.services.wallet_service import CREDIT, WalletService
from orderflow.utils.settings import ORDER_LOCK_TTL_SECONDS
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


def short_ref(order_id: int) -> str:
    return f"{order_id:06d}"


def serialize_order(order: OrderModel) -> Dict[str, Any]:
    return {
        "id": order.id,
        "user_id": order.user_id,
        "items": [
            {
                "id": i.id,
                "product_id": i.product_id,
                "name": i.name,
                "quantity": i.quantity,
                "price": i.price,
                "original_price": i.original_price,
                "image": i.image,
                "size": i.size,
                "status": i.status,
                "rejection_reason": i.rejection_reason,
                "return_reason": i.return_reason,
            }
            for i in order.items
        ],
        "shipping_address": order.shipping_address,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "order_status": order.order_status,
        "subtotal": order.subtotal,
        "coupon_code": order.coupon_code,
        "discount_amount": order.discount_amount,
        "shipping_cost": order.shipping_cost,
        "total_amount": order.total_amount,
        "created_at": order.created_at,
        "delivered_at": order.delivered_at,
        "cancelled_at": order.cancelled_at,
    }


def snapshot(order: OrderModel) -> OrderSnapshot:
    return OrderSnapshot(
        total_amount=order.total_amount,
        shipping_cost=order.shipping_cost,
        items=tuple(
            OrderLine(
                item_id=i.id,
                name=i.name,
                quantity=i.quantity,
                price=i.price,
                original_price=i.original_price,
                status=ItemStatus(i.status),
            )
            for i in order.items
        ),
        coupon_code=order.coupon_code,
        coupon_min_quantity=order.coupon_min_quantity or 0,
    )


class OrderService:
    """
    Cykl zycia pozycji zamowienia.

    Kazda mutacja: lock per zamowienie (redis) -> odczyt -> zmiana w pamieci
    -> UPDATE wersji + commit. Zwrot na portfel jest w tej samej transakcji co
    zmiana statusu, wiec nieudany zwrot nie przesunie pozycji. Restock i
    powiadomienie ida po commicie i tylko loguja bledy.
    """

    def __init__(
        self,
        db: Session,
        product_client: ProductClient,
        lock_service: LockService,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.coupons = CouponRepo(db)
        self.users = UserRepo(db)
        self.wallet = WalletService(db)
        self.product_client = product_client
        self.lock_service = lock_service
        self.notification_service = notification_service or NotificationService()

    # queries
    def get_order(self, order_id: int, user_id: int | None = None) -> Dict[str, Any]:
        return serialize_order(self._load(order_id, user_id))

    def list_orders(self, user_id: int) -> List[Dict[str, Any]]:
        return [serialize_order(o) for o in self.repo.list_for_user(user_id)]

    def list_all_orders(self) -> List[Dict[str, Any]]:
        return [serialize_order(o) for o in self.repo.list_all()]

    # commands - pojedyncza pozycja
    def cancel_item(self, order_id: int, item_id: int, user_id: int | None = None) -> Dict[str, Any]:
        """Anulowanie pozycji przed doreczeniem. user_id=None -> wywolanie admina."""
        actor = Actor.ADMIN if user_id is None else Actor.USER
        return self._change_item(order_id, item_id, ItemStatus.CANCELLED, actor, user_id=user_id)

    def return_item(
        self,
        order_id: int,
        item_id: int,
        user_id: int,
        reason: str | None = None,
    ) -> Dict[str, Any]:
        """Prosba o zwrot - tylko z Delivered, konczy sie na Return Requested."""
        return self._change_item(
            order_id, item_id, ItemStatus.RETURN_REQUESTED, Actor.USER, user_id=user_id, reason=reason
        )

    def set_item_status(
        self,
        order_id: int,
        item_id: int,
        status: ItemStatus | str,
        reason: str | None = None,
    ) -> Dict[str, Any]:
        return self._change_item(order_id, item_id, ItemStatus(status), Actor.ADMIN, reason=reason)

    # commands - cale zamowienie
    def cancel_order(self, order_id: int, user_id: int | None = None) -> Dict[str, Any]:
        """
        Anuluje wszystkie otwarte pozycje i oddaje cala pozostala kwote.
        Niedozwolone gdy klient cokolwiek zatrzymal (Delivered / zwrot w toku / odrzucony).
        """
        with self.lock_service.hold(order_lock_key(order_id), ttl=ORDER_LOCK_TTL_SECONDS):
            order = self._load(order_id, user_id)

            if OrderStatus(order.order_status) != OrderStatus.PENDING:
                raise IllegalTransition(f"Cannot cancel an order in status '{order.order_status}'")

            statuses = [ItemStatus(i.status) for i in order.items]
            if any(s not in OPEN_STATES and s not in REFUNDABLE_STATES for s in statuses):
                raise IllegalTransition("Order contains delivered items, cancel items individually")

            open_items = [i for i in order.items if ItemStatus(i.status) in OPEN_STATES]
            if not open_items:
                raise IllegalTransition("Nothing left to cancel")

            refund = order.total_amount
            try:
                credited = False
                if refund > 0 and PaymentStatus(order.payment_status) == PaymentStatus.PAID:
                    self._credit(order, refund, f"Refund Order #{short_ref(order.id)}")
                    credited = True

                for item in open_items:
                    item.status = ItemStatus.CANCELLED.value
                order.total_amount = ZERO

                self._settle(order)
                self._commit(order)
            except Exception:
                self.repo.rollback()
                raise

            logger.info(f"Zamowienie {order.id} anulowane, zwrot {refund} (portfel: {credited})")

        self._restock(open_items)
        for item in open_items:
            self._notify(order, item, ItemStatus.CANCELLED)

        return {
            "order": serialize_order(order),
            "cancelled_items": [i.id for i in open_items],
            "refund_amount": refund,
            "refunded_to_wallet": credited,
        }

    def request_return(self, order_id: int, user_id: int, reason: str | None = None) -> Dict[str, Any]:
        """Zwrot calego zamowienia = prosba o zwrot kazdej doreczonej pozycji."""
        with self.lock_service.hold(order_lock_key(order_id), ttl=ORDER_LOCK_TTL_SECONDS):
            order = self._load(order_id, user_id)

            delivered = [i for i in order.items if ItemStatus(i.status) == ItemStatus.DELIVERED]
            if not delivered:
                raise IllegalTransition("Invalid Return Request: no delivered items")

            try:
                for item in delivered:
                    validate_transition(ItemStatus.DELIVERED, ItemStatus.RETURN_REQUESTED, Actor.USER)
                    item.status = ItemStatus.RETURN_REQUESTED.value
                    item.return_reason = reason
                order.return_reason = reason

                self._settle(order)
                self._commit(order)
            except Exception:
                self.repo.rollback()
                raise

        for item in delivered:
            self._notify(order, item, ItemStatus.RETURN_REQUESTED)

        return serialize_order(order)

    # core
    def _change_item(
        self,
        order_id: int,
        item_id: int,
        target: ItemStatus,
        actor: Actor,
        user_id: int | None = None,
        reason: str | None = None,
    ) -> Dict[str, Any]:
        with self.lock_service.hold(order_lock_key(order_id), ttl=ORDER_LOCK_TTL_SECONDS):
            order = self._load(order_id, user_id)
            item = self.repo.get_item(order, item_id)
            if item is None:
                raise ItemNotFound()

            previous = ItemStatus(item.status)
            if previous == target:
                logger.info(f"Pozycja {item_id} zamowienia {order_id} juz ma status {target.value}")
                return self._result(order, item, previous, changed=False)

            if target == ItemStatus.RETURN_REJECTED and not (reason and reason.strip()):
                raise ReasonRequired("Rejection reason is required")

            validate_transition(previous, target, actor)

            try:
                quote, credited = self._apply(order, item, target, reason)
                self._commit(order)
            except Exception:
                self.repo.rollback()
                raise

            logger.info(
                f"Pozycja {item_id} zamowienia {order_id}: {previous.value} -> {target.value}"
                + (f", zwrot {quote.amount}" if quote else "")
            )

        if target in REFUNDABLE_STATES:
            self._restock([item])
        self._notify(order, item, target, reason)

        return self._result(order, item, previous, changed=True, quote=quote, credited=credited)

    def _apply(self, order: OrderModel, item: OrderItemModel, target: ItemStatus, reason: str | None):
        quote = None
        credited = False

        if target in REFUNDABLE_STATES:
            quote = quote_refund(snapshot(order), item.id)

            payment_status = PaymentStatus(order.payment_status)
            payment_method = PaymentMethod(order.payment_method)
            if quote.amount > 0 and should_credit_wallet(payment_status, payment_method, target):
                self._credit(order, quote.amount, describe_refund(quote, item.name, item.quantity, target.value))
                credited = True

            order.total_amount = max(ZERO, order.total_amount - quote.amount)
            if quote.order_emptied:
                order.shipping_cost = ZERO

        item.status = target.value
        if target == ItemStatus.RETURN_REJECTED:
            item.rejection_reason = reason.strip()
        elif target == ItemStatus.RETURN_REQUESTED and reason:
            item.return_reason = reason
            order.return_reason = reason
        elif target == ItemStatus.DELIVERED and order.delivered_at is None:
            order.delivered_at = datetime.now(timezone.utc)

        self._settle(order)
        return quote, credited

    def _settle(self, order: OrderModel) -> None:
        statuses = [ItemStatus(i.status) for i in order.items]
        settlement = settle_order(
            statuses,
            order.total_amount,
            order.shipping_cost,
            PaymentStatus(order.payment_status),
            PaymentMethod(order.payment_method),
        )
        order.order_status = settlement.order_status.value
        order.payment_status = settlement.payment_status.value
        order.shipping_cost = settlement.shipping_cost

        if all(s == ItemStatus.CANCELLED for s in statuses) and order.cancelled_at is None:
            order.cancelled_at = datetime.now(timezone.utc)
            # anulowane zamowienie nie blokuje ponownego uzycia kuponu
            self.coupons.release_redemption(order.id)

    def _credit(self, order: OrderModel, amount: Decimal, description: str) -> None:
        try:
            posted = self.wallet.post(order.user_id, amount, CREDIT, description)
        except SQLAlchemyError as e:
            raise RefundFailed(f"Refund for order #{short_ref(order.id)} could not be recorded") from e
        if not posted:
            raise RefundFailed(f"Refund for order #{short_ref(order.id)} could not be recorded")

    def _commit(self, order: OrderModel) -> None:
        # Optimistic locking na wersji zamowienia
        rowcount = self.repo.update_order_version(order.id, order.version)
        if rowcount == 0:
            raise ConcurrencyConflict("Order was modified by another operation")
        self.repo.commit()

    def _load(self, order_id: int, user_id: int | None) -> OrderModel:
        order = self.repo.get_order(order_id, user_id)
        if order is None:
            raise OrderNotFound()
        return self.repo.refresh(order)

    def _restock(self, items: Iterable[OrderItemModel]) -> None:
        # stan magazynu to atomowy licznik katalogu; blad nie cofa juz zapisanego zwrotu
        for item in items:
            try:
                self.product_client.adjust_stock(item.product_id, item.size, item.quantity)
            except Exception:
                logger.exception(
                    f"Restock failed for product {item.product_id} (size {item.size}, qty {item.quantity})"
                )

    def _notify(self, order: OrderModel, item: OrderItemModel, status: ItemStatus, reason: str | None = None):
        try:
            user = self.users.get_user(order.user_id)
            if not user or not user.email:
                return
            self.notification_service.notify_item_status(
                user.email,
                user.name,
                short_ref(order.id),
                item.name,
                status.value,
                reason,
            )
        except Exception as e:
            logger.warning(f"Notification for order {order.id} skipped: {e}")

    @staticmethod
    def _result(
        order: OrderModel,
        item: OrderItemModel,
        previous: ItemStatus,
        changed: bool,
        quote: RefundQuote | None = None,
        credited: bool = False,
    ) -> Dict[str, Any]:
        return {
            "order": serialize_order(order),
            "item_id": item.id,
            "previous_status": previous.value,
            "status": item.status,
            "changed": changed,
            "refund_amount": quote.amount if quote else ZERO,
            "refunded_to_wallet": credited,
            "coupon_revoked": quote.coupon_revoked if quote else False,
        }
