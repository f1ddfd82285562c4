# orderflow/domain/status_reducer.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from orderflow.domain.statuses import (
    ItemStatus,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    OPEN_STATES,
    REFUNDABLE_STATES,
)


def reduce_order_status(statuses: Iterable[ItemStatus]) -> OrderStatus:
    """
    Status zamowienia z listy statusow pozycji, priorytet od najwyzszego:
    1. jakakolwiek pozycja Return Requested -> Return Requested
    2. jakakolwiek pozycja otwarta (Pending..Out for Delivery) -> Pending
    3. reszta (Delivered / Cancelled / Returned / Return Rejected) -> Completed
    """
    statuses = [ItemStatus(s) for s in statuses]

    if any(s == ItemStatus.RETURN_REQUESTED for s in statuses):
        return OrderStatus.RETURN_REQUESTED
    if any(s in OPEN_STATES for s in statuses):
        return OrderStatus.PENDING
    return OrderStatus.COMPLETED


@dataclass(frozen=True)
class Settlement:
    order_status: OrderStatus
    payment_status: PaymentStatus
    shipping_cost: Decimal


def settle_order(
    statuses: Iterable[ItemStatus],
    total_amount: Decimal,
    shipping_cost: Decimal,
    payment_status: PaymentStatus,
    payment_method: PaymentMethod,
) -> Settlement:
    statuses = [ItemStatus(s) for s in statuses]
    order_status = reduce_order_status(statuses)

    if order_status != OrderStatus.COMPLETED:
        return Settlement(order_status, payment_status, shipping_cost)

    if total_amount <= 0:
        shipping_cost = Decimal("0")
        if payment_status == PaymentStatus.PAID:
            payment_status = PaymentStatus.REFUNDED

    all_refunded = all(s in REFUNDABLE_STATES for s in statuses)
    if all_refunded:
        if payment_status == PaymentStatus.PAID:
            payment_status = PaymentStatus.REFUNDED
    elif payment_method == PaymentMethod.COD and payment_status == PaymentStatus.PENDING:
        # pobranie zaplacone przy doreczeniu
        payment_status = PaymentStatus.PAID

    return Settlement(order_status, payment_status, shipping_cost)
