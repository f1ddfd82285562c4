# orderflow/domain/statuses.py
"""
Statusy pozycji zamowienia i tabela dozwolonych przejsc.

Sciezka realizacji (admin):  Pending -> Processing -> Shipped -> Out for Delivery -> Delivered
Zwroty:                      Delivered -> Return Requested -> Returned | Return Rejected
Anulowanie:                  kazdy status przed Delivered -> Cancelled
Cancelled, Returned, Return Rejected sa koncowe.
"""
from enum import Enum
from typing import Dict, FrozenSet

from orderflow.domain.errors import IllegalTransition


class ItemStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURN_REQUESTED = "Return Requested"
    RETURNED = "Returned"
    RETURN_REJECTED = "Return Rejected"


class OrderStatus(str, Enum):
    PENDING = "Pending"
    RETURN_REQUESTED = "Return Requested"
    COMPLETED = "Completed"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class PaymentMethod(str, Enum):
    COD = "COD"
    ONLINE = "Online"
    WALLET = "Wallet"


class Actor(str, Enum):
    USER = "user"
    ADMIN = "admin"


FULFILMENT_PATH = (
    ItemStatus.PENDING,
    ItemStatus.PROCESSING,
    ItemStatus.SHIPPED,
    ItemStatus.OUT_FOR_DELIVERY,
    ItemStatus.DELIVERED,
)

OPEN_STATES: FrozenSet[ItemStatus] = frozenset(FULFILMENT_PATH[:-1])
TERMINAL_STATES: FrozenSet[ItemStatus] = frozenset(
    {ItemStatus.CANCELLED, ItemStatus.RETURNED, ItemStatus.RETURN_REJECTED}
)
# przejscia z restockiem i zwrotem pieniedzy
REFUNDABLE_STATES: FrozenSet[ItemStatus] = frozenset({ItemStatus.CANCELLED, ItemStatus.RETURNED})


def _build_transitions() -> Dict[ItemStatus, Dict[Actor, FrozenSet[ItemStatus]]]:
    table = {}
    for i, status in enumerate(FULFILMENT_PATH[:-1]):
        forward = frozenset(FULFILMENT_PATH[i + 1:])
        table[status] = {
            Actor.ADMIN: forward | {ItemStatus.CANCELLED},
            Actor.USER: frozenset({ItemStatus.CANCELLED}),
        }

    table[ItemStatus.DELIVERED] = {
        Actor.ADMIN: frozenset({ItemStatus.RETURN_REQUESTED}),
        Actor.USER: frozenset({ItemStatus.RETURN_REQUESTED}),
    }
    table[ItemStatus.RETURN_REQUESTED] = {
        Actor.ADMIN: frozenset({ItemStatus.RETURNED, ItemStatus.RETURN_REJECTED}),
        Actor.USER: frozenset(),
    }
    for status in TERMINAL_STATES:
        table[status] = {Actor.ADMIN: frozenset(), Actor.USER: frozenset()}
    return table


TRANSITIONS = _build_transitions()


def is_active(status: ItemStatus) -> bool:
    """Pozycja nadal "zyje" w zamowieniu (nie anulowana / zwrocona / odrzucona)."""
    return status not in TERMINAL_STATES


def allowed_targets(current: ItemStatus, actor: Actor) -> FrozenSet[ItemStatus]:
    return TRANSITIONS[current][actor]


def validate_transition(current: ItemStatus, target: ItemStatus, actor: Actor) -> None:
    if target not in allowed_targets(current, actor):
        raise IllegalTransition(
            f"Cannot move item from '{current.value}' to '{target.value}'"
        )
