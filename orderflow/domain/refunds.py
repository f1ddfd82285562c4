# orderflow/domain/refunds.py
"""
Kalkulator zwrotow przy anulowaniu / zwrocie pozycji.

Przypadek standardowy: zwracamy to, co klient faktycznie zaplacil za pozycje
(price * quantity); jesli to ostatnia aktywna pozycja - cala pozostala kwota
zamowienia razem z wysylka (bez pozycji zatrzymanych po odrzuconym zwrocie).

Cofniecie kuponu: jezeli kupon mial prog min_quantity, a po usunieciu pozycji
liczba aktywnych pozycji spada ponizej progu, klient ma zaplacic pelna cene
(original_price) za wszystko co zostaje:
    refund = max(0, total_amount - (suma original_price*qty zostajacych + shipping))

Kwota nigdy nie przekracza pozostalego total_amount zamowienia.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from orderflow.domain.errors import ItemNotFound
from orderflow.domain.pricing import ZERO, to_cents
from orderflow.domain.snapshots import CouponRules, OrderSnapshot
from orderflow.domain.statuses import ItemStatus, PaymentMethod, PaymentStatus, is_active


@dataclass(frozen=True)
class RefundQuote:
    amount: Decimal
    standard_amount: Decimal
    coupon_revoked: bool = False
    includes_shipping: bool = False
    order_emptied: bool = False

    @property
    def coupon_reversal(self) -> Decimal:
        if not self.coupon_revoked:
            return ZERO
        return to_cents(self.standard_amount - self.amount)


def quote_refund(order: OrderSnapshot, item_id: int, coupon: Optional[CouponRules] = None) -> RefundQuote:
    """
    Kwota zwrotu za pozycje item_id. Prog min_quantity bierzemy z podanych
    regul kuponu, a bez nich z migawki zapisanej na zamowieniu przy zakupie.
    """
    line = order.line(item_id)
    if line is None:
        raise ItemNotFound()

    survivors = [
        i for i in order.items
        if i.item_id != item_id and is_active(i.status)
    ]
    standard = line.paid_total

    min_quantity = coupon.min_quantity if coupon is not None else (order.coupon_min_quantity or 0)
    if order.coupon_code and min_quantity > 0 and survivors and len(survivors) < min_quantity:
        kept_at_list_price = sum((i.list_total for i in survivors), ZERO)
        amount = max(ZERO, order.total_amount - (kept_at_list_price + order.shipping_cost))
        return RefundQuote(
            amount=_cap(to_cents(amount), order.total_amount),
            standard_amount=standard,
            coupon_revoked=True,
        )

    if survivors:
        return RefundQuote(
            amount=_cap(to_cents(standard), order.total_amount),
            standard_amount=standard,
        )

    # ostatnia aktywna pozycja: cala reszta zamowienia z wysylka, bez pozycji
    # zatrzymanych po odrzuconym zwrocie (reszta != suma price*qty po cofnieciu kuponu)
    kept = sum(
        (i.paid_total for i in order.items if i.item_id != item_id and i.status == ItemStatus.RETURN_REJECTED),
        ZERO,
    )
    amount = max(ZERO, order.total_amount - kept)
    includes_shipping = order.shipping_cost > 0

    return RefundQuote(
        amount=_cap(to_cents(amount), order.total_amount),
        standard_amount=standard,
        includes_shipping=includes_shipping,
        order_emptied=True,
    )


def should_credit_wallet(
    payment_status: PaymentStatus,
    payment_method: PaymentMethod,
    target: ItemStatus,
) -> bool:
    """
    Zaplacone zamowienie -> zawsze na portfel.
    Niezaplacone COD -> tylko przy zwrocie pozycji, bo doreczenie oznacza pobrana gotowke.
    """
    if payment_status == PaymentStatus.PAID:
        return True
    return (
        target == ItemStatus.RETURNED
        and payment_method == PaymentMethod.COD
        and payment_status == PaymentStatus.PENDING
    )


def describe_refund(quote: RefundQuote, item_name: str, quantity: int, label: str = "Cancelled") -> str:
    description = f"Refund ({label}): {item_name}"
    if quote.coupon_revoked:
        return (
            f"{description} (Price: {to_cents(quote.standard_amount)}"
            f" - Coupon Reversal: {quote.coupon_reversal})"
        )
    return f"{description} (Qty: {quantity})"


def _cap(amount: Decimal, remaining: Decimal) -> Decimal:
    return min(amount, max(ZERO, remaining))
