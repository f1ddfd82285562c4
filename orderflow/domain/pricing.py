# orderflow/domain/pricing.py
"""
Ceny i rabaty - czyste funkcje, bez bazy.

allocate_discount rozklada laczny rabat kuponu na kwalifikujace sie linie
proporcjonalnie do ich udzialu w podsumie. Wynik (cena efektywna za sztuke)
jest zamrazany na pozycji zamowienia.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

from orderflow.domain.errors import CouponInvalid
from orderflow.domain.snapshots import CouponRules
from orderflow.utils.settings import FREE_SHIPPING_THRESHOLD, SHIPPING_FEE

ZERO = Decimal("0")
CENT = Decimal("0.01")
UNIT = Decimal("1")


def to_cents(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_units(value: Decimal) -> Decimal:
    """Zaokraglenie do pelnej jednostki waluty (jak Math.round dla kwot dodatnich)."""
    return Decimal(value).quantize(UNIT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    unit_price: Decimal
    quantity: int
    eligible: bool = False

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


def eligible_subtotal(lines: Sequence[PricedLine]) -> Decimal:
    return sum((line.line_total for line in lines if line.eligible), ZERO)


def allocate_discount(lines: Sequence[PricedLine], discount: Decimal) -> List[Decimal]:
    """
    Zwraca cene efektywna za sztuke dla kazdej linii (w tej samej kolejnosci).

    - linie niekwalifikujace sie zostaja bez zmian
    - rabat wiekszy niz podsuma kwalifikujacych sie linii jest przycinany
    - przy zerowej podsumie nic nie jest rozdzielane
    """
    base = eligible_subtotal(lines)
    discount = Decimal(discount)

    if base <= ZERO or discount <= ZERO:
        return [line.unit_price for line in lines]

    discount = min(discount, base)

    prices = []
    for line in lines:
        if not line.eligible or line.quantity <= 0:
            prices.append(line.unit_price)
            continue
        share = (line.line_total / base) * discount
        prices.append(to_cents(line.unit_price - share / line.quantity))
    return prices


def shipping_cost(subtotal: Decimal, coupon: Optional[CouponRules] = None) -> Decimal:
    if subtotal > FREE_SHIPPING_THRESHOLD:
        return ZERO
    if coupon is not None and coupon.grants_free_shipping:
        return ZERO
    return Decimal(SHIPPING_FEE)


def ensure_coupon_usable(coupon: CouponRules, now: Optional[datetime] = None) -> None:
    """Aktywnosc, okno waznosci i globalny limit uzyc."""
    now = now or datetime.now(timezone.utc)

    if not coupon.is_active:
        raise CouponInvalid("Coupon is inactive")
    if coupon.start_date and _aware(coupon.start_date) > now:
        raise CouponInvalid("Coupon not active yet")
    if coupon.expiration_date and _aware(coupon.expiration_date) < now:
        raise CouponInvalid("Coupon has expired")
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise CouponInvalid("Coupon usage limit reached")


def coupon_discount(coupon: CouponRules, eligible_amount: Decimal) -> Decimal:
    """Laczny rabat kuponu, zaokraglony do pelnej jednostki."""
    if coupon.discount_type == "percentage":
        amount = eligible_amount * coupon.discount_value / 100
    elif coupon.discount_type == "fixed":
        amount = min(coupon.discount_value, eligible_amount)
    else:
        amount = ZERO
    return to_units(amount)


def _aware(value: datetime) -> datetime:
    # sqlite zwraca naive datetime
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
