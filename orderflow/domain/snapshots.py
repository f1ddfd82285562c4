# orderflow/domain/snapshots.py
"""Niemutowalne migawki stanu przekazywane do czystych funkcji domeny."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, FrozenSet, Optional, Tuple

from orderflow.domain.statuses import ItemStatus


@dataclass(frozen=True)
class ProductInfo:
    id: int
    name: str
    price: Decimal
    status: str
    stock_quantity: int
    sizes: Dict[str, int] = field(default_factory=dict)
    categories: Tuple[str, ...] = ()
    team: Optional[str] = None
    image: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == "Active"

    @property
    def is_available(self) -> bool:
        return self.is_active and self.stock_quantity > 0

    def size_stock(self, size: str) -> Optional[int]:
        return self.sizes.get(size)

    @classmethod
    def from_payload(cls, data: dict) -> "ProductInfo":
        categories = data.get("category") or ()
        if isinstance(categories, str):
            categories = (categories,)
        return cls(
            id=int(data["id"]),
            name=data.get("name", ""),
            price=Decimal(str(data.get("price", 0))),
            status=data.get("status", "Active"),
            stock_quantity=int(data.get("stock_quantity", 0)),
            sizes={s["size"]: int(s["stock"]) for s in data.get("sizes", [])},
            categories=tuple(str(c) for c in categories),
            team=str(data["team"]) if data.get("team") is not None else None,
            image=data.get("image"),
        )


@dataclass(frozen=True)
class CouponRules:
    id: int
    code: str
    discount_type: str
    discount_value: Decimal
    applies_to: str = "all"
    target_ids: FrozenSet[str] = frozenset()
    min_order_value: Decimal = Decimal("0")
    min_quantity: int = 0
    usage_limit: Optional[int] = None
    used_count: int = 0
    start_date: Optional[datetime] = None
    expiration_date: Optional[datetime] = None
    is_active: bool = True

    @property
    def grants_free_shipping(self) -> bool:
        return self.discount_type == "free_shipping"

    def matches(self, product: ProductInfo) -> bool:
        """Czy produkt miesci sie w zakresie kuponu (all/category/team/product)."""
        if self.applies_to == "all":
            return True
        if self.applies_to == "product":
            return str(product.id) in self.target_ids
        if self.applies_to == "category":
            return any(c in self.target_ids for c in product.categories)
        if self.applies_to == "team":
            return product.team is not None and product.team in self.target_ids
        return False


@dataclass(frozen=True)
class OrderLine:
    item_id: int
    name: str
    quantity: int
    price: Decimal
    original_price: Optional[Decimal]
    status: ItemStatus

    @property
    def paid_total(self) -> Decimal:
        return self.price * self.quantity

    @property
    def list_total(self) -> Decimal:
        # starsze zamowienia moga nie miec ceny oryginalnej
        return (self.original_price or self.price) * self.quantity


@dataclass(frozen=True)
class OrderSnapshot:
    total_amount: Decimal
    shipping_cost: Decimal
    items: Tuple[OrderLine, ...]
    coupon_code: Optional[str] = None
    coupon_min_quantity: int = 0

    def line(self, item_id: int) -> Optional[OrderLine]:
        return next((i for i in self.items if i.item_id == item_id), None)
