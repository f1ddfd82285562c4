"""
Wspolne fixture'y testow: sqlite w pamieci, falszywy katalog produktow,
lock bez redisa i notyfikator zapisujacy wywolania.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from orderflow.data.database import Base, SessionLocal, engine
import orderflow.data.models  # noqa: F401
from orderflow.data.models import CouponModel, UserModel
from orderflow.domain.errors import ConcurrencyConflict, ItemUnavailable
from orderflow.domain.snapshots import ProductInfo
from orderflow.repos.coupon_repo import CouponRepo
from orderflow.repos.wallet_repo import WalletRepo
from orderflow.services.cart_service import CartService
from orderflow.services.checkout_service import CheckoutService
from orderflow.services.coupon_service import CouponService
from orderflow.services.order_service import OrderService


# ============================================================================
# Test doubles
# ============================================================================


class FakeCatalog:
    """Katalog w pamieci, ten sam interfejs co ProductClient."""

    def __init__(self, products: Optional[Dict[int, ProductInfo]] = None):
        self.products: Dict[int, ProductInfo] = dict(products or {})
        self.adjustments: List[tuple] = []
        self.fail_adjust = False

    def fetch_product(self, product_id: int) -> ProductInfo:
        product = self.products.get(product_id)
        if product is None:
            raise ItemUnavailable(f"Product {product_id} is no longer available")
        return product

    def adjust_stock(self, product_id: int, size: Optional[str], delta: int) -> None:
        if self.fail_adjust:
            raise RuntimeError("catalog down")
        self.adjustments.append((product_id, size, delta))
        product = self.products[product_id]
        sizes = dict(product.sizes)
        if size is not None:
            sizes[size] = sizes.get(size, 0) + delta
        self.products[product_id] = replace(
            product, stock_quantity=product.stock_quantity + delta, sizes=sizes
        )


class FakeLockService:
    def __init__(self):
        self.held = set()
        self.acquired: List[str] = []

    @contextmanager
    def hold(self, key: str, ttl: int):
        if key in self.held:
            raise ConcurrencyConflict(f"Another operation is in progress ({key})")
        self.held.add(key)
        self.acquired.append(key)
        try:
            yield key
        finally:
            self.held.discard(key)


class FakeNotifier:
    def __init__(self):
        self.sent: List[dict] = []

    def notify_item_status(self, email, name, order_ref, item_name, status, reason=None):
        self.sent.append(
            {
                "email": email,
                "name": name,
                "order_ref": order_ref,
                "item_name": item_name,
                "status": status,
                "reason": reason,
            }
        )


def product(
    id: int,
    price: str = "500",
    name: Optional[str] = None,
    stock: int = 20,
    sizes: Optional[Dict[str, int]] = None,
    categories=("jerseys",),
    team: Optional[str] = "tokyo",
    status: str = "Active",
) -> ProductInfo:
    return ProductInfo(
        id=id,
        name=name or f"Product {id}",
        price=Decimal(price),
        status=status,
        stock_quantity=stock,
        sizes=sizes if sizes is not None else {"M": 10, "L": 10},
        categories=tuple(categories),
        team=team,
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def catalog():
    return FakeCatalog(
        {
            1: product(1, "500", name="Home Jersey"),
            2: product(2, "500", name="Away Jersey"),
            3: product(3, "199", name="Training Shorts", categories=("shorts",), team="osaka"),
            4: product(4, "300", name="Retro Scarf", categories=("accessories",)),
        }
    )


@pytest.fixture
def locks():
    return FakeLockService()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def user(db):
    db.add(UserModel(id=1, name="Aiko", email="aiko@example.com"))
    db.commit()
    return 1


@pytest.fixture
def carts(db, catalog):
    return CartService(db, catalog)


@pytest.fixture
def coupons(db, catalog):
    return CouponService(db, catalog)


@pytest.fixture
def checkout(db, catalog, locks):
    return CheckoutService(db, catalog, locks)


@pytest.fixture
def orders(db, catalog, locks, notifier):
    return OrderService(db, catalog, locks, notifier)


# ============================================================================
# Helpers
# ============================================================================


def make_coupon(db, code: str, **kwargs) -> CouponModel:
    kwargs.setdefault("discount_type", "percentage")
    kwargs.setdefault("discount_value", Decimal("10"))
    kwargs.setdefault("applies_to", "all")
    return CouponRepo(db).create_coupon(CouponModel(code=code, **kwargs))


def fund_wallet(db, user_id: int, amount: str) -> None:
    repo = WalletRepo(db)
    wallet = repo.get_or_create_wallet(user_id)
    repo.credit(wallet.id, Decimal(amount))
    db.commit()


def fill_cart(carts: CartService, user_id: int, lines) -> dict:
    view = None
    for product_id, size, quantity in lines:
        view = carts.add_product(user_id, product_id, size, quantity)
    return view


ADDRESS = {"street": "1-2-3 Shibuya", "city": "Tokyo", "zip": "150-0002"}
