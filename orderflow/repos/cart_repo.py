# orderflow/repos/cart_repo.py
from decimal import Decimal
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from orderflow.data.models.cart import CartModel
from orderflow.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, cart_id: int) -> CartModel | None:
        return self.db.get(CartModel, cart_id)

    def get_cart_by_user(self, user_id: int) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.user_id == user_id)
        ).scalar_one_or_none()

    def get_or_create_cart(self, user_id: int) -> CartModel:
        cart = self.get_cart_by_user(user_id)
        if cart:
            return cart
        cart = CartModel(user_id=user_id, version=1)
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def get_cart_items(self, cart_id: int, saved: bool = False) -> List[CartItemModel]:
        return list(
            self.db.execute(
                select(CartItemModel)
                .where(CartItemModel.cart_id == cart_id, CartItemModel.saved == saved)
                .order_by(CartItemModel.id)
            ).scalars()
        )

    def get_cart_item(self, cart_id: int, item_id: int, saved: bool = False) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.id == item_id,
                CartItemModel.saved == saved,
            )
        ).scalar_one_or_none()

    def find_line(self, cart_id: int, product_id: int, size: str | None) -> CartItemModel | None:
        return self.db.execute(
            select(CartItemModel).where(
                CartItemModel.cart_id == cart_id,
                CartItemModel.product_id == product_id,
                CartItemModel.size == size,
                CartItemModel.saved.is_(False),
            )
        ).scalar_one_or_none()

    def add_cart_item(self, item: CartItemModel) -> CartItemModel:
        self.db.add(item)
        self.db.flush()
        return item

    def delete_cart_item(self, item: CartItemModel) -> None:
        self.db.delete(item)
        self.db.flush()

    def delete_active_items(self, cart_id: int) -> None:
        for item in self.get_cart_items(cart_id):
            self.db.delete(item)
        self.db.flush()

    def update_cart_version(self, cart_id: int, old_version: int, new_data: dict) -> int:
        # UPDATE carts SET ... WHERE id = :id AND version = :old_version
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
        )
        return result.rowcount

    def reset_cart(self, cart_id: int) -> None:
        # czyszczenie po checkoucie - bez warunku na wersje, nie moze zostac pominiete
        self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id)
            .values(version=CartModel.version + 1, **self.totals_payload(Decimal("0"), Decimal("0")))
        )

    @staticmethod
    def totals_payload(total_price: Decimal, discount: Decimal, coupon_id=None, coupon_code=None) -> dict:
        return {
            "coupon_id": coupon_id,
            "coupon_code": coupon_code,
            "discount_amount": discount,
            "total_price": total_price,
            "total_after_discount": total_price - discount,
        }

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
