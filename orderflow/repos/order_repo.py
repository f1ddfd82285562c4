# orderflow/repos/order_repo.py
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from orderflow.data.models.order import OrderModel
from orderflow.data.models.order_item import OrderItemModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        # bez commita - zamowienie, debet portfela i uzycie kuponu ida w jednej transakcji
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int, user_id: int | None = None) -> OrderModel | None:
        order = self.db.get(OrderModel, order_id)
        if order is None:
            return None
        if user_id is not None and order.user_id != user_id:
            return None
        return order

    def refresh(self, order: OrderModel) -> OrderModel:
        self.db.refresh(order)
        return order

    def get_item(self, order: OrderModel, item_id: int) -> OrderItemModel | None:
        return next((i for i in order.items if i.id == item_id), None)

    def list_for_user(self, user_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.user_id == user_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def list_all(self) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def update_order_version(self, order_id: int, old_version: int) -> int:
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.version == old_version)
            .values(version=old_version + 1)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
