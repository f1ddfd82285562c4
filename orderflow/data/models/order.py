from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from orderflow.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)

    shipping_address = Column(JSON, nullable=False)
    payment_method = Column(String, nullable=False)  # COD, Online, Wallet
    payment_status = Column(String, nullable=False, default="Pending")  # Pending, Paid, Failed, Refunded
    payment_details = Column(JSON, nullable=True)

    # Pending, Return Requested, Completed
    order_status = Column(String, nullable=False, default="Pending")

    subtotal = Column(Numeric(10, 2), nullable=False)
    coupon_code = Column(String, nullable=True)  # string, przetrwa usuniecie kuponu
    coupon_min_quantity = Column(Integer, nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    shipping_cost = Column(Numeric(10, 2), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2), nullable=False)

    return_reason = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
