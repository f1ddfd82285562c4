from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean, JSON, ForeignKey, UniqueConstraint
from datetime import datetime, timezone

from orderflow.data.database import Base


class CouponModel(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True)
    code = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=True)

    discount_type = Column(String, nullable=False)  # percentage, fixed, free_shipping
    discount_value = Column(Numeric(10, 2), nullable=False, default=0)

    applies_to = Column(String, nullable=False, default="all")  # all, category, team, product
    target_ids = Column(JSON, nullable=False, default=list)

    min_order_value = Column(Numeric(10, 2), nullable=False, default=0)
    min_quantity = Column(Integer, nullable=False, default=0)

    start_date = Column(DateTime(timezone=True), nullable=True, default=lambda: datetime.now(timezone.utc))
    expiration_date = Column(DateTime(timezone=True), nullable=True)  # None = bezterminowo
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class CouponRedemptionModel(Base):
    """Jedno uzycie kuponu na uzytkownika - unikalnosc pilnuje baza, nie odczyt."""

    __tablename__ = "coupon_redemptions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    coupon_code = Column(String, nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (UniqueConstraint("user_id", "coupon_code", name="u_user_coupon"),)
