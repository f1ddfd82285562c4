# orderflow/data/seed.py
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from orderflow.data.database import SessionLocal
from orderflow.data.models import CouponModel, UserModel, WalletModel


def seed():
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(UserModel).first():
            return

        db.add_all([
            UserModel(id=1, name="Aiko", email="aiko@example.com"),
            UserModel(id=2, name="Kenji", email="kenji@example.com"),
        ])
        db.flush()
        db.add_all([
            WalletModel(user_id=1, balance=Decimal("2000.00")),
            WalletModel(user_id=2, balance=Decimal("0.00")),
        ])
        db.add_all([
            CouponModel(code="WELCOME10", discount_type="percentage", discount_value=Decimal("10"),
                        applies_to="all"),
            CouponModel(code="DUO20", discount_type="percentage", discount_value=Decimal("20"),
                        applies_to="category", target_ids=["jerseys"], min_quantity=2),
            CouponModel(code="TOKYO100", discount_type="fixed", discount_value=Decimal("100"),
                        applies_to="team", target_ids=["tokyo"], min_order_value=Decimal("400"),
                        usage_limit=50,
                        expiration_date=datetime.now(timezone.utc) + timedelta(days=30)),
            CouponModel(code="SHIPFREE", discount_type="free_shipping", applies_to="all"),
        ])
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    seed()
