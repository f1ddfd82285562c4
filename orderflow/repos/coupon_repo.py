# orderflow/repos/coupon_repo.py
from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from orderflow.data.models.coupon import CouponModel, CouponRedemptionModel
from orderflow.domain.snapshots import CouponRules


def normalize_code(code: str) -> str:
    return code.strip().upper()


class CouponRepo:
    """Katalog kuponow: reguly, licznik uzyc, jedno uzycie na uzytkownika."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, coupon_id: int) -> CouponModel | None:
        return self.db.get(CouponModel, coupon_id)

    def get_by_code(self, code: str) -> CouponModel | None:
        return self.db.execute(
            select(CouponModel).where(CouponModel.code == normalize_code(code))
        ).scalar_one_or_none()

    def resolve(self, coupon_id: int | None, code: str | None = None) -> CouponRules | None:
        coupon = self.get(coupon_id) if coupon_id is not None else None
        if coupon is None and code:
            coupon = self.get_by_code(code)
        return self.to_rules(coupon) if coupon else None

    def create_coupon(self, coupon: CouponModel) -> CouponModel:
        coupon.code = normalize_code(coupon.code)
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def increment_usage(self, coupon_id: int) -> None:
        # atomowo, bez read-modify-write
        self.db.execute(
            update(CouponModel)
            .where(CouponModel.id == coupon_id)
            .values(used_count=CouponModel.used_count + 1)
        )
        self.db.execute(
            update(CouponModel)
            .where(
                CouponModel.id == coupon_id,
                CouponModel.usage_limit.is_not(None),
                CouponModel.used_count >= CouponModel.usage_limit,
            )
            .values(is_active=False)
        )

    def find_prior_use(self, user_id: int, code: str) -> bool:
        return self.db.execute(
            select(CouponRedemptionModel.id).where(
                CouponRedemptionModel.user_id == user_id,
                CouponRedemptionModel.coupon_code == normalize_code(code),
            )
        ).first() is not None

    def add_redemption(self, user_id: int, code: str, order_id: int) -> None:
        self.db.add(
            CouponRedemptionModel(user_id=user_id, coupon_code=normalize_code(code), order_id=order_id)
        )
        self.db.flush()

    def release_redemption(self, order_id: int) -> None:
        self.db.execute(
            delete(CouponRedemptionModel).where(CouponRedemptionModel.order_id == order_id)
        )

    @staticmethod
    def to_rules(coupon: CouponModel) -> CouponRules:
        return CouponRules(
            id=coupon.id,
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            applies_to=coupon.applies_to,
            target_ids=frozenset(str(t) for t in (coupon.target_ids or [])),
            min_order_value=coupon.min_order_value,
            min_quantity=coupon.min_quantity or 0,
            usage_limit=coupon.usage_limit,
            used_count=coupon.used_count or 0,
            start_date=coupon.start_date,
            expiration_date=coupon.expiration_date,
            is_active=coupon.is_active,
        )
