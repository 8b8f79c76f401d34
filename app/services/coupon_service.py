import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, update
from sqlmodel import Session, select

from app.exceptions import CouponRejected
from app.models.coupon import Coupon, CouponUsage
from app.models.user import User
from app.schemas.coupon_schemas import CouponEvaluation
from app.utils.formatting import format_inr, to_money

logger = logging.getLogger(__name__)


def get_coupon_by_code(session: Session, code: str) -> Optional[Coupon]:
    return session.exec(
        select(Coupon).where(Coupon.code == code.strip().upper())
    ).first()


def count_user_usages(session: Session, coupon_id: int, user_id: int) -> int:
    return session.exec(
        select(func.count(CouponUsage.id))
        .where(CouponUsage.coupon_id == coupon_id)
        .where(CouponUsage.user_id == user_id)
    ).one()


def calculate_discount(coupon: Coupon, amount: float) -> float:
    value = to_money(amount)

    if coupon.discount_type == "percentage":
        discount = value * Decimal(str(coupon.discount_value)) / Decimal(100)
        if coupon.max_discount_amount is not None:
            discount = min(discount, Decimal(str(coupon.max_discount_amount)))
    else:
        discount = Decimal(str(coupon.discount_value))

    # never discount below a zero final price
    discount = min(to_money(discount), value)
    return float(max(discount, Decimal("0.00")))


def evaluate_coupon(
    session: Session,
    code: str,
    item_type: Optional[str],
    item_id: Optional[int],
    amount: Optional[float],
    user: Optional[User],
    now: Optional[datetime] = None,
) -> CouponEvaluation:
    """
    Check a coupon against an item and return the discount it grants.

    Rules run in order and the first failure raises ``CouponRejected``
    with a specific reason.
    """
    now = now or datetime.utcnow()
    coupon = get_coupon_by_code(session, code)

    if coupon is None:
        raise CouponRejected("not_found", "Invalid coupon code")

    if not coupon.is_active:
        raise CouponRejected("inactive", "This coupon is no longer active")

    if coupon.valid_from and coupon.valid_from > now:
        raise CouponRejected("not_yet_valid", "This coupon is not yet valid")

    if coupon.valid_until and coupon.valid_until < now:
        raise CouponRejected("expired", "This coupon has expired")

    if item_type and coupon.applies_to not in ("all", item_type):
        raise CouponRejected(
            "wrong_category",
            f"This coupon is only valid for {coupon.applies_to}s",
        )

    if item_id is not None and coupon.applicable_items:
        if item_id not in coupon.applicable_items:
            raise CouponRejected(
                "not_applicable_item", "This coupon is not valid for this item"
            )

    if (
        amount is not None
        and coupon.min_purchase_amount
        and amount < coupon.min_purchase_amount
    ):
        raise CouponRejected(
            "below_minimum",
            f"Minimum purchase amount is Rs. {format_inr(coupon.min_purchase_amount)}",
        )

    if user is not None and coupon.max_uses_per_user:
        used = count_user_usages(session, coupon.id, user.id)
        if used >= coupon.max_uses_per_user:
            raise CouponRejected(
                "user_limit_reached", "You have already used this coupon"
            )

    if coupon.max_uses is not None and coupon.current_uses >= coupon.max_uses:
        raise CouponRejected(
            "usage_limit_reached", "This coupon has reached its usage limit"
        )

    discount = calculate_discount(coupon, amount) if amount else 0.0
    final_amount = float(to_money(amount) - to_money(discount)) if amount is not None else None

    return CouponEvaluation(
        coupon_id=coupon.id,
        coupon_code=coupon.code,
        discount_amount=discount,
        final_amount=final_amount,
    )


def record_coupon_usage(
    session: Session,
    *,
    coupon_id: int,
    user_id: int,
    item_type: str,
    item_id: int,
    discount_amount: float,
) -> bool:
    """
    Consume one use of a coupon inside the caller's transaction.

    Both limits are re-checked here because several pending records can
    carry the same coupon. Returns False, consuming nothing, when either
    limit is already reached. The caller owns the commit.
    """
    coupon = session.get(Coupon, coupon_id)
    if coupon is None:
        logger.warning(f"Coupon {coupon_id} no longer exists; usage not recorded")
        return False

    if coupon.max_uses_per_user:
        used = count_user_usages(session, coupon_id, user_id)
        if used >= coupon.max_uses_per_user:
            logger.warning(
                f"Coupon {coupon.code} over per-user limit for user {user_id} "
                f"({used}/{coupon.max_uses_per_user}); {item_type} {item_id} completes without redemption"
            )
            return False

    result = session.execute(
        update(Coupon)
        .where(Coupon.id == coupon_id)
        .where(or_(Coupon.max_uses.is_(None), Coupon.current_uses < Coupon.max_uses))
        .values(current_uses=Coupon.current_uses + 1)
    )
    if result.rowcount == 0:
        logger.warning(
            f"Coupon {coupon.code} reached its usage limit; {item_type} {item_id} completes without redemption"
        )
        return False

    session.add(
        CouponUsage(
            coupon_id=coupon_id,
            user_id=user_id,
            item_type=item_type,
            item_id=item_id,
            discount_amount=discount_amount,
        )
    )
    logger.info(f"Coupon {coupon_id} used by user {user_id} on {item_type} {item_id}")
    return True
