from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from app.database import get_session
from app.exceptions import CouponRejected
from app.models.coupon import Coupon
from app.models.user import User
from app.schemas.coupon_schemas import CouponSummary, CouponValidateRequest, CouponValidateResponse
from app.services.coupon_service import evaluate_coupon
from app.services.purchase_service import PURCHASE_MODELS
from app.utils.http_errors import to_http_exception
from app.utils.token import get_optional_user

router = APIRouter()


@router.post("/validate", response_model=CouponValidateResponse)
def validate_coupon(
    payload: CouponValidateRequest,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    if not payload.code or not payload.code.strip():
        raise HTTPException(400, "Coupon code is required")
    if payload.item_type and payload.item_type not in PURCHASE_MODELS:
        raise HTTPException(400, "item_type must be 'webinar' or 'service'")

    try:
        evaluation = evaluate_coupon(
            session,
            payload.code.strip(),
            payload.item_type,
            payload.item_id,
            payload.amount,
            current_user,
        )
    except CouponRejected as e:
        raise to_http_exception(e)

    coupon = session.get(Coupon, evaluation.coupon_id)
    return CouponValidateResponse(
        coupon=CouponSummary(
            id=coupon.id,
            code=coupon.code,
            description=coupon.description,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            max_discount_amount=coupon.max_discount_amount,
        ),
        discount_amount=evaluation.discount_amount,
        final_amount=evaluation.final_amount,
    )
