# app/schemas/coupon_schemas.py
from pydantic import BaseModel
from typing import Optional


class CouponValidateRequest(BaseModel):
    code: str
    item_type: Optional[str] = None  # webinar | service
    item_id: Optional[int] = None
    amount: Optional[float] = None


class CouponEvaluation(BaseModel):
    coupon_id: int
    coupon_code: str
    discount_amount: float
    final_amount: Optional[float] = None


class CouponSummary(BaseModel):
    id: int
    code: str
    description: Optional[str] = None
    discount_type: str
    discount_value: float
    max_discount_amount: Optional[float] = None


class CouponValidateResponse(BaseModel):
    valid: bool = True
    coupon: CouponSummary
    discount_amount: float
    final_amount: Optional[float] = None
