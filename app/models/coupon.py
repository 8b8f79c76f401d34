from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import List, Optional
from datetime import datetime


class Coupon(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, unique=True)  # stored upper-case
    description: Optional[str] = None

    discount_type: str  # percentage | fixed
    discount_value: float
    max_discount_amount: Optional[float] = None  # cap for percentage coupons
    min_purchase_amount: Optional[float] = None

    max_uses: Optional[int] = None  # None = unlimited
    max_uses_per_user: Optional[int] = Field(default=1)
    current_uses: int = Field(default=0)

    applies_to: str = Field(default="all")  # all | webinar | service
    applicable_items: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))

    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)


class CouponUsage(SQLModel, table=True):
    __tablename__ = "coupon_usage"

    id: Optional[int] = Field(default=None, primary_key=True)
    coupon_id: int = Field(foreign_key="coupon.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    item_type: str
    item_id: int
    discount_amount: float = Field(default=0)
    used_at: datetime = Field(default_factory=datetime.utcnow)
