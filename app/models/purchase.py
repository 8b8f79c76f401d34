from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from app.constants.payment_status import PaymentStatus


class PurchaseBase(SQLModel):
    """Columns shared by every completable purchase record."""

    user_id: int = Field(foreign_key="user.id", index=True)
    amount_paid: float = Field(default=0)
    discount_amount: float = Field(default=0)
    coupon_id: Optional[int] = Field(default=None, foreign_key="coupon.id")

    payment_status: str = Field(default=PaymentStatus.PENDING.value, index=True)
    payment_id: Optional[str] = Field(default=None, index=True)
    gateway_order_id: Optional[str] = Field(default=None, index=True)
    invoice_number: Optional[str] = Field(default=None, unique=True)

    updated_at: datetime = Field(default_factory=datetime.utcnow)


class WebinarRegistration(PurchaseBase, table=True):
    __tablename__ = "webinar_registration"

    id: Optional[int] = Field(default=None, primary_key=True)
    webinar_id: int = Field(foreign_key="webinar.id", index=True)
    registered_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def created_at(self) -> datetime:
        return self.registered_at


class ServicePurchase(PurchaseBase, table=True):
    __tablename__ = "service_purchase"

    id: Optional[int] = Field(default=None, primary_key=True)
    service_id: int = Field(foreign_key="service.id", index=True)
    purchased_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def created_at(self) -> datetime:
        return self.purchased_at
