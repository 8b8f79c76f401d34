# app/schemas/payment_schemas.py
from pydantic import BaseModel, model_validator
from typing import Optional


class PurchaseReference(BaseModel):
    """Exactly one of registration_id / purchase_id identifies the record."""

    registration_id: Optional[int] = None
    purchase_id: Optional[int] = None

    @property
    def kind(self) -> Optional[str]:
        if self.registration_id is not None:
            return "webinar"
        if self.purchase_id is not None:
            return "service"
        return None

    @property
    def record_id(self) -> Optional[int]:
        if self.registration_id is not None:
            return self.registration_id
        return self.purchase_id

    @model_validator(mode="after")
    def only_one_reference(self):
        if self.registration_id is not None and self.purchase_id is not None:
            raise ValueError("Provide either registration_id or purchase_id, not both")
        return self


class PaymentCompleteRequest(PurchaseReference):
    order_id: str


class RazorpayVerifyRequest(PurchaseReference):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class PaymentCompleteResponse(BaseModel):
    success: bool = True
    message: str
    already_completed: bool = False
    invoice_number: Optional[str] = None


class WebinarRegisterRequest(BaseModel):
    webinar_id: int
    coupon_code: Optional[str] = None


class PaymentOrderRequest(PurchaseReference):
    pass


class PaymentOrderResponse(BaseModel):
    razorpay_order_id: str
    razorpay_key: str
    amount: float
    currency: str = "INR"


class GatewayWebhookResponse(BaseModel):
    success: bool = True
    handled: bool
    payment_status: Optional[str] = None
    already_completed: bool = False
