"""Domain errors raised by the purchase, invoicing and coupon services.

Routes translate these into HTTP responses; services never raise
``HTTPException`` themselves.
"""

from enum import Enum


class ErrorCode(str, Enum):
    PURCHASE_NOT_FOUND = "PURCHASE_NOT_FOUND"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVOICE_UNAVAILABLE = "INVOICE_UNAVAILABLE"
    COUPON_REJECTED = "COUPON_REJECTED"
    RENDER_FAILED = "RENDER_FAILED"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    REGISTRATION_REJECTED = "REGISTRATION_REJECTED"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    GATEWAY_FAILED = "GATEWAY_FAILED"


class PurchaseError(Exception):
    """Base error with a code and a user-safe message."""

    code = ErrorCode.PERSISTENCE_FAILED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class PurchaseNotFound(PurchaseError):
    code = ErrorCode.PURCHASE_NOT_FOUND

    def __init__(self, kind: str, record_id: int):
        label = "Registration" if kind == "webinar" else "Purchase"
        super().__init__(f"{label} not found")
        self.kind = kind
        self.record_id = record_id


class ItemNotFound(PurchaseError):
    code = ErrorCode.ITEM_NOT_FOUND


class PaymentPersistenceError(PurchaseError):
    code = ErrorCode.PERSISTENCE_FAILED


class InvalidTransition(PurchaseError):
    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move payment from '{current}' to '{target}'")
        self.current = current
        self.target = target


class InvoiceUnavailable(PurchaseError):
    code = ErrorCode.INVOICE_UNAVAILABLE


class RegistrationRejected(PurchaseError):
    code = ErrorCode.REGISTRATION_REJECTED


class RenderError(PurchaseError):
    code = ErrorCode.RENDER_FAILED


class DeliveryError(PurchaseError):
    """Mail still undelivered after every retry. Never reaches a response."""

    code = ErrorCode.DELIVERY_FAILED


class UnknownGatewayOrder(PurchaseError):
    code = ErrorCode.PURCHASE_NOT_FOUND


class GatewayError(PurchaseError):
    code = ErrorCode.GATEWAY_FAILED


class CouponRejected(PurchaseError):
    """Expected, user-facing rejection carrying a machine-readable reason."""

    code = ErrorCode.COUPON_REJECTED

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason

    def as_detail(self) -> dict:
        return {"reason": self.reason, "message": self.message}
