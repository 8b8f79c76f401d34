from fastapi import HTTPException, status

from app.exceptions import (
    CouponRejected,
    GatewayError,
    InvalidTransition,
    InvoiceUnavailable,
    ItemNotFound,
    PaymentPersistenceError,
    PurchaseError,
    PurchaseNotFound,
    RegistrationRejected,
    UnknownGatewayOrder,
)

STATUS_BY_ERROR = {
    PurchaseNotFound: status.HTTP_404_NOT_FOUND,
    ItemNotFound: status.HTTP_404_NOT_FOUND,
    UnknownGatewayOrder: status.HTTP_404_NOT_FOUND,
    InvalidTransition: status.HTTP_409_CONFLICT,
    InvoiceUnavailable: status.HTTP_400_BAD_REQUEST,
    RegistrationRejected: status.HTTP_400_BAD_REQUEST,
    CouponRejected: status.HTTP_400_BAD_REQUEST,
    PaymentPersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    GatewayError: status.HTTP_502_BAD_GATEWAY,
}


def to_http_exception(error: PurchaseError) -> HTTPException:
    status_code = STATUS_BY_ERROR.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if isinstance(error, CouponRejected):
        return HTTPException(status_code=status_code, detail=error.as_detail())
    return HTTPException(status_code=status_code, detail=error.message)
