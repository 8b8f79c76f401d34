from fastapi import APIRouter, BackgroundTasks, Depends
from sqlmodel import Session

from app.database import get_session
from app.exceptions import PurchaseError
from app.models.user import User
from app.notifications.dispatcher import dispatch_purchase_event
from app.schemas.payment_schemas import WebinarRegisterRequest
from app.services.registration_service import register_for_webinar
from app.utils.http_errors import to_http_exception
from app.utils.token import get_current_user

router = APIRouter()


@router.post("/register")
def register(
    payload: WebinarRegisterRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        result = register_for_webinar(
            session, current_user, payload.webinar_id, payload.coupon_code
        )
    except PurchaseError as e:
        raise to_http_exception(e)

    if result.notice is not None:
        background_tasks.add_task(dispatch_purchase_event, result.notice)

    registration = result.registration
    return {
        "registration_id": registration.id,
        "payment_status": registration.payment_status,
        "requires_payment": result.requires_payment,
        "amount": registration.amount_paid,
        "discount_amount": registration.discount_amount,
        "invoice_number": registration.invoice_number,
    }
