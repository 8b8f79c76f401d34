import json
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from sqlmodel import Session

from app.config import settings
from app.database import get_session
from app.exceptions import PurchaseError
from app.models.user import User
from app.notifications.dispatcher import dispatch_purchase_event
from app.schemas.payment_schemas import (
    GatewayWebhookResponse,
    PaymentCompleteRequest,
    PaymentCompleteResponse,
    PaymentOrderRequest,
    PaymentOrderResponse,
    PurchaseReference,
    RazorpayVerifyRequest,
)
from app.services.gateway_service import (
    parse_webhook_event,
    verify_payment_signature,
    verify_webhook_signature,
)
from app.services.payment_service import (
    CompletionResult,
    complete_purchase,
    handle_gateway_event,
    mark_failed,
    open_gateway_order,
)
from app.services.purchase_service import get_owned_purchase
from app.utils.http_errors import to_http_exception
from app.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_reference(payload: PurchaseReference):
    if payload.kind is None:
        raise HTTPException(400, "Missing registration or purchase ID")


def _respond(result: CompletionResult, background_tasks: BackgroundTasks) -> PaymentCompleteResponse:
    # emails go out after the response; the payment is already committed
    if result.notice is not None:
        background_tasks.add_task(dispatch_purchase_event, result.notice)

    return PaymentCompleteResponse(
        message="Payment already completed" if result.already_completed else "Payment completed successfully",
        already_completed=result.already_completed,
        invoice_number=result.invoice_number,
    )


@router.post("/order", response_model=PaymentOrderResponse)
def create_payment_order(
    payload: PaymentOrderRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Create (or reuse) the Razorpay order for a pending record."""
    _require_reference(payload)

    try:
        record = open_gateway_order(session, current_user, payload.kind, payload.record_id)
    except PurchaseError as e:
        raise to_http_exception(e)

    return PaymentOrderResponse(
        razorpay_order_id=record.gateway_order_id,
        razorpay_key=settings.RAZORPAY_KEY_ID,
        amount=record.amount_paid,
    )


@router.post("/complete", response_model=PaymentCompleteResponse)
def complete_payment(
    payload: PaymentCompleteRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    _require_reference(payload)

    try:
        result = complete_purchase(
            session, current_user, payload.kind, payload.record_id, payload.order_id
        )
    except PurchaseError as e:
        raise to_http_exception(e)

    return _respond(result, background_tasks)


@router.post("/verify", response_model=PaymentCompleteResponse)
def verify_payment(
    payload: RazorpayVerifyRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    _require_reference(payload)

    try:
        record = get_owned_purchase(session, payload.kind, payload.record_id, current_user.id)

        if not verify_payment_signature(
            payload.razorpay_order_id,
            payload.razorpay_payment_id,
            payload.razorpay_signature,
        ):
            mark_failed(session, payload.kind, record, current_user.id)
            raise HTTPException(400, "Payment verification failed")

        result = complete_purchase(
            session, current_user, payload.kind, payload.record_id, payload.razorpay_payment_id
        )
    except PurchaseError as e:
        raise to_http_exception(e)

    return _respond(result, background_tasks)


@router.post("/webhook", response_model=GatewayWebhookResponse)
async def payment_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_razorpay_signature: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
):
    """
    Razorpay server-to-server callback. Completes the purchase even when
    the buyer's browser never comes back to ``/complete`` or ``/verify``.
    """
    body = (await request.body()).decode("utf-8")

    if not x_razorpay_signature or not verify_webhook_signature(body, x_razorpay_signature):
        raise HTTPException(401, "Invalid signature")

    try:
        event = parse_webhook_event(json.loads(body))
    except (ValueError, AttributeError):
        raise HTTPException(400, "Malformed webhook payload")

    try:
        outcome = handle_gateway_event(session, event)
    except PurchaseError as e:
        raise to_http_exception(e)

    completion = outcome.completion
    if completion is not None and completion.notice is not None:
        background_tasks.add_task(dispatch_purchase_event, completion.notice)

    logger.info(
        f"Webhook {event.event} for order {event.order_id}: "
        f"handled={outcome.handled} status={outcome.payment_status}"
    )
    return GatewayWebhookResponse(
        handled=outcome.handled,
        payment_status=outcome.payment_status,
        already_completed=bool(completion and completion.already_completed),
    )
