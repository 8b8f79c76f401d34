"""
Payment completion for webinar registrations and service purchases.

The status UPDATE guarded by ``payment_status = 'pending'`` is the single
point that decides whether a request finalizes a purchase. Everything
after it (seat decrement, invoice rendering, emails) is best effort and
never turns a committed completion into a failure.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from app.config import settings
from app.constants.payment_status import CONFIRMED_STATUSES, PaymentStatus, can_transition
from app.exceptions import (
    GatewayError,
    InvalidTransition,
    PaymentPersistenceError,
    RenderError,
    UnknownGatewayOrder,
)
from app.models.user import User
from app.notifications.events import PurchaseEvent, PurchaseNotice
from app.services.coupon_service import record_coupon_usage
from app.services.gateway_service import FAILURE_EVENTS, SUCCESS_EVENTS, GatewayEvent, create_gateway_order
from app.services.inventory_service import decrement_webinar_slot
from app.services.invoice_number import MAX_ATTEMPTS, issue_invoice_number
from app.services.invoice_service import build_invoice_data, render_invoice
from app.services.purchase_service import (
    WEBINAR,
    PurchaseItem,
    PurchaseRecord,
    find_by_gateway_order,
    get_owned_purchase,
    get_purchase_item,
    purchase_item_id,
    purchase_model,
)
from app.services.site_settings_service import get_company_profile
from app.utils.formatting import format_date, format_time

logger = logging.getLogger(__name__)

CONFIRMED_VALUES = {s.value for s in CONFIRMED_STATUSES}


@dataclass
class CompletionResult:
    kind: str
    record_id: int
    invoice_number: Optional[str]
    already_completed: bool = False
    slot_decremented: Optional[bool] = None
    notice: Optional[PurchaseNotice] = None


class _InvoiceNumberConflict(Exception):
    pass


def transition_to_confirmed(
    session: Session,
    kind: str,
    record: PurchaseRecord,
    user_id: int,
    target: PaymentStatus,
    invoice_number: str,
    payment_id: Optional[str] = None,
) -> bool:
    """
    pending -> completed|free, scoped by (record id, owner id).

    Returns False when another request already confirmed the record.
    Coupon redemption is committed together with the status change.
    """
    model = purchase_model(kind)
    values = {
        "payment_status": target.value,
        "invoice_number": invoice_number,
        "updated_at": datetime.utcnow(),
    }
    if payment_id is not None:
        values["payment_id"] = payment_id

    try:
        result = session.execute(
            update(model)
            .where(model.id == record.id)
            .where(model.user_id == user_id)
            .where(model.payment_status == PaymentStatus.PENDING.value)
            .values(**values)
        )
        rowcount = result.rowcount

        if rowcount == 1 and record.coupon_id:
            record_coupon_usage(
                session,
                coupon_id=record.coupon_id,
                user_id=user_id,
                item_type=kind,
                item_id=purchase_item_id(kind, record),
                discount_amount=record.discount_amount or 0,
            )
        session.commit()
    except IntegrityError as e:
        session.rollback()
        raise _InvoiceNumberConflict(invoice_number) from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Status update failed for {kind} {record.id}")
        raise PaymentPersistenceError("Failed to complete payment") from e

    session.refresh(record)

    if rowcount == 0:
        if record.payment_status in CONFIRMED_VALUES:
            logger.info(f"{kind} {record.id} was confirmed by a concurrent request")
            return False
        raise PaymentPersistenceError("Failed to complete payment")

    logger.info(f"{kind} {record.id} -> {target.value} (invoice {invoice_number})")
    return True


def confirm_with_invoice_number(
    session: Session,
    kind: str,
    record: PurchaseRecord,
    user_id: int,
    target: PaymentStatus,
    payment_id: Optional[str] = None,
) -> Optional[str]:
    """Issue an invoice number and confirm; retries when the number collides on write."""
    for attempt in range(1, MAX_ATTEMPTS + 1):
        invoice_number = issue_invoice_number(session)
        try:
            if transition_to_confirmed(
                session, kind, record, user_id, target, invoice_number, payment_id
            ):
                return invoice_number
            return None
        except _InvoiceNumberConflict:
            logger.warning(f"Invoice number {invoice_number} rejected on write (attempt {attempt})")

    raise PaymentPersistenceError("Failed to complete payment")


def mark_failed(session: Session, kind: str, record: PurchaseRecord, user_id: int) -> bool:
    """pending -> failed. Returns False if the record had already left pending."""
    model = purchase_model(kind)
    try:
        result = session.execute(
            update(model)
            .where(model.id == record.id)
            .where(model.user_id == user_id)
            .where(model.payment_status == PaymentStatus.PENDING.value)
            .values(payment_status=PaymentStatus.FAILED.value, updated_at=datetime.utcnow())
        )
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PaymentPersistenceError("Failed to record payment failure") from e

    session.refresh(record)
    if result.rowcount:
        logger.info(f"{kind} {record.id} -> failed")
    return bool(result.rowcount)


def take_webinar_slot(session: Session, webinar_id: int) -> bool:
    try:
        return decrement_webinar_slot(session, webinar_id)
    except Exception:
        session.rollback()
        logger.exception(f"Slot decrement failed for webinar {webinar_id}")
        return False


def prepare_notice(
    session: Session,
    kind: str,
    record: PurchaseRecord,
    item: Optional[PurchaseItem],
    user: User,
    event: PurchaseEvent,
    invoice_number: str,
    transaction_id: Optional[str],
) -> Optional[PurchaseNotice]:
    """
    Build the invoice, render it and capture the confirmation email payload.
    A render failure only drops the attachment.
    """
    if item is None:
        logger.warning(f"{kind} {record.id} has no item row; skipping invoice email")
        return None

    company = get_company_profile(session)

    invoice_pdf = None
    try:
        invoice = build_invoice_data(
            kind=kind,
            record=record,
            item=item,
            user=user,
            company=company,
            invoice_number=invoice_number,
            transaction_id=transaction_id,
        )
        invoice_pdf = render_invoice(invoice)
    except RenderError:
        logger.exception(f"Invoice render failed for {kind} {record.id}; emailing without attachment")
    except Exception:
        logger.exception(f"Invoice build failed for {kind} {record.id}; emailing without attachment")

    notice = PurchaseNotice(
        event=event,
        record_id=record.id,
        user_email=user.email,
        user_name=user.display_name,
        item_title="",
        amount=record.amount_paid or 0,
        company_name=company.name,
        dashboard_url="",
        transaction_id=transaction_id,
        invoice_number=invoice_number,
        invoice_pdf=invoice_pdf,
    )

    if kind == WEBINAR:
        notice.item_title = item.title
        notice.item_date = format_date(item.webinar_date, weekday=True)
        notice.item_time = format_time(item.start_time)
        notice.host_name = item.host_name or "Host"
        notice.dashboard_url = f"{settings.base_url}/dashboard/webinars"
    else:
        notice.item_title = item.name
        notice.item_description = item.short_description or ""
        notice.dashboard_url = f"{settings.base_url}/dashboard/services"

    return notice


def complete_purchase(
    session: Session,
    user: User,
    kind: str,
    record_id: int,
    order_id: str,
) -> CompletionResult:
    """
    Finalize a paid purchase after the gateway reported success.

    Only the status transition can fail the call. Repeated calls for a
    completed record return ``already_completed`` without touching
    slots, the invoice number or email.
    """
    # 1. Fetch (owner scoped)
    record = get_owned_purchase(session, kind, record_id, user.id)
    return finalize_purchase(session, user, kind, record, order_id)


def finalize_purchase(
    session: Session,
    user: User,
    kind: str,
    record: PurchaseRecord,
    order_id: str,
) -> CompletionResult:
    """Steps 2-7 of completion for a record already resolved to its owner."""
    if record.payment_status in CONFIRMED_VALUES:
        logger.info(f"{kind} {record.id} already {record.payment_status}; nothing to do")
        return CompletionResult(
            kind=kind,
            record_id=record.id,
            invoice_number=record.invoice_number,
            already_completed=True,
        )

    if not can_transition(record.payment_status, PaymentStatus.COMPLETED.value):
        raise InvalidTransition(record.payment_status, PaymentStatus.COMPLETED.value)

    item = get_purchase_item(session, kind, record)

    # 2 + 3. Invoice number and the status transition
    invoice_number = confirm_with_invoice_number(
        session, kind, record, user.id, PaymentStatus.COMPLETED, payment_id=order_id
    )
    if invoice_number is None:
        return CompletionResult(
            kind=kind,
            record_id=record.id,
            invoice_number=record.invoice_number,
            already_completed=True,
        )

    result = CompletionResult(kind=kind, record_id=record.id, invoice_number=invoice_number)

    # 4. Seat accounting (webinars only, best effort)
    if kind == WEBINAR:
        result.slot_decremented = take_webinar_slot(session, record.webinar_id)

    # 5-7. Profile, tax breakdown, invoice PDF
    event = PurchaseEvent.WEBINAR_PAYMENT_COMPLETED if kind == WEBINAR else PurchaseEvent.SERVICE_PAYMENT_COMPLETED
    try:
        result.notice = prepare_notice(
            session, kind, record, item, user, event, invoice_number, order_id
        )
    except Exception:
        logger.exception(f"Could not prepare confirmation for {kind} {record.id}")

    return result


def open_gateway_order(session: Session, user: User, kind: str, record_id: int) -> PurchaseRecord:
    """
    Attach a Razorpay order to a pending record. The order id is what
    webhook events are matched on, so an existing one is reused.
    """
    record = get_owned_purchase(session, kind, record_id, user.id)

    if record.payment_status != PaymentStatus.PENDING.value:
        raise InvalidTransition(record.payment_status, PaymentStatus.COMPLETED.value)

    if record.gateway_order_id:
        return record

    try:
        order = create_gateway_order(
            record.amount_paid,
            receipt=f"{kind}_{record.id}",
            notes={"kind": kind, "record_id": record.id, "user_id": user.id},
        )
    except Exception as e:
        logger.exception(f"Razorpay order creation failed for {kind} {record.id}")
        raise GatewayError("Payment gateway error") from e

    record.gateway_order_id = order["id"]
    record.updated_at = datetime.utcnow()
    session.add(record)
    session.commit()
    session.refresh(record)

    logger.info(f"{kind} {record.id} linked to gateway order {record.gateway_order_id}")
    return record


@dataclass
class GatewayEventOutcome:
    event: str
    handled: bool = False
    kind: Optional[str] = None
    record_id: Optional[int] = None
    payment_status: Optional[str] = None
    completion: Optional[CompletionResult] = None


def handle_gateway_event(session: Session, event: GatewayEvent) -> GatewayEventOutcome:
    """
    Apply a verified server-to-server gateway event.

    Success events go through the same guarded transition as
    ``/payment/complete``, so whichever of the two arrives second sees an
    already confirmed record and does nothing.
    """
    outcome = GatewayEventOutcome(event=event.event)

    if event.event not in SUCCESS_EVENTS and event.event not in FAILURE_EVENTS:
        logger.info(f"Ignoring gateway event {event.event}")
        return outcome

    found = find_by_gateway_order(session, event.order_id) if event.order_id else None
    if found is None:
        raise UnknownGatewayOrder("Order not found")

    kind, record = found
    outcome.kind = kind
    outcome.record_id = record.id

    if event.event in FAILURE_EVENTS:
        mark_failed(session, kind, record, record.user_id)
        outcome.handled = True
        outcome.payment_status = record.payment_status
        return outcome

    user = session.get(User, record.user_id)
    try:
        outcome.completion = finalize_purchase(
            session, user, kind, record, event.payment_id or event.order_id
        )
        outcome.handled = True
    except InvalidTransition:
        # money captured on a record we already gave up on
        logger.error(
            f"Gateway captured {event.payment_id} for {kind} {record.id} in status "
            f"{record.payment_status}; needs manual reconciliation"
        )

    outcome.payment_status = record.payment_status
    return outcome
