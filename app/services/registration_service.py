import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlmodel import Session, select

from app.constants.payment_status import CONFIRMED_STATUSES, PaymentStatus
from app.exceptions import ItemNotFound, RegistrationRejected
from app.models.purchase import WebinarRegistration
from app.models.user import User
from app.models.webinar import Webinar
from app.notifications.events import PurchaseEvent, PurchaseNotice
from app.services.coupon_service import evaluate_coupon
from app.services.payment_service import confirm_with_invoice_number, prepare_notice, take_webinar_slot
from app.services.purchase_email_service import MeetingLinkRecipient
from app.services.purchase_service import WEBINAR
from app.utils.formatting import format_date, format_time

logger = logging.getLogger(__name__)

PLATFORM_LABELS = {"zoom": "Zoom", "google_meet": "Google Meet"}


@dataclass
class RegistrationResult:
    registration: WebinarRegistration
    requires_payment: bool
    notice: Optional[PurchaseNotice] = None


def find_open_registration(session: Session, webinar_id: int, user_id: int) -> Optional[WebinarRegistration]:
    """Latest registration for this seat that is confirmed or still awaiting payment."""
    active = [s.value for s in CONFIRMED_STATUSES] + [PaymentStatus.PENDING.value]
    return session.exec(
        select(WebinarRegistration)
        .where(WebinarRegistration.webinar_id == webinar_id)
        .where(WebinarRegistration.user_id == user_id)
        .where(WebinarRegistration.payment_status.in_(active))
        .order_by(WebinarRegistration.id.desc())
    ).first()


def register_for_webinar(
    session: Session,
    user: User,
    webinar_id: int,
    coupon_code: Optional[str] = None,
) -> RegistrationResult:
    """
    Free (or fully discounted) webinars are confirmed immediately as
    ``free``; paid ones get a ``pending`` registration to pay for.
    """
    webinar = session.get(Webinar, webinar_id)
    if webinar is None:
        raise ItemNotFound("Webinar not found")

    existing = find_open_registration(session, webinar.id, user.id)
    if existing and existing.payment_status != PaymentStatus.PENDING.value:
        raise RegistrationRejected("You are already registered for this webinar")

    if webinar.available_slots <= 0:
        raise RegistrationRejected("Sorry, this webinar is sold out")

    if existing:
        # resume the unpaid registration instead of opening a second one
        return RegistrationResult(registration=existing, requires_payment=True)

    amount = webinar.price or 0
    registration = WebinarRegistration(
        user_id=user.id,
        webinar_id=webinar.id,
        amount_paid=amount,
        payment_status=PaymentStatus.PENDING.value,
    )

    if coupon_code and amount > 0:
        evaluation = evaluate_coupon(session, coupon_code, WEBINAR, webinar.id, amount, user)
        registration.coupon_id = evaluation.coupon_id
        registration.discount_amount = evaluation.discount_amount
        registration.amount_paid = evaluation.final_amount

    session.add(registration)
    session.commit()
    session.refresh(registration)

    if registration.amount_paid > 0:
        logger.info(f"Pending registration {registration.id} for webinar {webinar.id}")
        return RegistrationResult(registration=registration, requires_payment=True)

    invoice_number = confirm_with_invoice_number(
        session, WEBINAR, registration, user.id, PaymentStatus.FREE
    )
    result = RegistrationResult(registration=registration, requires_payment=False)
    if invoice_number is None:
        return result

    take_webinar_slot(session, webinar.id)
    try:
        result.notice = prepare_notice(
            session,
            WEBINAR,
            registration,
            webinar,
            user,
            PurchaseEvent.WEBINAR_FREE_REGISTERED,
            invoice_number,
            transaction_id=None,
        )
    except Exception:
        logger.exception(f"Could not prepare confirmation for registration {registration.id}")

    return result


def meeting_link_recipients(session: Session, webinar: Webinar) -> List[MeetingLinkRecipient]:
    """Everyone holding a confirmed seat, addressed for the meeting-link mail."""
    rows = session.exec(
        select(WebinarRegistration, User)
        .join(User, User.id == WebinarRegistration.user_id)
        .where(WebinarRegistration.webinar_id == webinar.id)
        .where(WebinarRegistration.payment_status.in_([s.value for s in CONFIRMED_STATUSES]))
    ).all()

    return [
        MeetingLinkRecipient(
            email=user.email,
            user_name=user.display_name,
            webinar_title=webinar.title,
            meeting_link=webinar.meeting_link,
            webinar_date=format_date(webinar.webinar_date, weekday=True),
            webinar_time=format_time(webinar.start_time),
            platform=PLATFORM_LABELS.get(webinar.meeting_platform, "Online"),
        )
        for _, user in rows
    ]
