import logging

from app.config import settings
from app.exceptions import DeliveryError
from app.notifications.channels import Channel
from app.notifications.events import PurchaseNotice
from app.notifications.rules import NOTIFICATION_RULES
from app.schemas.email_schemas import EmailMessage
from app.services.email_retry import deliver
from app.services.purchase_email_service import (
    build_admin_new_booking,
    build_booking_confirmation,
    build_purchase_confirmation,
)

logger = logging.getLogger(__name__)


def build_user_message(notice: PurchaseNotice) -> EmailMessage:
    if notice.is_webinar:
        return build_booking_confirmation(
            to=notice.user_email,
            user_name=notice.user_name,
            webinar_title=notice.item_title,
            webinar_date=notice.item_date or "",
            webinar_time=notice.item_time or "",
            host_name=notice.host_name or "Host",
            amount=notice.amount,
            transaction_id=notice.transaction_id,
            dashboard_url=notice.dashboard_url,
            invoice_pdf=notice.invoice_pdf,
            invoice_number=notice.invoice_number,
            company_name=notice.company_name,
        )
    return build_purchase_confirmation(
        to=notice.user_email,
        user_name=notice.user_name,
        service_name=notice.item_title,
        service_description=notice.item_description or "",
        amount=notice.amount,
        transaction_id=notice.transaction_id,
        dashboard_url=notice.dashboard_url,
        invoice_pdf=notice.invoice_pdf,
        invoice_number=notice.invoice_number,
        company_name=notice.company_name,
    )


def dispatch_purchase_event(notice: PurchaseNotice) -> None:
    """
    Background job run after the completion response is sent.

    Handles:
    - customer confirmation email (with invoice)
    - admin new-booking email

    Every failure is logged; nothing propagates to the caller.
    """
    rules = NOTIFICATION_RULES.get(notice.event, {})
    related_type = "webinar" if notice.is_webinar else "service"

    # -------------------------
    # USER EMAIL
    # -------------------------
    if rules.get(Channel.EMAIL_USER):
        try:
            deliver(build_user_message(notice), related_type=related_type, related_id=notice.record_id)
        except DeliveryError as e:
            logger.warning(f"Confirmation email for {related_type} {notice.record_id} not delivered: {e.message}")
        except Exception:
            logger.exception(f"User email failed for {related_type} {notice.record_id}")

    # -------------------------
    # ADMIN EMAIL
    # -------------------------
    if rules.get(Channel.EMAIL_ADMIN) and settings.ADMIN_EMAILS:
        try:
            message = build_admin_new_booking(
                to=list(settings.ADMIN_EMAILS),
                user_name=notice.user_name,
                user_email=notice.user_email,
                item_kind="Webinar" if notice.is_webinar else "Service",
                item_title=notice.item_title,
                amount=notice.amount,
                admin_url=f"{settings.base_url}/admin/{'bookings' if notice.is_webinar else 'purchases'}",
                company_name=notice.company_name,
            )
            deliver(message, related_type=related_type, related_id=notice.record_id)
        except DeliveryError as e:
            logger.warning(f"Admin email for {related_type} {notice.record_id} not delivered: {e.message}")
        except Exception:
            logger.exception(f"Admin email failed for {related_type} {notice.record_id}")
