import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

from app.schemas.email_schemas import BulkEmailResult, EmailAttachment, EmailMessage
from app.services.email_service import send_email
from app.utils.template import render_template

logger = logging.getLogger(__name__)

BULK_SEND_WORKERS = 8


def invoice_attachment(
    invoice_pdf: Optional[bytes], invoice_number: Optional[str], fallback: str
) -> List[EmailAttachment]:
    if not invoice_pdf:
        return []
    return [
        EmailAttachment(
            filename=f"invoice-{invoice_number or fallback}.pdf",
            content=invoice_pdf,
            content_type="application/pdf",
        )
    ]


def build_booking_confirmation(
    *,
    to: str,
    user_name: str,
    webinar_title: str,
    webinar_date: str,
    webinar_time: str,
    host_name: str,
    amount: float,
    dashboard_url: str,
    transaction_id: Optional[str] = None,
    invoice_pdf: Optional[bytes] = None,
    invoice_number: Optional[str] = None,
    company_name: str = "WebinarPro",
) -> EmailMessage:
    """Webinar booking confirmation, with the invoice attached when one was rendered."""
    html = render_template(
        "emails/booking_confirmation.html",
        user_name=user_name,
        webinar_title=webinar_title,
        webinar_date=webinar_date,
        webinar_time=webinar_time,
        host_name=host_name,
        amount=amount,
        transaction_id=transaction_id,
        invoice_number=invoice_number,
        dashboard_url=dashboard_url,
        has_invoice=bool(invoice_pdf),
        company_name=company_name,
    )
    return EmailMessage(
        to=to,
        subject=f"Booking Confirmed: {webinar_title}",
        html=html,
        attachments=invoice_attachment(invoice_pdf, invoice_number, "webinar"),
    )


def build_purchase_confirmation(
    *,
    to: str,
    user_name: str,
    service_name: str,
    service_description: str,
    amount: float,
    dashboard_url: str,
    transaction_id: Optional[str] = None,
    invoice_pdf: Optional[bytes] = None,
    invoice_number: Optional[str] = None,
    company_name: str = "WebinarPro",
) -> EmailMessage:
    html = render_template(
        "emails/purchase_confirmation.html",
        user_name=user_name,
        service_name=service_name,
        service_description=service_description,
        amount=amount,
        transaction_id=transaction_id,
        invoice_number=invoice_number,
        dashboard_url=dashboard_url,
        has_invoice=bool(invoice_pdf),
        company_name=company_name,
    )
    return EmailMessage(
        to=to,
        subject=f"Purchase Confirmed: {service_name}",
        html=html,
        attachments=invoice_attachment(invoice_pdf, invoice_number, "service"),
    )


def build_admin_new_booking(
    *,
    to: List[str],
    user_name: str,
    user_email: str,
    item_kind: str,
    item_title: str,
    amount: float,
    admin_url: str,
    company_name: str = "WebinarPro",
) -> EmailMessage:
    item_label = "Booking" if item_kind == "Webinar" else "Purchase"
    html = render_template(
        "emails/admin_new_booking.html",
        user_name=user_name,
        user_email=user_email,
        item_kind=item_kind,
        item_label=item_label,
        item_title=item_title,
        amount=amount,
        admin_url=admin_url,
        company_name=company_name,
    )
    return EmailMessage(
        to=to,
        subject=f"New {item_label}: {item_title}",
        html=html,
    )


@dataclass
class MeetingLinkRecipient:
    email: str
    user_name: str
    webinar_title: str
    meeting_link: str
    webinar_date: str
    webinar_time: str
    platform: str


def build_meeting_link_message(recipient: MeetingLinkRecipient, company_name: str = "WebinarPro") -> EmailMessage:
    html = render_template(
        "emails/meeting_link.html",
        user_name=recipient.user_name,
        webinar_title=recipient.webinar_title,
        meeting_link=recipient.meeting_link,
        webinar_date=recipient.webinar_date,
        webinar_time=recipient.webinar_time,
        platform=recipient.platform,
        company_name=company_name,
    )
    return EmailMessage(
        to=recipient.email,
        subject=f"Your Meeting Link for {recipient.webinar_title}",
        html=html,
    )


def _send_one(message: EmailMessage) -> bool:
    try:
        return send_email(message).success
    except Exception:
        logger.exception(f"Meeting link email to {message.to} failed")
        return False


def send_bulk_meeting_links(
    recipients: List[MeetingLinkRecipient],
    company_name: str = "WebinarPro",
) -> BulkEmailResult:
    """
    Send the meeting-link mail to every recipient concurrently.
    Individual failures are counted, never raised.
    """
    if not recipients:
        return BulkEmailResult(successful=0, failed=0, total=0)

    messages = [build_meeting_link_message(r, company_name) for r in recipients]

    with ThreadPoolExecutor(max_workers=min(BULK_SEND_WORKERS, len(messages))) as pool:
        outcomes = list(pool.map(_send_one, messages))

    successful = sum(1 for ok in outcomes if ok)
    result = BulkEmailResult(
        successful=successful,
        failed=len(outcomes) - successful,
        total=len(recipients),
    )
    logger.info(f"Meeting links sent: {result.successful}/{result.total} ({result.failed} failed)")
    return result
