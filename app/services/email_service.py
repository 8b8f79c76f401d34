import base64
import logging
import re
import smtplib
import ssl
from email.message import EmailMessage as MimeMessage
from email.utils import make_msgid
from typing import List

import requests

from app.config import settings
from app.schemas.email_schemas import EmailMessage, EmailResult

logger = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"
NOT_CONFIGURED = "Email service not configured"


def is_valid_email(email):
    if isinstance(email, list):
        return all(is_valid_email(e) for e in email)

    if not email:
        return False

    return re.match(r"[^@\s]+@[^@\s]+\.[^@\s]+$", email) is not None


def is_configured() -> bool:
    if settings.MAIL_TRANSPORT == "brevo":
        return bool(settings.BREVO_API_KEY)
    return bool(settings.SMTP_USER and settings.SMTP_PASS)


def build_mime_message(message: EmailMessage, recipients: List[str]) -> MimeMessage:
    mime = MimeMessage()
    mime["From"] = message.sender or settings.mail_sender
    mime["To"] = ", ".join(recipients)
    mime["Subject"] = message.subject
    mime["Message-ID"] = make_msgid()
    mime.set_content("This message requires an HTML capable mail client.")
    mime.add_alternative(message.html, subtype="html")

    for attachment in message.attachments:
        maintype, _, subtype = attachment.content_type.partition("/")
        mime.add_attachment(
            attachment.content,
            maintype=maintype,
            subtype=subtype or "octet-stream",
            filename=attachment.filename,
        )
    return mime


def _send_smtp(message: EmailMessage, recipients: List[str]) -> EmailResult:
    mime = build_mime_message(message, recipients)

    if settings.SMTP_PORT == 465:
        server = smtplib.SMTP_SSL(
            settings.SMTP_HOST, settings.SMTP_PORT,
            context=ssl.create_default_context(), timeout=10,
        )
    else:
        server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10)

    with server:
        if settings.SMTP_PORT != 465:
            server.starttls(context=ssl.create_default_context())
        server.login(settings.SMTP_USER, settings.SMTP_PASS)
        server.send_message(mime)

    return EmailResult(success=True, message_id=mime["Message-ID"])


def _send_brevo(message: EmailMessage, recipients: List[str]) -> EmailResult:
    payload = {
        "sender": {
            "email": settings.EMAIL_FROM or settings.SMTP_USER,
            "name": settings.STORE_NAME,
        },
        "to": [{"email": r} for r in recipients],
        "subject": message.subject,
        "htmlContent": message.html,
    }

    # Attach files if provided
    if message.attachments:
        payload["attachment"] = [
            {
                "name": a.filename,
                "content": base64.b64encode(a.content).decode("utf-8"),
            }
            for a in message.attachments
        ]

    headers = {
        "api-key": settings.BREVO_API_KEY,
        "Content-Type": "application/json",
    }

    response = requests.post(
        BREVO_API_URL,
        json=payload,
        headers=headers,
        timeout=10,
    )

    if response.status_code >= 400:
        logger.error(
            f"Brevo email failed ({response.status_code}): {response.text}"
        )
        return EmailResult(success=False, error=f"Brevo returned {response.status_code}")

    return EmailResult(success=True, message_id=response.json().get("messageId"))


def send_email(message: EmailMessage) -> EmailResult:
    """
    Deliver one message through the configured transport.

    Never raises: a missing configuration or a transport failure comes
    back as ``EmailResult(success=False, error=...)``.
    """
    if not is_configured():
        logger.warning(f"{NOT_CONFIGURED}. Email '{message.subject}' not sent.")
        return EmailResult(success=False, error=NOT_CONFIGURED)

    # Validate emails BEFORE calling the transport
    recipients = [r for r in message.recipients if is_valid_email(r)]
    if not recipients:
        logger.warning(f"No valid emails found: {message.to}")
        return EmailResult(success=False, error="No valid recipients")

    try:
        if settings.MAIL_TRANSPORT == "brevo":
            result = _send_brevo(message, recipients)
        else:
            result = _send_smtp(message, recipients)
    except Exception as e:
        logger.exception(f"Email send exception for '{message.subject}'")
        return EmailResult(success=False, error=str(e) or e.__class__.__name__)

    if result.success:
        logger.info(f"Email sent to {recipients}: {result.message_id}")
    return result
