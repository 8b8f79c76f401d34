import time
import random
import logging
from typing import Callable, Optional

from sqlmodel import Session

from app import database
from app.config import settings
from app.exceptions import DeliveryError
from app.models.email import EmailLog
from app.schemas.email_schemas import EmailMessage, EmailResult
from app.services.email_service import NOT_CONFIGURED, send_email

logger = logging.getLogger(__name__)


def log_email_outcome(
    message: EmailMessage,
    result: EmailResult,
    attempts: int,
    related_type: Optional[str] = None,
    related_id: Optional[int] = None,
) -> None:
    """Persist the final outcome; failed rows are the dead-letter log."""
    try:
        with Session(database.engine) as session:
            session.add(
                EmailLog(
                    to_email=", ".join(message.recipients),
                    subject=message.subject,
                    status="sent" if result.success else "failed",
                    attempts=attempts,
                    related_type=related_type,
                    related_id=related_id,
                    error=result.error,
                )
            )
            session.commit()
    except Exception:
        logger.exception(f"Could not write email log for '{message.subject}'")


def send_email_with_retry(
    message: EmailMessage,
    max_retries: Optional[int] = None,
    base_delay: Optional[float] = None,
    related_type: Optional[str] = None,
    related_id: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> EmailResult:
    max_retries = max_retries or settings.EMAIL_MAX_RETRIES
    base_delay = settings.EMAIL_RETRY_BASE_DELAY if base_delay is None else base_delay

    result = EmailResult(success=False, error="not attempted")
    attempt = 0

    for attempt in range(1, max_retries + 1):
        try:
            result = send_email(message)
        except Exception as e:
            result = EmailResult(success=False, error=str(e))

        if result.success:
            logger.info(f"Email sent to {message.recipients} (attempt {attempt})")
            break

        logger.warning(f"Attempt {attempt} failed: {result.error}")

        if result.error == NOT_CONFIGURED:
            break  # config error → no retry

        if attempt < max_retries:
            sleep(base_delay * (2 ** (attempt - 1)) + random.random())

    if not result.success:
        logger.error(f"Email permanently failed: {result.error}")

    log_email_outcome(message, result, attempt, related_type, related_id)
    return result


def deliver(
    message: EmailMessage,
    related_type: Optional[str] = None,
    related_id: Optional[int] = None,
) -> EmailResult:
    """Like ``send_email_with_retry`` but raises ``DeliveryError`` once retries are spent."""
    result = send_email_with_retry(message, related_type=related_type, related_id=related_id)
    if not result.success:
        raise DeliveryError(f"'{message.subject}' to {', '.join(message.recipients)}: {result.error}")
    return result
