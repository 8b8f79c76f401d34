import logging
import random
import string
from datetime import datetime
from typing import Callable, Optional

from sqlmodel import Session, select

from app.models.purchase import ServicePurchase, WebinarRegistration

logger = logging.getLogger(__name__)

ALPHABET = string.digits + string.ascii_uppercase  # base36
SUFFIX_LENGTH = 6
MAX_ATTEMPTS = 5

_rng = random.SystemRandom()


def generate_invoice_number(
    now: Optional[datetime] = None,
    choice: Optional[Callable[[str], str]] = None,
) -> str:
    """INV-{YYYY}{MM}-{6 base36 chars}. Pure, never fails."""
    now = now or datetime.utcnow()
    pick = choice or _rng.choice
    suffix = "".join(pick(ALPHABET) for _ in range(SUFFIX_LENGTH))
    return f"INV-{now.year}{now.month:02d}-{suffix}"


def invoice_number_taken(session: Session, invoice_number: str) -> bool:
    for model in (WebinarRegistration, ServicePurchase):
        hit = session.exec(
            select(model.id).where(model.invoice_number == invoice_number)
        ).first()
        if hit is not None:
            return True
    return False


def issue_invoice_number(
    session: Session,
    generator: Callable[[], str] = generate_invoice_number,
    max_attempts: int = MAX_ATTEMPTS,
) -> str:
    """
    Generate a number not yet used by any purchase record.
    The unique index on invoice_number still guards concurrent writers.
    """
    candidate = generator()
    for attempt in range(1, max_attempts + 1):
        if not invoice_number_taken(session, candidate):
            return candidate
        logger.warning(f"Invoice number collision on {candidate} (attempt {attempt})")
        candidate = generator()
    return candidate
