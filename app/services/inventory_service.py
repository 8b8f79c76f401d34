import logging

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.constants.payment_status import CONFIRMED_STATUSES
from app.models.purchase import WebinarRegistration
from app.models.webinar import Webinar

logger = logging.getLogger(__name__)


def decrement_webinar_slot(session: Session, webinar_id: int) -> bool:
    """
    Take one seat, never going below zero.

    Single conditional UPDATE so concurrent completions cannot both
    consume the last seat. Returns False when no seat was taken.
    """
    result = session.execute(
        update(Webinar)
        .where(Webinar.id == webinar_id)
        .where(Webinar.available_slots > 0)
        .values(available_slots=Webinar.available_slots - 1)
    )
    session.commit()

    if result.rowcount == 0:
        logger.warning(f"No slot decremented for webinar {webinar_id} (sold out or missing)")
        return False

    logger.info(f"Decremented available slots for webinar {webinar_id}")
    return True


def count_confirmed_registrations(session: Session, webinar_id: int) -> int:
    return session.exec(
        select(func.count(WebinarRegistration.id))
        .where(WebinarRegistration.webinar_id == webinar_id)
        .where(WebinarRegistration.payment_status.in_([s.value for s in CONFIRMED_STATUSES]))
    ).one()


def sync_available_slots(session: Session) -> int:
    """Recompute available_slots from confirmed registrations for every webinar."""
    webinars = session.exec(select(Webinar)).all()

    synced = 0
    for webinar in webinars:
        confirmed = count_confirmed_registrations(session, webinar.id)
        correct = max(0, webinar.total_slots - confirmed)
        if webinar.available_slots != correct:
            logger.info(
                f"Webinar {webinar.id}: available_slots {webinar.available_slots} -> {correct}"
            )
            webinar.available_slots = correct
            session.add(webinar)
        synced += 1

    session.commit()
    return synced
