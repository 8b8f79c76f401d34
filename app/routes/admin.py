from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from app.database import get_session
from app.models.user import User
from app.models.webinar import Webinar
from app.schemas.admin_schemas import SendMeetingLinksRequest
from app.services.inventory_service import sync_available_slots
from app.services.purchase_email_service import send_bulk_meeting_links
from app.services.registration_service import meeting_link_recipients
from app.services.site_settings_service import get_company_profile
from app.utils.token import get_current_user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return current_user


router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/send-meeting-links")
def send_meeting_links(
    payload: SendMeetingLinksRequest,
    session: Session = Depends(get_session),
):
    webinar = session.get(Webinar, payload.webinar_id)
    if not webinar:
        raise HTTPException(404, "Webinar not found")

    webinar.meeting_link = payload.meeting_link
    session.add(webinar)
    session.commit()
    session.refresh(webinar)

    recipients = meeting_link_recipients(session, webinar)
    result = send_bulk_meeting_links(recipients, get_company_profile(session).name)

    return {
        "message": f"Meeting links sent to {result.successful} of {result.total} attendees",
        **result.model_dump(),
    }


@router.post("/sync-slots")
def sync_slots(session: Session = Depends(get_session)):
    synced = sync_available_slots(session)
    return {"message": "Slots synced", "webinars_synced": synced}
