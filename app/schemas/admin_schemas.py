# app/schemas/admin_schemas.py
from pydantic import BaseModel


class SendMeetingLinksRequest(BaseModel):
    webinar_id: int
    meeting_link: str
