from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel


class EmailLog(SQLModel, table=True):
    __tablename__ = "email_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    to_email: str
    subject: str
    status: str  # sent / failed
    attempts: int = Field(default=1)
    related_type: Optional[str] = None  # webinar | service | meeting_link
    related_id: Optional[int] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
