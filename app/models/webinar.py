from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import date, datetime


class Webinar(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(index=True, unique=True)
    host_name: Optional[str] = None

    webinar_date: date
    start_time: str = Field(default="00:00")  # HH:MM, IST

    price: float = Field(default=0)
    total_slots: int = Field(default=0)
    available_slots: int = Field(default=0)

    meeting_link: Optional[str] = None
    meeting_platform: str = Field(default="zoom")  # zoom | google_meet

    created_at: datetime = Field(default_factory=datetime.utcnow)
