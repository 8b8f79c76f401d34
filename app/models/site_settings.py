from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

class SiteSettings(SQLModel, table=True):
    __tablename__ = "site_settings"

    id: Optional[int] = Field(default=1, primary_key=True)
    site_name: Optional[str] = None
    company_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    gst_enabled: bool = Field(default=False)
    gst_number: Optional[str] = None
    gst_rate: Optional[float] = Field(default=18)

    updated_at: datetime = Field(default_factory=datetime.utcnow)
