from dataclasses import dataclass
from typing import Optional

from sqlmodel import Session

from app.models.site_settings import SiteSettings
from app.services.pricing_service import DEFAULT_GST_RATE

DEFAULT_COMPANY_NAME = "WebinarPro"
DEFAULT_COMPANY_EMAIL = "support@webinarpro.com"


@dataclass(frozen=True)
class CompanyProfile:
    name: str
    email: str
    phone: str
    address: str
    gst_enabled: bool
    gst_number: str
    gst_rate: float


def get_company_profile(session: Session) -> CompanyProfile:
    """Issuer identity and GST config for invoices, with defaults for a missing row."""
    row: Optional[SiteSettings] = session.get(SiteSettings, 1)

    if row is None:
        return CompanyProfile(
            name=DEFAULT_COMPANY_NAME,
            email=DEFAULT_COMPANY_EMAIL,
            phone="",
            address="",
            gst_enabled=False,
            gst_number="",
            gst_rate=DEFAULT_GST_RATE,
        )

    return CompanyProfile(
        name=row.company_name or row.site_name or DEFAULT_COMPANY_NAME,
        email=row.email or DEFAULT_COMPANY_EMAIL,
        phone=row.phone or "",
        address=row.address or "",
        gst_enabled=bool(row.gst_enabled),
        gst_number=row.gst_number or "",
        gst_rate=row.gst_rate or DEFAULT_GST_RATE,
    )
