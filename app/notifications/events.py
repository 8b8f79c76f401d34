from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PurchaseEvent(str, Enum):
    WEBINAR_PAYMENT_COMPLETED = "webinar_payment_completed"
    WEBINAR_FREE_REGISTERED = "webinar_free_registered"
    SERVICE_PAYMENT_COMPLETED = "service_payment_completed"


@dataclass
class PurchaseNotice:
    """Everything the notification job needs, captured before the request ends."""

    event: PurchaseEvent
    record_id: int
    user_email: str
    user_name: str
    item_title: str
    amount: float
    company_name: str
    dashboard_url: str

    # webinar details
    item_date: Optional[str] = None
    item_time: Optional[str] = None
    host_name: Optional[str] = None
    # service details
    item_description: Optional[str] = None

    transaction_id: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_pdf: Optional[bytes] = None

    @property
    def is_webinar(self) -> bool:
        return self.event in (
            PurchaseEvent.WEBINAR_PAYMENT_COMPLETED,
            PurchaseEvent.WEBINAR_FREE_REGISTERED,
        )
