from .events import PurchaseEvent, PurchaseNotice
from .dispatcher import dispatch_purchase_event

__all__ = [
    "PurchaseEvent",
    "PurchaseNotice",
    "dispatch_purchase_event",
]
