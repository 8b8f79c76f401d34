from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FREE = "free"
    FAILED = "failed"
    REFUNDED = "refunded"


ALLOWED_TRANSITIONS = {
    PaymentStatus.PENDING: [PaymentStatus.COMPLETED, PaymentStatus.FREE, PaymentStatus.FAILED],
    # refunds are a manual admin action outside the completion flow
    PaymentStatus.COMPLETED: [PaymentStatus.REFUNDED],
    PaymentStatus.FREE: [],
    PaymentStatus.FAILED: [],
    PaymentStatus.REFUNDED: [],
}

# statuses that count as a confirmed seat / purchase
CONFIRMED_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.FREE)


def can_transition(current: str, target: str) -> bool:
    return PaymentStatus(target) in ALLOWED_TRANSITIONS.get(PaymentStatus(current), [])
