import logging
from dataclasses import dataclass
from typing import Optional

import razorpay
from razorpay.errors import SignatureVerificationError

from app.config import settings

logger = logging.getLogger(__name__)

# Initialize Razorpay client
razorpay_client = razorpay.Client(
    auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
)

SUCCESS_EVENTS = {"payment.captured", "order.paid"}
FAILURE_EVENTS = {"payment.failed"}


@dataclass
class GatewayEvent:
    event: str
    order_id: Optional[str] = None
    payment_id: Optional[str] = None


def parse_webhook_event(data: dict) -> GatewayEvent:
    """Pull the event name and order/payment ids out of a webhook body."""
    payload = data.get("payload") or {}
    payment = (payload.get("payment") or {}).get("entity") or {}
    order = (payload.get("order") or {}).get("entity") or {}

    return GatewayEvent(
        event=data.get("event") or "",
        order_id=payment.get("order_id") or order.get("id"),
        payment_id=payment.get("id"),
    )


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    """Check the checkout callback signature against our key secret."""
    try:
        razorpay_client.utility.verify_payment_signature({
            "razorpay_order_id": order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
        })
    except SignatureVerificationError:
        logger.warning(f"Signature verification failed for gateway order {order_id}")
        return False
    return True


def create_gateway_order(amount: float, receipt: str, notes: dict) -> dict:
    """Open a Razorpay order for the amount due (rupees, converted to paise)."""
    return razorpay_client.order.create({
        "amount": int(round(amount * 100)),
        "currency": "INR",
        "receipt": receipt,
        "notes": notes,
    })


def verify_webhook_signature(body: str, signature: str) -> bool:
    """Check a server-to-server event body against the webhook secret."""
    if not settings.RAZORPAY_WEBHOOK_SECRET:
        logger.error("RAZORPAY_WEBHOOK_SECRET is not set; rejecting webhook")
        return False
    try:
        razorpay_client.utility.verify_webhook_signature(
            body, signature, settings.RAZORPAY_WEBHOOK_SECRET
        )
    except SignatureVerificationError:
        logger.warning("Webhook signature verification failed")
        return False
    return True
