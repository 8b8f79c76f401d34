from app.notifications.channels import Channel
from app.notifications.events import PurchaseEvent


NOTIFICATION_RULES = {
    PurchaseEvent.WEBINAR_PAYMENT_COMPLETED: {
        Channel.EMAIL_USER: True,
        Channel.EMAIL_ADMIN: True,
    },
    PurchaseEvent.WEBINAR_FREE_REGISTERED: {
        Channel.EMAIL_USER: True,
        Channel.EMAIL_ADMIN: True,
    },
    PurchaseEvent.SERVICE_PAYMENT_COMPLETED: {
        Channel.EMAIL_USER: True,
        Channel.EMAIL_ADMIN: True,
    },
}
