from typing import Optional, Tuple, Type, Union

from sqlmodel import Session, select

from app.exceptions import PurchaseNotFound
from app.models.purchase import ServicePurchase, WebinarRegistration
from app.models.service import Service
from app.models.webinar import Webinar

PurchaseRecord = Union[WebinarRegistration, ServicePurchase]
PurchaseItem = Union[Webinar, Service]

WEBINAR = "webinar"
SERVICE = "service"

PURCHASE_MODELS = {
    WEBINAR: WebinarRegistration,
    SERVICE: ServicePurchase,
}


def purchase_model(kind: str) -> Type[PurchaseRecord]:
    return PURCHASE_MODELS[kind]


def get_owned_purchase(
    session: Session, kind: str, record_id: int, user_id: int
) -> PurchaseRecord:
    """Fetch a purchase record scoped to its owner; someone else's record is 'not found'."""
    model = purchase_model(kind)
    record = session.exec(
        select(model)
        .where(model.id == record_id)
        .where(model.user_id == user_id)
    ).first()

    if record is None:
        raise PurchaseNotFound(kind, record_id)
    return record


def get_purchase_item(session: Session, kind: str, record: PurchaseRecord) -> Optional[PurchaseItem]:
    if kind == WEBINAR:
        return session.get(Webinar, record.webinar_id)
    return session.get(Service, record.service_id)


def purchase_item_id(kind: str, record: PurchaseRecord) -> int:
    return record.webinar_id if kind == WEBINAR else record.service_id


def find_by_gateway_order(session: Session, order_id: str) -> Optional[Tuple[str, PurchaseRecord]]:
    """Registrations are searched before service purchases."""
    for kind, model in PURCHASE_MODELS.items():
        record = session.exec(
            select(model).where(model.gateway_order_id == order_id)
        ).first()
        if record is not None:
            return kind, record
    return None
