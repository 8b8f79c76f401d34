import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from app.config import settings
from app.constants.payment_status import CONFIRMED_STATUSES, PaymentStatus
from app.exceptions import InvoiceUnavailable, PaymentPersistenceError, RenderError
from app.models.user import User
from app.schemas.invoice_schemas import InvoiceData, InvoiceLineItem
from app.services.invoice_pdf import render_invoice_pdf
from app.services.pricing_service import compute_gst_breakdown
from app.services.invoice_number import MAX_ATTEMPTS, issue_invoice_number
from app.services.purchase_service import (
    WEBINAR,
    PurchaseItem,
    PurchaseRecord,
    get_owned_purchase,
    get_purchase_item,
    purchase_model,
)
from app.services.site_settings_service import CompanyProfile, get_company_profile
from app.utils.formatting import format_date, to_money

logger = logging.getLogger(__name__)

_render_pool = ThreadPoolExecutor(
    max_workers=settings.INVOICE_RENDER_WORKERS, thread_name_prefix="invoice-render"
)


def describe_item(kind: str, item: Optional[PurchaseItem]) -> InvoiceLineItem:
    """Description/details pair for the single purchased item (prices filled in later)."""
    if kind == WEBINAR:
        title = item.title if item else "Webinar"
        details = None
        if item:
            details = f"Date: {format_date(item.webinar_date)} | Host: {item.host_name or 'Host'}"
        return InvoiceLineItem(
            description=f"Webinar Registration: {title}",
            details=details,
            unit_price=0,
            total=0,
        )

    return InvoiceLineItem(
        description=(item.name if item else None) or "Service",
        details=(item.short_description if item else None) or None,
        unit_price=0,
        total=0,
    )


def build_invoice_data(
    *,
    kind: str,
    record: PurchaseRecord,
    item: Optional[PurchaseItem],
    user: User,
    company: CompanyProfile,
    invoice_number: str,
    transaction_id: Optional[str],
    invoice_date: Optional[datetime] = None,
) -> InvoiceData:
    """
    One-line invoice for a purchase record.

    Prices are GST inclusive: the tax is extracted from ``amount_paid``.
    A coupon discount is shown on its own line and added back onto the
    subtotal so that subtotal - discount + tax == total.
    """
    total = record.amount_paid or 0
    breakdown = compute_gst_breakdown(total, company.gst_enabled, company.gst_rate)

    discount = record.discount_amount if record.discount_amount and record.discount_amount > 0 else None
    subtotal = breakdown.subtotal
    if discount:
        subtotal = float(to_money(subtotal) + to_money(discount))

    line = describe_item(kind, item)
    line.unit_price = subtotal
    line.total = subtotal

    payment_method = "Online Payment"
    if record.payment_status == PaymentStatus.FREE.value:
        payment_method = "Free Registration"

    return InvoiceData(
        invoice_number=invoice_number,
        invoice_date=format_date(invoice_date or datetime.utcnow()),
        customer_name=user.display_name,
        customer_email=user.email,
        customer_phone=user.phone,
        items=[line],
        subtotal=subtotal,
        discount=discount,
        tax=breakdown.tax,
        tax_rate=breakdown.tax_rate,
        total=breakdown.total,
        transaction_id=transaction_id,
        payment_method=payment_method,
        is_paid=True,
        company_name=company.name,
        company_email=company.email,
        company_address=company.address or None,
        company_phone=company.phone or None,
        gst_enabled=company.gst_enabled,
        gst_number=company.gst_number or None,
    )


def render_invoice(invoice: InvoiceData, timeout: Optional[float] = None) -> bytes:
    """Render in a worker thread, bounded by INVOICE_RENDER_TIMEOUT."""
    timeout = timeout or settings.INVOICE_RENDER_TIMEOUT
    future = _render_pool.submit(render_invoice_pdf, invoice)
    try:
        pdf_bytes = future.result(timeout=timeout)
    except FuturesTimeout as e:
        if not future.cancel():
            # a running render cannot be interrupted; its worker stays busy until it returns
            logger.warning(
                f"Invoice {invoice.invoice_number} render still running after {timeout}s; "
                f"one of {settings.INVOICE_RENDER_WORKERS} render workers is held"
            )
        raise RenderError(f"Invoice {invoice.invoice_number} took longer than {timeout}s to render") from e
    except Exception as e:
        raise RenderError(f"Invoice {invoice.invoice_number} could not be rendered: {e}") from e

    logger.info(f"Rendered invoice {invoice.invoice_number} ({len(pdf_bytes)} bytes)")
    return pdf_bytes


def invoice_filename(invoice_number: Optional[str], kind: str) -> str:
    return f"invoice-{invoice_number or kind}.pdf"


def assign_missing_invoice_number(session: Session, kind: str, record: PurchaseRecord) -> str:
    """Give a confirmed record without a number one, retrying on unique violations."""
    model = purchase_model(kind)

    for attempt in range(1, MAX_ATTEMPTS + 1):
        invoice_number = issue_invoice_number(session)
        try:
            session.execute(
                update(model)
                .where(model.id == record.id)
                .where(model.invoice_number.is_(None))
                .values(invoice_number=invoice_number)
            )
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.warning(f"Invoice number {invoice_number} rejected on write (attempt {attempt})")
            continue
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception(f"Could not store invoice number for {kind} {record.id}")
            raise PaymentPersistenceError("Failed to issue invoice number") from e

        # a concurrent download may have won; either way the row now has one
        session.refresh(record)
        return record.invoice_number

    raise PaymentPersistenceError("Failed to issue invoice number")


def invoice_for_download(session: Session, user: User, kind: str, record_id: int) -> Tuple[InvoiceData, bytes]:
    """
    Rebuild and render the invoice of a confirmed purchase on demand.
    Records confirmed without an invoice number get one issued here.
    """
    record = get_owned_purchase(session, kind, record_id, user.id)

    if record.payment_status not in {s.value for s in CONFIRMED_STATUSES}:
        raise InvoiceUnavailable("Invoice only available for completed payments")

    if not record.invoice_number:
        assign_missing_invoice_number(session, kind, record)

    invoice = build_invoice_data(
        kind=kind,
        record=record,
        item=get_purchase_item(session, kind, record),
        user=user,
        company=get_company_profile(session),
        invoice_number=record.invoice_number,
        transaction_id=record.payment_id,
        invoice_date=record.created_at,
    )
    return invoice, render_invoice(invoice)
