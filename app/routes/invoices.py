import io
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlmodel import Session

from app.database import get_session
from app.exceptions import PurchaseError, RenderError
from app.models.user import User
from app.schemas.payment_schemas import PurchaseReference
from app.services.invoice_service import invoice_filename, invoice_for_download
from app.utils.http_errors import to_http_exception
from app.utils.token import get_current_user

router = APIRouter()


@router.get("")
def download_invoice(
    registration_id: Optional[int] = None,
    purchase_id: Optional[int] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if registration_id is None and purchase_id is None:
        raise HTTPException(400, "Missing registration or purchase ID")
    if registration_id is not None and purchase_id is not None:
        raise HTTPException(400, "Provide either registration_id or purchase_id, not both")

    ref = PurchaseReference(registration_id=registration_id, purchase_id=purchase_id)

    try:
        invoice, pdf_bytes = invoice_for_download(session, current_user, ref.kind, ref.record_id)
    except RenderError:
        raise HTTPException(500, "Failed to generate invoice")
    except PurchaseError as e:
        raise to_http_exception(e)

    filename = invoice_filename(invoice.invoice_number, ref.kind)
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
