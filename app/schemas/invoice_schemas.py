# app/schemas/invoice_schemas.py
from pydantic import BaseModel
from typing import List, Optional


class InvoiceLineItem(BaseModel):
    description: str
    details: Optional[str] = None
    quantity: int = 1
    unit_price: float
    total: float


class InvoiceData(BaseModel):
    invoice_number: str
    invoice_date: str
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None

    items: List[InvoiceLineItem]

    subtotal: float
    discount: Optional[float] = None
    tax: float = 0
    tax_rate: float = 18
    total: float

    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    is_paid: bool = True

    company_name: str = "WebinarPro"
    company_email: str = "support@webinarpro.com"
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    gst_enabled: bool = False
    gst_number: Optional[str] = None
