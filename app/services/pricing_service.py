from decimal import Decimal
from typing import NamedTuple

from app.utils.formatting import Number, to_money

DEFAULT_GST_RATE = 18.0


class TaxBreakdown(NamedTuple):
    subtotal: float
    tax: float
    tax_rate: float
    total: float


def compute_gst_breakdown(
    total_amount: Number,
    gst_enabled: bool,
    gst_rate: Number = DEFAULT_GST_RATE,
) -> TaxBreakdown:
    """
    Extract GST from a tax-inclusive total:

        tax      = round(total * rate / (100 + rate), 2)
        subtotal = round(total - tax, 2)

    Rounding is half-up on exact decimals.
    """
    total = to_money(total_amount)
    rate = Decimal(str(gst_rate))

    if gst_enabled and total > 0:
        tax = to_money(total * rate / (Decimal(100) + rate))
    else:
        tax = Decimal("0.00")

    subtotal = to_money(total - tax)
    return TaxBreakdown(
        subtotal=float(subtotal),
        tax=float(tax),
        tax_rate=float(rate),
        total=float(total),
    )


def apply_discount(amount: Number, discount: Number) -> float:
    """Final price after a discount, floored at zero."""
    final = to_money(amount) - to_money(discount)
    return float(max(final, Decimal("0.00")))
