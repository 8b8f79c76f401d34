"""
A4 invoice layout drawn with the reportlab canvas.

The canvas is created with ``invariant=1`` so the same ``InvoiceData``
always produces the same bytes (no creation timestamps or random ids).
Line items that do not fit on a page continue on the next one under a
repeated table header; totals and the footer go on the last page.
"""
from io import BytesIO
from typing import List

from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from app.schemas.invoice_schemas import InvoiceData, InvoiceLineItem
from app.utils.formatting import format_currency

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN

INDIGO = HexColor("#4f46e5")
GREEN = HexColor("#10b981")
GRAY_50 = HexColor("#f9fafb")
GRAY_200 = HexColor("#e5e7eb")
GRAY_400 = HexColor("#9ca3af")
GRAY_500 = HexColor("#6b7280")
GRAY_700 = HexColor("#374151")
GRAY_800 = HexColor("#1f2937")
GRAY_900 = HexColor("#111827")

REGULAR = "Helvetica"
BOLD = "Helvetica-Bold"

# table columns: description 50%, qty 15%, unit price 17.5%, amount 17.5%
CELL_PADDING = 12
COL_DESCRIPTION = MARGIN + CELL_PADDING
COL_DESCRIPTION_WIDTH = CONTENT_WIDTH * 0.50 - CELL_PADDING
COL_QTY_CENTER = MARGIN + CONTENT_WIDTH * 0.575
COL_UNIT_RIGHT = MARGIN + CONTENT_WIDTH * 0.825 - 6
COL_AMOUNT_RIGHT = MARGIN + CONTENT_WIDTH - CELL_PADDING

TABLE_HEADER_HEIGHT = 30
TOTALS_WIDTH = 250
FOOTER_TOP = MARGIN + 62
LINE_HEIGHT_ITEM = 13
LINE_HEIGHT_DETAIL = 10


class InvoiceLayout:
    def __init__(self, invoice: InvoiceData, compress: bool = True):
        self.invoice = invoice
        self.buffer = BytesIO()
        self.canvas = canvas.Canvas(
            self.buffer,
            pagesize=A4,
            invariant=1,
            pageCompression=1 if compress else 0,
        )
        self.canvas.setTitle(f"Invoice {invoice.invoice_number}")
        self.canvas.setAuthor(invoice.company_name)
        self.canvas.setSubject("Invoice")
        self.page_number = 1
        self.y = PAGE_HEIGHT - MARGIN

    # ------------------------------------------------------------------
    # primitives
    # ------------------------------------------------------------------
    def text(self, x, y, value, font=REGULAR, size=10, color=GRAY_700, align="left"):
        c = self.canvas
        c.setFont(font, size)
        c.setFillColor(color)
        if align == "right":
            c.drawRightString(x, y, value)
        elif align == "center":
            c.drawCentredString(x, y, value)
        else:
            c.drawString(x, y, value)

    def rule(self, x1, y, x2, color=GRAY_200, width=1):
        c = self.canvas
        c.setStrokeColor(color)
        c.setLineWidth(width)
        c.line(x1, y, x2, y)

    def box(self, x, y, width, height, fill, radius=0):
        c = self.canvas
        c.setFillColor(fill)
        c.setStrokeColor(fill)
        if radius:
            c.roundRect(x, y, width, height, radius, stroke=0, fill=1)
        else:
            c.rect(x, y, width, height, stroke=0, fill=1)

    # ------------------------------------------------------------------
    # sections
    # ------------------------------------------------------------------
    def draw_header(self):
        inv = self.invoice
        top = PAGE_HEIGHT - MARGIN

        self.text(MARGIN, top - 20, inv.company_name, BOLD, 22, GRAY_800)

        y = top - 36
        details = [inv.company_email, inv.company_phone]
        details += simpleSplit(inv.company_address or "", REGULAR, 9, CONTENT_WIDTH / 2)
        for line in details:
            if not line:
                continue
            self.text(MARGIN, y, line, REGULAR, 9, GRAY_500)
            y -= 11

        if inv.gst_enabled and inv.gst_number:
            y -= 3
            self.text(MARGIN, y, f"GSTIN: {inv.gst_number}", BOLD, 9, GRAY_500)
            y -= 11

        right = PAGE_WIDTH - MARGIN
        self.text(right, top - 26, "INVOICE", BOLD, 32, INDIGO, align="right")
        self.text(right, top - 42, f"#{inv.invoice_number}", REGULAR, 10, GRAY_500, align="right")

        badge_bottom = top - 42
        if inv.is_paid:
            badge_width, badge_height = 48, 18
            badge_bottom = top - 68
            self.box(right - badge_width, badge_bottom, badge_width, badge_height, GREEN, radius=4)
            self.text(right - badge_width / 2, badge_bottom + 5.5, "PAID", BOLD, 10, white, align="center")

        bottom = min(y, badge_bottom) - 14
        self.rule(MARGIN, bottom, PAGE_WIDTH - MARGIN, INDIGO, 3)
        self.y = bottom - 30

    def draw_continuation_header(self):
        inv = self.invoice
        top = PAGE_HEIGHT - MARGIN
        self.text(MARGIN, top - 14, inv.company_name, BOLD, 14, GRAY_800)
        self.text(
            PAGE_WIDTH - MARGIN, top - 14,
            f"INVOICE #{inv.invoice_number} (continued)", BOLD, 10, INDIGO, align="right",
        )
        self.rule(MARGIN, top - 26, PAGE_WIDTH - MARGIN, INDIGO, 2)
        self.y = top - 46

    def draw_info_blocks(self):
        inv = self.invoice
        gap = 20
        width = (CONTENT_WIDTH - gap) / 2
        height = 84
        bottom = self.y - height

        bill_to = [(inv.customer_name, BOLD, 11, GRAY_900), (inv.customer_email, REGULAR, 10, GRAY_700)]
        if inv.customer_phone:
            bill_to.append((inv.customer_phone, REGULAR, 10, GRAY_700))

        details = [(f"Date: {inv.invoice_date}", REGULAR, 10, GRAY_700)]
        if inv.transaction_id:
            details.append((f"Transaction: {inv.transaction_id}", REGULAR, 10, GRAY_700))
        if inv.payment_method:
            details.append((f"Payment: {inv.payment_method}", REGULAR, 10, GRAY_700))

        for x, label, lines in (
            (MARGIN, "BILL TO", bill_to),
            (MARGIN + width + gap, "INVOICE DETAILS", details),
        ):
            self.box(x, bottom, width, height, GRAY_50, radius=8)
            self.text(x + 16, self.y - 22, label, BOLD, 9, GRAY_400)
            line_y = self.y - 40
            for value, font, size, color in lines:
                self.text(x + 16, line_y, value, font, size, color)
                line_y -= 14

        self.y = bottom - 30

    def draw_table_header(self):
        bottom = self.y - TABLE_HEADER_HEIGHT
        self.box(MARGIN, bottom, CONTENT_WIDTH, TABLE_HEADER_HEIGHT, INDIGO, radius=6)
        # square off the lower corners so the header sits flush on the first row
        self.box(MARGIN, bottom, CONTENT_WIDTH, 6, INDIGO)

        baseline = bottom + 11
        self.text(COL_DESCRIPTION, baseline, "DESCRIPTION", BOLD, 9, white)
        self.text(COL_QTY_CENTER, baseline, "QTY", BOLD, 9, white, align="center")
        self.text(COL_UNIT_RIGHT, baseline, "UNIT PRICE", BOLD, 9, white, align="right")
        self.text(COL_AMOUNT_RIGHT, baseline, "AMOUNT", BOLD, 9, white, align="right")
        self.y = bottom

    def item_lines(self, item: InvoiceLineItem):
        description = simpleSplit(item.description, BOLD, 10, COL_DESCRIPTION_WIDTH) or [""]
        details = simpleSplit(item.details or "", REGULAR, 8, COL_DESCRIPTION_WIDTH)
        return description, details

    def row_height(self, item: InvoiceLineItem) -> float:
        description, details = self.item_lines(item)
        height = 28 + len(description) * LINE_HEIGHT_ITEM
        if details:
            height += 4 + len(details) * LINE_HEIGHT_DETAIL
        return height

    def draw_item_row(self, index: int, item: InvoiceLineItem):
        height = self.row_height(item)
        bottom = self.y - height

        self.box(MARGIN, bottom, CONTENT_WIDTH, height, GRAY_50 if index % 2 == 1 else white)
        self.rule(MARGIN, bottom, PAGE_WIDTH - MARGIN)

        description, details = self.item_lines(item)
        first_baseline = self.y - 14 - 10
        line_y = first_baseline
        for line in description:
            self.text(COL_DESCRIPTION, line_y, line, BOLD, 10, GRAY_900)
            line_y -= LINE_HEIGHT_ITEM
        if details:
            line_y -= 2
            for line in details:
                self.text(COL_DESCRIPTION, line_y + 3, line, REGULAR, 8, GRAY_500)
                line_y -= LINE_HEIGHT_DETAIL

        self.text(COL_QTY_CENTER, first_baseline, str(item.quantity), REGULAR, 10, GRAY_700, align="center")
        self.text(COL_UNIT_RIGHT, first_baseline, format_currency(item.unit_price), REGULAR, 10, GRAY_700, align="right")
        self.text(COL_AMOUNT_RIGHT, first_baseline, format_currency(item.total), BOLD, 10, GRAY_900, align="right")

        self.y = bottom

    def totals_rows(self) -> List[tuple]:
        inv = self.invoice
        rows = [("Subtotal", format_currency(inv.subtotal), GRAY_700)]
        if inv.discount and inv.discount > 0:
            rows.append(("Discount", f"-{format_currency(inv.discount)}", GREEN))
        if inv.gst_enabled and inv.tax > 0:
            rows.append((f"GST ({format_rate(inv.tax_rate)}%)", format_currency(inv.tax), GRAY_700))
        return rows

    def totals_height(self) -> float:
        height = 16 + len(self.totals_rows()) * 18 + 38 + 16
        if self.invoice.gst_enabled:
            height += 22
        return height

    def draw_totals(self):
        inv = self.invoice
        height = self.totals_height()
        left = PAGE_WIDTH - MARGIN - TOTALS_WIDTH
        right = PAGE_WIDTH - MARGIN - 16
        top = self.y - 24
        self.box(left, top - height, TOTALS_WIDTH, height, GRAY_50, radius=8)

        y = top - 16 - 10
        for label, value, color in self.totals_rows():
            self.text(left + 16, y, label, REGULAR, 10, GRAY_500)
            self.text(right, y, value, REGULAR, 10, color, align="right")
            y -= 18

        y -= 2
        self.rule(left + 16, y, right, INDIGO, 2)
        y -= 24
        self.text(left + 16, y, "Total", BOLD, 14, GRAY_900)
        self.text(right, y, format_currency(inv.total), BOLD, 14, INDIGO, align="right")

        if inv.gst_enabled:
            y -= 14
            self.rule(left + 16, y, right)
            y -= 12
            self.text(left + 16, y, "* Prices are inclusive of GST", REGULAR, 8, GRAY_500)

        self.y = top - height

    def draw_footer(self):
        inv = self.invoice
        center = PAGE_WIDTH / 2
        self.rule(MARGIN, FOOTER_TOP, PAGE_WIDTH - MARGIN)
        self.text(center, FOOTER_TOP - 22, "Thank you for your business!", BOLD, 12, INDIGO, align="center")
        self.text(
            center, FOOTER_TOP - 38,
            f"For queries, contact us at {inv.company_email}", REGULAR, 9, GRAY_400, align="center",
        )
        if inv.company_phone:
            self.text(center, FOOTER_TOP - 50, f"Phone: {inv.company_phone}", REGULAR, 9, GRAY_400, align="center")

    def draw_page_number(self):
        self.text(PAGE_WIDTH - MARGIN, MARGIN - 20, f"Page {self.page_number}", REGULAR, 8, GRAY_400, align="right")

    def new_page(self):
        self.text(MARGIN, MARGIN + 10, "Continued on next page", REGULAR, 8, GRAY_400)
        self.draw_page_number()
        self.canvas.showPage()
        self.page_number += 1
        self.draw_continuation_header()

    # ------------------------------------------------------------------
    def render(self) -> bytes:
        self.draw_header()
        self.draw_info_blocks()
        self.draw_table_header()

        # rows may run down to the page margin except on the last page
        row_floor = MARGIN + 24
        for index, item in enumerate(self.invoice.items):
            if self.y - self.row_height(item) < row_floor:
                self.new_page()
                self.draw_table_header()
            self.draw_item_row(index, item)

        if self.y - 24 - self.totals_height() < FOOTER_TOP + 16:
            self.new_page()

        self.draw_totals()
        self.draw_footer()
        if self.page_number > 1:
            self.draw_page_number()

        self.canvas.showPage()
        self.canvas.save()
        return self.buffer.getvalue()


def format_rate(rate: float) -> str:
    """18.0 -> '18', 12.5 -> '12.5'"""
    return f"{rate:g}"


def render_invoice_pdf(invoice: InvoiceData, compress: bool = True) -> bytes:
    """Render an invoice to PDF bytes. Pure function of its input."""
    return InvoiceLayout(invoice, compress=compress).render()

