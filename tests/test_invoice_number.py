import re
from datetime import datetime

from app.constants.payment_status import PaymentStatus
from app.models.purchase import ServicePurchase
from app.services.invoice_number import (
    generate_invoice_number,
    invoice_number_taken,
    issue_invoice_number,
)

PATTERN = re.compile(r"^INV-\d{6}-[0-9A-Z]{6}$")


def test_format():
    number = generate_invoice_number(now=datetime(2026, 3, 5))

    assert PATTERN.match(number)
    assert number.startswith("INV-202603-")


def test_suffix_comes_from_choice():
    number = generate_invoice_number(now=datetime(2026, 10, 17), choice=lambda alphabet: "Z")
    assert number == "INV-202610-ZZZZZZ"


def test_numbers_vary():
    numbers = {generate_invoice_number() for _ in range(50)}
    assert len(numbers) > 1


def test_taken_checks_both_purchase_tables(session, service_purchase):
    service_purchase.invoice_number = "INV-202610-SVC001"
    service_purchase.payment_status = PaymentStatus.COMPLETED.value
    session.add(service_purchase)
    session.commit()

    assert invoice_number_taken(session, "INV-202610-SVC001")
    assert not invoice_number_taken(session, "INV-202610-FREE01")


def test_issue_skips_numbers_already_in_use(session, user, service):
    session.add(
        ServicePurchase(
            user_id=user.id,
            service_id=service.id,
            amount_paid=100,
            payment_status=PaymentStatus.COMPLETED.value,
            invoice_number="INV-202610-AAAAAA",
        )
    )
    session.commit()

    candidates = iter(["INV-202610-AAAAAA", "INV-202610-BBBBBB"])
    assert issue_invoice_number(session, generator=lambda: next(candidates)) == "INV-202610-BBBBBB"
