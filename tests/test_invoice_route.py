from app.constants.payment_status import PaymentStatus
from app.models.purchase import ServicePurchase
from app.services import invoice_service


def confirm(session, record, invoice_number=None, status=PaymentStatus.COMPLETED):
    record.payment_status = status.value
    record.invoice_number = invoice_number
    record.payment_id = "pay_Nx81"
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def test_download_completed_registration(client, session, auth, user, registration, site_settings):
    confirm(session, registration, "INV-202610-ABC123")

    response = client.get(f"/invoice?registration_id={registration.id}", headers=auth(user))

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="invoice-INV-202610-ABC123.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_invoice_number_issued_lazily(client, session, auth, user, service_purchase):
    confirm(session, service_purchase, invoice_number=None)

    first = client.get(f"/invoice?purchase_id={service_purchase.id}", headers=auth(user))
    session.refresh(service_purchase)
    number = service_purchase.invoice_number
    second = client.get(f"/invoice?purchase_id={service_purchase.id}", headers=auth(user))

    assert first.status_code == second.status_code == 200
    assert number is not None
    assert f"invoice-{number}.pdf" in first.headers["content-disposition"]
    assert f"invoice-{number}.pdf" in second.headers["content-disposition"]


def test_free_registration_has_an_invoice(client, session, auth, user, registration):
    confirm(session, registration, "INV-202610-FREE01", status=PaymentStatus.FREE)

    response = client.get(f"/invoice?registration_id={registration.id}", headers=auth(user))
    assert response.status_code == 200


def test_pending_record_has_no_invoice(client, auth, user, registration):
    response = client.get(f"/invoice?registration_id={registration.id}", headers=auth(user))

    assert response.status_code == 400
    assert response.json()["detail"] == "Invoice only available for completed payments"


def test_missing_reference(client, auth, user):
    assert client.get("/invoice", headers=auth(user)).status_code == 400


def test_other_users_invoice(client, session, auth, other_user, registration):
    confirm(session, registration, "INV-202610-ABC123")

    response = client.get(f"/invoice?registration_id={registration.id}", headers=auth(other_user))
    assert response.status_code == 404


def test_requires_authentication(client, registration):
    assert client.get(f"/invoice?registration_id={registration.id}").status_code == 401


def test_lazy_invoice_number_collision_is_retried(client, session, auth, user, other_user, service, service_purchase, monkeypatch):
    holder = ServicePurchase(
        user_id=other_user.id,
        service_id=service.id,
        amount_paid=1180,
        payment_status=PaymentStatus.COMPLETED.value,
        invoice_number="INV-202610-AAAAAA",
    )
    session.add(holder)
    session.commit()
    confirm(session, service_purchase, invoice_number=None)

    numbers = iter(["INV-202610-AAAAAA", "INV-202610-CCCCCC"])
    monkeypatch.setattr(invoice_service, "issue_invoice_number", lambda db: next(numbers))

    response = client.get(f"/invoice?purchase_id={service_purchase.id}", headers=auth(user))

    assert response.status_code == 200
    assert 'filename="invoice-INV-202610-CCCCCC.pdf"' in response.headers["content-disposition"]
    session.refresh(service_purchase)
    assert service_purchase.invoice_number == "INV-202610-CCCCCC"


def test_lazy_invoice_number_gives_up_after_repeated_collisions(
    client, session, auth, user, other_user, service, service_purchase, monkeypatch
):
    session.add(
        ServicePurchase(
            user_id=other_user.id,
            service_id=service.id,
            amount_paid=1180,
            payment_status=PaymentStatus.COMPLETED.value,
            invoice_number="INV-202610-AAAAAA",
        )
    )
    session.commit()
    confirm(session, service_purchase, invoice_number=None)
    monkeypatch.setattr(invoice_service, "issue_invoice_number", lambda db: "INV-202610-AAAAAA")

    response = client.get(f"/invoice?purchase_id={service_purchase.id}", headers=auth(user))

    assert response.status_code == 500
    session.refresh(service_purchase)
    assert service_purchase.invoice_number is None
