import hashlib
import hmac
import logging
import re
from datetime import date

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from app.constants.payment_status import PaymentStatus
from app.models.coupon import Coupon, CouponUsage
from app.models.purchase import WebinarRegistration
from app.models.webinar import Webinar
from app.schemas.email_schemas import EmailResult
from app.services import email_retry, invoice_service, payment_service

INVOICE_PATTERN = re.compile(r"^INV-\d{6}-[0-9A-Z]{6}$")


def complete(client, headers, order_id="pay_Nx81", **ref):
    return client.post("/payment/complete", json={"order_id": order_id, **ref}, headers=headers)


def test_webinar_payment_completes(client, session, auth, user, webinar, registration, site_settings, outbox):
    response = complete(client, auth(user), registration_id=registration.id)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["already_completed"] is False
    assert INVOICE_PATTERN.match(body["invoice_number"])

    session.refresh(registration)
    session.refresh(webinar)
    assert registration.payment_status == PaymentStatus.COMPLETED.value
    assert registration.payment_id == "pay_Nx81"
    assert registration.invoice_number == body["invoice_number"]
    assert webinar.available_slots == 9

    assert len(outbox) == 1
    assert outbox[0].subject == "Booking Confirmed: Scaling Postgres"
    attachment = outbox[0].attachments[0]
    assert attachment.filename == f"invoice-{body['invoice_number']}.pdf"
    assert attachment.content.startswith(b"%PDF")


def test_completion_is_idempotent(client, session, auth, user, webinar, registration, outbox):
    first = complete(client, auth(user), registration_id=registration.id).json()
    second = complete(client, auth(user), registration_id=registration.id)

    assert second.status_code == 200
    assert second.json()["already_completed"] is True
    assert second.json()["invoice_number"] == first["invoice_number"]

    session.refresh(webinar)
    assert webinar.available_slots == 9
    assert len(outbox) == 1


def test_service_purchase_completes_without_touching_slots(
    client, session, auth, user, webinar, service_purchase, outbox
):
    response = complete(client, auth(user), purchase_id=service_purchase.id)

    assert response.status_code == 200
    session.refresh(service_purchase)
    session.refresh(webinar)
    assert service_purchase.payment_status == PaymentStatus.COMPLETED.value
    assert webinar.available_slots == 10
    assert outbox[0].subject == "Purchase Confirmed: Resume Review"


def test_other_users_record_is_not_found(client, session, auth, other_user, webinar, registration, outbox):
    response = complete(client, auth(other_user), registration_id=registration.id)

    assert response.status_code == 404
    assert response.json()["detail"] == "Registration not found"

    session.refresh(registration)
    session.refresh(webinar)
    assert registration.payment_status == PaymentStatus.PENDING.value
    assert registration.invoice_number is None
    assert webinar.available_slots == 10
    assert outbox == []


def test_unknown_purchase(client, auth, user):
    response = complete(client, auth(user), purchase_id=9999)

    assert response.status_code == 404
    assert response.json()["detail"] == "Purchase not found"


def test_missing_reference(client, auth, user):
    response = complete(client, auth(user))

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing registration or purchase ID"


def test_both_references_rejected(client, auth, user, registration, service_purchase):
    response = complete(client, auth(user), registration_id=registration.id, purchase_id=service_purchase.id)
    assert response.status_code == 422


def test_requires_authentication(client, session, registration):
    response = complete(client, {}, registration_id=registration.id)

    assert response.status_code == 401
    session.refresh(registration)
    assert registration.payment_status == PaymentStatus.PENDING.value


def test_rejects_garbage_token(client, registration):
    response = complete(client, {"Authorization": "Bearer not-a-jwt"}, registration_id=registration.id)
    assert response.status_code == 401


def test_sold_out_webinar_floors_at_zero(client, session, auth, user, webinar, registration):
    webinar.available_slots = 0
    session.add(webinar)
    session.commit()

    response = complete(client, auth(user), registration_id=registration.id)

    assert response.status_code == 200
    session.refresh(webinar)
    session.refresh(registration)
    assert webinar.available_slots == 0
    assert registration.payment_status == PaymentStatus.COMPLETED.value


def test_failed_record_cannot_be_completed(client, session, auth, user, registration):
    registration.payment_status = PaymentStatus.FAILED.value
    session.add(registration)
    session.commit()

    response = complete(client, auth(user), registration_id=registration.id)

    assert response.status_code == 409
    session.refresh(registration)
    assert registration.payment_status == PaymentStatus.FAILED.value


def test_mail_failure_does_not_fail_completion(client, session, auth, user, registration, monkeypatch):
    def explode(message):
        raise RuntimeError("smtp down")

    monkeypatch.setattr(email_retry, "send_email", explode)

    response = complete(client, auth(user), registration_id=registration.id)

    assert response.status_code == 200
    session.refresh(registration)
    assert registration.payment_status == PaymentStatus.COMPLETED.value


def test_render_failure_sends_email_without_invoice(client, session, auth, user, registration, outbox, monkeypatch):
    def broken_renderer(invoice, compress=True):
        raise ValueError("font missing")

    monkeypatch.setattr(invoice_service, "render_invoice_pdf", broken_renderer)

    response = complete(client, auth(user), registration_id=registration.id)

    assert response.status_code == 200
    assert len(outbox) == 1
    assert outbox[0].attachments == []


def test_coupon_is_redeemed_with_the_transition(client, session, auth, user, registration):
    coupon = Coupon(code="EARLY100", discount_type="fixed", discount_value=100)
    session.add(coupon)
    session.commit()
    registration.coupon_id = coupon.id
    registration.discount_amount = 100
    registration.amount_paid = 399
    session.add(registration)
    session.commit()

    complete(client, auth(user), registration_id=registration.id)
    complete(client, auth(user), registration_id=registration.id)

    session.refresh(coupon)
    usages = session.exec(select(CouponUsage)).all()
    assert coupon.current_uses == 1
    assert len(usages) == 1
    assert usages[0].discount_amount == 100


def sign(order_id, payment_id, secret="rzp_test_secret"):
    return hmac.new(secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()


def test_verify_with_valid_signature(client, session, auth, user, registration):
    response = client.post(
        "/payment/verify",
        json={
            "registration_id": registration.id,
            "razorpay_order_id": "order_Q1",
            "razorpay_payment_id": "pay_Q1",
            "razorpay_signature": sign("order_Q1", "pay_Q1"),
        },
        headers=auth(user),
    )

    assert response.status_code == 200
    session.refresh(registration)
    assert registration.payment_status == PaymentStatus.COMPLETED.value
    assert registration.payment_id == "pay_Q1"


def test_verify_with_bad_signature_marks_failed(client, session, auth, user, webinar, registration, outbox):
    response = client.post(
        "/payment/verify",
        json={
            "registration_id": registration.id,
            "razorpay_order_id": "order_Q1",
            "razorpay_payment_id": "pay_Q1",
            "razorpay_signature": sign("order_Q1", "pay_Q1", secret="wrong"),
        },
        headers=auth(user),
    )

    assert response.status_code == 400
    session.refresh(registration)
    session.refresh(webinar)
    assert registration.payment_status == PaymentStatus.FAILED.value
    assert webinar.available_slots == 10
    assert outbox == []


def pending_registration(session, user, webinar, status=PaymentStatus.PENDING, **fields):
    record = WebinarRegistration(
        user_id=user.id,
        webinar_id=webinar.id,
        amount_paid=webinar.price,
        payment_status=status.value,
        **fields,
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def test_concurrent_completion_reports_already_completed(
    client, session, auth, user, webinar, registration, outbox, monkeypatch
):
    registration_id = registration.id

    def issue_after_other_request_wins(db):
        # the other request commits between our status read and our guarded UPDATE
        db.execute(
            update(WebinarRegistration)
            .where(WebinarRegistration.id == registration_id)
            .values(payment_status=PaymentStatus.COMPLETED.value, invoice_number="INV-202610-OTHER1")
        )
        db.commit()
        return "INV-202610-MINE01"

    monkeypatch.setattr(payment_service, "issue_invoice_number", issue_after_other_request_wins)

    response = complete(client, auth(user), registration_id=registration_id)

    assert response.status_code == 200
    assert response.json()["already_completed"] is True
    assert response.json()["invoice_number"] == "INV-202610-OTHER1"

    session.refresh(registration)
    session.refresh(webinar)
    assert registration.invoice_number == "INV-202610-OTHER1"
    assert registration.payment_id is None
    assert webinar.available_slots == 10
    assert outbox == []


def test_invoice_number_collision_is_retried(client, session, auth, user, other_user, webinar, registration, monkeypatch):
    pending_registration(
        session, other_user, webinar, status=PaymentStatus.COMPLETED, invoice_number="INV-202610-AAAAAA"
    )
    numbers = iter(["INV-202610-AAAAAA", "INV-202610-BBBBBB"])
    monkeypatch.setattr(payment_service, "issue_invoice_number", lambda db: next(numbers))

    response = complete(client, auth(user), registration_id=registration.id)

    assert response.status_code == 200
    assert response.json()["invoice_number"] == "INV-202610-BBBBBB"
    session.refresh(registration)
    session.refresh(webinar)
    assert registration.payment_status == PaymentStatus.COMPLETED.value
    assert registration.invoice_number == "INV-202610-BBBBBB"
    assert webinar.available_slots == 9


def test_invoice_number_collisions_give_up(client, session, auth, user, other_user, webinar, registration, monkeypatch):
    pending_registration(
        session, other_user, webinar, status=PaymentStatus.COMPLETED, invoice_number="INV-202610-AAAAAA"
    )
    monkeypatch.setattr(payment_service, "issue_invoice_number", lambda db: "INV-202610-AAAAAA")

    response = complete(client, auth(user), registration_id=registration.id)

    assert response.status_code == 500
    session.refresh(registration)
    assert registration.payment_status == PaymentStatus.PENDING.value
    assert registration.invoice_number is None


def test_database_error_returns_500_and_leaves_record_untouched(
    client, session, auth, user, webinar, registration, outbox, monkeypatch
):
    coupon = Coupon(code="EARLY100", discount_type="fixed", discount_value=100)
    session.add(coupon)
    session.commit()
    registration.coupon_id = coupon.id
    session.add(registration)
    session.commit()

    def locked(db, **usage):
        raise OperationalError("UPDATE coupon", {}, Exception("database is locked"))

    monkeypatch.setattr(payment_service, "record_coupon_usage", locked)

    response = complete(client, auth(user), registration_id=registration.id)

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to complete payment"

    session.refresh(registration)
    session.refresh(webinar)
    assert registration.payment_status == PaymentStatus.PENDING.value
    assert registration.invoice_number is None
    assert registration.payment_id is None
    assert webinar.available_slots == 10
    assert outbox == []


def test_last_slot_is_taken_exactly_once(client, session, auth, user, other_user, webinar, registration):
    webinar.available_slots = 1
    session.add(webinar)
    session.commit()
    rival = pending_registration(session, other_user, webinar)

    first = complete(client, auth(user), registration_id=registration.id)
    second = complete(client, auth(other_user), registration_id=rival.id)

    assert first.status_code == second.status_code == 200
    session.refresh(webinar)
    assert webinar.available_slots == 0


def register_with_coupon(client, headers, webinar_id, code):
    response = client.post("/webinar/register", json={"webinar_id": webinar_id, "coupon_code": code}, headers=headers)
    assert response.status_code == 200
    return response.json()["registration_id"]


def test_per_user_coupon_limit_holds_across_pending_registrations(client, session, auth, user, webinar):
    second = Webinar(
        title="Query Planning",
        slug="query-planning",
        host_name="Meera Iyer",
        webinar_date=date(2026, 11, 7),
        start_time="19:30",
        price=499,
        total_slots=50,
        available_slots=10,
    )
    coupon = Coupon(code="ONCE", discount_type="fixed", discount_value=100, max_uses_per_user=1)
    session.add(second)
    session.add(coupon)
    session.commit()

    # neither registration is paid yet, so both pass the checkout check
    ids = [register_with_coupon(client, auth(user), w.id, "ONCE") for w in (webinar, second)]

    for registration_id in ids:
        assert complete(client, auth(user), registration_id=registration_id).status_code == 200

    session.refresh(coupon)
    usages = session.exec(select(CouponUsage).where(CouponUsage.coupon_id == coupon.id)).all()
    assert len(usages) == 1
    assert coupon.current_uses == 1
    statuses = [session.get(WebinarRegistration, i).payment_status for i in ids]
    assert statuses == [PaymentStatus.COMPLETED.value, PaymentStatus.COMPLETED.value]


def test_global_coupon_limit_holds_at_completion(client, session, auth, user, other_user, webinar):
    coupon = Coupon(code="FIRST1", discount_type="fixed", discount_value=50, max_uses=1, max_uses_per_user=None)
    session.add(coupon)
    session.commit()

    ids = [
        register_with_coupon(client, auth(user), webinar.id, "FIRST1"),
        register_with_coupon(client, auth(other_user), webinar.id, "FIRST1"),
    ]
    complete(client, auth(user), registration_id=ids[0])
    complete(client, auth(other_user), registration_id=ids[1])

    session.refresh(coupon)
    usages = session.exec(select(CouponUsage)).all()
    assert coupon.current_uses == 1
    assert [u.user_id for u in usages] == [user.id]


def test_undelivered_confirmation_is_logged(client, session, auth, user, registration, monkeypatch, caplog):
    monkeypatch.setattr(
        email_retry, "send_email", lambda message: EmailResult(success=False, error="550 mailbox unavailable")
    )

    with caplog.at_level(logging.WARNING, logger="app.notifications.dispatcher"):
        response = complete(client, auth(user), registration_id=registration.id)

    assert response.status_code == 200
    assert "not delivered" in caplog.text
    assert "550 mailbox unavailable" in caplog.text
