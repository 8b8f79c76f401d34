import base64

import pytest

from app.config import settings
from app.schemas.email_schemas import EmailAttachment, EmailMessage
from app.services import email_service
from app.services.email_service import NOT_CONFIGURED, build_mime_message, send_email


class FakeSMTP:
    instances = []

    def __init__(self, host, port, context=None, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.logged_in = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, user, password):
        self.logged_in = (user, password)

    def send_message(self, message):
        self.sent.append(message)


@pytest.fixture
def smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(settings, "MAIL_TRANSPORT", "smtp")
    monkeypatch.setattr(settings, "SMTP_USER", "noreply@webinarpro.com")
    monkeypatch.setattr(settings, "SMTP_PASS", "app-password")
    monkeypatch.setattr(email_service.smtplib, "SMTP_SSL", FakeSMTP)
    monkeypatch.setattr(email_service.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def make_message(**overrides):
    fields = dict(
        to="asha@example.com",
        subject="Booking Confirmed: Scaling Postgres",
        html="<p>See you there</p>",
    )
    fields.update(overrides)
    return EmailMessage(**fields)


def test_unconfigured_transport_is_a_soft_failure(monkeypatch):
    monkeypatch.setattr(settings, "MAIL_TRANSPORT", "smtp")
    monkeypatch.setattr(settings, "SMTP_USER", None)
    monkeypatch.setattr(settings, "SMTP_PASS", None)

    result = send_email(make_message())

    assert result.success is False
    assert result.error == NOT_CONFIGURED


def test_smtp_over_implicit_tls(smtp, monkeypatch):
    monkeypatch.setattr(settings, "SMTP_PORT", 465)

    result = send_email(make_message())

    assert result.success
    server = smtp.instances[0]
    assert server.port == 465
    assert not server.started_tls
    assert server.logged_in == ("noreply@webinarpro.com", "app-password")
    assert server.sent[0]["Subject"] == "Booking Confirmed: Scaling Postgres"


def test_smtp_starttls_on_other_ports(smtp, monkeypatch):
    monkeypatch.setattr(settings, "SMTP_PORT", 587)

    assert send_email(make_message()).success
    assert smtp.instances[0].started_tls


def test_transport_errors_do_not_raise(smtp, monkeypatch):
    def refuse(self, user, password):
        raise OSError("connection reset")

    monkeypatch.setattr(FakeSMTP, "login", refuse)

    result = send_email(make_message())

    assert result.success is False
    assert "connection reset" in result.error


def test_invalid_recipients_are_dropped(smtp):
    result = send_email(make_message(to=["not-an-email", ""]))

    assert result.success is False
    assert result.error == "No valid recipients"
    assert smtp.instances == []


def test_mime_message_carries_attachment():
    message = make_message(
        sender="WebinarPro <noreply@webinarpro.com>",
        attachments=[EmailAttachment(filename="invoice-INV-202610-ABC123.pdf", content=b"%PDF-1.4")],
    )

    mime = build_mime_message(message, ["asha@example.com"])
    attachments = list(mime.iter_attachments())

    assert len(attachments) == 1
    assert attachments[0].get_filename() == "invoice-INV-202610-ABC123.pdf"
    assert attachments[0].get_content() == b"%PDF-1.4"


def test_brevo_transport(monkeypatch):
    captured = {}

    class FakeResponse:
        status_code = 201
        text = ""

        def json(self):
            return {"messageId": "<brevo-1>"}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers)
        return FakeResponse()

    monkeypatch.setattr(settings, "MAIL_TRANSPORT", "brevo")
    monkeypatch.setattr(settings, "BREVO_API_KEY", "xkeysib-test")
    monkeypatch.setattr(email_service.requests, "post", fake_post)

    message = make_message(attachments=[EmailAttachment(filename="invoice.pdf", content=b"%PDF")])
    result = send_email(message)

    assert result.success
    assert result.message_id == "<brevo-1>"
    assert captured["headers"]["api-key"] == "xkeysib-test"
    assert captured["json"]["to"] == [{"email": "asha@example.com"}]
    assert captured["json"]["attachment"][0]["content"] == base64.b64encode(b"%PDF").decode()
