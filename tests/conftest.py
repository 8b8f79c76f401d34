"""
Pytest configuration for the payment service tests.

Settings are read at import time, so the environment is prepared before
anything from ``app`` is imported.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["RAZORPAY_WEBHOOK_SECRET"] = "rzp_webhook_secret"
os.environ["ENV"] = "test"

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app import database
from app.config import settings
from app.constants.payment_status import PaymentStatus
from app.database import build_engine, create_db_and_tables, get_session
from app.main import app
from app.models.purchase import ServicePurchase, WebinarRegistration
from app.models.service import Service
from app.models.site_settings import SiteSettings
from app.models.user import User
from app.models.webinar import Webinar
from app.schemas.email_schemas import EmailResult
from app.services import email_retry, purchase_email_service
from app.utils.token import create_access_token


@pytest.fixture
def engine(monkeypatch):
    engine = build_engine("sqlite://")
    create_db_and_tables(engine)
    # email log rows are written through app.database.engine
    monkeypatch.setattr(database, "engine", engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Captures every message instead of talking to a mail server."""
    sent = []

    def fake_send(message):
        sent.append(message)
        return EmailResult(success=True, message_id=f"<test-{len(sent)}@webinarpro>")

    monkeypatch.setattr(email_retry, "send_email", fake_send)
    monkeypatch.setattr(purchase_email_service, "send_email", fake_send)
    monkeypatch.setattr(settings, "EMAIL_MAX_RETRIES", 1)
    monkeypatch.setattr(settings, "ADMIN_EMAILS", [])
    return sent


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(session):
    user = User(email="asha@example.com", full_name="Asha Rao", phone="+91 98450 00000")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def other_user(session):
    user = User(email="ravi@example.com", full_name="Ravi Kumar")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def admin_user(session):
    user = User(email="admin@webinarpro.com", full_name="Admin", role="admin")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def site_settings(session):
    row = SiteSettings(
        id=1,
        company_name="WebinarPro Learning",
        email="billing@webinarpro.com",
        phone="+91 80 4000 0000",
        address="12 MG Road, Bengaluru",
        gst_enabled=True,
        gst_number="29ABCDE1234F1Z5",
        gst_rate=18,
    )
    session.add(row)
    session.commit()
    return row


@pytest.fixture
def webinar(session):
    webinar = Webinar(
        title="Scaling Postgres",
        slug="scaling-postgres",
        host_name="Meera Iyer",
        webinar_date=date(2026, 10, 24),
        start_time="19:30",
        price=499,
        total_slots=50,
        available_slots=10,
    )
    session.add(webinar)
    session.commit()
    session.refresh(webinar)
    return webinar


@pytest.fixture
def free_webinar(session):
    webinar = Webinar(
        title="Intro to FastAPI",
        slug="intro-to-fastapi",
        host_name="Kiran",
        webinar_date=date(2026, 11, 2),
        start_time="10:00",
        price=0,
        total_slots=100,
        available_slots=3,
    )
    session.add(webinar)
    session.commit()
    session.refresh(webinar)
    return webinar


@pytest.fixture
def service(session):
    service = Service(
        name="Resume Review",
        slug="resume-review",
        short_description="One-on-one resume feedback session",
        price=1180,
    )
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@pytest.fixture
def registration(session, user, webinar):
    registration = WebinarRegistration(
        user_id=user.id,
        webinar_id=webinar.id,
        amount_paid=499,
        payment_status=PaymentStatus.PENDING.value,
    )
    session.add(registration)
    session.commit()
    session.refresh(registration)
    return registration


@pytest.fixture
def service_purchase(session, user, service):
    purchase = ServicePurchase(
        user_id=user.id,
        service_id=service.id,
        amount_paid=1180,
        payment_status=PaymentStatus.PENDING.value,
    )
    session.add(purchase)
    session.commit()
    session.refresh(purchase)
    return purchase


@pytest.fixture
def auth():
    return auth_headers
