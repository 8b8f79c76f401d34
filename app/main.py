import logging

from fastapi import FastAPI
from app.database import create_db_and_tables
from app.config import settings
from app.routes import (
    admin,
    coupons,
    health,
    invoices,
    payments,
    webinars,
)

from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.ENV == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="WebinarPro Payments API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
        settings.base_url,
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(payments.router, prefix="/payment", tags=["Payments"])
app.include_router(invoices.router, prefix="/invoice", tags=["Invoices"])
app.include_router(coupons.router, prefix="/coupon", tags=["Coupons"])
app.include_router(webinars.router, prefix="/webinar", tags=["Webinars"])
app.include_router(admin.router, prefix="/admin", tags=["Admin Endpoints"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "payment_endpoints": ["/payment/order", "/payment/complete", "/payment/verify", "/payment/webhook"],
        "invoice_endpoints": ["/invoice?registration_id=", "/invoice?purchase_id="],
        "coupon_endpoints": ["/coupon/validate"],
        "webinar_endpoints": ["/webinar/register"],
        "admin_endpoints": ["/admin/send-meeting-links", "/admin/sync-slots"],
        "health": ["/health/check"],
    }
