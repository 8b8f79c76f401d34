from app.models.user import User
from app.models.webinar import Webinar
from app.models.service import Service
from app.models.coupon import Coupon, CouponUsage
from app.models.purchase import WebinarRegistration, ServicePurchase
from app.models.site_settings import SiteSettings
from app.models.email import EmailLog

# add ALL models here
