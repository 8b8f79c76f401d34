from pydantic_settings import BaseSettings
from typing import List, Optional
from urllib.parse import quote_plus

class Settings(BaseSettings):
    postgres_user: str = "postgres"
    postgres_password: str = ""
    postgres_db: str = "webinarpro"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # full URL override, e.g. sqlite:// for local runs
    DATABASE_URL: Optional[str] = None

    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    base_url: str = "http://localhost:3000"
    ENV: str = "production"
    LOG_LEVEL: str = "INFO"

    # mail
    MAIL_TRANSPORT: str = "smtp"  # smtp | brevo
    SMTP_HOST: str = "smtp.zoho.in"
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    EMAIL_FROM: Optional[str] = None
    BREVO_API_KEY: Optional[str] = None
    STORE_NAME: str = "WebinarPro"
    ADMIN_EMAILS: List[str] = []
    EMAIL_MAX_RETRIES: int = 3
    EMAIL_RETRY_BASE_DELAY: float = 2.0

    # gateway
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_WEBHOOK_SECRET: str = ""

    INVOICE_RENDER_TIMEOUT: float = 10.0
    INVOICE_RENDER_WORKERS: int = 4

    @property
    def database_url(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def mail_sender(self) -> str:
        return self.EMAIL_FROM or f"{self.STORE_NAME} <{self.SMTP_USER}>"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
