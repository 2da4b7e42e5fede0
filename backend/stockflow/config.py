# backend/stockflow/config.py
from __future__ import annotations
import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockflow.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Used to build password reset links
    FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:5173")
    PASSWORD_RESET_TTL_MINUTES = int(os.environ.get("PASSWORD_RESET_TTL_MINUTES", "60"))

    # Mail: "brevo" (HTTP API) or "smtp" (Flask-Mail relay)
    MAIL_TRANSPORT = os.environ.get("MAIL_TRANSPORT", "brevo")
    MAIL_DEFAULT_SENDER = os.environ.get("EMAIL_FROM", "stockflow.erp@gmail.com")
    MAIL_SENDER_NAME = os.environ.get("MAIL_SENDER_NAME", "StockFlow ERP")
    MAIL_TIMEOUT_SECONDS = float(os.environ.get("MAIL_TIMEOUT_SECONDS", "15"))
    BREVO_API_KEY = os.environ.get("BREVO_API_KEY")
    BREVO_API_URL = os.environ.get("BREVO_API_URL", "https://api.brevo.com/v3/smtp/email")

    # Flask-Mail settings for the SMTP relay
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "smtp-relay.brevo.com")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", False)
    MAIL_USERNAME = os.environ.get("BREVO_SMTP_USER")
    MAIL_PASSWORD = os.environ.get("BREVO_SMTP_PASS")

    # Cloudinary (bill storage)
    CLOUDINARY_CLOUD_NAME = os.environ.get("CLOUDINARY_CLOUD_NAME")
    CLOUDINARY_API_KEY = os.environ.get("CLOUDINARY_API_KEY")
    CLOUDINARY_API_SECRET = os.environ.get("CLOUDINARY_API_SECRET")
    BILL_UPLOAD_FOLDER = os.environ.get("BILL_UPLOAD_FOLDER", "stockflow_bills")
    BILL_UPLOAD_ATTEMPTS = int(os.environ.get("BILL_UPLOAD_ATTEMPTS", "2"))

    # "inline": upload + email before responding; "background": thread pool
    BILL_DISPATCH_MODE = os.environ.get("BILL_DISPATCH_MODE", "inline")
    BILL_DISPATCH_WORKERS = int(os.environ.get("BILL_DISPATCH_WORKERS", "4"))

    # "deferred": batch job (flask sales recalc-velocity); "sync": per sale
    SALES_VELOCITY_MODE = os.environ.get("SALES_VELOCITY_MODE", "deferred")

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))
    FORECAST_WARNING_DAYS = float(os.environ.get("FORECAST_WARNING_DAYS", "7"))
