# backend/storefront/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///storefront.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Sessions
    SESSION_MAX_AGE_DAYS = _env_int("SESSION_MAX_AGE_DAYS", 30)
    PASSWORD_RESET_TTL_MINUTES = _env_int("PASSWORD_RESET_TTL_MINUTES", 60)

    # Payment gateway fallback when no PaymentConfig row is stored
    RAZORPAY_KEY_ID = os.environ.get("RAZORPAY_KEY_ID")
    RAZORPAY_KEY_SECRET = os.environ.get("RAZORPAY_KEY_SECRET")
    RAZORPAY_API_BASE = os.environ.get("RAZORPAY_API_BASE", "https://api.razorpay.com/v1")
    CURRENCY = os.environ.get("CURRENCY", "INR")

    # SMS provider
    FAST2SMS_API_BASE = os.environ.get("FAST2SMS_API_BASE", "https://www.fast2sms.com/dev")

    # Timeout applied to every outbound provider call
    HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "10"))

    # Uploads
    UPLOAD_FOLDER = os.environ.get(
        "UPLOAD_FOLDER",
        os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "instance", "uploads"),
    )
    UPLOAD_URL_PREFIX = os.environ.get("UPLOAD_URL_PREFIX", "/uploads")
    MAX_UPLOAD_BYTES = _env_int("MAX_UPLOAD_BYTES", 5 * 1024 * 1024)
    ALLOWED_IMAGE_TYPES = (
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/gif",
    )

    # Checkout
    FREE_DELIVERY_THRESHOLD = float(os.environ.get("FREE_DELIVERY_THRESHOLD", "500"))
    DELIVERY_CHARGE = float(os.environ.get("DELIVERY_CHARGE", "50"))

    SITE_URL = os.environ.get("SITE_URL", "http://localhost:3000")
    # Contact form recipient; falls back to the SMTP sender address
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL")
    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    )
