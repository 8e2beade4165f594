# backend/atelier/config.py
from __future__ import annotations
import os
from datetime import timedelta


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/atelier.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///atelier.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Session tokens (JWT, HS256). Falls back to SECRET_KEY when unset.
    JWT_SECRET = os.environ.get("JWT_SECRET") or SECRET_KEY
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES = timedelta(days=int(os.environ.get("JWT_EXPIRES_DAYS", "7")))

    AUTH_COOKIE_NAME = "token"
    AUTH_COOKIE_SECURE = (os.environ.get("APP_ENV") or os.environ.get("FLASK_ENV")) == "production"

    # Second factor
    OTP_EXPIRES = timedelta(minutes=5)
    LOGIN_CHALLENGE_EXPIRES = timedelta(minutes=10)

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Outbound mail (OTP codes)
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", "587"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", True)
    MAIL_USERNAME = os.environ.get("EMAIL_USER")
    MAIL_PASSWORD = os.environ.get("EMAIL_PASS")
    MAIL_DEFAULT_SENDER = os.environ.get("EMAIL_USER") or "no-reply@atelier.local"
    MAIL_SUPPRESS_SEND = not (MAIL_USERNAME and MAIL_PASSWORD)

    # AI design generation
    STABILITY_API_KEY = os.environ.get("STABILITY_API_KEY")
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
    IMAGE_PROVIDERS = [
        p.strip()
        for p in os.environ.get("IMAGE_PROVIDERS", "stability,openai,pollinations").split(",")
        if p.strip()
    ]
    IMAGE_PROVIDER_TIMEOUT = 60
    DESIGN_FREE_LIMIT = 5

    # Uploaded invoices, locker proofs and generated designs
    UPLOAD_FOLDER = os.environ.get(
        "UPLOAD_FOLDER",
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "uploads"),
    )
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    LOW_STOCK_THRESHOLD = 10

    CLIENT_URL = os.environ.get("CLIENT_URL", "http://localhost:5173")
