"""
Configuration for the ChemSus order backend.
Production (Railway/Render): uses DATABASE_URL only; fails if missing.
Local: DATABASE_URL or DB_* fallback.
"""
import os
from urllib.parse import quote_plus


def _is_production():
    """True when running on Railway, Render, or explicit production."""
    return (
        os.environ.get("RENDER") == "true"
        or os.environ.get("RAILWAY_ENVIRONMENT") is not None
        or os.environ.get("FLASK_ENV") == "production"
    )


def _env_flag(name, default="false"):
    return os.environ.get(name, default).lower() in ("true", "on", "1")


def _env_list(name, default=""):
    raw = os.environ.get(name, default)
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


def _normalize_database_url(url):
    """Convert postgres:// to postgresql+psycopg2:// for SQLAlchemy/psycopg2."""
    if not url:
        return url
    url = url.strip()
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url[11:]
    if url.startswith("postgresql://") and "psycopg2" not in url:
        return "postgresql+psycopg2://" + url[13:]
    return url


def _get_database_uri():
    """Database URI: production = DATABASE_URL only; local = DATABASE_URL or DB_*."""
    if _is_production():
        url = os.environ.get("DATABASE_URL")
        if not url or not url.strip():
            raise RuntimeError(
                "DATABASE_URL is required in production (Railway/Render). "
                "Set it in your service environment variables."
            )
        return _normalize_database_url(url.strip())

    url = os.environ.get("DATABASE_URL")
    if url and url.strip():
        return _normalize_database_url(url.strip())

    # DB_* values are trimmed; passwords with special characters are URL-encoded
    host = os.environ.get("DB_HOST", "localhost").strip()
    port = os.environ.get("DB_PORT", "5432").strip()
    name = os.environ.get("DB_NAME", "chemsus").strip()
    user = os.environ.get("DB_USER", "postgres").strip()
    password = os.environ.get("DB_PASSWORD", "").strip()
    if password:
        password = quote_plus(password)
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-key-change-in-production"

    SQLALCHEMY_DATABASE_URI = _get_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT") or 587)
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", "true")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER") or os.environ.get("MAIL_USERNAME") or "noreply@chemsus.in"

    # Email OTP gate for checkout. Changing OTP_SECRET invalidates every outstanding session.
    OTP_SECRET = os.environ.get("OTP_SECRET") or SECRET_KEY
    OTP_TTL_SECONDS = int(os.environ.get("OTP_TTL_SECONDS") or 600)
    OTP_RESEND_COOLDOWN_SECONDS = int(os.environ.get("OTP_RESEND_COOLDOWN_SECONDS") or 60)
    OTP_MAX_ATTEMPTS = int(os.environ.get("OTP_MAX_ATTEMPTS") or 5)
    OTP_TOKEN_TTL_SECONDS = int(os.environ.get("OTP_TOKEN_TTL_SECONDS") or 900)
    OTP_DEV_MODE = _env_flag("OTP_DEV_MODE", "false" if _is_production() else "true")

    # Bearer tokens come from the external identity provider; signatures are always verified
    AUTH_JWT_SECRET = os.environ.get("AUTH_JWT_SECRET")
    AUTH_JWKS_URL = os.environ.get("AUTH_JWKS_URL")
    AUTH_JWT_ALGORITHMS = [a.strip() for a in os.environ.get("AUTH_JWT_ALGORITHMS", "HS256,RS256,ES256").split(",") if a.strip()]
    AUTH_JWT_AUDIENCE = os.environ.get("AUTH_JWT_AUDIENCE") or None
    AUTH_JWT_ISSUER = os.environ.get("AUTH_JWT_ISSUER") or None
    ADMIN_EMAILS = _env_list("ADMIN_EMAILS")
    ADMIN_ROLES = _env_list("ADMIN_ROLES", "admin")

    UPI_VPA = os.environ.get("UPI_VPA")
    UPI_PAYEE_NAME = os.environ.get("UPI_PAYEE_NAME", "ChemSus")
