"""
Application configuration.

Values are read from the environment (a ``.env`` file is loaded by app.py
through python-dotenv). The defaults are meant for local development only.
"""

import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Base configuration shared by all environments."""

    APP_NAME = "RFQ Portal"
    VERSION = "1.0.0"

    SECRET_KEY = os.getenv("SECRET_KEY", "dev_secret")

    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'rfq.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # supplier bearer tokens
    JWT_SECRET = os.getenv("JWT_SECRET") or SECRET_KEY
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_HOURS = int(os.getenv("JWT_EXPIRES_HOURS", "24"))

    # werkzeug hash method string, the iteration count is the cost factor
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "pbkdf2:sha256:600000")
    PASSWORD_RESET_MINUTES = 60

    # admin session ("remember me" keeps it for 30 days)
    REMEMBER_COOKIE_DURATION = timedelta(days=30)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", str(BASE_DIR / "uploads"))
    MAX_CONTENT_LENGTH = int(os.getenv("MAX_FILE_SIZE", str(10 * 1024 * 1024)))
    ALLOWED_FILE_TYPES = [
        ext.strip().lower()
        for ext in os.getenv("ALLOWED_FILE_TYPES", "xlsx,pdf,doc,docx").split(",")
        if ext.strip()
    ]

    MAIL_SERVER = os.getenv("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "25"))
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", False)
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "noreply@rfq.local")
    MAIL_ASYNC = _env_bool("MAIL_ASYNC", True)

    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

    EXPOSE_ERROR_DETAIL = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    DEBUG = True
    EXPOSE_ERROR_DETAIL = True


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test_secret"
    JWT_SECRET = "test_jwt_secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    MAIL_SUPPRESS_SEND = True
    MAIL_ASYNC = False
    LOG_LEVEL = "WARNING"


class ProductionConfig(Config):
    SESSION_COOKIE_SECURE = True


CONFIG_BY_NAME = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}
