# backend/stockflow/config.py
from __future__ import annotations
import os


def _split_csv(value: str) -> set[str]:
    return {part.strip() for part in value.split(",") if part.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Local SQLite by default; production points DATABASE_URL at PostgreSQL
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockflow.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Identity is validated upstream (API gateway JWT authorizer) and forwarded as headers
    IDENTITY_USER_ID_HEADER = os.environ.get("IDENTITY_USER_ID_HEADER", "X-User-Id")
    IDENTITY_EMAIL_HEADER = os.environ.get("IDENTITY_EMAIL_HEADER", "X-User-Email")

    # Basis points (825 = 8.25%)
    SALES_TAX_RATE_BPS = int(os.environ.get("SALES_TAX_RATE_BPS", "825"))

    CORS_ALLOWED_ORIGINS = _split_csv(
        os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        )
    )


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
