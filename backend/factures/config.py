# backend/factures/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/factures.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///factures.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Account promoted to admin when it signs up
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@facturesto.local")

    # Invoice numbers look like FAC-2024-0001
    INVOICE_NUMBER_PREFIX = os.environ.get("INVOICE_NUMBER_PREFIX", "FAC")
    INVOICE_NUMBER_PAD = int(os.environ.get("INVOICE_NUMBER_PAD", "4"))

    RESTAURANT_NAME = os.environ.get("RESTAURANT_NAME", "FactuResto")

    # Insert the default catalog the first time the product list is read
    SEED_CATALOG_ON_EMPTY = _env_flag("SEED_CATALOG_ON_EMPTY", "true")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    }
