# Overview: Flask configuration classes; database, tax and invoice settings from the environment.

# backend/tillpoint/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///tillpoint.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Checkout
    TAX_RATE = os.environ.get("TAX_RATE", "0.10")
    INVOICE_PREFIX = os.environ.get("INVOICE_PREFIX", "POS")
    INVOICE_MAX_ATTEMPTS = int(os.environ.get("INVOICE_MAX_ATTEMPTS", "10"))

    # Post-commit side effects
    LOYALTY_POINTS_PER_UNIT = os.environ.get("LOYALTY_POINTS_PER_UNIT", "1")
    SIDE_EFFECTS_ASYNC = _env_bool("SIDE_EFFECTS_ASYNC", True)
    SIDE_EFFECT_WORKERS = int(os.environ.get("SIDE_EFFECT_WORKERS", "4"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    # In-memory sqlite shares one connection; hooks must run on the request thread.
    SIDE_EFFECTS_ASYNC = False
