# backend/stockpro/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockpro.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///stockpro.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Field names inside legacy invoice/return line entries.
    # Legacy documents reference items by code, not by id.
    LEGACY_ITEM_CODE_FIELD = os.environ.get("LEGACY_ITEM_CODE_FIELD", "id")
    LEGACY_QUANTITY_FIELD = os.environ.get("LEGACY_QUANTITY_FIELD", "qty")

    # Retry policy for lock/deadlock failures
    DB_RETRY_ATTEMPTS = int(os.environ.get("DB_RETRY_ATTEMPTS", "3"))
    DB_RETRY_BACKOFF = float(os.environ.get("DB_RETRY_BACKOFF", "0.1"))
