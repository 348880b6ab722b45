# backend/replenish/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/replenish.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///replenish.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Purchase orders generated during fulfillment count as received stock
    # the moment they are created. Turn off to post stock on explicit receipt.
    PURCHASE_ORDER_IMMEDIATE_RECEIPT = _env_flag("PURCHASE_ORDER_IMMEDIATE_RECEIPT", True)
    DEFAULT_SUPPLIER = os.environ.get("DEFAULT_SUPPLIER", "General Supplier")
    DEFAULT_REORDER_THRESHOLD = int(os.environ.get("DEFAULT_REORDER_THRESHOLD", "10"))

    DB_RETRY_ATTEMPTS = int(os.environ.get("DB_RETRY_ATTEMPTS", "3"))
