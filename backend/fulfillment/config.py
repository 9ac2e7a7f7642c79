# backend/fulfillment/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file next to the instance by default; any SQLAlchemy URL works
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///fulfillment.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Seconds a SQLite writer waits on the database lock before giving up
    SQLITE_BUSY_TIMEOUT = float(os.environ.get("SQLITE_BUSY_TIMEOUT", "15"))

    ORDER_CODE_PREFIX = os.environ.get("ORDER_CODE_PREFIX", "ORD")
    RETURN_CODE_PREFIX = os.environ.get("RETURN_CODE_PREFIX", "RET")

    # Ceiling given to partners created without an explicit debt_limit (10,000,000.00)
    DEFAULT_DEBT_LIMIT_CENTS = int(os.environ.get("DEFAULT_DEBT_LIMIT_CENTS", "1000000000"))


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    LOG_LEVEL = "WARNING"
