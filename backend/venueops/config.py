# backend/venueops/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///venueops.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Bookings without a resource ("solo" bookings) share one calendar per tenant.
    # Turn off to let solo bookings overlap freely.
    SOLO_BOOKINGS_EXCLUSIVE = _env_flag("SOLO_BOOKINGS_EXCLUSIVE", True)

    # Concurrency retry policy for write operations
    RETRY_ATTEMPTS = int(os.environ.get("RETRY_ATTEMPTS", "3"))
    RETRY_BACKOFF_BASE = float(os.environ.get("RETRY_BACKOFF_BASE", "0.1"))

    # Maximum price: 9,999,999.99 (999,999,999 cents)
    MAX_PRICE_CENTS = 999_999_999
