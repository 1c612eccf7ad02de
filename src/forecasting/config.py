"""
Environment-driven settings for the forecasting service.
"""

import os

from .engine import DAYS_BACK, PREVENT_MARGIN_HOURS


def get_database_url() -> str:
    """Database URL, from DATABASE_URL or the POSTGRES_* variables."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    DB_USER = os.getenv("POSTGRES_USER", "postgres")
    DB_PASS = os.getenv("POSTGRES_PASSWORD", "postgres")
    DB_HOST = os.getenv("POSTGRES_HOST", "localhost")
    DB_PORT = os.getenv("POSTGRES_PORT", "5433")
    DB_NAME = os.getenv("POSTGRES_DB", "plants")

    return f"postgresql+psycopg2://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


def get_window_days() -> int:
    """Days of logs fetched per sensor before forecasting."""
    return int(os.getenv("FORECAST_WINDOW_DAYS", DAYS_BACK))


def get_prevent_margin_hours() -> float:
    return float(os.getenv("PREVENT_MARGIN_HOURS", PREVENT_MARGIN_HOURS))


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_port() -> int:
    return int(os.getenv("PORT", 8000))
