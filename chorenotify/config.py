"""
Family Chores Notify — Centralized configuration.

Loads all settings from .env and validates required keys.
Every store, adapter and entry point reads its defaults from here.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from chorenotify/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Resend (outbound email transport)
    RESEND_API_KEY: str
    EMAIL_FROM: str = "Family Chores <noreply@familychores.app>"
    APP_NAME: str = "Family Chores"

    # SQLite
    DATABASE_PATH: str = "data/chores.db"

    # Local timezone used for quiet hours, digest times and calendar days
    TIMEZONE: str = "UTC"

    # Reminder engine
    REMINDER_INTERVAL_MINUTES: int = 5
    REMINDER_LOOKAHEAD_HOURS: int = 24
    REMINDER_RATE_LIMIT_HOURS: int = 12

    LOG_LEVEL: str = "INFO"

    @field_validator(
        "REMINDER_INTERVAL_MINUTES",
        "REMINDER_LOOKAHEAD_HOURS",
        "REMINDER_RATE_LIMIT_HOURS",
        mode="before",
    )
    @classmethod
    def parse_positive_int(cls, v: str | int) -> int:
        value = int(v)
        if value <= 0:
            raise ValueError(f"must be a positive integer, got {value}")
        return value

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        return str(v).strip().upper() or "INFO"


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    api_key = os.getenv("RESEND_API_KEY", "")

    if not api_key or api_key.startswith("your-"):
        print("ERROR: RESEND_API_KEY is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        RESEND_API_KEY=api_key,
        EMAIL_FROM=os.getenv("EMAIL_FROM", "Family Chores <noreply@familychores.app>"),
        APP_NAME=os.getenv("APP_NAME", "Family Chores"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/chores.db"),
        TIMEZONE=os.getenv("TIMEZONE", "UTC"),
        REMINDER_INTERVAL_MINUTES=os.getenv("REMINDER_INTERVAL_MINUTES", "5"),
        REMINDER_LOOKAHEAD_HOURS=os.getenv("REMINDER_LOOKAHEAD_HOURS", "24"),
        REMINDER_RATE_LIMIT_HOURS=os.getenv("REMINDER_RATE_LIMIT_HOURS", "12"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton — imported by all other modules as:
#   from chorenotify.config import settings
settings = _load_settings()
