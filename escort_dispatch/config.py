"""
Escort Dispatch — Centralized configuration.

Loads all settings from .env and validates them.
Only wiring code (main.py, the service factory) reads this module; core
services receive their tunables through their constructors.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, ValidationError, field_validator

# Load .env from project root (one level up from escort_dispatch/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_CONFLICT_POLICIES = ("ignore", "warn", "reject")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # SQLite table + property store
    DATABASE_PATH: str = "data/escorts.db"

    # Read-through cache lifetimes (seconds)
    CACHE_TTL_SECONDS: int = 300
    CACHE_LONG_TTL_SECONDS: int = 1800

    # Scheduling
    CONFLICT_WINDOW_MINUTES: int = 60
    ASSIGNMENT_CONFLICT_POLICY: str = "ignore"   # ignore | warn | reject
    TIMEZONE: str = "America/Chicago"            # office clock for timestamps

    # Locks around read-modify-write sequences
    LOCK_TIMEOUT_SECONDS: float = 10.0

    # Rotation order lives in the property store under this key
    ROTATION_PROPERTY_KEY: str = "riderRotationOrder"

    # Notification transport (empty URL → notifications disabled)
    NOTIFY_WEBHOOK_URL: str = ""
    NOTIFY_THROTTLE_SECONDS: float = 1.0

    LOG_LEVEL: str = "INFO"

    @field_validator(
        "CACHE_TTL_SECONDS", "CACHE_LONG_TTL_SECONDS", "CONFLICT_WINDOW_MINUTES",
        mode="before",
    )
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        value = int(v)
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("LOCK_TIMEOUT_SECONDS", "NOTIFY_THROTTLE_SECONDS", mode="before")
    @classmethod
    def parse_float(cls, v: str | float) -> float:
        value = float(v)
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @field_validator("ASSIGNMENT_CONFLICT_POLICY", mode="before")
    @classmethod
    def parse_policy(cls, v: str) -> str:
        policy = (v or "ignore").strip().lower()
        if policy not in _CONFLICT_POLICIES:
            raise ValueError(f"expected one of {', '.join(_CONFLICT_POLICIES)}")
        return policy

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("TIMEZONE", mode="before")
    @classmethod
    def parse_timezone(cls, v: str) -> str:
        name = (v or "").strip()
        if not name:
            raise ValueError("time zone is required")
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            raise ValueError(f"unknown time zone {v!r}") from None
        return name


def _load_settings() -> Settings:
    """Load settings from environment, exiting on invalid values."""
    try:
        return Settings(
            DATABASE_PATH=os.getenv("DATABASE_PATH", "data/escorts.db"),
            CACHE_TTL_SECONDS=os.getenv("CACHE_TTL_SECONDS", "300"),
            CACHE_LONG_TTL_SECONDS=os.getenv("CACHE_LONG_TTL_SECONDS", "1800"),
            CONFLICT_WINDOW_MINUTES=os.getenv("CONFLICT_WINDOW_MINUTES", "60"),
            ASSIGNMENT_CONFLICT_POLICY=os.getenv("ASSIGNMENT_CONFLICT_POLICY", "ignore"),
            TIMEZONE=os.getenv("TIMEZONE", "America/Chicago"),
            LOCK_TIMEOUT_SECONDS=os.getenv("LOCK_TIMEOUT_SECONDS", "10"),
            ROTATION_PROPERTY_KEY=os.getenv("ROTATION_PROPERTY_KEY", "riderRotationOrder"),
            NOTIFY_WEBHOOK_URL=os.getenv("NOTIFY_WEBHOOK_URL", ""),
            NOTIFY_THROTTLE_SECONDS=os.getenv("NOTIFY_THROTTLE_SECONDS", "1.0"),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )
    except ValidationError as exc:
        print(f"ERROR: invalid configuration in .env:\n{exc}", file=sys.stderr)
        sys.exit(1)


# Singleton — imported by wiring code as:
#   from escort_dispatch.config import settings
settings = _load_settings()
