"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration.

    Tests derive variants with ``dataclasses.replace`` instead of mutating
    process environment.
    """

    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    database_busy_timeout_seconds: float
    admin_token: str | None
    seed_demo_rooms: bool
    max_stay_days: int
    session_ttl_seconds: int
    room_types: tuple[str, ...]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    admin_token = os.getenv("ADMIN_TOKEN")
    return Settings(
        app_name=_env_str("MOTEL_APP_NAME", "Motel Reservation Service"),
        app_version=_env_str("MOTEL_APP_VERSION", "1.0.0"),
        log_level=_env_str("MOTEL_LOG_LEVEL", "INFO"),
        database_path=Path(_env_str("MOTEL_DATABASE_PATH", "data/motel.db")),
        database_busy_timeout_seconds=_env_float("MOTEL_DATABASE_BUSY_TIMEOUT", 10.0),
        admin_token=admin_token.strip() if admin_token and admin_token.strip() else None,
        seed_demo_rooms=_env_str("MOTEL_SEED_DEMO_ROOMS", "true").lower() in {"1", "true", "yes"},
        max_stay_days=_env_int("MOTEL_MAX_STAY_DAYS", 365),
        session_ttl_seconds=_env_int("MOTEL_SESSION_TTL_SECONDS", 12 * 60 * 60),
        room_types=tuple(
            item.strip()
            for item in _env_str("MOTEL_ROOM_TYPES", "single,double,suite").split(",")
            if item.strip()
        ),
    )
