from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _get_int_env(name: str, default: int, invalid: list[str]) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        # Reported by validate_settings so the app can list it instead of crashing.
        invalid.append(name)
        return default


@dataclass(frozen=True)
class Settings:
    database_url: str
    sqlite_db_path: str
    log_level: str
    app_title: str
    app_subtitle: str
    default_total_spots: int
    max_total_spots: int
    refresh_interval_seconds: int
    invalid_int_env: tuple[str, ...] = ()


def load_settings() -> Settings:
    invalid: list[str] = []
    return Settings(
        database_url=os.getenv("DATABASE_URL", "").strip(),
        sqlite_db_path=os.getenv("SQLITE_DB_PATH", "data/signup.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        app_title=os.getenv("APP_TITLE", "Claremont Pickleball"),
        app_subtitle=os.getenv("APP_SUBTITLE", "Weekly Signup"),
        default_total_spots=_get_int_env("DEFAULT_TOTAL_SPOTS", 8, invalid),
        max_total_spots=_get_int_env("MAX_TOTAL_SPOTS", 20, invalid),
        refresh_interval_seconds=_get_int_env("REFRESH_INTERVAL_SECONDS", 5, invalid),
        invalid_int_env=tuple(invalid),
    )


def validate_settings(settings: Settings) -> list[str]:
    errors: list[str] = [f"{name} must be an integer" for name in settings.invalid_int_env]
    if not settings.database_url and not settings.sqlite_db_path.strip():
        errors.append("SQLITE_DB_PATH is required when DATABASE_URL is not set")
    if settings.database_url and not settings.database_url.startswith(
        ("postgres://", "postgresql://")
    ):
        errors.append("DATABASE_URL must start with postgres:// or postgresql://")
    if settings.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        errors.append("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
    if settings.max_total_spots <= 0:
        errors.append("MAX_TOTAL_SPOTS must be > 0")
    if not 1 <= settings.default_total_spots <= max(settings.max_total_spots, 1):
        errors.append("DEFAULT_TOTAL_SPOTS must be between 1 and MAX_TOTAL_SPOTS")
    if settings.refresh_interval_seconds <= 0:
        errors.append("REFRESH_INTERVAL_SECONDS must be > 0")
    if not settings.app_title.strip():
        errors.append("APP_TITLE is required")
    return errors


def ensure_runtime_dirs(settings: Settings) -> None:
    if not settings.database_url:
        Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)
