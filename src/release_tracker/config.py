# src/release_tracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "RELTRACK"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector flags ----
    console_enabled: bool
    matrix_enabled: bool

    # ---- Matrix (alert surface) ----
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_rooms: List[str]

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    matrix_store_path: Path

    # ---- Reminder tuning ----
    reminder_max_wait_seconds: float
    reminder_fire_slack_seconds: float
    reminder_recheck_interval_seconds: float
    alert_title: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "release-tracker") or "release-tracker"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        matrix_enabled = _env_bool(_k("MATRIX_ENABLED"), False)

        matrix_homeserver = _env(_k("MATRIX_HOMESERVER")).strip()
        matrix_user_id = _env(_k("MATRIX_USER_ID")).strip()
        matrix_password = _env(_k("MATRIX_PASSWORD")).strip()
        matrix_rooms = _env_list(_k("MATRIX_ROOMS"), [])

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/release-tracker"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "release_tracker.sqlite3")
        matrix_store_path = _env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store")

        # Host timer facilities clamp very long single waits; one hour is the ceiling.
        reminder_max_wait_seconds = max(1.0, _env_float(_k("REMINDER_MAX_WAIT_SECONDS"), 3600.0))
        reminder_fire_slack_seconds = max(0.0, _env_float(_k("REMINDER_FIRE_SLACK_SECONDS"), 1.0))
        reminder_recheck_interval_seconds = max(
            1.0, _env_float(_k("REMINDER_RECHECK_INTERVAL_SECONDS"), 60.0)
        )
        alert_title = _env(_k("ALERT_TITLE"), "Release Task Reminder") or "Release Task Reminder"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            matrix_enabled=matrix_enabled,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            matrix_rooms=matrix_rooms,
            data_dir=data_dir,
            db_path=db_path,
            matrix_store_path=matrix_store_path,
            reminder_max_wait_seconds=reminder_max_wait_seconds,
            reminder_fire_slack_seconds=reminder_fire_slack_seconds,
            reminder_recheck_interval_seconds=reminder_recheck_interval_seconds,
            alert_title=alert_title,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS


def matrix_rooms_or_none(settings: Settings) -> Optional[List[str]]:
    """Configured alert rooms, or None when Matrix alerts have nowhere to go."""
    rooms = [r for r in (settings.matrix_rooms or []) if r]
    return rooms or None
