# src/taskboard/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing is read at import time; get_settings() builds it on first use.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKBOARD"

LOCALES = ("en", "pt")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


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

    # ---- Local data (ignored by git) ----
    data_dir: Path
    state_path: Path
    storage_key: str
    persist: bool

    # ---- Console front end ----
    console_enabled: bool
    locale: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskboard").strip() or "taskboard"
        log_level = _env(_k("LOG_LEVEL"), "INFO").strip().upper() or "INFO"

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskboard"))
        state_path = _env_path(_k("STATE_PATH"), data_dir / "state.json")
        storage_key = _env(_k("STORAGE_KEY"), "task-manager-storage").strip() or "task-manager-storage"
        persist = _env_bool(_k("PERSIST"), True)

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        locale = _env(_k("LOCALE"), "en").strip().lower()
        if locale not in LOCALES:
            locale = "en"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            state_path=state_path,
            storage_key=storage_key,
            persist=persist,
            console_enabled=console_enabled,
            locale=locale,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        # Real environment wins over .env.
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
