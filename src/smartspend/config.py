"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "SmartSpend"
    DB_FILENAME = "smartspend.db"
    EXPORT_RETENTION = 5
    STORAGE_KEY = "smartspend_data_v1"
    AUTH_KEY = "smartspend_auth_creds"
    SESSION_KEY = "smartspend_session"
    REMINDER_KEY = "smartspend_reminder_settings"
    GEMINI_MODEL = "gemini-2.5-flash"
    INSIGHT_TRANSACTION_WINDOW = 50
    DB_TIMEOUT = 5.0

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("SMARTSPEND_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("SMARTSPEND_DATABASE_URL", self._build_sqlite_url())
        self.DB_TIMEOUT = float(os.getenv("SMARTSPEND_DB_TIMEOUT", self.DB_TIMEOUT))
        self.STORAGE_KEY = os.getenv("SMARTSPEND_STORAGE_KEY", self.STORAGE_KEY)
        self.GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        self.GEMINI_MODEL = os.getenv("SMARTSPEND_GEMINI_MODEL", self.GEMINI_MODEL)

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("SMARTSPEND_DATA_DIR", "instance")
        base_path = Path(data_root).expanduser()
        try:
            path = base_path.resolve()
            path.mkdir(parents=True, exist_ok=True)
            return path
        except PermissionError:
            # Protected install locations fall back to user-local storage.
            fallback_path = Path.home() / f".{self.APP_NAME.lower()}"
            fallback_path.mkdir(parents=True, exist_ok=True)
            return fallback_path.resolve()

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        connect_args: dict[str, Any] = {}
        if self.DATABASE_URL.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = self.DB_TIMEOUT
        return {"connect_args": connect_args}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False
