"""Daily reminder preference stored alongside the ledger."""

from __future__ import annotations

import json
import re

from pydantic import ValidationError, field_validator
from sqlmodel import SQLModel

from ..config import BaseConfig
from ..domain.repositories.storage import KeyValueStore
from ..logging_config import get_logger

logger = get_logger(__name__)

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class ReminderSettings(SQLModel):
    enabled: bool = False
    time: str = "21:00"

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        if not _TIME_PATTERN.match(value):
            raise ValueError(f"time must be HH:MM, got {value!r}")
        return value


def load_reminder_settings(
    backend: KeyValueStore, *, key: str = BaseConfig.REMINDER_KEY
) -> ReminderSettings:
    """Return stored settings, or defaults when absent or unreadable."""

    raw = backend.get(key)
    if raw is None:
        return ReminderSettings()
    try:
        data = json.loads(raw)
        # Missing or null values fall back to defaults field by field.
        return ReminderSettings.model_validate(
            {k: v for k, v in data.items() if v is not None} if isinstance(data, dict) else {}
        )
    except (ValueError, ValidationError):
        logger.warning("Ignoring unreadable reminder settings", extra={"key": key})
        return ReminderSettings()


def save_reminder_settings(
    backend: KeyValueStore, settings: ReminderSettings, *, key: str = BaseConfig.REMINDER_KEY
) -> ReminderSettings:
    backend.set(key, settings.model_dump_json())
    return settings
