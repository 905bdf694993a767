"""Tracker settings stored alongside the log.

Settings are read from the store on every call. The daily limit, timezone and
day-start hour can change at any time and must take effect on the next read,
including for historical days.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator, model_validator

from .db import EventStore

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, str] = {
    "child_name": "Elina",
    "daily_limit_ml": "1200",
    "day_start_hour": "7",
    "timezone": "America/New_York",
    "warn_threshold_yellow": "70",
    "warn_threshold_red": "90",
    "report_time_1": "19:00",
    "report_time_2": "22:00",
}

_INT_KEYS = {"daily_limit_ml", "day_start_hour", "warn_threshold_yellow", "warn_threshold_red"}


def _valid_timezone(value: str) -> bool:
    try:
        ZoneInfo(value)
    except Exception:
        return False
    return True


class TrackerSettings(BaseModel):
    """A snapshot of the settings as they were at read time."""

    child_name: str = "Elina"
    daily_limit_ml: int = 1200
    day_start_hour: int = 7
    timezone: str = "America/New_York"
    warn_threshold_yellow: int = 70
    warn_threshold_red: int = 90
    report_time_1: str = "19:00"
    report_time_2: str = "22:00"


class SettingsUpdate(BaseModel):
    child_name: Optional[str] = Field(default=None, min_length=1)
    daily_limit_ml: Optional[int] = Field(default=None, gt=0)
    day_start_hour: Optional[int] = Field(default=None, ge=0, le=23)
    timezone: Optional[str] = None
    warn_threshold_yellow: Optional[int] = Field(default=None, gt=0, le=100)
    warn_threshold_red: Optional[int] = Field(default=None, gt=0, le=100)
    report_time_1: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    report_time_2: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not _valid_timezone(value):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @model_validator(mode="after")
    def _check_thresholds(self) -> "SettingsUpdate":
        yellow, red = self.warn_threshold_yellow, self.warn_threshold_red
        if yellow is not None and red is not None and yellow >= red:
            raise ValueError("warn_threshold_yellow must be lower than warn_threshold_red")
        return self


class SettingsProvider:
    """Reads and writes tracker settings through the event store."""

    def __init__(self, store: EventStore) -> None:
        self.store = store

    def raw(self) -> Dict[str, str]:
        values = dict(DEFAULT_SETTINGS)
        values.update(self.store.all_settings())
        return values

    def current(self) -> TrackerSettings:
        values: Dict[str, Any] = {}
        for key, raw_value in self.raw().items():
            if key not in TrackerSettings.model_fields:
                continue
            if key in _INT_KEYS:
                try:
                    values[key] = int(str(raw_value).strip())
                except ValueError:
                    logger.warning("invalid setting, using default", extra={"key": key, "value": raw_value})
                    values[key] = int(DEFAULT_SETTINGS[key])
            else:
                values[key] = raw_value
        if not _valid_timezone(values.get("timezone", "")):
            logger.warning("invalid timezone setting, using default", extra={"value": values.get("timezone")})
            values["timezone"] = DEFAULT_SETTINGS["timezone"]
        if values.get("daily_limit_ml", 0) <= 0:
            values["daily_limit_ml"] = int(DEFAULT_SETTINGS["daily_limit_ml"])
        if not 0 <= values.get("day_start_hour", -1) <= 23:
            values["day_start_hour"] = int(DEFAULT_SETTINGS["day_start_hour"])
        return TrackerSettings(**values)

    def update(self, changes: SettingsUpdate) -> TrackerSettings:
        updates = changes.model_dump(exclude_none=True)
        current = self.current()
        yellow = updates.get("warn_threshold_yellow", current.warn_threshold_yellow)
        red = updates.get("warn_threshold_red", current.warn_threshold_red)
        if yellow >= red:
            raise ValueError("warn_threshold_yellow must be lower than warn_threshold_red")
        for key, value in updates.items():
            self.store.set_setting(key, value)
        logger.info("settings updated", extra={"keys": sorted(updates)})
        return self.current()
