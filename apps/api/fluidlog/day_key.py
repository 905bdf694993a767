"""Fluid-day key helpers.

A fluid day starts at ``day_start_hour`` local time rather than midnight, so a
12:30am bottle still counts toward the day that began the previous morning.
Day keys are calendar dates (``YYYY-MM-DD``), never timestamps.
"""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, List, Optional
from zoneinfo import ZoneInfo

if TYPE_CHECKING:
    from .settings import TrackerSettings

_DAY_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def day_key(timestamp: Optional[datetime], tz_name: str, day_start_hour: int) -> str:
    """Return the fluid day that ``timestamp`` belongs to.

    Naive timestamps are treated as UTC. DST is handled by the zone conversion.
    """

    ts = timestamp or datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    local = ts.astimezone(ZoneInfo(tz_name))
    calendar_day = local.date()
    if local.hour < day_start_hour:
        calendar_day -= timedelta(days=1)
    return calendar_day.isoformat()


def is_valid_day_key(value: Optional[str]) -> bool:
    if not value or not _DAY_KEY_PATTERN.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def shift_day_key(key: str, days: int) -> str:
    return (date.fromisoformat(key) + timedelta(days=days)).isoformat()


def today_key(settings: "TrackerSettings", now: Optional[datetime] = None) -> str:
    return day_key(now, settings.timezone, settings.day_start_hour)


def yesterday_key(settings: "TrackerSettings", now: Optional[datetime] = None) -> str:
    return shift_day_key(today_key(settings, now), -1)


def recent_day_keys(
    settings: "TrackerSettings", days: int, now: Optional[datetime] = None
) -> List[str]:
    """Return the last ``days`` fluid days, newest first."""

    today = today_key(settings, now)
    keys: List[str] = []
    for offset in range(max(days, 0)):
        key = shift_day_key(today, -offset)
        if key not in keys:
            keys.append(key)
    return keys


def day_label(key: str) -> str:
    """Readable label such as ``Monday, Jun 3``."""

    value = date.fromisoformat(key)
    return f"{value.strftime('%A')}, {value.strftime('%b')} {value.day}"
