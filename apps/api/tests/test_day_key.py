from __future__ import annotations

from datetime import datetime, timezone

import pytest

from fluidlog.day_key import (
    day_key,
    day_label,
    is_valid_day_key,
    recent_day_keys,
    shift_day_key,
    today_key,
    yesterday_key,
)
from fluidlog.settings import SettingsUpdate, TrackerSettings

NY = "America/New_York"


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("timestamp", "expected"),
    [
        (utc(2025, 6, 3, 10, 59), "2025-06-02"),  # 6:59 EDT
        (utc(2025, 6, 3, 11, 0), "2025-06-03"),  # 7:00 EDT
        (utc(2025, 6, 4, 4, 30), "2025-06-03"),  # 00:30 EDT next calendar day
        (utc(2025, 6, 4, 10, 59, 59), "2025-06-03"),
    ],
)
def test_day_starts_at_configured_hour(timestamp: datetime, expected: str) -> None:
    assert day_key(timestamp, NY, 7) == expected


def test_midnight_start_matches_calendar_day() -> None:
    assert day_key(utc(2025, 6, 3, 4, 0), NY, 0) == "2025-06-03"
    assert day_key(utc(2025, 6, 3, 3, 59), NY, 0) == "2025-06-02"


def test_naive_timestamps_are_utc() -> None:
    assert day_key(datetime(2025, 6, 3, 11, 0), NY, 7) == "2025-06-03"


def test_dst_spring_forward() -> None:
    # 2025-03-09: clocks jump from 2:00 EST to 3:00 EDT.
    assert day_key(utc(2025, 3, 9, 10, 59), NY, 7) == "2025-03-08"  # 6:59 EDT
    assert day_key(utc(2025, 3, 9, 11, 0), NY, 7) == "2025-03-09"  # 7:00 EDT


def test_dst_fall_back() -> None:
    # 2025-11-02: clocks fall back from 2:00 EDT to 1:00 EST.
    assert day_key(utc(2025, 11, 2, 11, 59), NY, 7) == "2025-11-01"  # 6:59 EST
    assert day_key(utc(2025, 11, 2, 12, 0), NY, 7) == "2025-11-02"  # 7:00 EST


def test_timezone_change_moves_the_same_instant() -> None:
    instant = utc(2025, 6, 3, 9, 0)
    assert day_key(instant, NY, 7) == "2025-06-02"  # 5:00 EDT
    assert day_key(instant, "Europe/London", 7) == "2025-06-03"  # 10:00 BST


def test_today_key_reads_settings_snapshot() -> None:
    now = utc(2025, 6, 3, 12, 0)  # 8:00 EDT
    assert today_key(TrackerSettings(day_start_hour=7), now) == "2025-06-03"
    assert today_key(TrackerSettings(day_start_hour=9), now) == "2025-06-02"
    assert yesterday_key(TrackerSettings(day_start_hour=9), now) == "2025-06-01"


def test_day_start_change_applies_on_next_read(provider) -> None:
    now = utc(2025, 6, 3, 12, 0)
    assert today_key(provider.current(), now) == "2025-06-03"
    provider.update(SettingsUpdate(day_start_hour=9))
    assert today_key(provider.current(), now) == "2025-06-02"


@pytest.mark.parametrize(
    ("value", "valid"),
    [("2025-06-03", True), ("2025-02-30", False), ("2025-6-3", False), ("", False), (None, False)],
)
def test_is_valid_day_key(value, valid: bool) -> None:
    assert is_valid_day_key(value) is valid


def test_shift_day_key_crosses_month_and_year() -> None:
    assert shift_day_key("2025-03-01", -1) == "2025-02-28"
    assert shift_day_key("2024-12-31", 1) == "2025-01-01"


def test_recent_day_keys_newest_first() -> None:
    keys = recent_day_keys(TrackerSettings(), 3, utc(2025, 6, 3, 16, 0))
    assert keys == ["2025-06-03", "2025-06-02", "2025-06-01"]


def test_day_label() -> None:
    assert day_label("2025-06-03") == "Tuesday, Jun 3"
