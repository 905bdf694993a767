from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import datetime, timedelta, timezone

import pytest

from fluidlog.db import EventStore, SQLiteEventStore, from_millis, to_millis
from fluidlog.schemas import CheckTime, EntryType, FluidLogEntry, LogSource, WellnessCheck

T0 = datetime(2025, 6, 3, 16, 0, tzinfo=timezone.utc)


def fluid(day: str, amount: float, at: datetime = T0, fluid_type: str = "water") -> FluidLogEntry:
    return FluidLogEntry(
        timestamp=at,
        day_key=day,
        entry_type=EntryType.INPUT,
        fluid_type=fluid_type,
        amount_ml=amount,
        source=LogSource.API,
    )


def test_store_satisfies_contract(store: SQLiteEventStore) -> None:
    assert isinstance(store, EventStore)


def test_millis_round_trip_is_exact() -> None:
    stamp = datetime(2025, 6, 3, 16, 0, 0, 123000, tzinfo=timezone.utc)
    assert to_millis(stamp) == 1748966400123
    assert from_millis(to_millis(stamp)) == stamp


def test_query_orders_by_timestamp_then_insertion(store: SQLiteEventStore) -> None:
    late = store.insert_fluid_log(fluid("2025-06-03", 50, T0 + timedelta(hours=1)))
    first = store.insert_fluid_log(fluid("2025-06-03", 60, T0))
    second = store.insert_fluid_log(fluid("2025-06-03", 70, T0))
    store.insert_fluid_log(fluid("2025-06-02", 80, T0))

    rows = store.query_by_day_key("fluid", "2025-06-03")

    assert [row["id"] for row in rows] == [first, second, late]
    assert rows[0]["timestamp"] == T0
    assert rows[0]["source"] == "api"


def test_wellness_is_append_only(store: SQLiteEventStore) -> None:
    for mood in (4, 8):
        store.insert_wellness(
            WellnessCheck(timestamp=T0, day_key="2025-06-03", check_time=CheckTime.EVENING, mood=mood)
        )
    rows = store.query_by_day_key("wellness", "2025-06-03")
    assert [row["mood"] for row in rows] == [4, 8]
    assert rows[0]["check_time"] == "10pm"


def test_gag_ids_are_distinct(store: SQLiteEventStore) -> None:
    ids = [store.insert_gag(T0 + timedelta(milliseconds=i), "2025-06-03") for i in range(3)]
    assert len(set(ids)) == 3
    assert len(store.query_by_day_key("gag", "2025-06-03")) == 3


def test_weight_upsert_keeps_one_row_per_date(store: SQLiteEventStore) -> None:
    store.upsert_weight("2025-06-03", 14.2)
    store.upsert_weight("2025-06-03", 14.5, "after feed")
    store.upsert_weight("2025-06-02", 14.1)

    row = store.get_weight("2025-06-03")
    assert row["weight_kg"] == 14.5
    assert row["notes"] == "after feed"
    assert [r["date"] for r in store.weight_history()] == ["2025-06-03", "2025-06-02"]
    assert store.query_by_day_key("weight", "2025-06-01") == []


def test_delete_by_id_reports_missing_rows(store: SQLiteEventStore) -> None:
    entry_id = store.insert_fluid_log(fluid("2025-06-03", 50))
    assert store.delete_by_id("fluid", entry_id) is True
    assert store.delete_by_id("fluid", entry_id) is False
    assert store.query_by_day_key("fluid", "2025-06-03") == []


def test_unknown_kind_is_rejected(store: SQLiteEventStore) -> None:
    with pytest.raises(ValueError):
        store.query_by_day_key("sleep", "2025-06-03")
    with pytest.raises(ValueError):
        store.delete_by_id("sleep", 1)


def test_last_fluid_log_is_latest_insert(store: SQLiteEventStore) -> None:
    assert store.last_fluid_log() is None
    store.insert_fluid_log(fluid("2025-06-03", 50, T0 + timedelta(hours=2)))
    newest = store.insert_fluid_log(fluid("2025-06-02", 70, T0))
    assert store.last_fluid_log()["id"] == newest


def test_settings_round_trip(store: SQLiteEventStore) -> None:
    assert store.get_setting("daily_limit_ml") is None
    store.set_setting("daily_limit_ml", 1000)
    store.set_setting("daily_limit_ml", 1100)
    assert store.get_setting("daily_limit_ml") == "1100"
    assert store.all_settings() == {"daily_limit_ml": "1100"}


def test_schema_survives_reopen(tmp_path) -> None:
    path = tmp_path / "nested" / "fluidlog.db"
    first = SQLiteEventStore(path)
    first.insert_fluid_log(fluid("2025-06-03", 50))
    reopened = SQLiteEventStore(path)
    assert len(reopened.query_by_day_key("fluid", "2025-06-03")) == 1


def test_fresh_weight_table_is_created_with_notes(store: SQLiteEventStore) -> None:
    with store.get_connection() as conn:
        ddl = conn.execute("SELECT sql FROM sqlite_master WHERE name = 'weight_logs'").fetchone()[0]
    assert "notes TEXT" in ddl


def test_older_weight_table_gains_notes_column(tmp_path) -> None:
    path = tmp_path / "older.db"
    with closing(sqlite3.connect(path)) as conn:
        conn.execute(
            "CREATE TABLE weight_logs (id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "date TEXT NOT NULL UNIQUE, weight_kg REAL NOT NULL, logged_at TEXT NOT NULL)"
        )
        conn.execute(
            "INSERT INTO weight_logs (date, weight_kg, logged_at) VALUES ('2025-06-02', 14.1, '2025-06-02T08:00:00Z')"
        )
        conn.commit()

    upgraded = SQLiteEventStore(path)
    upgraded.upsert_weight("2025-06-03", 14.3, "before breakfast")

    assert upgraded.get_weight("2025-06-02")["notes"] is None
    assert upgraded.get_weight("2025-06-03")["notes"] == "before breakfast"
