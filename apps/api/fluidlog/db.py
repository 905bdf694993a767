"""SQLite helpers and the event store contract."""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, runtime_checkable

from .schemas import FluidLogEntry, WellnessCheck

KINDS = {
    "fluid": "fluid_logs",
    "wellness": "wellness_checks",
    "gag": "gag_events",
    "weight": "weight_logs",
}


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def from_millis(value: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=value)


def _table_for(kind: str) -> str:
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind: {kind!r}") from None


@runtime_checkable
class EventStore(Protocol):
    """Persistence contract consumed by the aggregator and orchestrator."""

    def insert_fluid_log(self, entry: FluidLogEntry) -> int: ...

    def insert_wellness(self, entry: WellnessCheck) -> int: ...

    def insert_gag(self, timestamp: datetime, day_key: str) -> int: ...

    def upsert_weight(self, date: str, weight_kg: float, notes: Optional[str] = None) -> None: ...

    def query_by_day_key(self, kind: str, day_key: str) -> List[dict]: ...

    def delete_by_id(self, kind: str, record_id: int) -> bool: ...

    def get_setting(self, key: str) -> Optional[str]: ...

    def set_setting(self, key: str, value: Any) -> None: ...

    def all_settings(self) -> Dict[str, str]: ...

    def last_fluid_log(self) -> Optional[dict]: ...

    def get_weight(self, date: str) -> Optional[dict]: ...

    def weight_history(self, limit: int = 30) -> List[dict]: ...


def _ensure_column(conn: sqlite3.Connection, table: str, column: str, ddl: str) -> None:
    cursor = conn.execute(f"PRAGMA table_info({table})")
    existing = {row[1] for row in cursor.fetchall()}
    if column not in existing:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")


def _row_to_dict(row: sqlite3.Row | None) -> dict:
    if row is None:
        return {}
    return {key: row[key] for key in row.keys()}


class SQLiteEventStore:
    """Event store backed by a single SQLite file.

    Each call opens its own short-lived connection, so the store can be shared
    between request threads. SQLite serializes writers; WAL mode lets readers
    proceed while a write is in flight.
    """

    def __init__(self, db_path: Path | str, *, timeout: float = 5.0) -> None:
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.initialize()

    @contextmanager
    def get_connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        with self.get_connection() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS fluid_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp INTEGER NOT NULL,
                    day_key TEXT NOT NULL,
                    entry_type TEXT NOT NULL,
                    fluid_type TEXT NOT NULL,
                    amount_ml REAL,
                    notes TEXT,
                    source TEXT DEFAULT 'telegram'
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS wellness_checks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp INTEGER NOT NULL,
                    day_key TEXT NOT NULL,
                    check_time TEXT NOT NULL,
                    appetite INTEGER,
                    energy INTEGER,
                    mood INTEGER,
                    cyanosis INTEGER
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS gag_events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp INTEGER NOT NULL,
                    day_key TEXT NOT NULL
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS weight_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    date TEXT NOT NULL UNIQUE,
                    weight_kg REAL NOT NULL,
                    logged_at TEXT NOT NULL,
                    notes TEXT
                );
                """
            )
            # Files created before weights carried notes.
            _ensure_column(conn, "weight_logs", "notes", "TEXT")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )
            for table in ("fluid_logs", "wellness_checks", "gag_events"):
                conn.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{table}_day_key ON {table} (day_key, timestamp)"
                )
            conn.commit()

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def insert_fluid_log(self, entry: FluidLogEntry) -> int:
        with self.get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO fluid_logs (timestamp, day_key, entry_type, fluid_type, amount_ml, notes, source)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    to_millis(entry.timestamp),
                    entry.day_key,
                    entry.entry_type.value,
                    entry.fluid_type,
                    entry.amount_ml,
                    entry.notes,
                    entry.source.value,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def insert_wellness(self, entry: WellnessCheck) -> int:
        with self.get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO wellness_checks (timestamp, day_key, check_time, appetite, energy, mood, cyanosis)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    to_millis(entry.timestamp),
                    entry.day_key,
                    entry.check_time.value,
                    entry.appetite,
                    entry.energy,
                    entry.mood,
                    entry.cyanosis,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def insert_gag(self, timestamp: datetime, day_key: str) -> int:
        with self.get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO gag_events (timestamp, day_key) VALUES (?, ?)",
                (to_millis(timestamp), day_key),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def upsert_weight(self, date: str, weight_kg: float, notes: Optional[str] = None) -> None:
        logged_at = datetime.now(timezone.utc).isoformat()
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO weight_logs (date, weight_kg, logged_at, notes)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(date) DO UPDATE SET
                    weight_kg = excluded.weight_kg,
                    logged_at = excluded.logged_at,
                    notes = excluded.notes
                """,
                (date, weight_kg, logged_at, notes),
            )
            conn.commit()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def query_by_day_key(self, kind: str, day_key: str) -> List[dict]:
        table = _table_for(kind)
        if kind == "weight":
            row = self.get_weight(day_key)
            return [row] if row else []
        with self.get_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM {table} WHERE day_key = ? ORDER BY timestamp ASC, id ASC",
                (day_key,),
            ).fetchall()
        results = []
        for row in rows:
            data = _row_to_dict(row)
            data["timestamp"] = from_millis(data["timestamp"])
            results.append(data)
        return results

    def delete_by_id(self, kind: str, record_id: int) -> bool:
        table = _table_for(kind)
        with self.get_connection() as conn:
            cursor = conn.execute(f"DELETE FROM {table} WHERE id = ?", (record_id,))
            conn.commit()
            return cursor.rowcount > 0

    def last_fluid_log(self) -> Optional[dict]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT * FROM fluid_logs ORDER BY id DESC LIMIT 1").fetchone()
        if row is None:
            return None
        data = _row_to_dict(row)
        data["timestamp"] = from_millis(data["timestamp"])
        return data

    def get_weight(self, date: str) -> Optional[dict]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT * FROM weight_logs WHERE date = ?", (date,)).fetchone()
        return _row_to_dict(row) or None

    def weight_history(self, limit: int = 30) -> List[dict]:
        with self.get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM weight_logs ORDER BY date DESC LIMIT ?", (limit,)
            ).fetchall()
        return [_row_to_dict(row) for row in rows]

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_setting(self, key: str) -> Optional[str]:
        with self.get_connection() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set_setting(self, key: str, value: Any) -> None:
        with self.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO settings (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, str(value)),
            )
            conn.commit()

    def all_settings(self) -> Dict[str, str]:
        with self.get_connection() as conn:
            rows = conn.execute("SELECT key, value FROM settings").fetchall()
        return {row["key"]: row["value"] for row in rows}
