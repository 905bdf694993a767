"""Sample data for demos and local development.

Run ``python -m fluidlog.seed`` to fill the configured database with a few
realistic days. Days that already have fluid entries are left alone.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from .day_key import shift_day_key, today_key
from .db import EventStore
from .schemas import CheckTime, EntryType, FluidLogEntry, LogSource, WellnessCheck
from .settings import SettingsProvider, TrackerSettings

logger = logging.getLogger(__name__)

SAMPLE_DAYS: List[Dict[str, list]] = [
    # rough day: vomiting, low intake
    {
        "inputs": [(9, "pediasure", 80), (11, "water", 40), (14, "pediasure", 60), (18, "pediasure", 80), (21, "water", 30)],
        "outputs": [(10, "urine", 50), (12, "vomit", 70), (15, "urine", 40), (19, "vomit", 45), (22, "urine", 35)],
        "gags": [(12, 2), (19, 1)],
        "wellness": [("5pm", 3, 3, 4, 6), ("10pm", 2, 2, 3, 7)],
    },
    # recovery
    {
        "inputs": [(8, "water", 50), (10, "pediasure", 100), (12, "juice", 60), (14, "pediasure", 100), (16, "vitamin_water", 80), (19, "pediasure", 120), (21, "water", 40)],
        "outputs": [(9, "urine", 60), (13, "urine", 75), (18, "urine", 55), (22, "poop", None)],
        "gags": [(15, 1)],
        "wellness": [("5pm", 5, 5, 6, 4), ("10pm", 5, 4, 6, 4)],
    },
    # good day, near the limit
    {
        "inputs": [(8, "pediasure", 120), (10, "vitamin_water", 80), (12, "pediasure", 120), (14, "juice", 100), (16, "yogurt_drink", 100), (19, "pediasure", 120), (21, "water", 60), (22, "milk", 300)],
        "outputs": [(9, "urine", 90), (12, "urine", 80), (16, "urine", 70), (20, "urine", 85)],
        "gags": [],
        "wellness": [("5pm", 7, 6, 8, 3), ("10pm", 7, 6, 7, 3)],
    },
]


def _at(key: str, hour: int, settings: TrackerSettings) -> datetime:
    """UTC instant for ``hour`` o'clock local time inside fluid day ``key``."""

    calendar_day = date.fromisoformat(key)
    if hour < settings.day_start_hour:
        calendar_day += timedelta(days=1)
    local = datetime.combine(calendar_day, time(hour), tzinfo=ZoneInfo(settings.timezone))
    return local.astimezone(timezone.utc)


def _seed_day(store: EventStore, key: str, data: Dict[str, list], settings: TrackerSettings) -> None:
    for entry_type, rows in ((EntryType.INPUT, data["inputs"]), (EntryType.OUTPUT, data["outputs"])):
        for hour, fluid_type, amount in rows:
            store.insert_fluid_log(
                FluidLogEntry(
                    timestamp=_at(key, hour, settings),
                    day_key=key,
                    entry_type=entry_type,
                    fluid_type=fluid_type,
                    amount_ml=amount,
                    source=LogSource.SEED,
                )
            )
    for hour, count in data["gags"]:
        base = _at(key, hour, settings)
        for offset in range(count):
            store.insert_gag(base + timedelta(milliseconds=offset), key)
    for check_time, appetite, energy, mood, cyanosis in data["wellness"]:
        store.insert_wellness(
            WellnessCheck(
                timestamp=_at(key, 17 if check_time == CheckTime.AFTERNOON.value else 22, settings),
                day_key=key,
                check_time=check_time,
                appetite=appetite,
                energy=energy,
                mood=mood,
                cyanosis=cyanosis,
            )
        )


def seed_sample_days(
    store: EventStore,
    settings_provider: SettingsProvider,
    days: int = 3,
    now: Optional[datetime] = None,
) -> List[str]:
    """Seed up to ``days`` fluid days before today; return the keys written."""

    settings = settings_provider.current()
    today = today_key(settings, now)
    days = min(days, len(SAMPLE_DAYS))
    keys = [shift_day_key(today, -offset) for offset in range(days, 0, -1)]
    samples = SAMPLE_DAYS[len(SAMPLE_DAYS) - days:]

    seeded: List[str] = []
    for key, data in zip(keys, samples):
        if store.query_by_day_key("fluid", key):
            logger.info("day already has data, skipping", extra={"day_key": key})
            continue
        _seed_day(store, key, data, settings)
        seeded.append(key)
        logger.info("seeded sample day", extra={"day_key": key})
    return seeded


if __name__ == "__main__":
    from .config import CONFIG
    from .db import SQLiteEventStore

    logging.basicConfig(level=logging.INFO)
    sample_store = SQLiteEventStore(CONFIG.resolved_database_path)
    written = seed_sample_days(sample_store, SettingsProvider(sample_store))
    logger.info("seeding finished", extra={"seeded": written})
