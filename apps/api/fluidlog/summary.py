"""Day summary aggregation and derived intake views."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from .day_key import day_label, recent_day_keys, today_key
from .db import EventStore
from .schemas import (
    CheckTime,
    DaySummary,
    EntryType,
    FluidLogEntry,
    GagEvent,
    HistoryDay,
    IntakeBand,
    IntakeStatus,
    WellnessCheck,
    WellnessSnapshot,
)
from .settings import TrackerSettings


def summarize(store: EventStore, day_key: str) -> DaySummary:
    """Collect everything logged for one fluid day.

    Rows come back ordered by timestamp (ties broken by insertion order).
    Nothing is written and no settings are consulted.
    """

    fluid_rows = store.query_by_day_key("fluid", day_key)
    wellness_rows = store.query_by_day_key("wellness", day_key)
    gag_rows = store.query_by_day_key("gag", day_key)

    logs = [FluidLogEntry.model_validate(row) for row in fluid_rows]
    inputs = [log for log in logs if log.entry_type == EntryType.INPUT]
    outputs = [log for log in logs if log.entry_type == EntryType.OUTPUT]

    intake_by_type: Dict[str, float] = {}
    total_intake = 0.0
    for log in inputs:
        amount = log.amount_ml or 0
        total_intake += amount
        intake_by_type[log.fluid_type] = intake_by_type.get(log.fluid_type, 0.0) + amount

    return DaySummary(
        day_key=day_key,
        total_intake=total_intake,
        intake_by_type=intake_by_type,
        inputs=inputs,
        outputs=outputs,
        wellness=[WellnessCheck.model_validate(row) for row in wellness_rows],
        gags=[GagEvent.model_validate(row) for row in gag_rows],
    )


def intake_percent(total_intake: float, limit_ml: int) -> int:
    if limit_ml <= 0:
        return 0
    return int(total_intake / limit_ml * 100 + 0.5)


def intake_status(total_intake: float, settings: TrackerSettings) -> IntakeStatus:
    """Grade intake against the limit in effect right now."""

    limit = settings.daily_limit_ml
    exact = total_intake / limit * 100 if limit > 0 else 0.0
    over_limit = total_intake > limit
    if over_limit:
        band = IntakeBand.OVER
    elif exact >= settings.warn_threshold_red:
        band = IntakeBand.RED
    elif exact >= settings.warn_threshold_yellow:
        band = IntakeBand.YELLOW
    else:
        band = IntakeBand.GREEN
    return IntakeStatus(
        total_ml=total_intake,
        limit_ml=limit,
        percent=intake_percent(total_intake, limit),
        band=band,
        over_limit=over_limit,
        over_by_ml=round(total_intake - limit, 1) if over_limit else 0.0,
    )


def latest_wellness(
    checks: List[WellnessCheck], check_time: Optional[CheckTime] = None
) -> Optional[WellnessCheck]:
    """Most recently inserted check, optionally for one period.

    Checks are stored append-only; the newest one per period is authoritative.
    """

    candidates = [c for c in checks if check_time is None or c.check_time == check_time]
    if not candidates:
        return None
    return max(candidates, key=lambda check: (check.id or 0, check.timestamp))


def _snapshot(check: Optional[WellnessCheck]) -> Optional[WellnessSnapshot]:
    if check is None:
        return None
    return WellnessSnapshot(
        check_time=check.check_time,
        appetite=check.appetite,
        energy=check.energy,
        mood=check.mood,
        cyanosis=check.cyanosis,
    )


def build_history(
    store: EventStore,
    settings: TrackerSettings,
    days: int = 7,
    now: Optional[datetime] = None,
) -> List[HistoryDay]:
    days = min(30, max(1, days))
    today = today_key(settings, now)
    history: List[HistoryDay] = []
    for key in recent_day_keys(settings, days, now):
        summary = summarize(store, key)
        history.append(
            HistoryDay(
                day_key=key,
                label=day_label(key),
                is_today=key == today,
                intake=intake_status(summary.total_intake, settings),
                intake_by_type=summary.intake_by_type,
                inputs=summary.inputs,
                outputs=summary.outputs,
                gag_count=summary.gag_count,
                afternoon=_snapshot(latest_wellness(summary.wellness, CheckTime.AFTERNOON)),
                evening=_snapshot(latest_wellness(summary.wellness, CheckTime.EVENING)),
            )
        )
    return history
