"""Persist parsed actions under the right fluid day."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from .day_key import is_valid_day_key, shift_day_key, today_key
from .db import EventStore
from .errors import (
    ActionValidationError,
    DateValidationError,
    StoreUnavailableError,
    SummaryUnavailableError,
)
from .schemas import (
    ApplyResult,
    EntryType,
    FluidLogEntry,
    GagAction,
    InputAction,
    LogSource,
    OutputAction,
    OutputFluid,
    PersistFailure,
    UndoResult,
    WeightAction,
    WellnessAction,
    WellnessCheck,
)
from .settings import SettingsProvider, TrackerSettings
from .summary import intake_status, summarize

logger = logging.getLogger(__name__)


def _now_utc(now: Optional[datetime] = None) -> datetime:
    ts = now or datetime.now(timezone.utc)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.replace(microsecond=ts.microsecond // 1000 * 1000)


def resolve_target_day(
    settings: TrackerSettings, explicit_date: Optional[str], now: Optional[datetime] = None
) -> str:
    """Today's key, or ``explicit_date`` when it is today or yesterday."""

    today = today_key(settings, now)
    if explicit_date is None:
        return today
    if not is_valid_day_key(explicit_date):
        raise DateValidationError(
            f"not a day key: {explicit_date!r}",
            user_message="That date isn't valid. Use YYYY-MM-DD for today or yesterday.",
        )
    if explicit_date not in (today, shift_day_key(today, -1)):
        raise DateValidationError(f"{explicit_date} is neither {today} nor the day before")
    return explicit_date


def validate_actions(actions: Sequence[object]) -> None:
    """Reject the whole batch before any write if one action is incomplete."""

    for index, action in enumerate(actions):
        if isinstance(action, (InputAction, OutputAction)):
            amount = action.amount_ml
            poop = isinstance(action, OutputAction) and action.fluid_type == OutputFluid.POOP
            if amount is None and not poop:
                raise ActionValidationError(
                    f"action {index} ({action.fluid_type.value}) has no amount",
                    user_message=f"Please include an amount for {action.fluid_type.value.replace('_', ' ')}.",
                )
            if amount is not None and amount <= 0:
                raise ActionValidationError(
                    f"action {index} has a non-positive amount",
                    user_message="Amounts must be more than zero.",
                )
        elif isinstance(action, WeightAction):
            if action.weight_kg <= 0:
                raise ActionValidationError(
                    f"action {index} has a non-positive weight",
                    user_message="Weight must be more than zero.",
                )
        elif isinstance(action, GagAction):
            if action.count < 1:
                raise ActionValidationError(f"action {index} has a gag count below one")
        elif not isinstance(action, WellnessAction):
            raise ActionValidationError(f"action {index} is not a log action: {action!r}")


class _Batch:
    """Writes one batch of actions; gag rows share a millisecond cursor."""

    def __init__(
        self,
        store: EventStore,
        day_key: str,
        timestamp: datetime,
        source: LogSource,
        notes: Optional[str],
    ) -> None:
        self.store = store
        self.day_key = day_key
        self.timestamp = timestamp
        self.source = source
        self.notes = notes
        self._gag_offset = 0

    def persist(self, action: object) -> List[int]:
        if isinstance(action, (InputAction, OutputAction)):
            entry = FluidLogEntry(
                timestamp=self.timestamp,
                day_key=self.day_key,
                entry_type=EntryType(action.type),
                fluid_type=action.fluid_type.value,
                amount_ml=action.amount_ml,
                notes=self.notes,
                source=self.source,
            )
            return [self.store.insert_fluid_log(entry)]
        if isinstance(action, WellnessAction):
            check = WellnessCheck(
                timestamp=self.timestamp,
                day_key=self.day_key,
                check_time=action.check_time,
                appetite=action.appetite,
                energy=action.energy,
                mood=action.mood,
                cyanosis=action.cyanosis,
            )
            return [self.store.insert_wellness(check)]
        if isinstance(action, GagAction):
            ids = []
            for _ in range(action.count):
                stamp = self.timestamp + timedelta(milliseconds=self._gag_offset)
                ids.append(self.store.insert_gag(stamp, self.day_key))
                self._gag_offset += 1
            return ids
        if isinstance(action, WeightAction):
            self.store.upsert_weight(self.day_key, action.weight_kg, action.notes or self.notes)
            return []
        raise ValueError(f"unsupported action: {action!r}")


def apply_actions(
    store: EventStore,
    settings_provider: SettingsProvider,
    actions: Sequence[object],
    explicit_date: Optional[str] = None,
    *,
    source: LogSource = LogSource.API,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ApplyResult:
    """Persist ``actions`` in order and return a fresh summary of their day.

    A failure writing one action is logged and skipped; the rest of the batch
    is still attempted.
    """

    timestamp = _now_utc(now)
    try:
        settings = settings_provider.current()
    except sqlite3.Error as exc:
        raise StoreUnavailableError(str(exc)) from exc

    target_day = resolve_target_day(settings, explicit_date, timestamp)
    validate_actions(actions)

    batch = _Batch(store, target_day, timestamp, source, notes)
    persisted: List[List[int]] = []
    failures: List[PersistFailure] = []
    for index, action in enumerate(actions):
        try:
            persisted.append(batch.persist(action))
        except sqlite3.Error as exc:
            logger.exception(
                "failed to persist action, skipping",
                extra={"day_key": target_day, "index": index, "kind": getattr(action, "type", None)},
            )
            failures.append(
                PersistFailure(index=index, kind=getattr(action, "type", "unknown"), reason=str(exc))
            )
            persisted.append([])

    if actions and len(failures) == len(actions):
        raise StoreUnavailableError(f"all {len(actions)} actions failed to persist")

    try:
        summary = summarize(store, target_day)
        status = intake_status(summary.total_intake, settings_provider.current())
    except sqlite3.Error as exc:
        logger.exception("entries saved but summary failed", extra={"day_key": target_day})
        raise SummaryUnavailableError(str(exc), persisted=persisted) from exc

    logger.info(
        "actions logged",
        extra={
            "day_key": target_day,
            "count": len(actions),
            "failed": len(failures),
            "source": source.value,
            "total_intake": summary.total_intake,
        },
    )
    return ApplyResult(
        day_key=target_day,
        summary=summary,
        status=status,
        persisted=persisted,
        failures=failures,
    )


def undo_last_entry(store: EventStore, settings_provider: SettingsProvider) -> Optional[UndoResult]:
    """Remove the most recently inserted fluid entry, whatever its day."""

    last = store.last_fluid_log()
    if not last:
        return None
    removed = FluidLogEntry.model_validate(last)
    store.delete_by_id("fluid", last["id"])
    summary = summarize(store, removed.day_key)
    logger.info("undid fluid entry", extra={"entry_id": last["id"], "day_key": removed.day_key})
    return UndoResult(
        removed=removed,
        summary=summary,
        status=intake_status(summary.total_intake, settings_provider.current()),
    )


def delete_entry(store: EventStore, kind: str, entry_id: int) -> bool:
    deleted = store.delete_by_id(kind, entry_id)
    logger.info("entry delete requested", extra={"kind": kind, "entry_id": entry_id, "deleted": deleted})
    return deleted
