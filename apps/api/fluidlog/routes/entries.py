import sqlite3
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..db import KINDS, EventStore
from ..deps import current_settings, get_settings_provider, get_store, http_error, store_error
from ..errors import FluidLogError
from ..logging_service import apply_actions, delete_entry, undo_last_entry
from ..schemas import ApplyResult, HistoryDay, LogRequest, LogSource, UndoResult, WeightEntry
from ..settings import SettingsProvider
from ..summary import build_history

router = APIRouter(prefix="/api", tags=["entries"])


def _not_found(message: str) -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "E_NOT_FOUND", "message": message})


@router.post("/log", response_model=ApplyResult)
async def log_entry_endpoint(
    payload: LogRequest,
    store: EventStore = Depends(get_store),
    provider: SettingsProvider = Depends(get_settings_provider),
) -> ApplyResult:
    try:
        return apply_actions(
            store,
            provider,
            [payload.action],
            payload.date,
            source=LogSource.API,
            notes=payload.notes,
        )
    except FluidLogError as exc:
        raise http_error(exc) from exc


@router.delete("/log/{entry_id}")
async def delete_entry_endpoint(
    entry_id: int,
    kind: str = Query("fluid", description="fluid | wellness | gag | weight"),
    store: EventStore = Depends(get_store),
) -> dict:
    if kind not in KINDS:
        raise HTTPException(
            status_code=400,
            detail={"code": "E_VALIDATION", "message": f"Unknown entry kind: {kind}"},
        )
    try:
        deleted = delete_entry(store, kind, entry_id)
    except sqlite3.Error as exc:
        raise store_error(exc) from exc
    if not deleted:
        raise _not_found(f"No {kind} entry with id {entry_id}.")
    return {"ok": True, "deleted": entry_id, "kind": kind}


@router.post("/undo", response_model=UndoResult)
async def undo_endpoint(
    store: EventStore = Depends(get_store),
    provider: SettingsProvider = Depends(get_settings_provider),
) -> UndoResult:
    try:
        result = undo_last_entry(store, provider)
    except sqlite3.Error as exc:
        raise store_error(exc) from exc
    if result is None:
        raise _not_found("Nothing to undo.")
    return result


@router.get("/history", response_model=List[HistoryDay])
async def history_endpoint(
    days: int = Query(7, description="Number of fluid days, clamped to 1..30"),
    store: EventStore = Depends(get_store),
    provider: SettingsProvider = Depends(get_settings_provider),
) -> List[HistoryDay]:
    settings = current_settings(provider)
    try:
        return build_history(store, settings, days=days)
    except sqlite3.Error as exc:
        raise store_error(exc) from exc


@router.get("/weights", response_model=List[WeightEntry])
async def weights_endpoint(
    limit: int = Query(30, ge=1, le=365),
    store: EventStore = Depends(get_store),
) -> List[WeightEntry]:
    try:
        rows = store.weight_history(limit=limit)
    except sqlite3.Error as exc:
        raise store_error(exc) from exc
    return [WeightEntry.model_validate(row) for row in rows]
