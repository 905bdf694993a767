import sqlite3

from fastapi import APIRouter, Depends, HTTPException

from ..deps import current_settings, get_settings_provider, store_error
from ..settings import SettingsProvider, SettingsUpdate, TrackerSettings

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=TrackerSettings)
async def get_settings_endpoint(
    provider: SettingsProvider = Depends(get_settings_provider),
) -> TrackerSettings:
    return current_settings(provider)


@router.post("", response_model=TrackerSettings)
async def update_settings_endpoint(
    payload: SettingsUpdate,
    provider: SettingsProvider = Depends(get_settings_provider),
) -> TrackerSettings:
    try:
        return provider.update(payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=422, detail={"code": "E_VALIDATION", "message": str(exc)}
        ) from exc
    except sqlite3.Error as exc:
        raise store_error(exc) from exc
