"""Request dependencies shared by the app and its routers."""
from __future__ import annotations

import logging
import sqlite3
from functools import lru_cache

from fastapi import Depends, HTTPException

from .config import CONFIG
from .db import EventStore, SQLiteEventStore
from .errors import FluidLogError, StoreUnavailableError
from .settings import SettingsProvider, TrackerSettings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_store() -> EventStore:
    path = CONFIG.resolved_database_path
    logger.info("opening event store", extra={"path": str(path)})
    return SQLiteEventStore(path)


def get_settings_provider(store: EventStore = Depends(get_store)) -> SettingsProvider:
    return SettingsProvider(store)


def http_error(exc: FluidLogError) -> HTTPException:
    if exc.status_code >= 500:
        logger.error("request failed", extra={"code": exc.code, "detail": exc.detail})
    else:
        logger.info("request rejected", extra={"code": exc.code, "detail": exc.detail})
    return HTTPException(status_code=exc.status_code, detail=exc.to_detail())


def store_error(exc: sqlite3.Error) -> HTTPException:
    logger.exception("event store error", exc_info=exc)
    return http_error(StoreUnavailableError(str(exc)))


def current_settings(provider: SettingsProvider) -> TrackerSettings:
    try:
        return provider.current()
    except sqlite3.Error as exc:
        raise store_error(exc) from exc
