from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .day_key import is_valid_day_key, today_key, yesterday_key
from .db import EventStore
from .deps import current_settings, get_settings_provider, get_store, http_error, store_error
from .errors import DateValidationError, FluidLogError
from .logging_service import apply_actions
from .parser import parse_message
from .reports import UNPARSEABLE_HINT, build_confirmation, build_report, limit_warning
from .routes import entries as entry_routes
from .routes import settings as settings_routes
from .schemas import ChatRequest, ChatResponse, TodayResponse
from .settings import SettingsProvider
from .summary import intake_status, summarize

logger = logging.getLogger(__name__)


app = FastAPI(
    title="Fluidlog API",
    version="0.1.0",
    description="Logs a child's fluid intake, outputs and wellness from caregiver notes",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(entry_routes.router)
app.include_router(settings_routes.router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/api/today", response_model=TodayResponse)
async def today(
    store: EventStore = Depends(get_store),
    provider: SettingsProvider = Depends(get_settings_provider),
) -> TodayResponse:
    settings = current_settings(provider)
    key = today_key(settings)
    try:
        summary = summarize(store, key)
    except sqlite3.Error as exc:
        raise store_error(exc) from exc
    return TodayResponse(
        day_key=key,
        intake=intake_status(summary.total_intake, settings),
        summary=summary,
    )


@app.get("/api/report")
async def report(
    day_key: Optional[str] = Query(None, description="Fluid day to report on; defaults to today"),
    store: EventStore = Depends(get_store),
    provider: SettingsProvider = Depends(get_settings_provider),
) -> dict:
    settings = current_settings(provider)
    key = day_key or today_key(settings)
    if not is_valid_day_key(key):
        raise http_error(DateValidationError(f"not a day key: {key!r}", user_message="Use a YYYY-MM-DD date."))
    try:
        summary = summarize(store, key)
    except sqlite3.Error as exc:
        raise store_error(exc) from exc
    return {"ok": True, "day_key": key, "report": build_report(summary, settings)}


@app.post("/api/chat", response_model=ChatResponse)
async def chat(
    payload: ChatRequest,
    store: EventStore = Depends(get_store),
    provider: SettingsProvider = Depends(get_settings_provider),
) -> ChatResponse:
    start = time.perf_counter()
    text = payload.text.strip()
    if not text:
        raise HTTPException(
            status_code=400, detail={"code": "E_VALIDATION", "message": "Missing or empty text"}
        )
    logger.info("chat request", extra={"path": "/api/chat", "source": payload.source.value})

    try:
        parsed = await asyncio.to_thread(parse_message, text)
    except FluidLogError as exc:
        raise http_error(exc) from exc

    if parsed.unparseable:
        logger.info(
            "chat message unparseable",
            extra={"rejected": len(parsed.rejected), "elapsed_ms": int((time.perf_counter() - start) * 1000)},
        )
        return ChatResponse(
            ok=False,
            status="unparseable",
            message=UNPARSEABLE_HINT,
            rejected=parsed.rejected,
        )

    now = datetime.now(timezone.utc)
    explicit_date = payload.date
    if explicit_date is None and parsed.date_offset == -1:
        explicit_date = yesterday_key(current_settings(provider), now)

    try:
        result = apply_actions(
            store,
            provider,
            parsed.actions,
            explicit_date,
            source=payload.source,
            now=now,
        )
    except FluidLogError as exc:
        raise http_error(exc) from exc

    settings = current_settings(provider)
    logger.info(
        "chat message logged",
        extra={
            "day_key": result.day_key,
            "actions": len(parsed.actions),
            "elapsed_ms": int((time.perf_counter() - start) * 1000),
        },
    )
    return ChatResponse(
        ok=True,
        status="logged",
        message=build_confirmation(parsed.actions, result.summary, settings, result.failures),
        warning=limit_warning(result.summary, settings),
        actions=parsed.actions,
        rejected=parsed.rejected,
        day_key=result.day_key,
        summary=result.summary,
        intake=result.status,
        failures=result.failures,
    )


@app.get("/")
async def root() -> dict:
    return {"message": "Fluidlog API ready"}
